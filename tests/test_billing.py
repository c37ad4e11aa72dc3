from datetime import date

import pytest

from billing import billing_month, resolve
from errors import InvalidInput


def test_purchase_on_closing_day_stays_in_current_invoice():
    period = resolve(date(2024, 3, 5), closing_day=5, due_day=10)
    assert period.reference_month == date(2024, 3, 1)
    assert period.closing_date == date(2024, 3, 5)
    assert period.due_date == date(2024, 3, 10)


def test_purchase_after_closing_day_goes_to_next_invoice():
    period = resolve(date(2024, 3, 6), closing_day=5, due_day=10)
    assert period.reference_month == date(2024, 4, 1)
    assert period.due_date == date(2024, 4, 10)


def test_due_day_before_closing_day_pays_next_month():
    period = resolve(date(2024, 3, 10), closing_day=25, due_day=5)
    assert period.reference_month == date(2024, 3, 1)
    assert period.closing_date == date(2024, 3, 25)
    assert period.due_date == date(2024, 4, 5)


def test_december_purchase_rolls_into_next_year():
    period = resolve(date(2024, 12, 28), closing_day=20, due_day=2)
    assert period.reference_month == date(2025, 1, 1)
    assert period.due_date == date(2025, 2, 2)


def test_short_month_clamps_closing_and_due_dates():
    period = resolve(date(2023, 2, 14), closing_day=30, due_day=31)
    assert period.closing_date == date(2023, 2, 28)
    assert period.due_date == date(2023, 2, 28)


def test_billing_month_for_orphan_purchase():
    assert billing_month(date(2024, 7, 20), 15) == date(2024, 8, 1)
    assert billing_month(date(2024, 7, 15), 15) == date(2024, 7, 1)


@pytest.mark.parametrize("closing_day,due_day", [(0, 10), (32, 10), (5, 0)])
def test_rejects_out_of_range_days(closing_day, due_day):
    with pytest.raises(InvalidInput):
        resolve(date(2024, 1, 1), closing_day, due_day)
