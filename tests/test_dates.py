from datetime import date

import pytest

from dates import add_months, advance, days_in_month, first_index_on_or_after, shift
from errors import InvalidInput
from models import Frequency


def test_advance_monthly_clamps_to_month_end():
    assert advance(date(2024, 1, 31), Frequency.monthly) == date(2024, 2, 29)
    assert advance(date(2023, 1, 31), Frequency.monthly) == date(2023, 2, 28)
    assert advance(date(2024, 1, 31), Frequency.monthly, 3) == date(2024, 4, 30)


def test_advance_yearly_leap_day():
    assert advance(date(2024, 2, 29), Frequency.yearly) == date(2025, 2, 28)
    assert advance(date(2024, 2, 29), Frequency.yearly, 4) == date(2028, 2, 29)


def test_advance_weekly_and_biweekly():
    assert advance(date(2024, 1, 1), Frequency.daily, 3) == date(2024, 1, 4)
    assert advance(date(2024, 1, 1), Frequency.weekly, 2) == date(2024, 1, 15)
    assert advance(date(2024, 1, 1), Frequency.biweekly, 2) == date(2024, 1, 29)


def test_advance_zero_is_identity():
    for frequency in Frequency:
        assert advance(date(2024, 5, 17), frequency, 0) == date(2024, 5, 17)


def test_advance_rejects_negative_count():
    with pytest.raises(InvalidInput):
        advance(date(2024, 1, 1), Frequency.monthly, -1)


def test_shift_moves_backwards():
    assert shift(date(2024, 3, 10), Frequency.monthly, -2) == date(2024, 1, 10)
    assert shift(date(2024, 3, 10), Frequency.weekly, -1) == date(2024, 3, 3)


def test_add_months_crosses_year():
    assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)
    assert add_months(date(2024, 2, 10), 1, desired_day=31) == date(2024, 3, 31)
    assert days_in_month(2100, 2) == 28


def test_first_index_on_or_after_month_end_anchor():
    anchor = date(2024, 1, 31)
    assert first_index_on_or_after(anchor, Frequency.monthly, date(2024, 1, 1)) == 0
    assert first_index_on_or_after(anchor, Frequency.monthly, date(2024, 2, 29)) == 1
    assert first_index_on_or_after(anchor, Frequency.monthly, date(2024, 3, 1)) == 2
    assert first_index_on_or_after(anchor, Frequency.weekly, date(2024, 2, 1)) == 1
    assert first_index_on_or_after(anchor, Frequency.daily, date(2024, 2, 3)) == 3
