from datetime import date

import pytest

from errors import InvalidInput
from installments import installment_label, plan
from models import AmountMode, Frequency, TransactionStatus


def test_total_mode_remainder_on_last_installment():
    result = plan(10000, AmountMode.total, 1, 3, Frequency.monthly, date(2024, 1, 1))
    assert [o.amount_cents for o in result.occurrences] == [3333, 3333, 3334]
    assert result.installment_amount_cents == 3333
    assert result.total_amount_cents == 10000


def test_total_mode_sum_always_matches_amount():
    for amount in (1, 7, 999, 10001, 123457):
        for total in range(1, 13):
            if amount < total:
                continue
            result = plan(
                amount, AmountMode.total, 1, total, Frequency.monthly, date(2024, 1, 1)
            )
            assert sum(o.amount_cents for o in result.occurrences) == amount


def test_partially_paid_purchase():
    result = plan(120000, AmountMode.total, 3, 12, Frequency.monthly, date(2024, 1, 10))
    assert result.count == 10
    assert [o.installment_number for o in result.occurrences] == list(range(3, 13))
    assert all(o.amount_cents == 12000 for o in result.occurrences)
    assert result.occurrences[0].due_date == date(2024, 1, 10)
    assert result.occurrences[-1].due_date == date(2024, 10, 10)
    assert all(o.status == TransactionStatus.pending for o in result.occurrences)


def test_per_installment_mode_multiplies():
    result = plan(
        2500, AmountMode.per_installment, 1, 4, Frequency.weekly, date(2024, 1, 1)
    )
    assert result.total_amount_cents == 10000
    assert [o.due_date for o in result.occurrences] == [
        date(2024, 1, 1),
        date(2024, 1, 8),
        date(2024, 1, 15),
        date(2024, 1, 22),
    ]


def test_month_end_first_date_stays_anchored():
    result = plan(3000, AmountMode.total, 1, 3, Frequency.monthly, date(2024, 1, 31))
    assert [o.due_date for o in result.occurrences] == [
        date(2024, 1, 31),
        date(2024, 2, 29),
        date(2024, 3, 31),
    ]


@pytest.mark.parametrize(
    "amount,start,total",
    [(0, 1, 3), (-100, 1, 3), (1000, 0, 3), (1000, 4, 3), (2, 1, 3)],
)
def test_rejects_invalid_plans(amount, start, total):
    with pytest.raises(InvalidInput):
        plan(amount, AmountMode.total, start, total, Frequency.monthly, date(2024, 1, 1))


def test_installment_label():
    assert installment_label("Laptop", 3, 12) == "Laptop (3/12)"
