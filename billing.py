from dataclasses import dataclass
from datetime import date

from dates import add_months, days_in_month, month_start
from errors import InvalidInput


@dataclass(frozen=True)
class BillingPeriod:
    reference_month: date
    closing_date: date
    due_date: date


def _check_day(value: int, label: str) -> None:
    if not 1 <= value <= 31:
        raise InvalidInput(f"{label} must be between 1 and 31")


def _clamped(month: date, day: int) -> date:
    return month.replace(day=min(day, days_in_month(month.year, month.month)))


def billing_month(purchase_date: date, closing_day: int) -> date:
    """First day of the month whose invoice carries a purchase on ``purchase_date``.

    A purchase made on the closing day itself still belongs to the current
    month's invoice; anything after it rolls into the next month.
    """
    _check_day(closing_day, "Closing day")
    current = month_start(purchase_date)
    if purchase_date.day > closing_day:
        return add_months(current, 1)
    return current


def resolve(purchase_date: date, closing_day: int, due_day: int) -> BillingPeriod:
    _check_day(closing_day, "Closing day")
    _check_day(due_day, "Due day")
    reference_month = billing_month(purchase_date, closing_day)
    due_month = reference_month
    if due_day < closing_day:
        due_month = add_months(reference_month, 1)
    return BillingPeriod(
        reference_month=reference_month,
        closing_date=_clamped(reference_month, closing_day),
        due_date=_clamped(due_month, due_day),
    )
