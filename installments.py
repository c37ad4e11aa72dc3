from dataclasses import dataclass
from datetime import date

from dates import advance
from errors import InvalidInput
from models import AmountMode, Frequency, TransactionStatus
from store import OccurrenceSpec


@dataclass(frozen=True)
class InstallmentPlan:
    installment_amount_cents: int
    total_amount_cents: int
    occurrences: list[OccurrenceSpec]

    @property
    def count(self) -> int:
        return len(self.occurrences)


def installment_label(description: str, number: int, total: int) -> str:
    return f"{description} ({number}/{total})"


def plan(
    amount_cents: int,
    amount_mode: AmountMode,
    starting_installment: int,
    total_installments: int,
    frequency: Frequency,
    first_date: date,
) -> InstallmentPlan:
    """Split a purchase into dated installments.

    ``total_installments`` counts the whole original purchase; generation starts
    at ``starting_installment`` so a partially paid purchase only gets its
    remaining rows. In ``total`` mode the amount is divided in whole cents and
    the last installment carries the remainder, so the rows always sum to the
    amount entered.
    """
    if amount_cents <= 0:
        raise InvalidInput("Amount must be positive")
    if starting_installment < 1:
        raise InvalidInput("Starting installment must be at least 1")
    if total_installments < starting_installment:
        raise InvalidInput(
            "Total installments cannot be lower than the starting installment"
        )

    count = total_installments - starting_installment + 1
    if amount_mode == AmountMode.total:
        if amount_cents < count:
            raise InvalidInput("Amount is too small to split into installments")
        installment_amount = amount_cents // count
        total_amount = amount_cents
    elif amount_mode == AmountMode.per_installment:
        installment_amount = amount_cents
        total_amount = amount_cents * count
    else:
        raise InvalidInput(f"Unsupported amount mode: {amount_mode}")

    remainder = total_amount - installment_amount * count
    occurrences: list[OccurrenceSpec] = []
    for i in range(count):
        amount = installment_amount
        if i == count - 1:
            amount += remainder
        occurrences.append(
            OccurrenceSpec(
                due_date=advance(first_date, frequency, i),
                amount_cents=amount,
                status=TransactionStatus.pending,
                installment_number=starting_installment + i,
            )
        )
    return InstallmentPlan(
        installment_amount_cents=installment_amount,
        total_amount_cents=total_amount,
        occurrences=occurrences,
    )
