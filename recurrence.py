import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from config import get_settings
from dates import add_months, advance, first_index_on_or_after, local_today
from errors import InvalidInput
from models import Recurrence, Transaction, TransactionStatus
from store import OccurrenceSpec, OccurrenceStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Expansion:
    occurrences: list[OccurrenceSpec]
    next_occurrence: date


def expand(
    recurrence: Recurrence,
    last_generated: Optional[date] = None,
    horizon_months: int = 3,
    *,
    today: Optional[date] = None,
) -> Expansion:
    """Dates of ``recurrence`` not yet materialised, up to the horizon.

    Candidates are always counted from ``start_date`` so a day-31 series comes
    back to the 31st after a short month. Only dates on or after the persisted
    ``next_occurrence`` cursor, and strictly after ``last_generated`` when one
    is given, are produced.
    """
    if horizon_months < 0:
        raise InvalidInput("Horizon cannot be negative")
    if recurrence.amount_cents is None or recurrence.amount_cents <= 0:
        raise InvalidInput("Recurrence amount must be positive")
    current_next = recurrence.next_occurrence or recurrence.start_date
    if not recurrence.is_active:
        return Expansion([], current_next)

    today = today or local_today()
    limit = add_months(today, horizon_months)
    anchor = recurrence.start_date
    cursor = max(current_next, anchor)
    if last_generated is not None:
        cursor = max(cursor, last_generated + timedelta(days=1))

    index = first_index_on_or_after(anchor, recurrence.frequency, cursor)
    occurrences: list[OccurrenceSpec] = []
    while True:
        due_date = advance(anchor, recurrence.frequency, index)
        if due_date > limit:
            break
        if recurrence.end_date and due_date > recurrence.end_date:
            break
        status = (
            TransactionStatus.confirmed
            if due_date <= today
            else TransactionStatus.pending
        )
        occurrences.append(
            OccurrenceSpec(
                due_date=due_date, amount_cents=recurrence.amount_cents, status=status
            )
        )
        index += 1

    if not occurrences:
        return Expansion([], current_next)
    return Expansion(occurrences, advance(anchor, recurrence.frequency, index))


class RecurringEngine:
    def __init__(self, session: Session, store: OccurrenceStore) -> None:
        self.session = session
        self.store = store

    def extend(
        self,
        recurrence: Recurrence,
        horizon_months: Optional[int] = None,
        today: Optional[date] = None,
    ) -> int:
        from services import InvoiceService

        if horizon_months is None:
            horizon_months = get_settings().horizon_months
        # next_occurrence marks progress; stored rows may sit on moved dates.
        expansion = expand(recurrence, horizon_months=horizon_months, today=today)
        if not expansion.occurrences:
            return 0

        existing = self.store.existing_due_dates(
            recurrence.id, [spec.due_date for spec in expansion.occurrences]
        )
        invoices = InvoiceService(self.session, self.store.user_id)
        rows: list[Transaction] = []
        for spec in expansion.occurrences:
            if spec.due_date in existing:
                continue
            txn = Transaction(
                description=recurrence.description,
                amount_cents=spec.amount_cents,
                type=recurrence.type,
                due_date=spec.due_date,
                status=spec.status,
                is_recurring=True,
                recurrence_id=recurrence.id,
                account_id=recurrence.account_id,
                credit_card_id=recurrence.credit_card_id,
                category_id=recurrence.category_id,
            )
            invoices.assign(txn)
            rows.append(txn)

        self.store.insert_batch(rows)
        recurrence.next_occurrence = expansion.next_occurrence
        self.session.flush()
        logger.info(
            f"recurrence_extend: recurrence_id={recurrence.id} created={len(rows)} "
            f"next_occurrence={recurrence.next_occurrence.isoformat()}"
        )
        return len(rows)

    def extend_all(
        self, horizon_months: Optional[int] = None, today: Optional[date] = None
    ) -> int:
        stmt = (
            select(Recurrence)
            .where(
                Recurrence.user_id == self.store.user_id,
                Recurrence.is_active.is_(True),
            )
            .order_by(Recurrence.next_occurrence)
        )
        recurrences = self.session.scalars(stmt).all()
        count = 0
        for recurrence in recurrences:
            count += self.extend(recurrence, horizon_months, today)
        return count
