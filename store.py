"""Persistence boundary for ledger occurrences.

Every bulk mutation is issued as a single ``UPDATE ... WHERE`` or
``DELETE ... WHERE`` whose predicate (series, ``status = pending`` and the
date/number cutoff) is evaluated by the database when the statement runs, so an
occurrence confirmed between planning and commit is never swept in.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Iterator, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import ConsistencyViolation, StoreFailure
from models import SeriesKind, Transaction, TransactionStatus


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OccurrenceSpec:
    due_date: date
    amount_cents: int
    status: TransactionStatus = TransactionStatus.pending
    installment_number: Optional[int] = None


@dataclass(frozen=True)
class BulkPredicate:
    series_kind: SeriesKind
    series_id: int
    due_date_after: Optional[date] = None
    due_date_from: Optional[date] = None
    installment_number_from: Optional[int] = None
    status: TransactionStatus = TransactionStatus.pending

    def __post_init__(self) -> None:
        if self.status != TransactionStatus.pending:
            raise ConsistencyViolation(
                "Bulk mutations can only target pending occurrences"
            )
        if (
            self.installment_number_from is not None
            and self.series_kind != SeriesKind.installment
        ):
            raise ConsistencyViolation(
                "Installment number cutoffs only apply to installment groups"
            )

    def clauses(self) -> list:
        if self.series_kind == SeriesKind.recurrence:
            series_column = Transaction.recurrence_id
        else:
            series_column = Transaction.installment_group_id
        clauses = [series_column == self.series_id, Transaction.status == self.status]
        if self.due_date_after is not None:
            clauses.append(Transaction.due_date > self.due_date_after)
        if self.due_date_from is not None:
            clauses.append(Transaction.due_date >= self.due_date_from)
        if self.installment_number_from is not None:
            clauses.append(
                Transaction.installment_number >= self.installment_number_from
            )
        return clauses

    def matches(self, txn: Transaction) -> bool:
        if self.series_kind == SeriesKind.recurrence:
            series_id = txn.recurrence_id
        else:
            series_id = txn.installment_group_id
        if series_id != self.series_id or txn.status != self.status:
            return False
        if self.due_date_after is not None and not txn.due_date > self.due_date_after:
            return False
        if self.due_date_from is not None and not txn.due_date >= self.due_date_from:
            return False
        if self.installment_number_from is not None and (
            txn.installment_number is None
            or txn.installment_number < self.installment_number_from
        ):
            return False
        return True


@dataclass
class StoreEvent:
    action: str
    user_id: int
    count: int
    invoice_ids: set[int] = field(default_factory=set)


StoreListener = Callable[[StoreEvent], None]


class OccurrenceStore:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id
        self._listeners: list[StoreListener] = []

    def add_listener(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def _notify(self, event: StoreEvent) -> None:
        for listener in self._listeners:
            listener(event)

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error(f"store_failure: action={action} user_id={self.user_id}")
            raise StoreFailure(f"{action} failed: {exc}") from exc

    def _scoped(self, predicate: BulkPredicate) -> list:
        return [Transaction.user_id == self.user_id, *predicate.clauses()]

    def _invoice_ids_where(self, clauses: list) -> set[int]:
        stmt = select(Transaction.invoice_id).where(
            *clauses, Transaction.invoice_id.isnot(None)
        )
        return set(self.session.scalars(stmt.distinct()).all())

    def insert_batch(self, rows: list[Transaction]) -> list[Transaction]:
        if not rows:
            return rows
        for row in rows:
            if row.recurrence_id is not None and row.installment_group_id is not None:
                raise ConsistencyViolation(
                    "An occurrence cannot belong to a recurrence and an installment group"
                )
            row.user_id = self.user_id
        with self._guard("insert_batch"):
            self.session.add_all(rows)
            self.session.flush()
        invoice_ids = {row.invoice_id for row in rows if row.invoice_id is not None}
        self._notify(StoreEvent("insert", self.user_id, len(rows), invoice_ids))
        return rows

    def update_where(self, predicate: BulkPredicate, values: dict[str, object]) -> int:
        if not values:
            return 0
        clauses = self._scoped(predicate)
        with self._guard("update_where"):
            invoice_ids = self._invoice_ids_where(clauses)
            result = self.session.execute(
                update(Transaction).where(*clauses).values(**values)
            )
        count = result.rowcount or 0
        self._notify(StoreEvent("update", self.user_id, count, invoice_ids))
        return count

    def delete_where(self, predicate: BulkPredicate) -> int:
        clauses = self._scoped(predicate)
        with self._guard("delete_where"):
            invoice_ids = self._invoice_ids_where(clauses)
            result = self.session.execute(delete(Transaction).where(*clauses))
        count = result.rowcount or 0
        self._notify(StoreEvent("delete", self.user_id, count, invoice_ids))
        return count

    def update_one(self, txn: Transaction, values: dict[str, object]) -> Transaction:
        previous_invoice = txn.invoice_id
        with self._guard("update_one"):
            for key, value in values.items():
                setattr(txn, key, value)
            self.session.flush()
        invoice_ids = {i for i in (previous_invoice, txn.invoice_id) if i is not None}
        self._notify(StoreEvent("update", self.user_id, 1, invoice_ids))
        return txn

    def delete_one(self, txn: Transaction) -> None:
        invoice_ids = {txn.invoice_id} if txn.invoice_id is not None else set()
        with self._guard("delete_one"):
            self.session.delete(txn)
            self.session.flush()
        self._notify(StoreEvent("delete", self.user_id, 1, invoice_ids))

    def find_series(self, kind: SeriesKind, series_id: int) -> list[Transaction]:
        stmt = select(Transaction).where(Transaction.user_id == self.user_id)
        if kind == SeriesKind.recurrence:
            stmt = stmt.where(Transaction.recurrence_id == series_id).order_by(
                Transaction.due_date, Transaction.id
            )
        else:
            stmt = stmt.where(Transaction.installment_group_id == series_id).order_by(
                Transaction.installment_number, Transaction.id
            )
        return list(self.session.scalars(stmt).all())

    def last_due_date(self, recurrence_id: int) -> Optional[date]:
        stmt = select(func.max(Transaction.due_date)).where(
            Transaction.user_id == self.user_id,
            Transaction.recurrence_id == recurrence_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def existing_due_dates(self, recurrence_id: int, dates: list[date]) -> set[date]:
        if not dates:
            return set()
        stmt = select(Transaction.due_date).where(
            Transaction.user_id == self.user_id,
            Transaction.recurrence_id == recurrence_id,
            Transaction.due_date.in_(dates),
        )
        return set(self.session.scalars(stmt).all())
