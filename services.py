from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from billing import BillingPeriod, billing_month, resolve
from dates import local_today, month_start, shift
from errors import ConsistencyViolation, InvalidInput, NotFound
from installments import InstallmentPlan, installment_label, plan
from models import (
    Account,
    Category,
    CreditCard,
    InstallmentGroup,
    Invoice,
    InvoiceStatus,
    MutationScope,
    Recurrence,
    SeriesKind,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from mutations import MutationAction, MutationPlan, resolve_delete, resolve_edit
from recurrence import RecurringEngine
from schemas import (
    AccountIn,
    CategoryIn,
    CreditCardIn,
    InstallmentGroupUpdate,
    InstallmentIn,
    InvoicePaymentIn,
    OccurrenceChanges,
    RecurrenceIn,
    TransactionIn,
)
from store import BulkPredicate, OccurrenceStore, StoreEvent


logger = logging.getLogger(__name__)


def get_current_user_id() -> int:
    return 1


def build_store(session: Session, user_id: int) -> OccurrenceStore:
    store = OccurrenceStore(session, user_id)
    store.add_listener(InvoiceService(session, user_id).on_store_event)
    return store


def _owned(session: Session, model, object_id: Optional[int], user_id: int, label: str):
    if object_id is None:
        return None
    obj = session.get(model, object_id)
    if not obj or obj.user_id != user_id:
        raise NotFound(f"{label} not found")
    return obj


def _check_refs(
    session: Session,
    user_id: int,
    txn_type: TransactionType,
    category_id: Optional[int],
    account_id: Optional[int],
    credit_card_id: Optional[int],
    destination_account_id: Optional[int] = None,
) -> None:
    CategoryService(session, user_id).check(category_id, txn_type)
    _owned(session, Account, account_id, user_id, "Account")
    _owned(session, Account, destination_account_id, user_id, "Account")
    _owned(session, CreditCard, credit_card_id, user_id, "Credit card")


class CategoryService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list_all(self, include_archived: bool = False) -> list[Category]:
        stmt = select(Category).where(Category.user_id == self.user_id)
        if not include_archived:
            stmt = stmt.where(Category.archived_at.is_(None))
        stmt = stmt.order_by(Category.type, Category.name)
        return self.session.scalars(stmt).all()

    def create(self, data: CategoryIn) -> Category:
        if data.type not in (TransactionType.income, TransactionType.expense):
            raise InvalidInput("Categories are either income or expense")
        existing = self.session.scalar(
            select(Category).where(
                Category.user_id == self.user_id,
                Category.type == data.type,
                Category.name == data.name,
            )
        )
        if existing:
            raise InvalidInput("Category already exists")
        category = Category(
            user_id=self.user_id, name=data.name, type=data.type, color=data.color
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    def archive(self, category_id: int) -> None:
        category = _owned(self.session, Category, category_id, self.user_id, "Category")
        category.archived_at = datetime.utcnow()
        self.session.commit()

    def check(self, category_id: Optional[int], txn_type: TransactionType) -> None:
        category = _owned(self.session, Category, category_id, self.user_id, "Category")
        if category is not None and txn_type in (
            TransactionType.income,
            TransactionType.expense,
        ):
            if category.type != txn_type:
                raise InvalidInput("Category type mismatch")


class AccountService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list_all(self) -> list[Account]:
        stmt = (
            select(Account)
            .where(Account.user_id == self.user_id, Account.archived_at.is_(None))
            .order_by(Account.name)
        )
        return self.session.scalars(stmt).all()

    def get(self, account_id: int) -> Account:
        return _owned(self.session, Account, account_id, self.user_id, "Account")

    def create(self, data: AccountIn) -> Account:
        account = Account(
            user_id=self.user_id,
            name=data.name,
            initial_balance_cents=data.initial_balance_cents,
        )
        self.session.add(account)
        self.session.commit()
        self.session.refresh(account)
        return account


class CreditCardService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list_all(self) -> list[CreditCard]:
        stmt = (
            select(CreditCard)
            .where(
                CreditCard.user_id == self.user_id, CreditCard.archived_at.is_(None)
            )
            .order_by(CreditCard.name)
        )
        return self.session.scalars(stmt).all()

    def get(self, card_id: int) -> CreditCard:
        return _owned(self.session, CreditCard, card_id, self.user_id, "Credit card")

    def create(self, data: CreditCardIn) -> CreditCard:
        _owned(self.session, Account, data.payment_account_id, self.user_id, "Account")
        card = CreditCard(
            user_id=self.user_id,
            name=data.name,
            closing_day=data.closing_day,
            due_day=data.due_day,
            credit_limit_cents=data.credit_limit_cents,
            payment_account_id=data.payment_account_id,
        )
        self.session.add(card)
        self.session.commit()
        self.session.refresh(card)
        return card

    def billing_period(self, card_id: int, purchase_date: date) -> BillingPeriod:
        card = self.get(card_id)
        return resolve(purchase_date, card.closing_day, card.due_day)

    def billing_total(self, card_id: int, month: date) -> int:
        """Open invoice total plus confirmed orphan expenses for a billing month."""
        card = self.get(card_id)
        reference_month = month_start(month)
        from_invoices = int(
            self.session.execute(
                select(func.coalesce(func.sum(Invoice.total_amount_cents), 0)).where(
                    Invoice.user_id == self.user_id,
                    Invoice.credit_card_id == card.id,
                    Invoice.status == InvoiceStatus.open,
                    Invoice.reference_month == reference_month,
                )
            ).scalar_one()
            or 0
        )
        orphans = self.session.scalars(
            select(Transaction).where(
                Transaction.user_id == self.user_id,
                Transaction.credit_card_id == card.id,
                Transaction.invoice_id.is_(None),
                Transaction.type == TransactionType.expense,
                Transaction.status == TransactionStatus.confirmed,
            )
        ).all()
        orphan_total = sum(
            txn.amount_cents
            for txn in orphans
            if billing_month(txn.due_date, card.closing_day) == reference_month
        )
        return from_invoices + orphan_total


class InvoiceService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list_for_card(self, card_id: int) -> list[Invoice]:
        stmt = (
            select(Invoice)
            .where(Invoice.user_id == self.user_id, Invoice.credit_card_id == card_id)
            .order_by(Invoice.reference_month.desc())
        )
        return self.session.scalars(stmt).all()

    def get(self, invoice_id: int) -> Invoice:
        return _owned(self.session, Invoice, invoice_id, self.user_id, "Invoice")

    def get_or_create(self, card: CreditCard, purchase_date: date) -> Invoice:
        period = resolve(purchase_date, card.closing_day, card.due_day)
        invoice = self.session.scalar(
            select(Invoice).where(
                Invoice.credit_card_id == card.id,
                Invoice.reference_month == period.reference_month,
            )
        )
        if invoice:
            return invoice
        invoice = Invoice(
            user_id=self.user_id,
            credit_card_id=card.id,
            reference_month=period.reference_month,
            closing_date=period.closing_date,
            due_date=period.due_date,
            status=InvoiceStatus.open,
            total_amount_cents=0,
        )
        self.session.add(invoice)
        self.session.flush()
        return invoice

    def assign(self, txn: Transaction) -> None:
        if txn.credit_card_id is None or txn.type != TransactionType.expense:
            txn.invoice_id = None
            return
        card = _owned(
            self.session, CreditCard, txn.credit_card_id, self.user_id, "Credit card"
        )
        txn.invoice_id = self.get_or_create(card, txn.due_date).id

    def refresh_totals(self, invoice_ids: set[int]) -> None:
        for invoice_id in invoice_ids:
            invoice = self.session.get(Invoice, invoice_id)
            if invoice is None:
                continue
            invoice.total_amount_cents = int(
                self.session.execute(
                    select(func.coalesce(func.sum(Transaction.amount_cents), 0)).where(
                        Transaction.invoice_id == invoice_id,
                        Transaction.type == TransactionType.expense,
                    )
                ).scalar_one()
                or 0
            )
        self.session.flush()

    def on_store_event(self, event: StoreEvent) -> None:
        if event.invoice_ids:
            self.refresh_totals(event.invoice_ids)

    def close_elapsed(self, today: Optional[date] = None) -> int:
        today = today or local_today()
        result = self.session.execute(
            update(Invoice)
            .where(
                Invoice.user_id == self.user_id,
                Invoice.status == InvoiceStatus.open,
                Invoice.closing_date < today,
            )
            .values(status=InvoiceStatus.closed)
        )
        self.session.commit()
        return result.rowcount or 0

    def pay(
        self, invoice_id: int, data: InvoicePaymentIn, today: Optional[date] = None
    ) -> Transaction:
        invoice = self.get(invoice_id)
        if invoice.status == InvoiceStatus.paid:
            raise ConsistencyViolation("Invoice is already paid")
        if invoice.total_amount_cents <= 0:
            raise InvalidInput("Invoice has nothing to pay")
        account = _owned(self.session, Account, data.account_id, self.user_id, "Account")
        card = invoice.credit_card
        payment = Transaction(
            description=f"Invoice payment {card.name}",
            amount_cents=invoice.total_amount_cents,
            type=TransactionType.expense,
            due_date=data.paid_on or today or local_today(),
            status=TransactionStatus.confirmed,
            account_id=account.id,
        )
        build_store(self.session, self.user_id).insert_batch([payment])
        invoice.status = InvoiceStatus.paid
        invoice.paid_at = datetime.utcnow()
        invoice.payment_transaction_id = payment.id
        self.session.commit()
        self.session.refresh(payment)
        logger.info(
            f"invoice_paid: invoice_id={invoice.id} amount_cents={payment.amount_cents}"
        )
        return payment


class TransactionService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.store = build_store(session, self.user_id)

    def create(self, data: TransactionIn, today: Optional[date] = None) -> Transaction:
        _check_refs(
            self.session,
            self.user_id,
            data.type,
            data.category_id,
            data.account_id,
            data.credit_card_id,
            data.destination_account_id,
        )
        today = today or local_today()
        status = data.status
        if status is None:
            status = (
                TransactionStatus.pending
                if data.due_date > today
                else TransactionStatus.confirmed
            )
        txn = Transaction(
            description=data.description,
            amount_cents=data.amount_cents,
            type=data.type,
            due_date=data.due_date,
            status=status,
            category_id=data.category_id,
            account_id=data.account_id,
            credit_card_id=data.credit_card_id,
            destination_account_id=data.destination_account_id,
            notes=data.notes,
        )
        InvoiceService(self.session, self.user_id).assign(txn)
        self.store.insert_batch([txn])
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def get(self, transaction_id: int) -> Transaction:
        return _owned(
            self.session, Transaction, transaction_id, self.user_id, "Transaction"
        )

    def list(
        self,
        start: date,
        end: date,
        status: Optional[TransactionStatus] = None,
    ) -> list[Transaction]:
        stmt = select(Transaction).where(
            Transaction.user_id == self.user_id,
            Transaction.due_date.between(start, end),
        )
        if status is not None:
            stmt = stmt.where(Transaction.status == status)
        stmt = stmt.order_by(Transaction.due_date.desc(), Transaction.id.desc())
        return self.session.scalars(stmt).all()

    def confirm(self, transaction_id: int) -> Transaction:
        txn = self.get(transaction_id)
        if txn.status != TransactionStatus.confirmed:
            self.store.update_one(txn, {"status": TransactionStatus.confirmed})
            self.session.commit()
        return txn

    def _series(self, txn: Transaction):
        if txn.recurrence_id is not None and txn.installment_group_id is None:
            return self.session.get(Recurrence, txn.recurrence_id)
        if txn.installment_group_id is not None and txn.recurrence_id is None:
            return self.session.get(InstallmentGroup, txn.installment_group_id)
        return None

    def _with_invoice(self, txn: Transaction, values: dict) -> dict:
        account_id = values.get("account_id", txn.account_id)
        card_id = values.get("credit_card_id", txn.credit_card_id)
        if account_id is not None and card_id is not None:
            raise InvalidInput("Choose exactly one of account or credit card")
        _check_refs(
            self.session,
            self.user_id,
            txn.type,
            values.get("category_id"),
            values.get("account_id"),
            values.get("credit_card_id"),
        )
        if not {"due_date", "credit_card_id"} & set(values):
            return values
        probe = Transaction(
            type=txn.type,
            credit_card_id=card_id,
            due_date=values.get("due_date", txn.due_date),
        )
        InvoiceService(self.session, self.user_id).assign(probe)
        return {**values, "invoice_id": probe.invoice_id}

    def _check_date_free(self, txn: Transaction, values: dict) -> None:
        recurrence_id = values.get("recurrence_id", txn.recurrence_id)
        due_date = values.get("due_date")
        if recurrence_id is None or due_date is None or due_date == txn.due_date:
            return
        if self.store.existing_due_dates(recurrence_id, [due_date]):
            raise ConsistencyViolation(
                f"Recurrence {recurrence_id} already has an occurrence on "
                f"{due_date.isoformat()}"
            )

    def _apply(self, txn: Transaction, series, mutation: MutationPlan) -> int:
        bulk_count = 0
        if mutation.this_update:
            self._check_date_free(txn, mutation.this_update)
            self.store.update_one(txn, self._with_invoice(txn, mutation.this_update))
        if mutation.series_update and series is not None:
            for field, value in mutation.series_update.items():
                setattr(series, field, value)
            self.session.flush()
        if mutation.bulk_predicate is not None:
            if mutation.action == MutationAction.edit:
                bulk_count = self.store.update_where(
                    mutation.bulk_predicate, mutation.bulk_values or {}
                )
            else:
                bulk_count = self.store.delete_where(mutation.bulk_predicate)
        if mutation.delete_this:
            self.store.delete_one(txn)
        if isinstance(series, InstallmentGroup):
            InstallmentService(self.session, self.user_id).refresh_total(series)
        self.session.commit()
        logger.info(
            f"scoped_mutation: action={mutation.action.value} "
            f"scope={mutation.scope.value} occurrence_id={mutation.occurrence_id} "
            f"series={mutation.series_kind.value if mutation.series_kind else None} "
            f"bulk_rows={bulk_count}"
        )
        return bulk_count

    def update(
        self,
        transaction_id: int,
        changes: OccurrenceChanges,
        scope: MutationScope = MutationScope.this_only,
    ) -> Transaction:
        txn = self.get(transaction_id)
        series = self._series(txn)
        mutation = resolve_edit(
            txn, series, scope, changes.model_dump(exclude_unset=True)
        )
        self._apply(txn, series, mutation)
        self.session.refresh(txn)
        return txn

    def delete(
        self, transaction_id: int, scope: MutationScope = MutationScope.this_only
    ) -> int:
        txn = self.get(transaction_id)
        series = self._series(txn)
        mutation = resolve_delete(txn, series, scope)
        bulk_count = self._apply(txn, series, mutation)
        return bulk_count + (1 if mutation.delete_this else 0)


class RecurrenceService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.store = build_store(session, self.user_id)

    def get(self, recurrence_id: int) -> Recurrence:
        return _owned(self.session, Recurrence, recurrence_id, self.user_id, "Recurrence")

    def list(self) -> list[Recurrence]:
        stmt = (
            select(Recurrence)
            .where(Recurrence.user_id == self.user_id)
            .order_by(Recurrence.next_occurrence)
        )
        return self.session.scalars(stmt).all()

    def create(
        self,
        data: RecurrenceIn,
        horizon_months: Optional[int] = None,
        today: Optional[date] = None,
    ) -> Recurrence:
        _check_refs(
            self.session,
            self.user_id,
            data.type,
            data.category_id,
            data.account_id,
            data.credit_card_id,
        )
        recurrence = Recurrence(
            user_id=self.user_id,
            description=data.description,
            amount_cents=data.amount_cents,
            type=data.type,
            frequency=data.frequency,
            start_date=data.start_date,
            end_date=data.end_date,
            next_occurrence=data.start_date,
            is_active=True,
            category_id=data.category_id,
            account_id=data.account_id,
            credit_card_id=data.credit_card_id,
        )
        self.session.add(recurrence)
        self.session.flush()
        RecurringEngine(self.session, self.store).extend(
            recurrence, horizon_months, today
        )
        self.session.commit()
        self.session.refresh(recurrence)
        return recurrence

    def toggle_active(self, recurrence_id: int, is_active: bool) -> Recurrence:
        recurrence = self.get(recurrence_id)
        recurrence.is_active = is_active
        self.session.commit()
        return recurrence

    def delete(self, recurrence_id: int) -> None:
        """Drop pending occurrences; keep the recurrence if it has confirmed history."""
        recurrence = self.get(recurrence_id)
        self.store.delete_where(BulkPredicate(SeriesKind.recurrence, recurrence.id))
        has_history = self.session.scalar(
            select(func.count(Transaction.id)).where(
                Transaction.user_id == self.user_id,
                Transaction.recurrence_id == recurrence.id,
            )
        )
        if has_history:
            last_date = self.store.last_due_date(recurrence.id)
            recurrence.is_active = False
            recurrence.end_date = last_date
        else:
            self.session.delete(recurrence)
        self.session.commit()

    def occurrences(self, recurrence_id: int) -> list[Transaction]:
        recurrence = self.get(recurrence_id)
        return self.store.find_series(SeriesKind.recurrence, recurrence.id)

    def extend_all(
        self, horizon_months: Optional[int] = None, today: Optional[date] = None
    ) -> int:
        count = RecurringEngine(self.session, self.store).extend_all(
            horizon_months, today
        )
        self.session.commit()
        return count


class InstallmentService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.store = build_store(session, self.user_id)

    def get(self, group_id: int) -> InstallmentGroup:
        return _owned(
            self.session, InstallmentGroup, group_id, self.user_id, "Installment group"
        )

    def list(self) -> list[InstallmentGroup]:
        stmt = (
            select(InstallmentGroup)
            .where(InstallmentGroup.user_id == self.user_id)
            .order_by(InstallmentGroup.first_installment_date.desc())
        )
        return self.session.scalars(stmt).all()

    @staticmethod
    def preview(data: InstallmentIn) -> InstallmentPlan:
        return plan(
            data.amount_cents,
            data.amount_mode,
            data.starting_installment,
            data.total_installments,
            data.frequency,
            data.first_installment_date,
        )

    def _row(
        self, group: InstallmentGroup, number: int, amount_cents: int, due_date: date
    ) -> Transaction:
        txn = Transaction(
            description=installment_label(
                group.description, number, group.total_installments
            ),
            amount_cents=amount_cents,
            type=TransactionType.expense,
            due_date=due_date,
            status=TransactionStatus.pending,
            installment_group_id=group.id,
            installment_number=number,
            total_installments=group.total_installments,
            account_id=group.account_id,
            credit_card_id=group.credit_card_id,
            category_id=group.category_id,
        )
        InvoiceService(self.session, self.user_id).assign(txn)
        return txn

    def create(self, data: InstallmentIn) -> InstallmentGroup:
        _check_refs(
            self.session,
            self.user_id,
            TransactionType.expense,
            data.category_id,
            data.account_id,
            data.credit_card_id,
        )
        result = self.preview(data)
        group = InstallmentGroup(
            user_id=self.user_id,
            description=data.description,
            installment_amount_cents=result.installment_amount_cents,
            total_amount_cents=result.total_amount_cents,
            total_installments=data.total_installments,
            starting_installment=data.starting_installment,
            frequency=data.frequency,
            first_installment_date=data.first_installment_date,
            category_id=data.category_id,
            account_id=data.account_id,
            credit_card_id=data.credit_card_id,
        )
        self.session.add(group)
        self.session.flush()
        rows = [
            self._row(group, spec.installment_number, spec.amount_cents, spec.due_date)
            for spec in result.occurrences
        ]
        self.store.insert_batch(rows)
        self.session.commit()
        self.session.refresh(group)
        logger.info(
            f"installments_created: group_id={group.id} count={len(rows)} "
            f"total_amount_cents={group.total_amount_cents}"
        )
        return group

    def update_group(
        self,
        group_id: int,
        data: InstallmentGroupUpdate,
        today: Optional[date] = None,
    ) -> InstallmentGroup:
        group = self.get(group_id)
        if data.category_id is not None:
            CategoryService(self.session, self.user_id).check(
                data.category_id, TransactionType.expense
            )
        if data.description is not None:
            group.description = data.description
        if data.installment_amount_cents is not None:
            group.installment_amount_cents = data.installment_amount_cents
        if data.category_id is not None:
            group.category_id = data.category_id

        if data.starting_installment is not None or data.total_installments is not None:
            self._resize(group, data)
        elif data.update_future_transactions:
            self._propagate(group, data, today or local_today())

        self.refresh_total(group)
        self.session.commit()
        self.session.refresh(group)
        return group

    def refresh_total(self, group: InstallmentGroup) -> None:
        group.total_amount_cents = int(
            self.session.execute(
                select(func.coalesce(func.sum(Transaction.amount_cents), 0)).where(
                    Transaction.installment_group_id == group.id
                )
            ).scalar_one()
            or 0
        )
        self.session.flush()

    def _propagate(
        self, group: InstallmentGroup, data: InstallmentGroupUpdate, today: date
    ) -> None:
        predicate = BulkPredicate(SeriesKind.installment, group.id, due_date_from=today)
        values: dict[str, object] = {}
        if data.installment_amount_cents is not None:
            values["amount_cents"] = data.installment_amount_cents
        if data.category_id is not None:
            values["category_id"] = data.category_id
        self.store.update_where(predicate, values)
        if data.description is not None:
            for txn in self.store.find_series(SeriesKind.installment, group.id):
                if predicate.matches(txn):
                    txn.description = installment_label(
                        group.description, txn.installment_number, txn.total_installments
                    )
            self.session.flush()

    def _resize(self, group: InstallmentGroup, data: InstallmentGroupUpdate) -> None:
        old_start = group.starting_installment
        new_start = data.starting_installment or old_start
        new_total = data.total_installments or group.total_installments
        if new_total < new_start:
            raise InvalidInput(
                "Total installments cannot be lower than the starting installment"
            )

        rows = self.store.find_series(SeriesKind.installment, group.id)
        dropped = [
            txn
            for txn in rows
            if txn.installment_number < new_start or txn.installment_number > new_total
        ]
        if any(txn.status == TransactionStatus.confirmed for txn in dropped):
            raise ConsistencyViolation(
                "Confirmed installments cannot be removed by resizing the plan"
            )
        for txn in dropped:
            self.store.delete_one(txn)

        new_first = shift(group.first_installment_date, group.frequency, new_start - old_start)
        group.first_installment_date = new_first
        group.starting_installment = new_start
        group.total_installments = new_total

        kept = {txn.installment_number: txn for txn in rows if txn not in dropped}
        for number, txn in kept.items():
            values: dict[str, object] = {
                "description": installment_label(group.description, number, new_total),
                "total_installments": new_total,
            }
            if txn.status == TransactionStatus.pending:
                if data.installment_amount_cents is not None:
                    values["amount_cents"] = data.installment_amount_cents
                if data.category_id is not None:
                    values["category_id"] = data.category_id
            self.store.update_one(txn, values)

        missing = [
            self._row(
                group,
                number,
                group.installment_amount_cents,
                shift(new_first, group.frequency, number - new_start),
            )
            for number in range(new_start, new_total + 1)
            if number not in kept
        ]
        self.store.insert_batch(missing)

    def delete_group(self, group_id: int) -> None:
        group = self.get(group_id)
        rows = self.store.find_series(SeriesKind.installment, group.id)
        for txn in rows:
            self.store.delete_one(txn)
        self.session.delete(group)
        self.session.commit()
        logger.info(f"installments_deleted: group_id={group_id} rows={len(rows)}")

    def confirm_batch(self, transaction_ids: list[int]) -> int:
        if not transaction_ids:
            return 0
        result = self.session.execute(
            update(Transaction)
            .where(
                Transaction.user_id == self.user_id,
                Transaction.id.in_(transaction_ids),
                Transaction.installment_group_id.isnot(None),
                Transaction.status == TransactionStatus.pending,
            )
            .values(status=TransactionStatus.confirmed)
        )
        self.session.commit()
        return result.rowcount or 0
