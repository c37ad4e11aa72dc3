from datetime import date

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from database import Base
from errors import ConsistencyViolation, InvalidInput, NotFound
from models import (
    Account,
    CreditCard,
    Frequency,
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
from schemas import (
    CategoryIn,
    InstallmentGroupUpdate,
    InstallmentIn,
    InvoicePaymentIn,
    OccurrenceChanges,
    RecurrenceIn,
    TransactionIn,
)
from services import (
    CategoryService,
    CreditCardService,
    InstallmentService,
    InvoiceService,
    RecurrenceService,
    TransactionService,
    build_store,
)


def _session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return Session(engine)


def _setup(session: Session) -> tuple[Account, CreditCard]:
    account = Account(user_id=1, name="Checking")
    session.add(account)
    session.flush()
    card = CreditCard(
        user_id=1,
        name="Visa",
        closing_day=5,
        due_day=10,
        payment_account_id=account.id,
    )
    session.add(card)
    session.commit()
    return account, card


def _gym(session: Session, account: Account) -> Recurrence:
    return RecurrenceService(session).create(
        RecurrenceIn(
            description="Gym",
            amount_cents=5000,
            type=TransactionType.expense,
            frequency=Frequency.monthly,
            start_date=date(2024, 1, 15),
            account_id=account.id,
        ),
        horizon_months=3,
        today=date(2024, 2, 1),
    )


def _series(session: Session, kind: SeriesKind, series_id: int) -> list[Transaction]:
    return build_store(session, 1).find_series(kind, series_id)


def test_card_expense_lands_on_invoice_and_updates_total():
    with _session() as session:
        _, card = _setup(session)
        service = TransactionService(session)
        on_closing_day = service.create(
            TransactionIn(
                description="Groceries",
                amount_cents=12000,
                type=TransactionType.expense,
                due_date=date(2024, 3, 5),
                credit_card_id=card.id,
            ),
            today=date(2024, 3, 5),
        )
        after_closing = service.create(
            TransactionIn(
                description="Books",
                amount_cents=3000,
                type=TransactionType.expense,
                due_date=date(2024, 3, 6),
                credit_card_id=card.id,
            ),
            today=date(2024, 3, 5),
        )
        assert on_closing_day.status == TransactionStatus.confirmed
        assert after_closing.status == TransactionStatus.pending

        march = session.get(Invoice, on_closing_day.invoice_id)
        april = session.get(Invoice, after_closing.invoice_id)
        assert march.reference_month == date(2024, 3, 1)
        assert march.total_amount_cents == 12000
        assert april.reference_month == date(2024, 4, 1)
        assert april.due_date == date(2024, 4, 10)
        assert april.total_amount_cents == 3000

        service.update(after_closing.id, OccurrenceChanges(due_date=date(2024, 3, 1)))
        assert after_closing.invoice_id == march.id
        session.refresh(march)
        session.refresh(april)
        assert march.total_amount_cents == 15000
        assert april.total_amount_cents == 0


def test_billing_total_counts_orphan_card_expenses():
    with _session() as session:
        _, card = _setup(session)
        TransactionService(session).create(
            TransactionIn(
                description="Fuel",
                amount_cents=20000,
                type=TransactionType.expense,
                due_date=date(2024, 5, 2),
                credit_card_id=card.id,
            ),
            today=date(2024, 5, 2),
        )
        session.add(
            Transaction(
                user_id=1,
                description="Imported",
                amount_cents=700,
                type=TransactionType.expense,
                due_date=date(2024, 4, 20),
                status=TransactionStatus.confirmed,
                credit_card_id=card.id,
            )
        )
        session.commit()
        total = CreditCardService(session).billing_total(card.id, date(2024, 5, 1))
        assert total == 20700


def test_pay_invoice_records_payment_on_account():
    with _session() as session:
        account, card = _setup(session)
        txn = TransactionService(session).create(
            TransactionIn(
                description="Dinner",
                amount_cents=8800,
                type=TransactionType.expense,
                due_date=date(2024, 6, 1),
                credit_card_id=card.id,
            ),
            today=date(2024, 6, 1),
        )
        service = InvoiceService(session)
        payment = service.pay(
            txn.invoice_id, InvoicePaymentIn(account_id=account.id, paid_on=date(2024, 6, 10))
        )
        invoice = service.get(txn.invoice_id)
        assert invoice.status == InvoiceStatus.paid
        assert invoice.payment_transaction_id == payment.id
        assert payment.account_id == account.id
        assert payment.amount_cents == 8800
        assert payment.status == TransactionStatus.confirmed
        with pytest.raises(ConsistencyViolation):
            service.pay(txn.invoice_id, InvoicePaymentIn(account_id=account.id))


def test_close_elapsed_invoices():
    with _session() as session:
        _, card = _setup(session)
        TransactionService(session).create(
            TransactionIn(
                description="Taxi",
                amount_cents=2500,
                type=TransactionType.expense,
                due_date=date(2024, 6, 1),
                credit_card_id=card.id,
            ),
            today=date(2024, 6, 1),
        )
        service = InvoiceService(session)
        assert service.close_elapsed(today=date(2024, 6, 5)) == 0
        assert service.close_elapsed(today=date(2024, 6, 6)) == 1
        assert service.list_for_card(card.id)[0].status == InvoiceStatus.closed


def test_recurrence_this_and_future_edit_spares_confirmed_rows():
    with _session() as session:
        account, _ = _setup(session)
        recurrence = _gym(session, account)
        rows = _series(session, SeriesKind.recurrence, recurrence.id)
        february = rows[1]

        TransactionService(session).update(
            february.id,
            OccurrenceChanges(amount_cents=6000),
            MutationScope.this_and_future,
        )
        rows = _series(session, SeriesKind.recurrence, recurrence.id)
        assert [r.amount_cents for r in rows] == [5000, 6000, 6000, 6000]
        assert session.get(Recurrence, recurrence.id).amount_cents == 6000


def test_recurrence_this_only_edit_detaches_row():
    with _session() as session:
        account, _ = _setup(session)
        recurrence = _gym(session, account)
        march = _series(session, SeriesKind.recurrence, recurrence.id)[2]

        edited = TransactionService(session).update(
            march.id, OccurrenceChanges(description="Gym (promo)")
        )
        assert edited.recurrence_id is None
        assert edited.is_recurring is False
        assert len(_series(session, SeriesKind.recurrence, recurrence.id)) == 3


def test_moved_occurrence_leaves_no_gap_in_series():
    with _session() as session:
        account, _ = _setup(session)
        recurrence = _gym(session, account)
        february = _series(session, SeriesKind.recurrence, recurrence.id)[1]

        TransactionService(session).update(
            february.id,
            OccurrenceChanges(due_date=date(2024, 6, 20), amount_cents=6000),
            MutationScope.this_and_future,
        )
        assert RecurrenceService(session).extend_all(3, today=date(2024, 5, 1)) == 3

        rows = _series(session, SeriesKind.recurrence, recurrence.id)
        assert sorted(r.due_date for r in rows) == [
            date(2024, 1, 15),
            date(2024, 3, 15),
            date(2024, 4, 15),
            date(2024, 5, 15),
            date(2024, 6, 15),
            date(2024, 6, 20),
            date(2024, 7, 15),
        ]
        assert all(
            r.amount_cents == 6000 for r in rows if r.due_date > date(2024, 1, 15)
        )


def test_moving_occurrence_onto_sibling_date_is_rejected():
    with _session() as session:
        account, _ = _setup(session)
        recurrence = _gym(session, account)
        february = _series(session, SeriesKind.recurrence, recurrence.id)[1]
        service = TransactionService(session)

        with pytest.raises(ConsistencyViolation):
            service.update(
                february.id,
                OccurrenceChanges(due_date=date(2024, 3, 15), amount_cents=6000),
                MutationScope.this_and_future,
            )
        rows = _series(session, SeriesKind.recurrence, recurrence.id)
        assert [r.amount_cents for r in rows] == [5000, 5000, 5000, 5000]
        assert rows[1].due_date == date(2024, 2, 15)

        detached = service.update(
            february.id, OccurrenceChanges(due_date=date(2024, 3, 15))
        )
        assert detached.recurrence_id is None
        assert detached.due_date == date(2024, 3, 15)


def test_recurrence_this_and_future_delete_closes_series():
    with _session() as session:
        account, _ = _setup(session)
        recurrence = _gym(session, account)
        march = _series(session, SeriesKind.recurrence, recurrence.id)[2]

        service = TransactionService(session)
        assert service.delete(march.id, MutationScope.this_and_future) == 2
        remaining = _series(session, SeriesKind.recurrence, recurrence.id)
        assert [r.due_date for r in remaining] == [date(2024, 1, 15), date(2024, 2, 15)]
        recurrence = session.get(Recurrence, recurrence.id)
        assert recurrence.is_active is False
        assert recurrence.end_date == date(2024, 3, 14)

        assert RecurrenceService(session).extend_all(6, today=date(2024, 2, 1)) == 0

        with pytest.raises(ConsistencyViolation):
            service.delete(remaining[0].id, MutationScope.this_and_future)


def test_recurrence_delete_keeps_confirmed_history():
    with _session() as session:
        account, _ = _setup(session)
        recurrence = _gym(session, account)
        RecurrenceService(session).delete(recurrence.id)

        kept = session.get(Recurrence, recurrence.id)
        assert kept is not None
        assert kept.is_active is False
        assert kept.end_date == date(2024, 1, 15)
        rows = _series(session, SeriesKind.recurrence, recurrence.id)
        assert [r.status for r in rows] == [TransactionStatus.confirmed]


def test_installment_plan_end_to_end_on_card():
    with _session() as session:
        _, card = _setup(session)
        group = InstallmentService(session).create(
            InstallmentIn(
                description="Laptop",
                amount_cents=120000,
                starting_installment=3,
                total_installments=12,
                first_installment_date=date(2024, 1, 10),
                credit_card_id=card.id,
            )
        )
        rows = _series(session, SeriesKind.installment, group.id)
        assert len(rows) == 10
        assert rows[0].description == "Laptop (3/12)"
        assert rows[-1].description == "Laptop (12/12)"
        assert rows[-1].due_date == date(2024, 10, 10)
        assert all(r.amount_cents == 12000 for r in rows)
        assert all(r.status == TransactionStatus.pending for r in rows)
        assert group.total_amount_cents == 120000

        invoices = InvoiceService(session).list_for_card(card.id)
        assert len(invoices) == 10
        assert {i.total_amount_cents for i in invoices} == {12000}
        assert invoices[-1].reference_month == date(2024, 2, 1)


def test_installment_this_and_future_edit_and_delete():
    with _session() as session:
        account, _ = _setup(session)
        service = InstallmentService(session)
        group = service.create(
            InstallmentIn(
                description="Sofa",
                amount_cents=40000,
                total_installments=4,
                first_installment_date=date(2024, 1, 20),
                account_id=account.id,
            )
        )
        rows = _series(session, SeriesKind.installment, group.id)
        service.confirm_batch([rows[0].id])

        txns = TransactionService(session)
        txns.update(
            rows[1].id,
            OccurrenceChanges(amount_cents=15000),
            MutationScope.this_and_future,
        )
        rows = _series(session, SeriesKind.installment, group.id)
        assert [r.amount_cents for r in rows] == [10000, 15000, 15000, 15000]
        group = service.get(group.id)
        assert group.installment_amount_cents == 15000
        assert group.total_amount_cents == 55000

        assert txns.delete(rows[2].id, MutationScope.this_and_future) == 2
        rows = _series(session, SeriesKind.installment, group.id)
        assert [r.installment_number for r in rows] == [1, 2]


def test_future_delete_leaves_confirmed_installments_alone():
    with _session() as session:
        account, _ = _setup(session)
        service = InstallmentService(session)
        group = service.create(
            InstallmentIn(
                description="Fridge",
                amount_cents=40000,
                total_installments=4,
                first_installment_date=date(2024, 1, 10),
                account_id=account.id,
            )
        )
        rows = _series(session, SeriesKind.installment, group.id)
        assert service.confirm_batch([rows[0].id, rows[1].id]) == 2

        assert TransactionService(session).delete(
            rows[2].id, MutationScope.this_and_future
        ) == 2
        rows = _series(session, SeriesKind.installment, group.id)
        assert [(r.installment_number, r.status) for r in rows] == [
            (1, TransactionStatus.confirmed),
            (2, TransactionStatus.confirmed),
        ]


def test_installment_group_resize():
    with _session() as session:
        account, _ = _setup(session)
        service = InstallmentService(session)
        group = service.create(
            InstallmentIn(
                description="Bike",
                amount_cents=40000,
                total_installments=4,
                first_installment_date=date(2024, 1, 10),
                account_id=account.id,
            )
        )
        first = _series(session, SeriesKind.installment, group.id)[0]
        assert service.confirm_batch([first.id]) == 1

        group = service.update_group(group.id, InstallmentGroupUpdate(total_installments=6))
        rows = _series(session, SeriesKind.installment, group.id)
        assert [r.installment_number for r in rows] == [1, 2, 3, 4, 5, 6]
        assert rows[-1].due_date == date(2024, 6, 10)
        assert rows[0].description == "Bike (1/6)"
        assert group.total_amount_cents == 60000

        with pytest.raises(ConsistencyViolation):
            service.update_group(group.id, InstallmentGroupUpdate(starting_installment=2))
        session.rollback()

        group = service.update_group(group.id, InstallmentGroupUpdate(total_installments=3))
        assert [
            r.installment_number
            for r in _series(session, SeriesKind.installment, group.id)
        ] == [1, 2, 3]


def test_installment_group_delete_removes_everything():
    with _session() as session:
        account, _ = _setup(session)
        service = InstallmentService(session)
        group = service.create(
            InstallmentIn(
                description="TV",
                amount_cents=30000,
                total_installments=3,
                first_installment_date=date(2024, 1, 10),
                account_id=account.id,
            )
        )
        service.delete_group(group.id)
        assert session.get(InstallmentGroup, group.id) is None
        assert session.scalars(select(Transaction)).all() == []
        with pytest.raises(NotFound):
            service.get(group.id)


def test_category_type_must_match_transaction():
    with _session() as session:
        account, _ = _setup(session)
        salary = CategoryService(session).create(
            CategoryIn(name="Salary", type=TransactionType.income)
        )
        with pytest.raises(InvalidInput):
            TransactionService(session).create(
                TransactionIn(
                    description="Coffee",
                    amount_cents=500,
                    type=TransactionType.expense,
                    due_date=date(2024, 1, 1),
                    account_id=account.id,
                    category_id=salary.id,
                )
            )
        with pytest.raises(InvalidInput):
            CategoryService(session).create(
                CategoryIn(name="Salary", type=TransactionType.income)
            )
