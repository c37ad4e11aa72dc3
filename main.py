import logging
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from sqlalchemy.orm import Session

from database import SessionLocal, init_db
from dates import add_months, local_today, month_start
from errors import ConsistencyViolation, NotFound, StoreFailure
from installments import plan
from models import (
    Account,
    AmountMode,
    Category,
    CreditCard,
    Frequency,
    InstallmentGroup,
    Invoice,
    MutationScope,
    Recurrence,
    Transaction,
)
from scheduler import SchedulerManager
from schemas import (
    AccountIn,
    CategoryIn,
    ConfirmBatchIn,
    CreditCardIn,
    InstallmentGroupUpdate,
    InstallmentIn,
    InvoicePaymentIn,
    OccurrenceChanges,
    RecurrenceIn,
    TransactionIn,
)
from services import (
    AccountService,
    CategoryService,
    CreditCardService,
    InstallmentService,
    InvoiceService,
    RecurrenceService,
    TransactionService,
)


logger = logging.getLogger(__name__)

app = FastAPI(title="Ledger")


def _load_app_version() -> str:
    try:
        import tomllib
    except Exception:
        return "unknown"
    try:
        with open("pyproject.toml", "rb") as f:
            data = tomllib.load(f)
        return str(data.get("project", {}).get("version", "unknown"))
    except Exception:
        return "unknown"


APP_VERSION = _load_app_version()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


scheduler_manager = SchedulerManager()


@app.on_event("startup")
def startup_event():
    init_db()
    scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConsistencyViolation):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, StoreFailure):
        logger.error(f"api_store_failure: detail={exc}")
        return HTTPException(status_code=503, detail="Storage unavailable")
    return HTTPException(status_code=400, detail=str(exc))


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _category(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "type": category.type.value,
        "color": category.color,
    }


def _account(account: Account) -> dict:
    return {
        "id": account.id,
        "name": account.name,
        "initial_balance_cents": account.initial_balance_cents,
    }


def _card(card: CreditCard) -> dict:
    return {
        "id": card.id,
        "name": card.name,
        "closing_day": card.closing_day,
        "due_day": card.due_day,
        "credit_limit_cents": card.credit_limit_cents,
        "payment_account_id": card.payment_account_id,
    }


def _invoice(invoice: Invoice) -> dict:
    return {
        "id": invoice.id,
        "credit_card_id": invoice.credit_card_id,
        "reference_month": invoice.reference_month.isoformat(),
        "closing_date": invoice.closing_date.isoformat(),
        "due_date": invoice.due_date.isoformat(),
        "status": invoice.status.value,
        "total_amount_cents": invoice.total_amount_cents,
        "payment_transaction_id": invoice.payment_transaction_id,
    }


def _transaction(txn: Transaction) -> dict:
    return {
        "id": txn.id,
        "description": txn.description,
        "amount_cents": txn.amount_cents,
        "type": txn.type.value,
        "due_date": txn.due_date.isoformat(),
        "status": txn.status.value,
        "is_recurring": txn.is_recurring,
        "recurrence_id": txn.recurrence_id,
        "installment_group_id": txn.installment_group_id,
        "installment_number": txn.installment_number,
        "total_installments": txn.total_installments,
        "invoice_id": txn.invoice_id,
        "account_id": txn.account_id,
        "credit_card_id": txn.credit_card_id,
        "destination_account_id": txn.destination_account_id,
        "category_id": txn.category_id,
        "notes": txn.notes,
    }


def _recurrence(recurrence: Recurrence) -> dict:
    return {
        "id": recurrence.id,
        "description": recurrence.description,
        "amount_cents": recurrence.amount_cents,
        "type": recurrence.type.value,
        "frequency": recurrence.frequency.value,
        "start_date": recurrence.start_date.isoformat(),
        "end_date": _iso(recurrence.end_date),
        "next_occurrence": recurrence.next_occurrence.isoformat(),
        "is_active": recurrence.is_active,
        "category_id": recurrence.category_id,
        "account_id": recurrence.account_id,
        "credit_card_id": recurrence.credit_card_id,
    }


def _group(group: InstallmentGroup) -> dict:
    return {
        "id": group.id,
        "description": group.description,
        "installment_amount_cents": group.installment_amount_cents,
        "total_amount_cents": group.total_amount_cents,
        "starting_installment": group.starting_installment,
        "total_installments": group.total_installments,
        "frequency": group.frequency.value,
        "first_installment_date": group.first_installment_date.isoformat(),
        "category_id": group.category_id,
        "account_id": group.account_id,
        "credit_card_id": group.credit_card_id,
    }


@app.get("/api/health")
def api_health():
    return {"status": "ok", "version": APP_VERSION}


@app.get("/api/categories")
def api_categories(include_archived: bool = False, db: Session = Depends(get_db)):
    service = CategoryService(db)
    return [_category(c) for c in service.list_all(include_archived)]


@app.post("/api/categories", status_code=201)
def api_create_category(data: CategoryIn, db: Session = Depends(get_db)):
    try:
        return _category(CategoryService(db).create(data))
    except ValueError as exc:
        raise _http_error(exc) from exc


@app.get("/api/accounts")
def api_accounts(db: Session = Depends(get_db)):
    return [_account(a) for a in AccountService(db).list_all()]


@app.post("/api/accounts", status_code=201)
def api_create_account(data: AccountIn, db: Session = Depends(get_db)):
    return _account(AccountService(db).create(data))


@app.get("/api/credit-cards")
def api_credit_cards(db: Session = Depends(get_db)):
    return [_card(c) for c in CreditCardService(db).list_all()]


@app.post("/api/credit-cards", status_code=201)
def api_create_credit_card(data: CreditCardIn, db: Session = Depends(get_db)):
    try:
        return _card(CreditCardService(db).create(data))
    except ValueError as exc:
        raise _http_error(exc) from exc


@app.get("/api/credit-cards/{card_id}/billing-period")
def api_billing_period(
    card_id: int, purchase_date: date, db: Session = Depends(get_db)
):
    try:
        period = CreditCardService(db).billing_period(card_id, purchase_date)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return {
        "reference_month": period.reference_month.isoformat(),
        "closing_date": period.closing_date.isoformat(),
        "due_date": period.due_date.isoformat(),
    }


@app.get("/api/credit-cards/{card_id}/invoices")
def api_card_invoices(card_id: int, db: Session = Depends(get_db)):
    try:
        CreditCardService(db).get(card_id)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return [_invoice(i) for i in InvoiceService(db).list_for_card(card_id)]


@app.get("/api/credit-cards/{card_id}/billing-total")
def api_billing_total(
    card_id: int, month: Optional[date] = None, db: Session = Depends(get_db)
):
    month = month_start(month or local_today())
    try:
        total = CreditCardService(db).billing_total(card_id, month)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return {"month": month.isoformat(), "total_amount_cents": total}


@app.post("/api/invoices/{invoice_id}/pay")
def api_pay_invoice(
    invoice_id: int, data: InvoicePaymentIn, db: Session = Depends(get_db)
):
    service = InvoiceService(db)
    try:
        payment = service.pay(invoice_id, data)
    except (ValueError, StoreFailure) as exc:
        raise _http_error(exc) from exc
    return {
        "invoice": _invoice(service.get(invoice_id)),
        "payment": _transaction(payment),
    }


@app.get("/api/transactions")
def api_transactions(
    start: Optional[date] = None,
    end: Optional[date] = None,
    db: Session = Depends(get_db),
):
    start = start or month_start(local_today())
    end = end or add_months(start, 1, desired_day=1)
    if end < start:
        raise HTTPException(status_code=400, detail="End date must not be before start")
    items = TransactionService(db).list(start, end)
    return {"items": [_transaction(t) for t in items]}


@app.post("/api/transactions", status_code=201)
def api_create_transaction(data: TransactionIn, db: Session = Depends(get_db)):
    try:
        return _transaction(TransactionService(db).create(data))
    except (ValueError, StoreFailure) as exc:
        raise _http_error(exc) from exc


@app.patch("/api/transactions/{transaction_id}")
def api_update_transaction(
    transaction_id: int,
    changes: OccurrenceChanges,
    scope: MutationScope = MutationScope.this_only,
    db: Session = Depends(get_db),
):
    try:
        txn = TransactionService(db).update(transaction_id, changes, scope)
    except (ValueError, StoreFailure) as exc:
        raise _http_error(exc) from exc
    return _transaction(txn)


@app.delete("/api/transactions/{transaction_id}")
def api_delete_transaction(
    transaction_id: int,
    scope: MutationScope = MutationScope.this_only,
    db: Session = Depends(get_db),
):
    try:
        deleted = TransactionService(db).delete(transaction_id, scope)
    except (ValueError, StoreFailure) as exc:
        raise _http_error(exc) from exc
    return {"deleted": deleted}


@app.post("/api/transactions/{transaction_id}/confirm")
def api_confirm_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        return _transaction(TransactionService(db).confirm(transaction_id))
    except (ValueError, StoreFailure) as exc:
        raise _http_error(exc) from exc


@app.get("/api/recurrences")
def api_recurrences(db: Session = Depends(get_db)):
    return [_recurrence(r) for r in RecurrenceService(db).list()]


@app.post("/api/recurrences", status_code=201)
def api_create_recurrence(data: RecurrenceIn, db: Session = Depends(get_db)):
    try:
        return _recurrence(RecurrenceService(db).create(data))
    except (ValueError, StoreFailure) as exc:
        raise _http_error(exc) from exc


@app.post("/api/recurrences/process")
def api_process_recurrences(db: Session = Depends(get_db)):
    try:
        created = RecurrenceService(db).extend_all()
    except (ValueError, StoreFailure) as exc:
        raise _http_error(exc) from exc
    return {"created": created}


@app.post("/api/recurrences/{recurrence_id}/toggle")
def api_toggle_recurrence(
    recurrence_id: int,
    active: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    service = RecurrenceService(db)
    try:
        recurrence = service.get(recurrence_id)
        if active is None:
            active = not recurrence.is_active
        return _recurrence(service.toggle_active(recurrence_id, active))
    except ValueError as exc:
        raise _http_error(exc) from exc


@app.delete("/api/recurrences/{recurrence_id}")
def api_delete_recurrence(recurrence_id: int, db: Session = Depends(get_db)):
    try:
        RecurrenceService(db).delete(recurrence_id)
    except (ValueError, StoreFailure) as exc:
        raise _http_error(exc) from exc
    return {"deleted": recurrence_id}


@app.get("/api/installments")
def api_installments(db: Session = Depends(get_db)):
    return [_group(g) for g in InstallmentService(db).list()]


@app.get("/api/installments/preview")
def api_installment_preview(
    amount_cents: int,
    total_installments: int,
    first_installment_date: date,
    amount_mode: AmountMode = AmountMode.total,
    starting_installment: int = 1,
    frequency: Frequency = Frequency.monthly,
):
    try:
        result = plan(
            amount_cents,
            amount_mode,
            starting_installment,
            total_installments,
            frequency,
            first_installment_date,
        )
    except ValueError as exc:
        raise _http_error(exc) from exc
    return {
        "installment_amount_cents": result.installment_amount_cents,
        "total_amount_cents": result.total_amount_cents,
        "count": result.count,
        "occurrences": [
            {
                "installment_number": spec.installment_number,
                "due_date": spec.due_date.isoformat(),
                "amount_cents": spec.amount_cents,
            }
            for spec in result.occurrences
        ],
    }


@app.post("/api/installments", status_code=201)
def api_create_installments(data: InstallmentIn, db: Session = Depends(get_db)):
    try:
        return _group(InstallmentService(db).create(data))
    except (ValueError, StoreFailure) as exc:
        raise _http_error(exc) from exc


@app.post("/api/installments/confirm")
def api_confirm_installments(data: ConfirmBatchIn, db: Session = Depends(get_db)):
    confirmed = InstallmentService(db).confirm_batch(data.transaction_ids)
    return {"confirmed": confirmed}


@app.patch("/api/installments/{group_id}")
def api_update_installments(
    group_id: int, data: InstallmentGroupUpdate, db: Session = Depends(get_db)
):
    try:
        return _group(InstallmentService(db).update_group(group_id, data))
    except (ValueError, StoreFailure) as exc:
        raise _http_error(exc) from exc


@app.delete("/api/installments/{group_id}")
def api_delete_installments(group_id: int, db: Session = Depends(get_db)):
    try:
        InstallmentService(db).delete_group(group_id)
    except (ValueError, StoreFailure) as exc:
        raise _http_error(exc) from exc
    return {"deleted": group_id}
