from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models import AmountMode, Frequency, TransactionStatus, TransactionType


def _single_funding_source(
    account_id: Optional[int], credit_card_id: Optional[int]
) -> None:
    if (account_id is None) == (credit_card_id is None):
        raise ValueError("Choose exactly one of account or credit card")


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    color: Optional[str] = Field(default=None, max_length=7)


class AccountIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    initial_balance_cents: int = 0


class CreditCardIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    closing_day: int = Field(..., ge=1, le=31)
    due_day: int = Field(..., ge=1, le=31)
    credit_limit_cents: int = Field(default=0, ge=0)
    payment_account_id: Optional[int] = None


class TransactionIn(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    amount_cents: int = Field(..., gt=0)
    type: TransactionType
    due_date: date
    status: Optional[TransactionStatus] = None
    category_id: Optional[int] = None
    account_id: Optional[int] = None
    credit_card_id: Optional[int] = None
    destination_account_id: Optional[int] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_accounts(self) -> "TransactionIn":
        if self.type == TransactionType.transfer:
            if self.account_id is None or self.destination_account_id is None:
                raise ValueError("Transfers need a source and a destination account")
            if self.account_id == self.destination_account_id:
                raise ValueError("Transfer accounts must differ")
        elif self.destination_account_id is not None:
            raise ValueError("Only transfers have a destination account")
        if self.credit_card_id is not None and self.account_id is not None:
            raise ValueError("Choose exactly one of account or credit card")
        return self


class OccurrenceChanges(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount_cents: Optional[int] = Field(default=None, gt=0)
    due_date: Optional[date] = None
    category_id: Optional[int] = None
    account_id: Optional[int] = None
    credit_card_id: Optional[int] = None
    notes: Optional[str] = None


class RecurrenceIn(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    amount_cents: int = Field(..., gt=0)
    type: TransactionType
    frequency: Frequency
    start_date: date
    end_date: Optional[date] = None
    category_id: Optional[int] = None
    account_id: Optional[int] = None
    credit_card_id: Optional[int] = None

    @model_validator(mode="after")
    def _check(self) -> "RecurrenceIn":
        if self.type not in (TransactionType.income, TransactionType.expense):
            raise ValueError("Recurrences are either income or expense")
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("End date must not be before the start date")
        _single_funding_source(self.account_id, self.credit_card_id)
        return self


class InstallmentIn(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    amount_cents: int = Field(..., gt=0)
    amount_mode: AmountMode = AmountMode.total
    starting_installment: int = Field(default=1, ge=1)
    total_installments: int = Field(..., ge=1, le=600)
    frequency: Frequency = Frequency.monthly
    first_installment_date: date
    category_id: Optional[int] = None
    account_id: Optional[int] = None
    credit_card_id: Optional[int] = None

    @model_validator(mode="after")
    def _check(self) -> "InstallmentIn":
        if self.total_installments < self.starting_installment:
            raise ValueError(
                "Total installments cannot be lower than the starting installment"
            )
        _single_funding_source(self.account_id, self.credit_card_id)
        return self


class InstallmentGroupUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    installment_amount_cents: Optional[int] = Field(default=None, gt=0)
    category_id: Optional[int] = None
    starting_installment: Optional[int] = Field(default=None, ge=1)
    total_installments: Optional[int] = Field(default=None, ge=1, le=600)
    update_future_transactions: bool = True


class InvoicePaymentIn(BaseModel):
    account_id: int
    paid_on: Optional[date] = None


class ConfirmBatchIn(BaseModel):
    transaction_ids: list[int] = Field(default_factory=list)
