from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"
    transfer = "transfer"
    adjustment = "adjustment"


class TransactionStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"


class Frequency(str, Enum):
    daily = "daily"
    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"
    yearly = "yearly"


class InvoiceStatus(str, Enum):
    open = "open"
    closed = "closed"
    paid = "paid"


class AmountMode(str, Enum):
    total = "total"
    per_installment = "per_installment"


class MutationScope(str, Enum):
    this_only = "this_only"
    this_and_future = "this_and_future"


class SeriesKind(str, Enum):
    recurrence = "recurrence"
    installment = "installment"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Category(Base, TimestampMixin):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    color: Mapped[Optional[str]] = mapped_column(String(7))
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        UniqueConstraint("user_id", "type", "name", name="uq_category_user_type_name"),
    )


class Account(Base, TimestampMixin):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    initial_balance_cents: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime)


class CreditCard(Base, TimestampMixin):
    __tablename__ = "credit_cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    closing_day: Mapped[int] = mapped_column(Integer, nullable=False)
    due_day: Mapped[int] = mapped_column(Integer, nullable=False)
    credit_limit_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    payment_account_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("accounts.id")
    )
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    invoices: Mapped[list["Invoice"]] = relationship(
        "Invoice", back_populates="credit_card"
    )

    __table_args__ = (
        CheckConstraint(
            "closing_day BETWEEN 1 AND 31", name="ck_credit_card_closing_day"
        ),
        CheckConstraint("due_day BETWEEN 1 AND 31", name="ck_credit_card_due_day"),
    )


class Invoice(Base, TimestampMixin):
    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    credit_card_id: Mapped[int] = mapped_column(
        ForeignKey("credit_cards.id"), nullable=False
    )
    reference_month: Mapped[date] = mapped_column(Date, nullable=False)
    closing_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[InvoiceStatus] = mapped_column(
        SAEnum(InvoiceStatus), nullable=False, default=InvoiceStatus.open
    )
    total_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    payment_transaction_id: Mapped[Optional[int]] = mapped_column(Integer)

    credit_card: Mapped["CreditCard"] = relationship(
        "CreditCard", back_populates="invoices"
    )

    __table_args__ = (
        UniqueConstraint(
            "credit_card_id", "reference_month", name="uq_invoice_card_month"
        ),
    )


class Recurrence(Base, TimestampMixin):
    __tablename__ = "recurrences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    frequency: Mapped[Frequency] = mapped_column(SAEnum(Frequency), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date)
    next_occurrence: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    category_id: Mapped[Optional[int]] = mapped_column(ForeignKey("categories.id"))
    account_id: Mapped[Optional[int]] = mapped_column(ForeignKey("accounts.id"))
    credit_card_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("credit_cards.id")
    )

    category: Mapped[Optional["Category"]] = relationship("Category")
    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction", back_populates="recurrence"
    )

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_recurrence_amount_positive"),
        CheckConstraint(
            "(account_id IS NULL) != (credit_card_id IS NULL)",
            name="ck_recurrence_single_funding_source",
        ),
        Index("ix_recurrences_user_active", "user_id", "is_active"),
    )


class InstallmentGroup(Base, TimestampMixin):
    __tablename__ = "installment_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    installment_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    total_installments: Mapped[int] = mapped_column(Integer, nullable=False)
    starting_installment: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )
    frequency: Mapped[Frequency] = mapped_column(
        SAEnum(Frequency), nullable=False, default=Frequency.monthly
    )
    first_installment_date: Mapped[date] = mapped_column(Date, nullable=False)
    category_id: Mapped[Optional[int]] = mapped_column(ForeignKey("categories.id"))
    account_id: Mapped[Optional[int]] = mapped_column(ForeignKey("accounts.id"))
    credit_card_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("credit_cards.id")
    )

    category: Mapped[Optional["Category"]] = relationship("Category")
    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction",
        back_populates="installment_group",
        order_by="Transaction.installment_number",
    )

    __table_args__ = (
        CheckConstraint(
            "starting_installment >= 1 AND starting_installment <= total_installments",
            name="ck_installment_group_range",
        ),
        CheckConstraint(
            "(account_id IS NULL) != (credit_card_id IS NULL)",
            name="ck_installment_group_single_funding_source",
        ),
    )


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(TransactionStatus), nullable=False, default=TransactionStatus.pending
    )
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recurrence_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("recurrences.id")
    )
    installment_group_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("installment_groups.id")
    )
    installment_number: Mapped[Optional[int]] = mapped_column(Integer)
    total_installments: Mapped[Optional[int]] = mapped_column(Integer)
    invoice_id: Mapped[Optional[int]] = mapped_column(ForeignKey("invoices.id"))
    account_id: Mapped[Optional[int]] = mapped_column(ForeignKey("accounts.id"))
    credit_card_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("credit_cards.id")
    )
    destination_account_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("accounts.id")
    )
    category_id: Mapped[Optional[int]] = mapped_column(ForeignKey("categories.id"))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    category: Mapped[Optional["Category"]] = relationship("Category")
    recurrence: Mapped[Optional["Recurrence"]] = relationship(
        "Recurrence", back_populates="transactions"
    )
    installment_group: Mapped[Optional["InstallmentGroup"]] = relationship(
        "InstallmentGroup", back_populates="transactions"
    )

    __table_args__ = (
        UniqueConstraint("recurrence_id", "due_date", name="uq_txn_recurrence_date"),
        UniqueConstraint(
            "installment_group_id",
            "installment_number",
            name="uq_txn_installment_number",
        ),
        CheckConstraint(
            "recurrence_id IS NULL OR installment_group_id IS NULL",
            name="ck_txn_single_series",
        ),
        CheckConstraint(
            "installment_number IS NULL OR installment_group_id IS NOT NULL",
            name="ck_txn_installment_number_needs_group",
        ),
        CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_positive"),
        Index("ix_transactions_user_due_date", "user_id", "due_date"),
        Index("ix_transactions_recurrence_status", "recurrence_id", "status"),
        Index("ix_transactions_group_status", "installment_group_id", "status"),
        Index("ix_transactions_card_invoice", "credit_card_id", "invoice_id"),
    )
