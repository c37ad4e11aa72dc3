"""initial ledger schema

Revision ID: 202610190900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


TRANSACTION_TYPE = sa.Enum(
    "income", "expense", "transfer", "adjustment", name="transactiontype"
)
TRANSACTION_STATUS = sa.Enum("pending", "confirmed", name="transactionstatus")
FREQUENCY = sa.Enum("daily", "weekly", "biweekly", "monthly", "yearly", name="frequency")
INVOICE_STATUS = sa.Enum("open", "closed", "paid", name="invoicestatus")


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, default=1),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", TRANSACTION_TYPE, nullable=False),
        sa.Column("color", sa.String(length=7)),
        sa.Column("archived_at", sa.DateTime()),
        *_timestamps(),
        sa.UniqueConstraint(
            "user_id", "type", "name", name="uq_category_user_type_name"
        ),
    )

    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, default=1),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column(
            "initial_balance_cents", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("archived_at", sa.DateTime()),
        *_timestamps(),
    )

    op.create_table(
        "credit_cards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, default=1),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("closing_day", sa.Integer(), nullable=False),
        sa.Column("due_day", sa.Integer(), nullable=False),
        sa.Column(
            "credit_limit_cents", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("payment_account_id", sa.Integer(), sa.ForeignKey("accounts.id")),
        sa.Column("archived_at", sa.DateTime()),
        *_timestamps(),
        sa.CheckConstraint(
            "closing_day BETWEEN 1 AND 31", name="ck_credit_card_closing_day"
        ),
        sa.CheckConstraint("due_day BETWEEN 1 AND 31", name="ck_credit_card_due_day"),
    )

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, default=1),
        sa.Column(
            "credit_card_id",
            sa.Integer(),
            sa.ForeignKey("credit_cards.id"),
            nullable=False,
        ),
        sa.Column("reference_month", sa.Date(), nullable=False),
        sa.Column("closing_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", INVOICE_STATUS, nullable=False, server_default="open"),
        sa.Column(
            "total_amount_cents", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("paid_at", sa.DateTime()),
        sa.Column("payment_transaction_id", sa.Integer()),
        *_timestamps(),
        sa.UniqueConstraint(
            "credit_card_id", "reference_month", name="uq_invoice_card_month"
        ),
    )

    op.create_table(
        "recurrences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, default=1),
        sa.Column("description", sa.String(length=200), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("type", TRANSACTION_TYPE, nullable=False),
        sa.Column("frequency", FREQUENCY, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date()),
        sa.Column("next_occurrence", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id")),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id")),
        sa.Column("credit_card_id", sa.Integer(), sa.ForeignKey("credit_cards.id")),
        *_timestamps(),
        sa.CheckConstraint("amount_cents > 0", name="ck_recurrence_amount_positive"),
        sa.CheckConstraint(
            "(account_id IS NULL) != (credit_card_id IS NULL)",
            name="ck_recurrence_single_funding_source",
        ),
    )
    op.create_index(
        "ix_recurrences_user_active", "recurrences", ["user_id", "is_active"]
    )

    op.create_table(
        "installment_groups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, default=1),
        sa.Column("description", sa.String(length=200), nullable=False),
        sa.Column("installment_amount_cents", sa.Integer(), nullable=False),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False),
        sa.Column("total_installments", sa.Integer(), nullable=False),
        sa.Column(
            "starting_installment", sa.Integer(), nullable=False, server_default="1"
        ),
        sa.Column("frequency", FREQUENCY, nullable=False, server_default="monthly"),
        sa.Column("first_installment_date", sa.Date(), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id")),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id")),
        sa.Column("credit_card_id", sa.Integer(), sa.ForeignKey("credit_cards.id")),
        *_timestamps(),
        sa.CheckConstraint(
            "starting_installment >= 1 AND starting_installment <= total_installments",
            name="ck_installment_group_range",
        ),
        sa.CheckConstraint(
            "(account_id IS NULL) != (credit_card_id IS NULL)",
            name="ck_installment_group_single_funding_source",
        ),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, default=1),
        sa.Column("description", sa.String(length=200), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("type", TRANSACTION_TYPE, nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column(
            "status", TRANSACTION_STATUS, nullable=False, server_default="pending"
        ),
        sa.Column(
            "is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("recurrence_id", sa.Integer(), sa.ForeignKey("recurrences.id")),
        sa.Column(
            "installment_group_id",
            sa.Integer(),
            sa.ForeignKey("installment_groups.id"),
        ),
        sa.Column("installment_number", sa.Integer()),
        sa.Column("total_installments", sa.Integer()),
        sa.Column("invoice_id", sa.Integer(), sa.ForeignKey("invoices.id")),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id")),
        sa.Column("credit_card_id", sa.Integer(), sa.ForeignKey("credit_cards.id")),
        sa.Column(
            "destination_account_id", sa.Integer(), sa.ForeignKey("accounts.id")
        ),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id")),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint(
            "recurrence_id", "due_date", name="uq_txn_recurrence_date"
        ),
        sa.UniqueConstraint(
            "installment_group_id",
            "installment_number",
            name="uq_txn_installment_number",
        ),
        sa.CheckConstraint(
            "recurrence_id IS NULL OR installment_group_id IS NULL",
            name="ck_txn_single_series",
        ),
        sa.CheckConstraint(
            "installment_number IS NULL OR installment_group_id IS NOT NULL",
            name="ck_txn_installment_number_needs_group",
        ),
        sa.CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_positive"),
    )
    op.create_index(
        "ix_transactions_user_due_date", "transactions", ["user_id", "due_date"]
    )
    op.create_index(
        "ix_transactions_recurrence_status",
        "transactions",
        ["recurrence_id", "status"],
    )
    op.create_index(
        "ix_transactions_group_status",
        "transactions",
        ["installment_group_id", "status"],
    )
    op.create_index(
        "ix_transactions_card_invoice", "transactions", ["credit_card_id", "invoice_id"]
    )


def downgrade():
    op.drop_index("ix_transactions_card_invoice", table_name="transactions")
    op.drop_index("ix_transactions_group_status", table_name="transactions")
    op.drop_index("ix_transactions_recurrence_status", table_name="transactions")
    op.drop_index("ix_transactions_user_due_date", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("installment_groups")
    op.drop_index("ix_recurrences_user_active", table_name="recurrences")
    op.drop_table("recurrences")
    op.drop_table("invoices")
    op.drop_table("credit_cards")
    op.drop_table("accounts")
    op.drop_table("categories")
