"""initial fintrack schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


account_type = sa.Enum("checking", "savings", "credit", "investment", "other", name="account_type")
category_kind = sa.Enum("expense", "income", "transfer", name="category_kind")
txn_kind = sa.Enum("DEBIT", "CREDIT", name="txn_kind")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "account",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", account_type, nullable=False),
        sa.Column("opening_balance", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("opening_date", sa.Date(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_account_user_id", "account", ["user_id"])

    op.create_table(
        "category",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("category.id"), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("icon", sa.String(length=64), nullable=True),
        sa.Column("color", sa.String(length=32), nullable=True),
        sa.Column("type", category_kind, nullable=False, server_default="expense"),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint("parent_id IS NULL OR parent_id != id", name="ck_category_parent_not_self"),
    )
    op.create_index("ix_category_user_id", "category", ["user_id"])
    op.create_index("ix_category_siblings", "category", ["user_id", "parent_id", "sort_order"])

    op.create_table(
        "transactionrule",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("pattern", sa.String(length=500), nullable=False),
        sa.Column("is_regex", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("case_sensitive", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="100"),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("category.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("kind", txn_kind, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_transactionrule_user_id", "transactionrule", ["user_id"])
    op.create_index("ix_transactionrule_match_order", "transactionrule", ["user_id", "priority", "id"])

    op.create_table(
        "transaction",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("kind", txn_kind, nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_saving", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("account.id"), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("category.id"), nullable=True),
        sa.Column("income_source_id", sa.Integer(), nullable=True),
        sa.Column("transfer_id", sa.String(length=36), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(kind = 'DEBIT' AND amount <= 0) OR (kind = 'CREDIT' AND amount >= 0)",
            name="ck_transaction_sign_matches_kind",
        ),
    )
    op.create_index("ix_transaction_transfer_id", "transaction", ["transfer_id"])
    op.create_index("ix_transaction_account_date", "transaction", ["account_id", "date"])
    op.create_index("ix_transaction_account_category", "transaction", ["account_id", "category_id"])


def downgrade() -> None:
    op.drop_index("ix_transaction_account_category", table_name="transaction")
    op.drop_index("ix_transaction_account_date", table_name="transaction")
    op.drop_index("ix_transaction_transfer_id", table_name="transaction")
    op.drop_table("transaction")

    op.drop_index("ix_transactionrule_match_order", table_name="transactionrule")
    op.drop_index("ix_transactionrule_user_id", table_name="transactionrule")
    op.drop_table("transactionrule")

    op.drop_index("ix_category_siblings", table_name="category")
    op.drop_index("ix_category_user_id", table_name="category")
    op.drop_table("category")

    op.drop_index("ix_account_user_id", table_name="account")
    op.drop_table("account")

    op.drop_table("user")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        txn_kind.drop(bind, checkfirst=True)
        category_kind.drop(bind, checkfirst=True)
        account_type.drop(bind, checkfirst=True)
