"""Accounts and append-only transaction log."""

from __future__ import annotations

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial_ledger"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("account_number", sa.String(length=10), nullable=False),
        sa.Column("holder_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("opening_balance", sa.Numeric(19, 2), nullable=False),
        sa.Column("balance", sa.Numeric(19, 2), nullable=False),
        sa.Column("account_type", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("creation_reference", sa.String(length=64), nullable=True),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("creation_reference"),
    )
    op.create_index("ix_accounts_account_number", "accounts", ["account_number"], unique=True)
    op.create_index("ix_accounts_status", "accounts", ["status"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "account_number",
            sa.String(length=10),
            sa.ForeignKey("accounts.account_number", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("transaction_type", sa.String(length=16), nullable=False),
        sa.Column("amount", sa.Numeric(19, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(19, 2), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("reference", sa.String(length=64), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("counterparty_account_number", sa.String(length=10), nullable=True),
        sa.Column("reverses_reference", sa.String(length=64), nullable=True),
        sa.UniqueConstraint("reference"),
        sa.UniqueConstraint("account_number", "sequence", name="uq_transactions_account_sequence"),
    )
    op.create_index("ix_transactions_account_number", "transactions", ["account_number"])
    op.create_index("ix_transactions_timestamp", "transactions", ["timestamp"])
    op.create_index("ix_transactions_reverses_reference", "transactions", ["reverses_reference"])


def downgrade() -> None:
    op.drop_index("ix_transactions_reverses_reference", table_name="transactions")
    op.drop_index("ix_transactions_timestamp", table_name="transactions")
    op.drop_index("ix_transactions_account_number", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_accounts_status", table_name="accounts")
    op.drop_index("ix_accounts_account_number", table_name="accounts")
    op.drop_table("accounts")
