"""Initial ledger schema

Revision ID: 3f1c2a7b9d10
Revises:
Create Date: 2026-10-19

Tables Created:
- roles, account_types: reference data
- users: operators and account owners
- accounts: balances and status
- user_accounts: many-to-many ownership
- ledger_entries: append-only transaction trail
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3f1c2a7b9d10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

account_status = sa.Enum(
    "ACTIVE", "INACTIVE", name="account_status_enum", create_constraint=True
)
effective_type = sa.Enum(
    "DEPOSIT", "WITHDRAW", "TRANSFER_IN", "TRANSFER_OUT",
    name="effective_type_enum",
)


def upgrade() -> None:
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "account_types",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.Uuid(), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column(
            "role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=False
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_role_id", "users", ["role_id"])

    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.Uuid(), nullable=False, unique=True),
        sa.Column("balance", sa.Numeric(19, 4), nullable=False),
        sa.Column(
            "account_type_id",
            sa.Integer(),
            sa.ForeignKey("account_types.id"),
            nullable=False,
        ),
        sa.Column("status", account_status, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "balance >= 0", name="ck_accounts_balance_non_negative"
        ),
    )
    op.create_index(
        "ix_accounts_account_type_id", "accounts", ["account_type_id"]
    )

    op.create_table(
        "user_accounts",
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "account_id",
            sa.Integer(),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("group_id", sa.Uuid(), nullable=False),
        sa.Column("effective_type", effective_type, nullable=False),
        sa.Column("amount", sa.Numeric(19, 4), nullable=False),
        sa.Column(
            "source_account_id",
            sa.Integer(),
            sa.ForeignKey("accounts.id"),
            nullable=True,
        ),
        sa.Column(
            "destination_account_id",
            sa.Integer(),
            sa.ForeignKey("accounts.id"),
            nullable=True,
        ),
        sa.Column("balance_before", sa.Numeric(19, 4), nullable=False),
        sa.Column("balance_after", sa.Numeric(19, 4), nullable=False),
        sa.Column(
            "operator_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column(
            "visible_to_account_id",
            sa.Integer(),
            sa.ForeignKey("accounts.id"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "group_id", "effective_type", name="uq_ledger_entries_group_type"
        ),
    )
    op.create_index("ix_ledger_entries_group_id", "ledger_entries", ["group_id"])
    op.create_index(
        "ix_ledger_entries_source_account_id",
        "ledger_entries",
        ["source_account_id"],
    )
    op.create_index(
        "ix_ledger_entries_destination_account_id",
        "ledger_entries",
        ["destination_account_id"],
    )
    op.create_index(
        "ix_ledger_entries_visible_to_account_id",
        "ledger_entries",
        ["visible_to_account_id"],
    )


def downgrade() -> None:
    op.drop_table("ledger_entries")
    op.drop_table("user_accounts")
    op.drop_table("accounts")
    op.drop_table("users")
    op.drop_table("account_types")
    op.drop_table("roles")
    effective_type.drop(op.get_bind(), checkfirst=True)
    account_status.drop(op.get_bind(), checkfirst=True)
