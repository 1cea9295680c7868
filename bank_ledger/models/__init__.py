"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from bank_ledger.models.base import Base
from bank_ledger.models.enums import (
    AccountStatus,
    RequestType,
    EffectiveType,
)
from bank_ledger.models.role import Role, AccountType
from bank_ledger.models.account import Account, user_accounts
from bank_ledger.models.user import User
from bank_ledger.models.ledger_entry import LedgerEntry

__all__ = [
    "Base",
    "AccountStatus",
    "RequestType",
    "EffectiveType",
    "Role",
    "AccountType",
    "Account",
    "user_accounts",
    "User",
    "LedgerEntry",
]
