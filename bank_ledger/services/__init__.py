"""Ledger engine services."""

from bank_ledger.services.user_store import UserStore
from bank_ledger.services.account_store import AccountStore
from bank_ledger.services.ledger_store import LedgerEntryStore
from bank_ledger.services.balance_mutator import BalanceMutator, EntryTemplate
from bank_ledger.services.flows import DepositFlow, WithdrawFlow, TransferFlow
from bank_ledger.services.dispatcher import TransactionDispatcher

__all__ = [
    "UserStore",
    "AccountStore",
    "LedgerEntryStore",
    "BalanceMutator",
    "EntryTemplate",
    "DepositFlow",
    "WithdrawFlow",
    "TransferFlow",
    "TransactionDispatcher",
]
