"""
Balance mutator — the only code path that moves money.

apply() performs one read-modify-write of one account balance
and appends the matching ledger entry:

1. Read the current balance (row-locked where supported)
2. Compute new_balance = balance + delta
3. Reject with InsufficientFundsError if new_balance < 0, or with
   InvalidStateError if it would exceed MAX_MONEY
4. Write new_balance only if the stored balance is still the
   one read in step 1 (compare-and-swap)
5. Append a ledger entry with balance_before / balance_after

If step 4 loses a race against another writer, the whole read
is repeated. On PostgreSQL the row lock from step 1 already
serializes writers; the compare-and-swap keeps databases
without row locks (SQLite) correct as well.

Nothing here commits. A transfer calls apply() twice inside
one database transaction owned by the dispatcher, so both legs
commit or roll back together.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

from bank_ledger.config import get_settings
from bank_ledger.exceptions import (
    IndeterminateError,
    InsufficientFundsError,
    InvalidStateError,
)
from bank_ledger.models.account import MAX_MONEY
from bank_ledger.models.enums import EffectiveType
from bank_ledger.models.ledger_entry import LedgerEntry
from bank_ledger.services.account_store import AccountStore
from bank_ledger.services.ledger_store import LedgerEntryStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryTemplate:
    """Everything a ledger entry needs except the balance snapshots."""
    group_id: uuid.UUID
    effective_type: EffectiveType
    amount: Decimal
    source_account_id: int | None = None
    destination_account_id: int | None = None
    operator_user_id: int | None = None


class BalanceMutator:

    def __init__(
        self,
        db: Session,
        accounts: AccountStore | None = None,
        ledger: LedgerEntryStore | None = None,
        max_attempts: int | None = None,
    ):
        self.db = db
        self.accounts = accounts or AccountStore(db)
        self.ledger = ledger or LedgerEntryStore(db)
        self.max_attempts = max_attempts or get_settings().BALANCE_UPDATE_RETRIES

    def apply(
        self, account_id: int, delta: Decimal, template: EntryTemplate
    ) -> LedgerEntry:
        """
        Add delta (negative for a debit) to the account balance and
        record it. The entry is visible to account_id.

        Raises:
            NotFoundError: the account does not exist
            InsufficientFundsError: the balance would go negative;
                nothing has been written
            InvalidStateError: the balance would exceed MAX_MONEY
            IndeterminateError: the write kept losing races
        """
        for attempt in range(1, self.max_attempts + 1):
            balance = self.accounts.get_balance(account_id, for_update=True)
            new_balance = balance + delta

            if new_balance < 0:
                raise InsufficientFundsError(balance=balance, requested=-delta)
            if new_balance > MAX_MONEY:
                raise InvalidStateError(
                    f"Balance of account {account_id} would exceed "
                    f"{MAX_MONEY}",
                    details={"balance": str(balance), "max_balance": str(MAX_MONEY)},
                )

            account = self.accounts.update_balance(
                account_id, new_balance, expected_balance=balance
            )
            if account is not None:
                break

            logger.debug(
                "Balance of account %s changed concurrently, retrying "
                "(attempt %d/%d)",
                account_id, attempt, self.max_attempts,
            )
        else:
            logger.warning(
                "Gave up updating account %s after %d attempts",
                account_id, self.max_attempts,
            )
            raise IndeterminateError(
                f"Could not update balance of account {account_id} "
                f"due to concurrent modifications",
                details={"group_id": str(template.group_id)},
            )

        entry = self.ledger.append(LedgerEntry(
            group_id=template.group_id,
            effective_type=template.effective_type,
            amount=template.amount,
            source_account_id=template.source_account_id,
            destination_account_id=template.destination_account_id,
            balance_before=balance,
            balance_after=new_balance,
            operator_user_id=template.operator_user_id,
            visible_to_account_id=account_id,
        ))

        logger.debug(
            "Account %s: %s %s -> %s (%s)",
            account_id, template.effective_type.value,
            balance, new_balance, template.group_id,
        )
        return entry
