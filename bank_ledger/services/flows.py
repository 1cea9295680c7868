"""
Flow handlers — deposits, withdrawals, and transfers.

Each flow:
1. Checks the fields its request type requires (no store access)
2. Resolves the accounts involved
3. Checks the operator is allowed to move the money
4. Calls the balance mutator once per account

Flows never commit. The transaction dispatcher wraps each flow
in one database transaction, which is what makes the two legs
of a transfer atomic.
"""

import logging
import uuid
from decimal import Decimal

from sqlalchemy.orm import Session

from bank_ledger.exceptions import ForbiddenError, InvalidRequestError
from bank_ledger.models.account import MAX_MONEY, Account
from bank_ledger.models.enums import EffectiveType
from bank_ledger.models.ledger_entry import LedgerEntry
from bank_ledger.schemas.transaction import TransactionCreate
from bank_ledger.services.account_store import AccountStore
from bank_ledger.services.balance_mutator import BalanceMutator, EntryTemplate
from bank_ledger.services.ledger_store import LedgerEntryStore
from bank_ledger.services.user_store import UserStore

logger = logging.getLogger(__name__)


class Flow:
    """Shared plumbing for the three flows."""

    # Request fields that must be present for this flow
    required_fields: tuple[str, ...] = ()
    operation: str = ""

    def __init__(
        self,
        db: Session,
        accounts: AccountStore | None = None,
        users: UserStore | None = None,
        mutator: BalanceMutator | None = None,
    ):
        self.db = db
        self.accounts = accounts or AccountStore(db)
        self.users = users or UserStore(db)
        self.mutator = mutator or BalanceMutator(
            db, accounts=self.accounts, ledger=LedgerEntryStore(db)
        )

    def validate(self, request: TransactionCreate) -> None:
        """Reject a request that lacks a field this flow needs."""
        for field in self.required_fields:
            if getattr(request, field) is None:
                raise InvalidRequestError(
                    f"{field} is required for {self.operation}"
                )
        if request.amount <= 0:
            raise InvalidRequestError("amount must be positive")
        if request.amount > MAX_MONEY:
            raise InvalidRequestError(
                f"amount must not exceed {MAX_MONEY}",
                details={"max_amount": str(MAX_MONEY)},
            )

    def execute(
        self, request: TransactionCreate, group_id: uuid.UUID
    ) -> LedgerEntry:
        raise NotImplementedError

    def _assert_owner(
        self, account: Account, operator_user_id: int, message: str
    ) -> None:
        # list_owners refuses inactive accounts with ForbiddenError
        if not self.accounts.is_owner(account.id, operator_user_id):
            logger.warning(
                "User %s tried to move money out of account %s",
                operator_user_id, account.id,
            )
            raise ForbiddenError(message)


class DepositFlow(Flow):
    """
    Credit an account.

    The operator is optional context: anyone the system knows, or
    nobody at all, may deposit. It is never an authorization check.
    """

    required_fields = ("destination_account_id",)
    operation = "deposit"

    def execute(
        self, request: TransactionCreate, group_id: uuid.UUID
    ) -> LedgerEntry:
        self.validate(request)

        account = self.accounts.get(request.destination_account_id)
        if request.operator_user_id is not None:
            self.users.get(request.operator_user_id)

        entry = self.mutator.apply(
            account.id,
            request.amount,
            EntryTemplate(
                group_id=group_id,
                effective_type=EffectiveType.DEPOSIT,
                amount=request.amount,
                destination_account_id=account.id,
                operator_user_id=request.operator_user_id,
            ),
        )
        logger.info(
            "Deposited %s into account %s (group %s)",
            request.amount, account.id, group_id,
        )
        return entry


class WithdrawFlow(Flow):
    """Debit an account on behalf of one of its owners."""

    required_fields = ("source_account_id", "operator_user_id")
    operation = "withdrawal"

    def execute(
        self, request: TransactionCreate, group_id: uuid.UUID
    ) -> LedgerEntry:
        self.validate(request)

        account = self.accounts.get(request.source_account_id)
        self._assert_owner(
            account, request.operator_user_id,
            "User is not owner of the account",
        )

        entry = self.mutator.apply(
            account.id,
            -request.amount,
            EntryTemplate(
                group_id=group_id,
                effective_type=EffectiveType.WITHDRAW,
                amount=request.amount,
                source_account_id=account.id,
                operator_user_id=request.operator_user_id,
            ),
        )
        logger.info(
            "Withdrew %s from account %s (group %s)",
            request.amount, account.id, group_id,
        )
        return entry


class TransferFlow(Flow):
    """
    Move money between two accounts.

    The operator must own the source account. The destination must
    already exist; a transfer never creates one. The debit leg runs
    first, so insufficient funds are detected before anything is
    written. Returns the TRANSFER_OUT entry; the TRANSFER_IN entry
    shares its group id.
    """

    required_fields = (
        "source_account_id",
        "destination_account_id",
        "operator_user_id",
    )
    operation = "transfer"

    def validate(self, request: TransactionCreate) -> None:
        super().validate(request)
        if request.source_account_id == request.destination_account_id:
            raise InvalidRequestError("Cannot transfer to the same account")

    def execute(
        self, request: TransactionCreate, group_id: uuid.UUID
    ) -> LedgerEntry:
        self.validate(request)

        source = self.accounts.get(request.source_account_id)
        self._assert_owner(
            source, request.operator_user_id,
            "User is not owner of the source account",
        )
        destination = self.accounts.get(request.destination_account_id)

        transfer_out = self._leg(
            source.id, -request.amount, EffectiveType.TRANSFER_OUT,
            request, source, destination, group_id,
        )
        self._leg(
            destination.id, request.amount, EffectiveType.TRANSFER_IN,
            request, source, destination, group_id,
        )

        logger.info(
            "Transferred %s from account %s to account %s (group %s)",
            request.amount, source.id, destination.id, group_id,
        )
        return transfer_out

    def _leg(
        self,
        account_id: int,
        delta: Decimal,
        effective_type: EffectiveType,
        request: TransactionCreate,
        source: Account,
        destination: Account,
        group_id: uuid.UUID,
    ) -> LedgerEntry:
        return self.mutator.apply(
            account_id,
            delta,
            EntryTemplate(
                group_id=group_id,
                effective_type=effective_type,
                amount=request.amount,
                source_account_id=source.id,
                destination_account_id=destination.id,
                operator_user_id=request.operator_user_id,
            ),
        )
