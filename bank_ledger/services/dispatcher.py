"""
Transaction dispatcher — the single entry point into the ledger engine.

create_transaction():
1. Validates the request type, the amount and the fields the type
   requires, before touching the database
2. Picks the transaction group id (caller supplied or new)
3. Confirms any operator user exists
4. Returns the already-applied entry if the group id was seen before
5. Runs the flow for the request type
6. Commits, or rolls back everything on any failure from steps 3-5

Unlike the stores and flows, the dispatcher owns the transaction
boundary: one request is one database transaction.
"""

import logging
import uuid

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from bank_ledger.exceptions import (
    IndeterminateError,
    InvalidRequestError,
    LedgerError,
    NotFoundError,
)
from bank_ledger.models.enums import (
    EffectiveType,
    RequestType,
    PRIMARY_EFFECTIVE_TYPE,
)
from bank_ledger.models.ledger_entry import LedgerEntry
from bank_ledger.schemas.transaction import TransactionCreate
from bank_ledger.services.account_store import AccountStore
from bank_ledger.services.balance_mutator import BalanceMutator
from bank_ledger.services.flows import (
    DepositFlow,
    Flow,
    TransferFlow,
    WithdrawFlow,
)
from bank_ledger.services.ledger_store import LedgerEntryStore
from bank_ledger.services.user_store import UserStore

logger = logging.getLogger(__name__)


class TransactionDispatcher:

    def __init__(self, db: Session):
        self.db = db
        self.accounts = AccountStore(db)
        self.users = UserStore(db)
        self.ledger = LedgerEntryStore(db)

        mutator = BalanceMutator(db, accounts=self.accounts, ledger=self.ledger)
        shared = dict(accounts=self.accounts, users=self.users, mutator=mutator)
        self.flows: dict[RequestType, Flow] = {
            RequestType.DEPOSIT: DepositFlow(db, **shared),
            RequestType.WITHDRAW: WithdrawFlow(db, **shared),
            RequestType.TRANSFER: TransferFlow(db, **shared),
        }

    # --- Commands ---

    def create_transaction(self, request: TransactionCreate) -> LedgerEntry:
        """
        Apply a deposit, withdrawal or transfer and return its entry.

        For a transfer the TRANSFER_OUT entry is returned. Re-submitting
        a request with the same group_id returns the entry recorded the
        first time without moving money again.

        Raises:
            InvalidRequestError, NotFoundError, ForbiddenError,
            InsufficientFundsError: the request was rejected and
                nothing was written
            IndeterminateError: the database failed mid-way; look up the
                group id before retrying
        """
        request_type = self._parse_type(request.type)
        flow = self.flows[request_type]
        flow.validate(request)

        group_id = request.group_id or uuid.uuid4()

        try:
            if request.operator_user_id is not None:
                self.users.get(request.operator_user_id)

            existing = self._find_applied(group_id, request_type, request)
            if existing is not None:
                logger.info("Group %s already applied, returning it", group_id)
                return existing

            entry = flow.execute(request, group_id)
            self.db.commit()
        except LedgerError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            # A concurrent request with the same group id committed first
            self.db.rollback()
            try:
                existing = self._find_applied(group_id, request_type, request)
            except SQLAlchemyError:
                self.db.rollback()
                existing = None
            if existing is not None:
                return existing
            raise IndeterminateError(
                "Transaction could not be recorded",
                details={"group_id": str(group_id)},
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Database failure while applying group %s: %s", group_id, e
            )
            raise IndeterminateError(
                "Data store failure; the outcome is unknown",
                details={"group_id": str(group_id)},
            ) from e

        return entry

    # --- Queries ---

    def list_visible_transactions(
        self, account_id: int | None = None
    ) -> list[LedgerEntry]:
        """All entries, or only those visible to one account, newest first."""
        if account_id is not None:
            self.accounts.get(account_id)
        return self.ledger.list_visible(account_id)

    def get_transaction(
        self, group_id: uuid.UUID, effective_type: EffectiveType | str
    ) -> LedgerEntry:
        """Get one leg of a transaction by group id and effective type."""
        if not isinstance(effective_type, EffectiveType):
            try:
                effective_type = EffectiveType(effective_type.strip().upper())
            except ValueError:
                raise InvalidRequestError(
                    f"Unknown effective type '{effective_type}'"
                )

        entry = self.ledger.find(group_id, effective_type)
        if not entry:
            raise NotFoundError(
                f"Transaction {group_id} ({effective_type.value}) not found"
            )
        return entry

    def list_group(self, group_id: uuid.UUID) -> list[LedgerEntry]:
        """Every entry recorded under a group id."""
        entries = self.ledger.list_group(group_id)
        if not entries:
            raise NotFoundError(f"Transaction {group_id} not found")
        return entries

    # --- Helpers ---

    def _parse_type(self, value: str) -> RequestType:
        try:
            return RequestType(value.strip().upper())
        except ValueError:
            raise InvalidRequestError(
                f"Unsupported transaction type '{value}'"
            )

    def _find_applied(
        self,
        group_id: uuid.UUID,
        request_type: RequestType,
        request: TransactionCreate,
    ) -> LedgerEntry | None:
        """
        Return the primary entry of a group that was already applied.

        A group id reused for a different operation is rejected.
        """
        entries = self.ledger.list_group(group_id)
        if not entries:
            return None

        primary = PRIMARY_EFFECTIVE_TYPE[request_type]
        for entry in entries:
            if entry.effective_type == primary and self._same_request(
                entry, request
            ):
                return entry

        raise InvalidRequestError(
            f"Transaction group {group_id} was already used for a "
            f"different operation",
            details={"group_id": str(group_id)},
        )

    @staticmethod
    def _same_request(entry: LedgerEntry, request: TransactionCreate) -> bool:
        if entry.amount != request.amount:
            return False
        if entry.effective_type != EffectiveType.DEPOSIT and (
            entry.source_account_id != request.source_account_id
        ):
            return False
        if entry.effective_type != EffectiveType.WITHDRAW and (
            entry.destination_account_id != request.destination_account_id
        ):
            return False
        return True
