"""
Account store — account records and the user/account ownership relation.

Everything else in the engine depends on this store. It never
commits: the caller owns the transaction boundary.

Balances are written in exactly one place, update_balance(),
and the balance mutator is its only caller on the money path.
"""

import logging
import uuid
from decimal import Decimal

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.orm import Session

from bank_ledger.exceptions import (
    ForbiddenError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
    PolicyViolationError,
)
from bank_ledger.models.account import Account, user_accounts
from bank_ledger.models.base import utcnow
from bank_ledger.models.enums import AccountStatus, EffectiveType
from bank_ledger.models.role import AccountType
from bank_ledger.models.user import User
from bank_ledger.schemas.account import AccountOpen, AccountUpdate
from bank_ledger.services.user_store import UserStore, normalize_name

logger = logging.getLogger(__name__)


class AccountStore:

    def __init__(self, db: Session):
        self.db = db
        self.users = UserStore(db)

    # --- Lookups ---

    def get(self, account_id: int) -> Account:
        """Get an account by ID."""
        account = self.db.get(Account, account_id)
        if not account:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    def lock(self, account_id: int) -> Account:
        """Lock the account row and refresh any loaded copy."""
        account = self.db.execute(
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not account:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    def count_owners(self, account_id: int) -> int:
        """Number of owners as stored, ignoring loaded collections."""
        return self.db.execute(
            select(func.count())
            .select_from(user_accounts)
            .where(user_accounts.c.account_id == account_id)
        ).scalar_one()

    def list_accounts(self) -> list[Account]:
        accounts = self.db.execute(
            select(Account).order_by(Account.id)
        ).scalars().all()
        return list(accounts)

    def ensure_active(self, account_id: int, for_update: bool = False) -> Account:
        """
        Return the account, or raise Forbidden if it is inactive.

        With for_update=True the account row is locked and reloaded,
        so concurrent ownership changes to it are serialized.
        """
        account = self.lock(account_id) if for_update else self.get(account_id)
        if account.status != AccountStatus.ACTIVE:
            raise ForbiddenError(
                f"Account {account_id} is inactive and cannot be modified"
            )
        return account

    # --- Balance ---

    def get_balance(self, account_id: int, for_update: bool = False) -> Decimal:
        """
        Read the stored balance straight from the database.

        With for_update=True the row is locked (SELECT ... FOR UPDATE)
        until the surrounding transaction ends, on databases that
        support row locks. The identity map is bypassed so a retry
        always sees the latest committed value.
        """
        query = select(Account.balance).where(Account.id == account_id)
        if for_update:
            query = query.with_for_update()

        balance = self.db.execute(query).scalar_one_or_none()
        if balance is None:
            raise NotFoundError(f"Account {account_id} not found")
        return Decimal(balance)

    def update_balance(
        self,
        account_id: int,
        new_balance: Decimal,
        expected_balance: Decimal | None = None,
    ) -> Account | None:
        """
        Persist a new balance.

        When expected_balance is given the write only happens if the
        stored balance still equals it (compare-and-swap); None is
        returned when another writer got there first.

        Raises InvalidStateError for a negative balance and
        NotFoundError if the account does not exist.
        """
        if new_balance < 0:
            raise InvalidStateError(
                f"Account {account_id} balance cannot become negative "
                f"({new_balance})"
            )

        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(balance=new_balance, updated_at=utcnow())
        )
        if expected_balance is not None:
            stmt = stmt.where(Account.balance == expected_balance)

        result = self.db.execute(
            stmt.execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            if expected_balance is None:
                raise NotFoundError(f"Account {account_id} not found")
            return None

        # Refresh any copy already loaded into this session
        return self.db.execute(
            select(Account)
            .where(Account.id == account_id)
            .execution_options(populate_existing=True)
        ).scalar_one()

    # --- Ownership ---

    def list_owners(self, account_id: int) -> list[User]:
        """Current owners of an active account."""
        self.ensure_active(account_id)
        owners = self.db.execute(
            select(User)
            .join(user_accounts, user_accounts.c.user_id == User.id)
            .where(user_accounts.c.account_id == account_id)
            .order_by(User.id)
        ).scalars().all()
        return list(owners)

    def is_owner(self, account_id: int, user_id: int) -> bool:
        return any(owner.id == user_id for owner in self.list_owners(account_id))

    def add_owner(self, account_id: int, user_id: int) -> Account:
        """Link a user to an account. Linking an existing owner is a no-op."""
        account = self.ensure_active(account_id, for_update=True)
        user = self.users.get(user_id)

        if not self._is_linked(account_id, user_id):
            self.db.execute(
                insert(user_accounts).values(
                    account_id=account_id, user_id=user_id
                )
            )
            self.db.expire(account, ["owners"])
            self.db.expire(user, ["accounts"])
            logger.info("Linked user %s to account %s", user_id, account_id)
        return account

    def remove_owner(self, account_id: int, user_id: int) -> Account:
        """
        Unlink a user from an account.

        An account must always keep at least one owner; removing
        the last one is a policy violation. Deactivate the account
        instead. Owners are counted in the database, before and
        after the unlink, with the account row locked.
        """
        account = self.ensure_active(account_id, for_update=True)
        user = self.users.get(user_id)

        if not self._is_linked(account_id, user_id):
            raise NotFoundError(
                f"User {user_id} is not linked to account {account_id}"
            )
        if self.count_owners(account_id) <= 1:
            raise self._last_owner_error(account_id)

        self.db.execute(
            delete(user_accounts).where(
                user_accounts.c.account_id == account_id,
                user_accounts.c.user_id == user_id,
            )
        )
        # Another owner may have been unlinked and committed meanwhile
        if self.count_owners(account_id) == 0:
            raise self._last_owner_error(account_id)

        self.db.expire(account, ["owners"])
        self.db.expire(user, ["accounts"])
        logger.info("Unlinked user %s from account %s", user_id, account_id)
        return account

    def _is_linked(self, account_id: int, user_id: int) -> bool:
        return self.db.execute(
            select(user_accounts.c.user_id).where(
                user_accounts.c.account_id == account_id,
                user_accounts.c.user_id == user_id,
            )
        ).first() is not None

    @staticmethod
    def _last_owner_error(account_id: int) -> PolicyViolationError:
        return PolicyViolationError(
            f"Cannot remove the last owner of account {account_id}; "
            f"deactivate the account instead",
            details={"account_ids": [account_id]},
        )

    # --- Lifecycle ---

    def open_account(self, request: AccountOpen) -> Account:
        """
        Open a new account owned by request.user_id.

        The account starts with a zero balance. A positive
        initial_deposit goes through the balance mutator like any
        other deposit, so the opening balance has a ledger entry.
        """
        user = self.users.get(request.user_id)
        account_type = self.get_account_type(request.account_type_id)

        account = Account(
            account_type_id=account_type.id,
            status=request.status,
            balance=Decimal("0"),
        )
        account.owners.append(user)
        self.db.add(account)
        self.db.flush()

        if request.initial_deposit > 0:
            from bank_ledger.services.balance_mutator import (
                BalanceMutator,
                EntryTemplate,
            )
            BalanceMutator(self.db, accounts=self).apply(
                account.id,
                request.initial_deposit,
                EntryTemplate(
                    group_id=uuid.uuid4(),
                    effective_type=EffectiveType.DEPOSIT,
                    amount=request.initial_deposit,
                    destination_account_id=account.id,
                    operator_user_id=user.id,
                ),
            )

        logger.info(
            "Opened account %s for user %s (%s)",
            account.id, user.id, account.status.value,
        )
        return account

    def update_account(self, account_id: int, request: AccountUpdate) -> Account:
        """
        Update an account's type and/or status.

        While an account is INACTIVE the only accepted update is one
        that activates it; other fields sent along with the
        activation are applied too. Setting the current status again
        is not a transition and is ignored.
        """
        account = self.get(account_id)

        activating = request.status == AccountStatus.ACTIVE
        if account.status == AccountStatus.INACTIVE and not activating:
            raise ForbiddenError(
                "Inactive accounts can only be activated (status set to ACTIVE)"
            )

        if request.status is not None and request.status != account.status:
            if not account.can_transition_to(request.status):
                raise InvalidStateError(
                    f"Cannot transition from {account.status.value} "
                    f"to {request.status.value}"
                )
            account.status = request.status

        if request.account_type_id is not None:
            account.account_type_id = self.get_account_type(
                request.account_type_id
            ).id

        self.db.flush()
        return account

    # --- Account types ---

    def get_account_type(self, account_type_id: int) -> AccountType:
        account_type = self.db.get(AccountType, account_type_id)
        if not account_type:
            raise InvalidRequestError(
                f"Account type {account_type_id} does not exist"
            )
        return account_type

    def ensure_account_type(
        self, name: str, description: str | None = None
    ) -> AccountType:
        """Return the account type with this name, creating it if needed."""
        normalized = normalize_name(name, "Account type")
        account_type = self.db.execute(
            select(AccountType).where(AccountType.name == normalized)
        ).scalar_one_or_none()
        if account_type:
            return account_type

        account_type = AccountType(name=normalized, description=description)
        self.db.add(account_type)
        self.db.flush()
        return account_type
