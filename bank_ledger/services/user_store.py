"""
User store — user identity and role references.

The ledger engine only consults this store to confirm that an
operator user exists. Creation and deletion are here so the
surrounding application (and the tests) can manage users
through the same session-scoped interface.
"""

import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from bank_ledger.exceptions import (
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    PolicyViolationError,
)
from bank_ledger.models.account import Account, user_accounts
from bank_ledger.models.ledger_entry import LedgerEntry
from bank_ledger.models.role import Role
from bank_ledger.models.user import User
from bank_ledger.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


def normalize_name(name: str, kind: str) -> str:
    """Upper-case a role or account type name; spaces are not allowed."""
    normalized = name.strip().upper()
    if not normalized or " " in normalized:
        raise InvalidRequestError(f"{kind} name must be a single word")
    return normalized


class UserStore:

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> User:
        """Get a user by ID."""
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def exists(self, user_id: int) -> bool:
        return self.db.get(User, user_id) is not None

    def create(self, request: UserCreate) -> User:
        """Create a new user. The email must be unused and the role must exist."""
        existing = self.db.execute(
            select(User).where(User.email == request.email)
        ).scalar_one_or_none()
        if existing:
            raise ConflictError(f"Email '{request.email}' already registered")

        if not self.db.get(Role, request.role_id):
            raise InvalidRequestError(f"Role {request.role_id} does not exist")

        user = User(
            name=request.name,
            email=request.email,
            role_id=request.role_id,
        )
        self.db.add(user)
        self.db.flush()
        logger.info("Created user %s (%s)", user.id, user.email)
        return user

    def list_users(self) -> list[User]:
        users = self.db.execute(select(User).order_by(User.id)).scalars().all()
        return list(users)

    def list_accounts(self, user_id: int) -> list[Account]:
        """All accounts the user owns."""
        user = self.get(user_id)
        return sorted(user.accounts, key=lambda a: a.id)

    def update(self, user_id: int, request: UserUpdate) -> User:
        """
        Change a user's name, email or role.

        The new email must not belong to another user and the new
        role must exist.
        """
        user = self.get(user_id)

        if request.email is not None and request.email != user.email:
            existing = self.db.execute(
                select(User).where(User.email == request.email)
            ).scalar_one_or_none()
            if existing and existing.id != user_id:
                raise ConflictError(
                    f"Email '{request.email}' already registered"
                )
            user.email = request.email

        if request.role_id is not None:
            if not self.db.get(Role, request.role_id):
                raise InvalidRequestError(
                    f"Role {request.role_id} does not exist"
                )
            user.role_id = request.role_id

        if request.name is not None:
            user.name = request.name

        self.db.flush()
        logger.info("Updated user %s", user_id)
        return user

    def delete(self, user_id: int) -> User:
        """
        Delete a user and their ownership links.

        Rejected if the user is the only owner of any account,
        since every account must keep at least one owner, and if
        the user operated any ledger entry, since entries keep
        their operator for good. The user's accounts are locked
        while their owners are counted.
        """
        # Imported here: the account store depends on this module
        from bank_ledger.services.account_store import AccountStore

        user = self.get(user_id)
        store = AccountStore(self.db)

        account_ids = list(self.db.execute(
            select(user_accounts.c.account_id)
            .where(user_accounts.c.user_id == user_id)
            .order_by(user_accounts.c.account_id)
        ).scalars().all())
        accounts = [store.lock(account_id) for account_id in account_ids]

        self._reject_orphans(
            user_id, [a for a in account_ids if store.count_owners(a) <= 1]
        )

        operated = self.db.execute(
            select(LedgerEntry.id)
            .where(LedgerEntry.operator_user_id == user_id)
            .limit(1)
        ).first()
        if operated is not None:
            raise PolicyViolationError(
                f"User {user_id} has ledger history and cannot be deleted",
                details={"user_id": user_id},
            )

        self.db.execute(
            delete(user_accounts).where(user_accounts.c.user_id == user_id)
        )
        # Recount in case a co-owner was unlinked and committed meanwhile
        self._reject_orphans(
            user_id, [a for a in account_ids if store.count_owners(a) == 0]
        )

        for account in accounts:
            self.db.expire(account, ["owners"])
        self.db.expire(user, ["accounts"])
        self.db.delete(user)
        self.db.flush()
        logger.info("Deleted user %s", user_id)
        return user

    @staticmethod
    def _reject_orphans(user_id: int, orphaned: list[int]) -> None:
        if orphaned:
            raise PolicyViolationError(
                f"User {user_id} is the only owner of accounts {orphaned}",
                details={"account_ids": orphaned},
            )

    # --- Roles ---

    def get_role_by_name(self, name: str) -> Role | None:
        return self.db.execute(
            select(Role).where(Role.name == normalize_name(name, "Role"))
        ).scalar_one_or_none()

    def ensure_role(self, name: str) -> Role:
        """Return the role with this name, creating it if needed."""
        role = self.get_role_by_name(name)
        if role:
            return role
        role = Role(name=normalize_name(name, "Role"))
        self.db.add(role)
        self.db.flush()
        return role
