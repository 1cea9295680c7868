"""
Customer account model and the user/account ownership table.

The balance is stored on the account row and is only ever
changed through the balance mutator, which appends a ledger
entry for every change. The database rejects a negative
balance through a check constraint.

The account has a small state machine governing its lifecycle.
Invalid state transitions are rejected.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column, Table, DateTime, ForeignKey, Numeric, CheckConstraint,
    Enum as SAEnum, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bank_ledger.models.base import Base, utcnow
from bank_ledger.models.enums import AccountStatus


# Many-to-many ownership link. Rows are removed with the user.
user_accounts = Table(
    "user_accounts",
    Base.metadata,
    Column(
        "user_id",
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "account_id",
        ForeignKey("accounts.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


# Largest balance or amount the ledger accepts. Fifteen significant
# digits survive SQLite's REAL storage exactly; Numeric(19, 4) holds more.
MAX_MONEY = Decimal("99999999999.9999")


# Valid state transitions; the only source for can_transition_to()
VALID_TRANSITIONS: dict[AccountStatus, set[AccountStatus]] = {
    AccountStatus.INACTIVE: {AccountStatus.ACTIVE},
    AccountStatus.ACTIVE: {AccountStatus.INACTIVE},
}


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, unique=True, nullable=False, default=uuid.uuid4
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    account_type_id: Mapped[int] = mapped_column(
        ForeignKey("account_types.id"), nullable=False, index=True
    )
    status: Mapped[AccountStatus] = mapped_column(
        SAEnum(
            AccountStatus,
            name="account_status_enum",
            create_constraint=True,
        ),
        nullable=False,
        default=AccountStatus.INACTIVE,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    account_type: Mapped["AccountType"] = relationship()
    owners: Mapped[list["User"]] = relationship(
        secondary=user_accounts, back_populates="accounts"
    )

    def can_transition_to(self, new_status: AccountStatus) -> bool:
        """Check if a state transition is valid."""
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Account {self.external_id} ({self.status.value})>"
