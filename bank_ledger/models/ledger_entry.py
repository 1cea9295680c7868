"""
Ledger entry model.

Each entry records one balance change of one account. Entries
are immutable — once posted, they are never modified or
deleted. A transfer posts two entries that share a group id:
TRANSFER_OUT for the source and TRANSFER_IN for the
destination.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    DateTime, Numeric, ForeignKey, UniqueConstraint,
    Enum as SAEnum, Uuid, event,
)
from sqlalchemy.orm import Mapped, mapped_column

from bank_ledger.exceptions import InvalidStateError
from bank_ledger.models.base import Base, utcnow
from bank_ledger.models.enums import EffectiveType


class LedgerEntry(Base):
    """
    An immutable record of a balance-affecting event.

    balance_before and balance_after are snapshots of the account
    the entry is visible to, taken inside the same database
    transaction that changed the balance.
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        UniqueConstraint(
            "group_id", "effective_type", name="uq_ledger_entries_group_type"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    group_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, nullable=False, index=True
    )
    effective_type: Mapped[EffectiveType] = mapped_column(
        SAEnum(EffectiveType, name="effective_type_enum"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    source_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True, index=True
    )
    destination_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True, index=True
    )
    balance_before: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    balance_after: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    operator_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=True
    )
    visible_to_account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry {self.effective_type.value} "
            f"{self.amount} group={self.group_id}>"
        )


@event.listens_for(LedgerEntry, "before_update")
def _reject_update(mapper, connection, target):
    raise InvalidStateError(
        f"Ledger entry {target.id} is immutable and cannot be updated"
    )


@event.listens_for(LedgerEntry, "before_delete")
def _reject_delete(mapper, connection, target):
    raise InvalidStateError(
        f"Ledger entry {target.id} is immutable and cannot be deleted"
    )
