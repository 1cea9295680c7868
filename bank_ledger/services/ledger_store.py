"""
Ledger entry store — the append-only audit trail.

Entries are inserted and read, never updated or deleted (the
model refuses both). Concurrent inserts need no ordering, but
every insert must share the database transaction of the balance
write it records.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from bank_ledger.models.enums import EffectiveType
from bank_ledger.models.ledger_entry import LedgerEntry


class LedgerEntryStore:

    def __init__(self, db: Session):
        self.db = db

    def append(self, entry: LedgerEntry) -> LedgerEntry:
        """Insert one entry and flush so its id is assigned."""
        self.db.add(entry)
        self.db.flush()
        return entry

    def find(
        self, group_id: uuid.UUID, effective_type: EffectiveType
    ) -> LedgerEntry | None:
        """Look up one entry by its composite key."""
        return self.db.execute(
            select(LedgerEntry).where(
                LedgerEntry.group_id == group_id,
                LedgerEntry.effective_type == effective_type,
            )
        ).scalar_one_or_none()

    def list_group(self, group_id: uuid.UUID) -> list[LedgerEntry]:
        """All entries of one transaction group, in insertion order."""
        entries = self.db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.group_id == group_id)
            .order_by(LedgerEntry.id)
        ).scalars().all()
        return list(entries)

    def list_visible(self, account_id: int | None = None) -> list[LedgerEntry]:
        """
        Return entries newest first.

        With an account id, only entries visible to that account are
        returned; a transfer shows up once on each side.
        """
        query = select(LedgerEntry)
        if account_id is not None:
            query = query.where(LedgerEntry.visible_to_account_id == account_id)
        query = query.order_by(
            LedgerEntry.created_at.desc(), LedgerEntry.id.desc()
        )
        return list(self.db.execute(query).scalars().all())
