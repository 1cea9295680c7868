"""
Pydantic schemas for transaction operations.

TransactionCreate is deliberately loose: the transaction
dispatcher owns validation of the type, the amount and the
fields each type requires, so the same rules apply whether a
request arrives over HTTP or from code.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from bank_ledger.models.enums import EffectiveType


class TransactionCreate(BaseModel):
    """
    A money movement request.

    DEPOSIT needs destination_account_id; WITHDRAW needs
    source_account_id and operator_user_id; TRANSFER needs all
    three. Supplying group_id makes the request idempotent:
    re-submitting the same group_id never applies it twice.
    """
    type: str = Field(min_length=1, max_length=20)
    amount: Decimal = Field(decimal_places=4)
    source_account_id: int | None = None
    destination_account_id: int | None = None
    operator_user_id: int | None = None
    group_id: uuid.UUID | None = None


class LedgerEntryResponse(BaseModel):
    id: int
    group_id: uuid.UUID
    effective_type: EffectiveType
    amount: Decimal
    source_account_id: int | None
    destination_account_id: int | None
    balance_before: Decimal
    balance_after: Decimal
    operator_user_id: int | None
    visible_to_account_id: int
    created_at: datetime

    model_config = {"from_attributes": True}
