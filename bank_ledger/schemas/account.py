"""
Pydantic schemas for account operations.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from bank_ledger.models.account import MAX_MONEY
from bank_ledger.models.enums import AccountStatus


class AccountOpen(BaseModel):
    """
    Request to open a new account.

    The opening user becomes the first owner. A positive
    initial_deposit is posted as a DEPOSIT ledger entry.
    """
    user_id: int
    account_type_id: int
    status: AccountStatus = AccountStatus.INACTIVE
    initial_deposit: Decimal = Field(
        default=Decimal("0"), ge=0, le=MAX_MONEY, decimal_places=4
    )


class AccountUpdate(BaseModel):
    """
    Partial update of an account.

    An inactive account only accepts an update that activates it.
    """
    account_type_id: int | None = None
    status: AccountStatus | None = None


class AccountOwnerAdd(BaseModel):
    user_id: int


class AccountResponse(BaseModel):
    id: int
    external_id: uuid.UUID
    balance: Decimal
    account_type_id: int
    status: AccountStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
