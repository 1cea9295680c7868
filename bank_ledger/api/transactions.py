"""
Transaction API endpoints.

The dispatcher commits or rolls back on its own, so these
handlers only translate between HTTP and the engine.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bank_ledger.models.base import get_db
from bank_ledger.services.dispatcher import TransactionDispatcher
from bank_ledger.schemas.transaction import (
    LedgerEntryResponse,
    TransactionCreate,
)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post("", response_model=LedgerEntryResponse, status_code=201)
def create_transaction(
    request: TransactionCreate,
    db: Session = Depends(get_db),
):
    """
    Deposit, withdraw or transfer.

    For a transfer the TRANSFER_OUT entry is returned. Sending the
    same group_id again returns the original entry.
    """
    return TransactionDispatcher(db).create_transaction(request)


@router.get("", response_model=list[LedgerEntryResponse])
def list_transactions(
    account_id: int | None = None,
    db: Session = Depends(get_db),
):
    """All ledger entries, or those visible to account_id, newest first."""
    return TransactionDispatcher(db).list_visible_transactions(account_id)


@router.get("/{group_id}", response_model=list[LedgerEntryResponse])
def get_transaction_group(
    group_id: uuid.UUID,
    db: Session = Depends(get_db),
):
    """Every entry recorded under a transaction group id."""
    return TransactionDispatcher(db).list_group(group_id)


@router.get("/{group_id}/{effective_type}", response_model=LedgerEntryResponse)
def get_transaction(
    group_id: uuid.UUID,
    effective_type: str,
    db: Session = Depends(get_db),
):
    """One leg of a transaction, e.g. TRANSFER_IN."""
    return TransactionDispatcher(db).get_transaction(group_id, effective_type)
