"""
Account API endpoints: lifecycle and ownership.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from bank_ledger.exceptions import LedgerError
from bank_ledger.models.base import get_db
from bank_ledger.services.account_store import AccountStore
from bank_ledger.services.dispatcher import TransactionDispatcher
from bank_ledger.schemas.account import (
    AccountOpen,
    AccountOwnerAdd,
    AccountResponse,
    AccountUpdate,
)
from bank_ledger.schemas.transaction import LedgerEntryResponse
from bank_ledger.schemas.user import UserResponse

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.post("", response_model=AccountResponse, status_code=201)
def open_account(
    request: AccountOpen,
    db: Session = Depends(get_db),
):
    """
    Open a new account.

    The account starts INACTIVE unless requested otherwise, and
    the requesting user becomes its first owner.
    """
    store = AccountStore(db)
    try:
        account = store.open_account(request)
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    return account


@router.get("", response_model=list[AccountResponse])
def list_accounts(db: Session = Depends(get_db)):
    """List all accounts."""
    return AccountStore(db).list_accounts()


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
):
    """Get account details."""
    return AccountStore(db).get(account_id)


@router.patch("/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: int,
    request: AccountUpdate,
    db: Session = Depends(get_db),
):
    """
    Update an account.

    Inactive accounts only accept an update that activates them.
    """
    store = AccountStore(db)
    try:
        account = store.update_account(account_id, request)
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    return account


@router.get("/{account_id}/users", response_model=list[UserResponse])
def list_account_users(
    account_id: int,
    db: Session = Depends(get_db),
):
    """List the owners of an active account."""
    return AccountStore(db).list_owners(account_id)


@router.post(
    "/{account_id}/users",
    response_model=list[UserResponse],
    status_code=201,
)
def add_account_user(
    account_id: int,
    request: AccountOwnerAdd,
    db: Session = Depends(get_db),
):
    """Add an owner to an active account."""
    store = AccountStore(db)
    try:
        store.add_owner(account_id, request.user_id)
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    return store.list_owners(account_id)


@router.delete("/{account_id}/users/{user_id}", status_code=204)
def remove_account_user(
    account_id: int,
    user_id: int,
    db: Session = Depends(get_db),
):
    """Remove an owner. The last owner of an account cannot be removed."""
    store = AccountStore(db)
    try:
        store.remove_owner(account_id, user_id)
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    return Response(status_code=204)


@router.get(
    "/{account_id}/transactions",
    response_model=list[LedgerEntryResponse],
)
def list_account_transactions(
    account_id: int,
    db: Session = Depends(get_db),
):
    """Ledger entries visible to this account, newest first."""
    return TransactionDispatcher(db).list_visible_transactions(account_id)
