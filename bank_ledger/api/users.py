"""
User API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bank_ledger.exceptions import LedgerError
from bank_ledger.models.base import get_db
from bank_ledger.services.user_store import UserStore
from bank_ledger.schemas.account import AccountResponse
from bank_ledger.schemas.user import UserCreate, UserResponse, UserUpdate

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=UserResponse, status_code=201)
def create_user(
    request: UserCreate,
    db: Session = Depends(get_db),
):
    """Create a new user."""
    store = UserStore(db)
    try:
        user = store.create(request)
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    return user


@router.get("", response_model=list[UserResponse])
def list_users(db: Session = Depends(get_db)):
    """List all users."""
    return UserStore(db).list_users()


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
):
    """Get user details."""
    return UserStore(db).get(user_id)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    request: UserUpdate,
    db: Session = Depends(get_db),
):
    """Update a user's name, email or role."""
    store = UserStore(db)
    try:
        user = store.update(user_id, request)
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    return user


@router.get("/{user_id}/accounts", response_model=list[AccountResponse])
def list_user_accounts(
    user_id: int,
    db: Session = Depends(get_db),
):
    """List the accounts a user owns."""
    return UserStore(db).list_accounts(user_id)


@router.delete("/{user_id}", response_model=UserResponse)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
):
    """
    Delete a user and unlink them from their accounts.

    Refused while the user is the only owner of an account.
    """
    store = UserStore(db)
    try:
        user = store.delete(user_id)
        response = UserResponse.model_validate(user)
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    return response
