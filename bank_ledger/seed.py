"""
Reference data seeding.

Creates the roles and account types the rest of the system
expects. Safe to run repeatedly.

    python -m bank_ledger.seed
"""

import logging

from sqlalchemy.orm import Session

from bank_ledger.services.account_store import AccountStore
from bank_ledger.services.user_store import UserStore

logger = logging.getLogger(__name__)

ROLES = ("ADMIN", "USER")

ACCOUNT_TYPES = {
    "CHECKING": "Everyday transactional account",
    "SAVINGS": "Interest-bearing savings account",
    "BUSINESS": "Account held by a business",
    "STUDENT": "Reduced-fee account for students",
}


def seed_reference_data(db: Session) -> None:
    """Insert missing roles and account types and commit."""
    users = UserStore(db)
    accounts = AccountStore(db)

    for name in ROLES:
        users.ensure_role(name)
    for name, description in ACCOUNT_TYPES.items():
        accounts.ensure_account_type(name, description)

    db.commit()
    logger.info(
        "Seeded %d roles and %d account types", len(ROLES), len(ACCOUNT_TYPES)
    )


if __name__ == "__main__":
    from bank_ledger.logging_config import setup_logging
    from bank_ledger.models.base import SessionLocal

    setup_logging()
    with SessionLocal() as session:
        seed_reference_data(session)
