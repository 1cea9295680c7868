"""
Shared test fixtures.

Sets up an isolated SQLite test database so tests never touch
the real database. Tables are created before and dropped after
every test.
"""

# Point the application at SQLite before anything from bank_ledger
# is imported; the engine is built at import time.
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from bank_ledger.main import app
from bank_ledger.models import Base, AccountStatus
from bank_ledger.models.base import get_db
from bank_ledger.seed import seed_reference_data
from bank_ledger.services.account_store import AccountStore
from bank_ledger.services.user_store import UserStore
from bank_ledger.schemas.account import AccountOpen
from bank_ledger.schemas.user import UserCreate


# A file database rather than :memory: so that several threads
# can open their own connections in the concurrency tests.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    """Session factory for tests that need more than one session."""
    return TestSessionLocal


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def reference(db_session):
    """Seed roles and account types; return their ids by name."""
    seed_reference_data(db_session)
    users = UserStore(db_session)
    accounts = AccountStore(db_session)
    return {
        "USER": users.get_role_by_name("USER").id,
        "ADMIN": users.get_role_by_name("ADMIN").id,
        "CHECKING": accounts.ensure_account_type("CHECKING").id,
        "SAVINGS": accounts.ensure_account_type("SAVINGS").id,
    }


@pytest.fixture
def make_user(db_session, reference):
    """Factory: create and commit a user."""
    counter = {"n": 0}

    def _make_user(name=None, email=None):
        counter["n"] += 1
        n = counter["n"]
        user = UserStore(db_session).create(UserCreate(
            name=name or f"User {n}",
            email=email or f"user{n}@test.com",
            role_id=reference["USER"],
        ))
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_account(db_session, reference):
    """
    Factory: open and commit an account owned by `owner`.

    Accounts are ACTIVE unless asked otherwise. The opening
    balance is posted as a DEPOSIT entry.
    """

    def _make_account(owner, balance="0", status=AccountStatus.ACTIVE):
        account = AccountStore(db_session).open_account(AccountOpen(
            user_id=owner.id,
            account_type_id=reference["CHECKING"],
            status=status,
            initial_deposit=Decimal(balance),
        ))
        db_session.commit()
        return account

    return _make_account


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    We override the get_db dependency so the FastAPI app
    uses our test session instead of the real database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
