"""
Tests for the deposit, withdrawal and transfer flows, driven
through the TransactionDispatcher as the surrounding system does.
"""

from decimal import Decimal

import pytest

from bank_ledger.exceptions import (
    ForbiddenError,
    InsufficientFundsError,
    InvalidRequestError,
    NotFoundError,
)
from bank_ledger.models.enums import AccountStatus, EffectiveType
from bank_ledger.schemas.transaction import TransactionCreate
from bank_ledger.services.account_store import AccountStore
from bank_ledger.services.dispatcher import TransactionDispatcher


def balance_of(db_session, account):
    return AccountStore(db_session).get_balance(account.id)


def deposit(dispatcher, account, amount, operator=None):
    return dispatcher.create_transaction(TransactionCreate(
        type="DEPOSIT",
        amount=Decimal(amount),
        destination_account_id=account.id,
        operator_user_id=operator.id if operator else None,
    ))


def withdraw(dispatcher, account, amount, operator):
    return dispatcher.create_transaction(TransactionCreate(
        type="WITHDRAW",
        amount=Decimal(amount),
        source_account_id=account.id,
        operator_user_id=operator.id,
    ))


def transfer(dispatcher, source, destination, amount, operator):
    return dispatcher.create_transaction(TransactionCreate(
        type="TRANSFER",
        amount=Decimal(amount),
        source_account_id=source.id,
        destination_account_id=destination.id,
        operator_user_id=operator.id,
    ))


# --- Deposit Tests ---

class TestDeposit:

    def test_anonymous_deposit(self, db_session, make_user, make_account):
        account = make_account(make_user(), "1000")
        dispatcher = TransactionDispatcher(db_session)

        entry = deposit(dispatcher, account, "500")

        assert balance_of(db_session, account) == Decimal("1500")
        assert entry.effective_type == EffectiveType.DEPOSIT
        assert entry.source_account_id is None
        assert entry.destination_account_id == account.id
        assert entry.visible_to_account_id == account.id
        assert entry.operator_user_id is None
        assert entry.balance_before == Decimal("1000")
        assert entry.balance_after == Decimal("1500")

    def test_deposit_by_non_owner_allowed(self, db_session, make_user, make_account):
        account = make_account(make_user(), "0")
        stranger = make_user()
        dispatcher = TransactionDispatcher(db_session)

        entry = deposit(dispatcher, account, "20", operator=stranger)

        assert entry.operator_user_id == stranger.id
        assert balance_of(db_session, account) == Decimal("20")

    def test_deposit_into_inactive_account_allowed(self, db_session, make_user, make_account):
        account = make_account(make_user(), status=AccountStatus.INACTIVE)
        dispatcher = TransactionDispatcher(db_session)

        deposit(dispatcher, account, "5")

        assert balance_of(db_session, account) == Decimal("5")

    def test_deposit_to_missing_account(self, db_session, reference):
        dispatcher = TransactionDispatcher(db_session)
        with pytest.raises(NotFoundError, match="Account 404"):
            dispatcher.create_transaction(TransactionCreate(
                type="DEPOSIT", amount=Decimal("1"), destination_account_id=404,
            ))

    def test_deposit_requires_destination(self, db_session):
        dispatcher = TransactionDispatcher(db_session)
        with pytest.raises(InvalidRequestError, match="destination_account_id"):
            dispatcher.create_transaction(TransactionCreate(
                type="DEPOSIT", amount=Decimal("1"),
            ))


# --- Withdrawal Tests ---

class TestWithdraw:

    def test_withdraw_by_owner(self, db_session, make_user, make_account):
        owner = make_user()
        account = make_account(owner, "1500")
        dispatcher = TransactionDispatcher(db_session)

        entry = withdraw(dispatcher, account, "300", owner)

        assert balance_of(db_session, account) == Decimal("1200")
        assert entry.effective_type == EffectiveType.WITHDRAW
        assert entry.destination_account_id is None
        assert entry.source_account_id == account.id
        assert entry.visible_to_account_id == account.id
        assert entry.operator_user_id == owner.id

    def test_insufficient_funds(self, db_session, make_user, make_account):
        owner = make_user()
        account = make_account(owner, "1500")
        dispatcher = TransactionDispatcher(db_session)

        with pytest.raises(InsufficientFundsError) as exc_info:
            withdraw(dispatcher, account, "2000", owner)

        assert exc_info.value.balance == Decimal("1500")
        assert balance_of(db_session, account) == Decimal("1500")

    def test_non_owner_forbidden(self, db_session, make_user, make_account):
        owner, stranger = make_user(), make_user()
        account = make_account(owner, "1500")
        dispatcher = TransactionDispatcher(db_session)

        with pytest.raises(ForbiddenError, match="not owner"):
            withdraw(dispatcher, account, "10", stranger)

        assert balance_of(db_session, account) == Decimal("1500")

    def test_non_owner_forbidden_even_when_overdrawn(self, db_session, make_user, make_account):
        owner, stranger = make_user(), make_user()
        account = make_account(owner, "10")
        dispatcher = TransactionDispatcher(db_session)

        with pytest.raises(ForbiddenError):
            withdraw(dispatcher, account, "1000000", stranger)

    def test_inactive_account_forbidden(self, db_session, make_user, make_account):
        owner = make_user()
        account = make_account(owner, "100", status=AccountStatus.INACTIVE)
        dispatcher = TransactionDispatcher(db_session)

        with pytest.raises(ForbiddenError, match="inactive"):
            withdraw(dispatcher, account, "10", owner)

    def test_withdraw_requires_operator(self, db_session, make_user, make_account):
        account = make_account(make_user(), "100")
        dispatcher = TransactionDispatcher(db_session)

        with pytest.raises(InvalidRequestError, match="operator_user_id"):
            dispatcher.create_transaction(TransactionCreate(
                type="WITHDRAW", amount=Decimal("1"), source_account_id=account.id,
            ))


# --- Transfer Tests ---

class TestTransfer:

    def test_transfer_moves_whole_balance(self, db_session, make_user, make_account):
        owner = make_user()
        source = make_account(owner, "1500")
        destination = make_account(make_user(), "10")
        dispatcher = TransactionDispatcher(db_session)

        out_entry = transfer(dispatcher, source, destination, "1500", owner)

        assert balance_of(db_session, source) == Decimal("0")
        assert balance_of(db_session, destination) == Decimal("1510")

        assert out_entry.effective_type == EffectiveType.TRANSFER_OUT
        assert out_entry.visible_to_account_id == source.id
        assert out_entry.balance_before == Decimal("1500")
        assert out_entry.balance_after == Decimal("0")

        in_entry = dispatcher.get_transaction(out_entry.group_id, EffectiveType.TRANSFER_IN)
        assert in_entry.visible_to_account_id == destination.id
        assert in_entry.balance_before == Decimal("10")
        assert in_entry.balance_after == Decimal("1510")

    def test_twin_entries_share_group(self, db_session, make_user, make_account):
        owner = make_user()
        source = make_account(owner, "100")
        destination = make_account(make_user(), "0")
        dispatcher = TransactionDispatcher(db_session)

        out_entry = transfer(dispatcher, source, destination, "40", owner)
        group = dispatcher.list_group(out_entry.group_id)

        assert sorted(e.effective_type.value for e in group) == ["TRANSFER_IN", "TRANSFER_OUT"]
        for entry in group:
            assert entry.amount == Decimal("40")
            assert entry.source_account_id == source.id
            assert entry.destination_account_id == destination.id

    def test_balance_conservation(self, db_session, make_user, make_account):
        owner = make_user()
        source = make_account(owner, "321.45")
        destination = make_account(make_user(), "78.55")
        dispatcher = TransactionDispatcher(db_session)
        total_before = balance_of(db_session, source) + balance_of(db_session, destination)

        transfer(dispatcher, source, destination, "121.45", owner)

        assert balance_of(db_session, source) == Decimal("200")
        assert balance_of(db_session, destination) == Decimal("200")
        assert balance_of(db_session, source) + balance_of(db_session, destination) == total_before

    def test_insufficient_funds_moves_nothing(self, db_session, make_user, make_account):
        owner = make_user()
        source = make_account(owner, "50")
        destination = make_account(make_user(), "0")
        dispatcher = TransactionDispatcher(db_session)

        with pytest.raises(InsufficientFundsError):
            transfer(dispatcher, source, destination, "50.01", owner)

        assert balance_of(db_session, source) == Decimal("50")
        assert balance_of(db_session, destination) == Decimal("0")
        assert dispatcher.list_visible_transactions(destination.id) == []

    def test_non_owner_forbidden(self, db_session, make_user, make_account):
        owner, stranger = make_user(), make_user()
        source = make_account(owner, "50")
        destination = make_account(stranger, "0")
        dispatcher = TransactionDispatcher(db_session)

        with pytest.raises(ForbiddenError, match="source account"):
            transfer(dispatcher, source, destination, "10", stranger)

    def test_missing_destination(self, db_session, make_user, make_account):
        owner = make_user()
        source = make_account(owner, "50")
        dispatcher = TransactionDispatcher(db_session)

        with pytest.raises(NotFoundError, match="Account 9999"):
            dispatcher.create_transaction(TransactionCreate(
                type="TRANSFER",
                amount=Decimal("10"),
                source_account_id=source.id,
                destination_account_id=9999,
                operator_user_id=owner.id,
            ))

        assert balance_of(db_session, source) == Decimal("50")

    def test_same_account_rejected(self, db_session, make_user, make_account):
        owner = make_user()
        account = make_account(owner, "50")
        dispatcher = TransactionDispatcher(db_session)

        with pytest.raises(InvalidRequestError, match="same account"):
            transfer(dispatcher, account, account, "10", owner)

    def test_transfer_into_inactive_destination(self, db_session, make_user, make_account):
        owner = make_user()
        source = make_account(owner, "50")
        destination = make_account(make_user(), status=AccountStatus.INACTIVE)
        dispatcher = TransactionDispatcher(db_session)

        transfer(dispatcher, source, destination, "50", owner)

        assert balance_of(db_session, destination) == Decimal("50")
