from __future__ import annotations

import datetime as dt

import pytest

from fintrack.core.errors import InvalidInput, NotFound
from fintrack.schemas import AccountUpdate, TransactionCreate
from fintrack.services import AccountService, TransactionService


def test_create_and_list_in_creation_order(db_session, user, make_account):
    make_account(user, "Checking")
    make_account(user, "Savings", type="SAVINGS", opening_balance=5000)
    rows = AccountService(db_session).list(user.id)
    assert [(a.name, a.type.value, a.opening_balance) for a in rows] == [
        ("Checking", "checking", 0),
        ("Savings", "savings", 5000),
    ]


def test_unknown_type_and_blank_name_are_rejected(db_session, user, make_account):
    with pytest.raises(InvalidInput) as exc:
        make_account(user, "Card", type="CHECK_CARD")
    assert exc.value.code == "InvalidAccountType"
    with pytest.raises(InvalidInput):
        make_account(user, "  ")


def test_update_is_partial(db_session, user, make_account):
    account = make_account(user, "Checking", description="main")
    updated = AccountService(db_session).update(user.id, account.id, AccountUpdate(name="Everyday"))
    assert (updated.name, updated.description, updated.type.value) == ("Everyday", "main", "checking")


def test_soft_deleted_account_behaves_as_missing(db_session, user, make_account):
    service = AccountService(db_session)
    account = make_account(user)
    service.soft_delete(user.id, account.id)

    assert account.is_deleted is True
    assert account.deleted_at is not None
    assert service.list(user.id) == []
    with pytest.raises(NotFound):
        service.get(user.id, account.id)
    with pytest.raises(InvalidInput) as exc:
        TransactionService(db_session).create(user.id, TransactionCreate(account_id=account.id, amount=100))
    assert exc.value.code == "InvalidAccount"


def test_balance_counts_only_from_opening_date(db_session, user, make_account):
    account = make_account(user, opening_balance=10_000, opening_date=dt.date(2024, 1, 1))
    txs = TransactionService(db_session)
    txs.create(user.id, TransactionCreate(account_id=account.id, amount=-2_500, date=dt.date(2024, 1, 5)))
    txs.create(user.id, TransactionCreate(account_id=account.id, amount=1_000, date=dt.date(2024, 2, 1)))
    # before the opening date: ignored
    txs.create(user.id, TransactionCreate(account_id=account.id, amount=-99_999, date=dt.date(2023, 12, 31)))

    assert AccountService(db_session).get_current_balance(user.id, account.id) == 8_500


def test_balances_for_every_account(db_session, user, other_user, make_account):
    a = make_account(user, "A", opening_balance=100)
    b = make_account(user, "B")
    make_account(other_user, "Theirs", opening_balance=1)
    TransactionService(db_session).create(user.id, TransactionCreate(account_id=b.id, amount=-40))

    assert AccountService(db_session).balances(user.id) == {a.id: 100, b.id: -40}


def test_accounts_are_scoped_to_owner(db_session, user, other_user, make_account):
    theirs = make_account(other_user, "Theirs")
    service = AccountService(db_session)
    with pytest.raises(NotFound):
        service.get(user.id, theirs.id)
    with pytest.raises(NotFound):
        service.get_current_balance(user.id, theirs.id)
    with pytest.raises(NotFound):
        service.soft_delete(user.id, theirs.id)
