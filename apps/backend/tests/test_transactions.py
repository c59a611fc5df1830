from __future__ import annotations

import datetime as dt

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from fintrack import models
from fintrack.core.config import settings
from fintrack.core.errors import InvalidInput, NotFound
from fintrack.schemas import RuleCreate, TransactionCreate, TransactionFilters, TransactionUpdate, TransferCreate
from fintrack.services import AccountService, CategoryService, RuleService, TransactionService, TransferService
from fintrack.services import transaction_service


@pytest.fixture()
def account(user, make_account):
    return make_account(user, "Checking", opening_balance=10_000)


def _create(db_session, user, account, **kwargs):
    kwargs.setdefault("date", dt.date(2024, 3, 1))
    return TransactionService(db_session).create(user.id, TransactionCreate(account_id=account.id, **kwargs))


def test_sign_follows_kind(db_session, user, account):
    debit = _create(db_session, user, account, amount=500, kind="DEBIT")
    credit = _create(db_session, user, account, amount=-500, kind="CREDIT")
    inferred = _create(db_session, user, account, amount=-120)

    assert (debit.amount, debit.kind) == (-500, models.TransactionKind.DEBIT)
    assert (credit.amount, credit.kind) == (500, models.TransactionKind.CREDIT)
    assert (inferred.amount, inferred.kind) == (-120, models.TransactionKind.DEBIT)


def test_store_rejects_sign_mismatch(db_session, user, account):
    with pytest.raises(IntegrityError):
        db_session.add(
            models.Transaction(account_id=account.id, date=dt.date(2024, 1, 1), amount=100, kind=models.TransactionKind.DEBIT)
        )
        db_session.commit()
    db_session.rollback()


def test_defaults(db_session, user, account, monkeypatch):
    monkeypatch.setattr(transaction_service, "today", lambda: dt.date(2024, 6, 30))
    row = TransactionService(db_session).create(user.id, TransactionCreate(account_id=account.id, amount=10))
    assert row.date == dt.date(2024, 6, 30)
    assert row.description == ""
    assert row.is_saving is False
    assert len(row.id) == 36


def test_rules_fill_only_missing_fields(db_session, user, account, make_category):
    coffee = make_category(user, "Coffee")
    food = make_category(user, "Food")
    RuleService(db_session).create(
        user.id, RuleCreate(name="coffee", pattern="coffee", category_id=coffee.id, kind="DEBIT")
    )

    auto = _create(db_session, user, account, amount=450, description="Coffee Bar")
    assert auto.category_id == coffee.id
    assert (auto.kind, auto.amount) == (models.TransactionKind.DEBIT, -450)

    explicit = _create(db_session, user, account, amount=450, description="coffee", category_id=food.id, kind="CREDIT")
    assert explicit.category_id == food.id
    assert (explicit.kind, explicit.amount) == (models.TransactionKind.CREDIT, 450)


def test_create_validates_references(db_session, user, other_user, account, make_account, make_category):
    theirs = make_account(other_user, "Theirs")
    with pytest.raises(InvalidInput) as exc:
        _create(db_session, user, theirs, amount=1)
    assert exc.value.code == "InvalidAccount"

    archived = make_category(user, "Old")
    CategoryService(db_session).archive(user.id, archived.id)
    with pytest.raises(InvalidInput) as exc:
        _create(db_session, user, account, amount=1, category_id=archived.id)
    assert exc.value.code == "InvalidCategory"
    assert db_session.query(models.Transaction).count() == 0


def test_update_applies_only_present_fields(db_session, user, account, make_category):
    food = make_category(user, "Food")
    service = TransactionService(db_session)
    row = _create(db_session, user, account, amount=-800, description="lunch", category_id=food.id, notes="n")

    updated = service.update(user.id, row.id, TransactionUpdate(description="dinner"))
    assert (updated.description, updated.category_id, updated.notes, updated.amount) == ("dinner", food.id, "n", -800)

    # explicit null clears the category
    updated = service.update(user.id, row.id, TransactionUpdate.model_validate({"categoryId": None}))
    assert updated.category_id is None


def test_update_kind_only_reuses_current_amount(db_session, user, account):
    service = TransactionService(db_session)
    row = _create(db_session, user, account, amount=-800)
    updated = service.update(user.id, row.id, TransactionUpdate(kind="CREDIT"))
    assert (updated.kind, updated.amount) == (models.TransactionKind.CREDIT, 800)


def test_amount_only_update_flips_kind(db_session, user, account):
    service = TransactionService(db_session)
    row = _create(db_session, user, account, amount=-800)
    updated = service.update(user.id, row.id, TransactionUpdate(amount=300))
    assert (updated.kind, updated.amount) == (models.TransactionKind.CREDIT, 300)


def test_update_rejects_null_required_fields(db_session, user, account):
    row = _create(db_session, user, account, amount=-800)
    with pytest.raises(InvalidInput):
        TransactionService(db_session).update(user.id, row.id, TransactionUpdate.model_validate({"amount": None}))


def test_round_trip_balance(db_session, user, account):
    txs = TransactionService(db_session)
    accounts = AccountService(db_session)
    coffee = _create(db_session, user, account, amount=-2_500, description="coffee")
    assert accounts.get_current_balance(user.id, account.id) == 7_500
    assert txs.get_current_balance(user.id, account.id) == 7_500

    txs.remove(user.id, coffee.id)
    assert accounts.get_current_balance(user.id, account.id) == 10_000


def test_list_filters_sorting_and_paging(db_session, user, account, make_account, make_category):
    food = make_category(user, "Food")
    savings = make_account(user, "Savings", type="savings")
    _create(db_session, user, account, amount=-100, description="Bakery", date=dt.date(2024, 1, 3), category_id=food.id)
    _create(db_session, user, account, amount=-300, description="50% off shoes", date=dt.date(2024, 1, 1))
    _create(db_session, user, account, amount=2_000, description="salary", date=dt.date(2024, 1, 2))
    _create(db_session, user, savings, amount=50, description="interest", date=dt.date(2024, 1, 4))

    service = TransactionService(db_session)
    page = service.list(user.id, TransactionFilters())
    assert page.total == 4
    assert [t.description for t in page.items] == ["interest", "Bakery", "salary", "50% off shoes"]

    by_amount = service.list(user.id, TransactionFilters(sort_by="amount", sort_dir="asc", account_id=account.id))
    assert [t.amount for t in by_amount.items] == [-300, -100, 2_000]

    assert service.list(user.id, TransactionFilters(q="BAK")).total == 1
    # LIKE wildcards in the query are literal
    assert service.list(user.id, TransactionFilters(q="50%")).total == 1
    assert service.list(user.id, TransactionFilters(q="%")).total == 1

    ranged = service.list(user.id, TransactionFilters.model_validate({"from": "2024-01-02", "to": "2024-01-03"}))
    assert ranged.total == 2

    assert service.list(user.id, TransactionFilters(category_id=food.id)).total == 1
    assert service.list(user.id, TransactionFilters(category_id=None)).total == 3

    second = service.list(user.id, TransactionFilters(page=2, page_size=3))
    assert (second.total, len(second.items), second.page) == (4, 1, 2)


def test_group_by_category(db_session, user, account, make_category):
    food = make_category(user, "Food", color="#00aa00")
    coffee = make_category(user, "Coffee", parent=food)
    rent = make_category(user, "Rent", color="#0000ff")
    _create(db_session, user, account, amount=-300, category_id=coffee.id, date=dt.date(2024, 1, 5))
    _create(db_session, user, account, amount=-200, category_id=coffee.id, date=dt.date(2024, 1, 9))
    _create(db_session, user, account, amount=-90_000, category_id=rent.id, date=dt.date(2024, 1, 1))
    _create(db_session, user, account, amount=-10, date=dt.date(2024, 1, 2))

    groups = TransactionService(db_session).group_by_category(user.id, TransactionFilters())
    assert [g.category_id for g in groups] == [coffee.id, rent.id, None]

    coffee_group = groups[0]
    assert (coffee_group.count, coffee_group.sum) == (2, -500)
    assert (coffee_group.min_date, coffee_group.max_date) == (dt.date(2024, 1, 5), dt.date(2024, 1, 9))
    assert (coffee_group.category_name, coffee_group.parent_name, coffee_group.color) == ("Coffee", "Food", "#00aa00")
    assert groups[2].category_name is None
    assert groups[2].sum == -10


def test_transactions_are_scoped_through_account(db_session, user, other_user, make_account):
    theirs = make_account(other_user, "Theirs")
    row = _create(db_session, other_user, theirs, amount=-5)
    service = TransactionService(db_session)

    with pytest.raises(NotFound):
        service.get(user.id, row.id)
    with pytest.raises(NotFound):
        service.update(user.id, row.id, TransactionUpdate(description="mine"))
    with pytest.raises(NotFound):
        service.remove(user.id, row.id)
    assert service.list(user.id, TransactionFilters()).total == 0


def test_rule_pointing_at_archived_category_leaves_row_uncategorized(db_session, user, account, make_category):
    old = make_category(user, "Old")
    RuleService(db_session).create(user.id, RuleCreate(name="gym", pattern="gym", category_id=old.id, kind="DEBIT"))
    CategoryService(db_session).archive(user.id, old.id)

    row = _create(db_session, user, account, amount=3_000, description="Gym membership")
    assert row.category_id is None
    # the rest of the rule still applies
    assert (row.kind, row.amount) == (models.TransactionKind.DEBIT, -3_000)


def test_filter_page_size_bounds_follow_settings():
    assert TransactionFilters().page_size == settings.DEFAULT_PAGE_SIZE
    assert TransactionFilters(page_size=settings.MAX_PAGE_SIZE).page_size == settings.MAX_PAGE_SIZE
    with pytest.raises(ValidationError):
        TransactionFilters(page_size=settings.MAX_PAGE_SIZE + 1)


def test_transfer_leg_cannot_move_onto_counterpart_account(db_session, user, account, make_account):
    savings = make_account(user, "Savings", type="savings")
    cash = make_account(user, "Cash", type="other")
    _, out_leg, in_leg = TransferService(db_session).create_transfer(
        user.id, TransferCreate(from_account_id=account.id, to_account_id=savings.id, amount=1_000)
    )
    service = TransactionService(db_session)

    with pytest.raises(InvalidInput) as exc:
        service.update(user.id, out_leg.id, TransactionUpdate(account_id=savings.id))
    assert exc.value.code == "InvalidTransfer"
    db_session.refresh(out_leg)
    assert out_leg.account_id == account.id

    moved = service.update(user.id, in_leg.id, TransactionUpdate(account_id=cash.id))
    assert (moved.account_id, moved.transfer_id) == (cash.id, out_leg.transfer_id)
