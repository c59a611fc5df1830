from __future__ import annotations

import logging

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from fintrack import models, schemas
from fintrack.core.database import atomic
from fintrack.core.errors import InvalidInput, NotFound

logger = logging.getLogger(__name__)


def parse_account_type(value: str | models.AccountType) -> models.AccountType:
    if isinstance(value, models.AccountType):
        return value
    try:
        return models.AccountType(str(value).strip().lower())
    except ValueError:
        raise InvalidInput(f"Invalid account type: {value!r}", code="InvalidAccountType") from None


def _clean_name(value: str) -> str:
    name = (value or "").strip()
    if not name:
        raise InvalidInput("Account name is required", code="InvalidName")
    return name


class AccountService:
    """Account CRUD plus on-demand balance computation, always scoped by user."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def list(self, user_id: int) -> list[models.Account]:
        return (
            self.db.query(models.Account)
            .filter(models.Account.user_id == user_id, models.Account.is_deleted.is_(False))
            .order_by(models.Account.created_at, models.Account.id)
            .all()
        )

    def find(self, user_id: int, account_id: int) -> models.Account | None:
        return (
            self.db.query(models.Account)
            .filter(
                models.Account.id == account_id,
                models.Account.user_id == user_id,
                models.Account.is_deleted.is_(False),
            )
            .first()
        )

    def get(self, user_id: int, account_id: int) -> models.Account:
        row = self.find(user_id, account_id)
        if not row:
            raise NotFound("Account not found")
        return row

    def create(self, user_id: int, payload: schemas.AccountCreate) -> models.Account:
        row = models.Account(
            user_id=user_id,
            name=_clean_name(payload.name),
            type=parse_account_type(payload.type),
            opening_balance=payload.opening_balance,
            opening_date=payload.opening_date,
            description=payload.description,
        )
        with atomic(self.db):
            self.db.add(row)
        self.db.refresh(row)
        return row

    def update(self, user_id: int, account_id: int, patch: schemas.AccountUpdate) -> models.Account:
        row = self.get(user_id, account_id)
        data = patch.model_dump(exclude_unset=True)
        if not data:
            return row
        if "name" in data:
            data["name"] = _clean_name(data["name"] or "")
        if "type" in data:
            if data["type"] is None:
                raise InvalidInput("Account type cannot be empty", code="InvalidAccountType")
            data["type"] = parse_account_type(data["type"])
        if "opening_balance" in data and data["opening_balance"] is None:
            data["opening_balance"] = 0
        with atomic(self.db):
            for key, value in data.items():
                setattr(row, key, value)
        self.db.refresh(row)
        return row

    def soft_delete(self, user_id: int, account_id: int) -> None:
        row = self.get(user_id, account_id)
        with atomic(self.db):
            row.is_deleted = True
            row.deleted_at = models.now_utc_naive()
        logger.info("Account %s soft-deleted for user %s", account_id, user_id)

    # ---- Balances --------------------------------------------------------
    def get_current_balance(self, user_id: int, account_id: int) -> int:
        """opening_balance + sum of transactions dated on/after opening_date.

        Aggregated per call; nothing is cached or stored.
        """
        account = self.get(user_id, account_id)
        q = self.db.query(func.coalesce(func.sum(models.Transaction.amount), 0)).filter(
            models.Transaction.account_id == account.id
        )
        if account.opening_date is not None:
            q = q.filter(models.Transaction.date >= account.opening_date)
        total = q.scalar()
        return int(account.opening_balance or 0) + int(total or 0)

    def balances(self, user_id: int) -> dict[int, int]:
        """Current balance of every live account in one grouped query."""
        rows = (
            self.db.query(
                models.Account.id,
                models.Account.opening_balance,
                func.coalesce(func.sum(models.Transaction.amount), 0),
            )
            .outerjoin(
                models.Transaction,
                and_(
                    models.Transaction.account_id == models.Account.id,
                    or_(
                        models.Account.opening_date.is_(None),
                        models.Transaction.date >= models.Account.opening_date,
                    ),
                ),
            )
            .filter(models.Account.user_id == user_id, models.Account.is_deleted.is_(False))
            .group_by(models.Account.id, models.Account.opening_balance)
            .order_by(models.Account.id)
            .all()
        )
        return {account_id: int(opening or 0) + int(total or 0) for account_id, opening, total in rows}
