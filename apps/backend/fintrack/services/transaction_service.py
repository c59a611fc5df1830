"""
Transaction engine

Every write goes through the same pipeline:
  rule matching (only for missing category/kind) -> sign normalization ->
  ownership checks on account and category -> persist.
Ownership of a transaction is always derived through its account.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from sqlalchemy.orm import Query, Session, aliased

from fintrack import models, schemas
from fintrack.core.database import atomic
from fintrack.core.errors import InvalidInput, NotFound
from fintrack.services.account_service import AccountService
from fintrack.services.rule_matcher import RuleMatcher
from fintrack.utils.money import ensure_cents, kind_for_amount, normalize_amount_for_kind

logger = logging.getLogger(__name__)


def today() -> dt.date:
    return dt.date.today()


class TransactionService:
    def __init__(
        self,
        db: Session,
        matcher: RuleMatcher | None = None,
        accounts: AccountService | None = None,
    ) -> None:
        self.db = db
        self.matcher = matcher or RuleMatcher(db)
        self.accounts = accounts or AccountService(db)

    # ---- Queries ---------------------------------------------------------
    def owned_query(self, user_id: int) -> Query:
        return (
            self.db.query(models.Transaction)
            .join(models.Account, models.Transaction.account_id == models.Account.id)
            .filter(models.Account.user_id == user_id)
        )

    def _filtered(self, user_id: int, filters: schemas.TransactionFilters, *, with_category: bool = True) -> Query:
        q = self.owned_query(user_id)
        if filters.account_id is not None:
            q = q.filter(models.Transaction.account_id == filters.account_id)
        if with_category:
            if filters.uncategorized_only:
                q = q.filter(models.Transaction.category_id.is_(None))
            elif filters.category_id is not None:
                q = q.filter(models.Transaction.category_id == filters.category_id)
        if filters.q:
            q = q.filter(models.Transaction.description.icontains(filters.q, autoescape=True))
        if filters.date_from:
            q = q.filter(models.Transaction.date >= filters.date_from)
        if filters.date_to:
            q = q.filter(models.Transaction.date <= filters.date_to)
        return q

    def list(self, user_id: int, filters: schemas.TransactionFilters) -> schemas.TransactionListOut:
        q = self._filtered(user_id, filters)
        sort_columns = {
            "date": models.Transaction.date,
            "amount": models.Transaction.amount,
            "createdAt": models.Transaction.created_at,
        }
        primary = sort_columns.get(filters.sort_by, models.Transaction.date)
        order_exprs = [primary.asc() if filters.sort_dir == "asc" else primary.desc()]
        # stable ordering fallback
        if filters.sort_by != "createdAt":
            order_exprs.append(models.Transaction.created_at.desc())
        order_exprs.append(models.Transaction.id.desc())

        total = q.count()
        rows = (
            q.order_by(*order_exprs)
            .offset((filters.page - 1) * filters.page_size)
            .limit(filters.page_size)
            .all()
        )
        return schemas.TransactionListOut(
            items=[schemas.TransactionOut.model_validate(r) for r in rows],
            total=total,
            page=filters.page,
            page_size=filters.page_size,
        )

    def group_by_category(self, user_id: int, filters: schemas.TransactionFilters) -> list[schemas.CategoryGroupOut]:
        """Bucket every matching transaction (no pagination) by category.

        ``category_id`` on the filters is ignored; the null bucket holds the
        uncategorized rows and is listed last.
        """
        parent = aliased(models.Category)
        rows = (
            self._filtered(user_id, filters, with_category=False)
            .outerjoin(models.Category, models.Transaction.category_id == models.Category.id)
            .outerjoin(parent, models.Category.parent_id == parent.id)
            .with_entities(models.Transaction, models.Category, parent)
            .order_by(models.Transaction.date.desc(), models.Transaction.created_at.desc())
            .all()
        )
        groups: dict[Optional[int], schemas.CategoryGroupOut] = {}
        for tx, category, parent_category in rows:
            group = groups.get(tx.category_id)
            if group is None:
                group = schemas.CategoryGroupOut(
                    category_id=tx.category_id,
                    count=0,
                    sum=0,
                    category_name=category.name if category else None,
                    parent_name=parent_category.name if parent_category else None,
                    color=(category.color or (parent_category.color if parent_category else None)) if category else None,
                )
                groups[tx.category_id] = group
            group.count += 1
            group.sum += int(tx.amount)
            if group.min_date is None or tx.date < group.min_date:
                group.min_date = tx.date
            if group.max_date is None or tx.date > group.max_date:
                group.max_date = tx.date
            group.items.append(schemas.TransactionOut.model_validate(tx))

        def _sort_key(g: schemas.CategoryGroupOut):
            if g.category_id is None:
                return (1, "", "")
            return (0, (g.parent_name or g.category_name or "").casefold(), (g.category_name or "").casefold())

        return sorted(groups.values(), key=_sort_key)

    def find(self, user_id: int, tx_id: str) -> models.Transaction | None:
        return self.owned_query(user_id).filter(models.Transaction.id == tx_id).first()

    def get(self, user_id: int, tx_id: str) -> models.Transaction:
        row = self.find(user_id, tx_id)
        if not row:
            raise NotFound("Transaction not found")
        return row

    def get_current_balance(self, user_id: int, account_id: int) -> int:
        return self.accounts.get_current_balance(user_id, account_id)

    # ---- Writes ----------------------------------------------------------
    def create(self, user_id: int, dto: schemas.TransactionCreate) -> models.Transaction:
        self.require_account(user_id, dto.account_id)
        if dto.category_id is not None:
            self.require_category(user_id, dto.category_id)
        amount = ensure_cents(dto.amount)

        category_id = dto.category_id
        kind = dto.kind
        if category_id is None or kind is None:
            rule = self.matcher.match(user_id, dto.description)
            if rule is not None:
                if category_id is None and rule.category_id is not None:
                    if self.find_category(user_id, rule.category_id) is not None:
                        category_id = rule.category_id
                    else:
                        logger.warning(
                            "Rule %s targets unusable category %s; leaving transaction uncategorized",
                            rule.id,
                            rule.category_id,
                        )
                if kind is None and rule.kind is not None:
                    kind = rule.kind
        if kind is None:
            kind = kind_for_amount(amount)

        row = models.Transaction(
            date=dto.date or today(),
            amount=normalize_amount_for_kind(amount, kind),
            kind=kind,
            description=dto.description or "",
            is_saving=bool(dto.is_saving),
            notes=dto.notes,
            account_id=dto.account_id,
            category_id=category_id,
            income_source_id=dto.income_source_id,
        )
        with atomic(self.db):
            self.db.add(row)
        self.db.refresh(row)
        return row

    def update(self, user_id: int, tx_id: str, patch: schemas.TransactionUpdate) -> models.Transaction:
        row = self.get(user_id, tx_id)
        fields = patch.model_fields_set

        for required in ("account_id", "amount", "date", "is_saving", "kind"):
            if required in fields and getattr(patch, required) is None:
                raise InvalidInput(f"{required} cannot be null", code="InvalidInput")

        changes: dict[str, object] = {}
        if "account_id" in fields and patch.account_id != row.account_id:
            self.require_account(user_id, patch.account_id)
            if row.transfer_id is not None:
                self._check_leg_account(row, patch.account_id)
            changes["account_id"] = patch.account_id
        if "category_id" in fields:
            if patch.category_id is not None:
                self.require_category(user_id, patch.category_id)
            changes["category_id"] = patch.category_id
        for key in ("date", "description", "is_saving", "notes", "income_source_id"):
            if key in fields:
                value = getattr(patch, key)
                changes[key] = "" if key == "description" and value is None else value

        if "amount" in fields or "kind" in fields:
            amount = ensure_cents(patch.amount) if "amount" in fields else int(row.amount)
            if "kind" in fields:
                kind = patch.kind
            else:
                # amount-only edits re-derive the kind from the new sign
                kind = kind_for_amount(amount)
            changes["kind"] = kind
            changes["amount"] = normalize_amount_for_kind(amount, kind)

        if not changes:
            return row
        with atomic(self.db):
            for key, value in changes.items():
                setattr(row, key, value)
        self.db.refresh(row)
        return row

    def remove(self, user_id: int, tx_id: str) -> None:
        row = self.get(user_id, tx_id)
        with atomic(self.db):
            self.db.delete(row)

    # ---- Referential checks ---------------------------------------------
    def _check_leg_account(self, leg: models.Transaction, account_id: int) -> None:
        """A transfer leg may not land on the account of its counterpart."""
        clash = (
            self.db.query(models.Transaction.id)
            .filter(
                models.Transaction.transfer_id == leg.transfer_id,
                models.Transaction.id != leg.id,
                models.Transaction.account_id == account_id,
            )
            .first()
        )
        if clash:
            raise InvalidInput("Both legs of a transfer cannot share an account", code="InvalidTransfer")

    def require_account(self, user_id: int, account_id: int) -> models.Account:
        account = self.accounts.find(user_id, account_id)
        if not account:
            raise InvalidInput("Account not found or deleted", code="InvalidAccount")
        return account

    def find_category(self, user_id: int, category_id: int) -> models.Category | None:
        """Owned, non-archived category or ``None``."""
        return (
            self.db.query(models.Category)
            .filter(
                models.Category.id == category_id,
                models.Category.user_id == user_id,
                models.Category.archived.is_(False),
            )
            .first()
        )

    def require_category(self, user_id: int, category_id: int) -> models.Category:
        category = self.find_category(user_id, category_id)
        if not category:
            raise InvalidInput("Category not found or archived", code="InvalidCategory")
        return category
