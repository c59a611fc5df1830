from __future__ import annotations

import logging
import re

from sqlalchemy.orm import Session

from fintrack import models, schemas
from fintrack.core.config import settings
from fintrack.core.database import atomic
from fintrack.core.errors import InvalidInput, NotFound
from fintrack.services.rule_matcher import RuleMatcher, compile_pattern

logger = logging.getLogger(__name__)


class RuleService:
    """CRUD and ordering for auto-categorization rules."""

    def __init__(self, db: Session, matcher: RuleMatcher | None = None) -> None:
        self.db = db
        self.matcher = matcher or RuleMatcher(db)

    def list(self, user_id: int) -> list[models.TransactionRule]:
        return (
            self.db.query(models.TransactionRule)
            .filter(models.TransactionRule.user_id == user_id)
            .order_by(models.TransactionRule.priority.asc(), models.TransactionRule.id.asc())
            .all()
        )

    def get(self, user_id: int, rule_id: int) -> models.TransactionRule:
        row = (
            self.db.query(models.TransactionRule)
            .filter(models.TransactionRule.id == rule_id, models.TransactionRule.user_id == user_id)
            .first()
        )
        if not row:
            raise NotFound("Rule not found")
        return row

    def create(self, user_id: int, payload: schemas.RuleCreate) -> models.TransactionRule:
        name = payload.name.strip()
        if not name:
            raise InvalidInput("Rule name is required", code="InvalidName")
        self._validate_pattern(payload.pattern, is_regex=payload.is_regex, case_sensitive=payload.case_sensitive)
        if payload.category_id is not None:
            self._require_category(user_id, payload.category_id)
        row = models.TransactionRule(
            user_id=user_id,
            name=name,
            pattern=payload.pattern,
            is_regex=payload.is_regex,
            case_sensitive=payload.case_sensitive,
            is_active=payload.is_active,
            priority=payload.priority if payload.priority is not None else settings.DEFAULT_RULE_PRIORITY,
            category_id=payload.category_id,
            kind=payload.kind,
        )
        with atomic(self.db):
            self.db.add(row)
        self.db.refresh(row)
        return row

    def update(self, user_id: int, rule_id: int, patch: schemas.RuleUpdate) -> models.TransactionRule:
        row = self.get(user_id, rule_id)
        data = patch.model_dump(exclude_unset=True)
        for flag in ("name", "pattern", "is_regex", "case_sensitive", "is_active", "priority"):
            if flag in data and data[flag] is None:
                raise InvalidInput(f"{flag} cannot be null", code="InvalidInput")
        if "name" in data:
            data["name"] = data["name"].strip()
            if not data["name"]:
                raise InvalidInput("Rule name is required", code="InvalidName")
        if {"pattern", "is_regex", "case_sensitive"} & data.keys():
            self._validate_pattern(
                data.get("pattern", row.pattern),
                is_regex=data.get("is_regex", row.is_regex),
                case_sensitive=data.get("case_sensitive", row.case_sensitive),
            )
        if data.get("category_id") is not None:
            self._require_category(user_id, data["category_id"])
        if not data:
            return row
        with atomic(self.db):
            for key, value in data.items():
                setattr(row, key, value)
        self.db.refresh(row)
        return row

    def remove(self, user_id: int, rule_id: int) -> None:
        row = self.get(user_id, rule_id)
        with atomic(self.db):
            self.db.delete(row)

    def reorder(self, user_id: int, ordered_ids: list[int]) -> None:
        """Rewrite priorities as 10, 20, 30, ... following ``ordered_ids``."""
        with atomic(self.db):
            rows = (
                self.db.query(models.TransactionRule)
                .filter(
                    models.TransactionRule.user_id == user_id,
                    models.TransactionRule.id.in_(ordered_ids),
                )
                .with_for_update()
                .all()
            )
            by_id = {row.id: row for row in rows}
            if len(set(ordered_ids)) != len(ordered_ids) or len(by_id) != len(ordered_ids):
                raise InvalidInput("ids must be distinct rules owned by the user", code="InvalidOrdering")
            for index, rule_id in enumerate(ordered_ids):
                by_id[rule_id].priority = (index + 1) * 10
        logger.info("Reordered %d rules for user %s", len(ordered_ids), user_id)

    def test(self, user_id: int, description: str) -> models.TransactionRule | None:
        return self.matcher.match(user_id, description)

    # ---- Helpers ---------------------------------------------------------
    def _validate_pattern(self, pattern: str, *, is_regex: bool, case_sensitive: bool) -> None:
        if not pattern:
            raise InvalidInput("Pattern is required", code="InvalidPattern")
        if not is_regex:
            return
        try:
            compile_pattern(pattern, case_sensitive=case_sensitive)
        except re.error as exc:
            raise InvalidInput(f"Invalid regular expression: {exc}", code="InvalidPattern") from None

    def _require_category(self, user_id: int, category_id: int) -> None:
        exists = (
            self.db.query(models.Category.id)
            .filter(models.Category.id == category_id, models.Category.user_id == user_id)
            .first()
        )
        if not exists:
            raise InvalidInput("Category not found", code="InvalidCategory")
