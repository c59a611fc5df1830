"""
Auto-categorization rule matching

Rules are evaluated in (priority, id) order and the first hit wins.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from sqlalchemy.orm import Session

from fintrack import models

logger = logging.getLogger(__name__)

Predicate = Callable[[str], bool]


def compile_pattern(pattern: str, *, case_sensitive: bool) -> re.Pattern[str]:
    """Compile a regex rule pattern; raises ``re.error`` when malformed."""
    return re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)


def build_predicate(rule: models.TransactionRule) -> Predicate:
    """Return a ``description -> bool`` test for one rule.

    Regex rules use ``re.search`` (a match anywhere in the description counts);
    plain rules are substring checks, case-folded unless ``case_sensitive``.
    """
    if rule.is_regex:
        regex = compile_pattern(rule.pattern, case_sensitive=rule.case_sensitive)
        return lambda text: bool(text) and regex.search(text) is not None

    if rule.case_sensitive:
        needle = rule.pattern
        return lambda text: bool(text) and needle in text

    needle = rule.pattern.casefold()
    return lambda text: bool(text) and needle in text.casefold()


class RuleMatcher:
    """Read-only: loads the user's active rules and finds the first match."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def active_rules(self, user_id: int) -> list[models.TransactionRule]:
        return (
            self.db.query(models.TransactionRule)
            .filter(
                models.TransactionRule.user_id == user_id,
                models.TransactionRule.is_active.is_(True),
            )
            .order_by(models.TransactionRule.priority.asc(), models.TransactionRule.id.asc())
            .all()
        )

    def match(self, user_id: int, description: Optional[str]) -> models.TransactionRule | None:
        if not description:
            return None
        for rule in self.active_rules(user_id):
            try:
                predicate = build_predicate(rule)
            except re.error as exc:
                # stored before write-time validation existed, or edited in the DB
                logger.warning("Skipping rule %s with invalid pattern %r: %s", rule.id, rule.pattern, exc)
                continue
            if predicate(description):
                return rule
        return None


def match_rule(db: Session, user_id: int, description: Optional[str]) -> models.TransactionRule | None:
    return RuleMatcher(db).match(user_id, description)
