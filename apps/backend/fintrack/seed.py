"""Demo data for local development: ``python -m fintrack.seed``."""

from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy.orm import Session

from .core.database import SessionLocal
from .core.logging_config import setup_logging
from .models import Account, AccountType, Category, CategoryKind, TransactionRule, User
from .utils.money import to_cents

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: dict[str, tuple[CategoryKind, list[str]]] = {
    "Housing": (CategoryKind.EXPENSE, ["Rent", "Utilities"]),
    "Food": (CategoryKind.EXPENSE, ["Groceries", "Restaurants", "Coffee"]),
    "Transport": (CategoryKind.EXPENSE, ["Fuel", "Public transport"]),
    "Income": (CategoryKind.INCOME, ["Salary", "Interest"]),
}


def _ensure_categories(db: Session, user: User) -> dict[str, Category]:
    by_name: dict[str, Category] = {}
    for root_order, (root_name, (kind, children)) in enumerate(DEFAULT_CATEGORIES.items()):
        root = db.query(Category).filter_by(user_id=user.id, parent_id=None, name=root_name).first()
        if not root:
            root = Category(user_id=user.id, name=root_name, type=kind, sort_order=root_order)
            db.add(root)
            db.flush()
        by_name[root_name] = root
        for child_order, child_name in enumerate(children):
            child = db.query(Category).filter_by(user_id=user.id, parent_id=root.id, name=child_name).first()
            if not child:
                child = Category(
                    user_id=user.id,
                    name=child_name,
                    type=kind,
                    parent_id=root.id,
                    sort_order=child_order,
                )
                db.add(child)
                db.flush()
            by_name[child_name] = child
    return by_name


def seed() -> None:
    db: Session = SessionLocal()
    try:
        user = db.query(User).filter_by(email="demo@example.com").first()
        if not user:
            user = User(email="demo@example.com", is_active=True)
            db.add(user)
            db.flush()

        if not db.query(Account).filter_by(user_id=user.id).first():
            db.add_all(
                [
                    Account(
                        user_id=user.id,
                        name="Main checking",
                        type=AccountType.CHECKING,
                        opening_balance=to_cents("1500.00"),
                        opening_date=dt.date.today().replace(day=1),
                    ),
                    Account(user_id=user.id, name="Savings", type=AccountType.SAVINGS, opening_balance=0),
                ]
            )

        categories = _ensure_categories(db, user)

        if not db.query(TransactionRule).filter_by(user_id=user.id).first():
            db.add_all(
                [
                    TransactionRule(
                        user_id=user.id,
                        name="Coffee shops",
                        pattern="coffee|starbucks",
                        is_regex=True,
                        priority=10,
                        category_id=categories["Coffee"].id,
                    ),
                    TransactionRule(
                        user_id=user.id,
                        name="Payroll",
                        pattern="salary",
                        priority=20,
                        category_id=categories["Salary"].id,
                    ),
                ]
            )

        db.commit()
        logger.info("Seeded demo data for %s", user.email)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging()
    seed()
