"""
Category tree service

Categories form a two-level tree (roots and children of roots). Sort order is
kept per sibling set, i.e. per (user_id, parent_id) pair.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from fintrack import models, schemas
from fintrack.core.database import atomic
from fintrack.core.errors import Conflict, InvalidInput, NotFound

logger = logging.getLogger(__name__)


def _clean_name(value: str | None) -> str:
    name = (value or "").strip()
    if not name:
        raise InvalidInput("Category name is required", code="InvalidName")
    return name


class CategoryService:
    def __init__(self, db: Session) -> None:
        self.db = db

    # ---- Reads -----------------------------------------------------------
    def list_tree(self, user_id: int) -> list[schemas.CategoryTreeNode]:
        """Non-archived roots by sort_order, each with its non-archived children."""
        rows = (
            self.db.query(models.Category)
            .filter(models.Category.user_id == user_id, models.Category.archived.is_(False))
            .order_by(models.Category.sort_order, models.Category.id)
            .all()
        )
        children: dict[int, list[models.Category]] = {}
        for row in rows:
            if row.parent_id is not None:
                children.setdefault(row.parent_id, []).append(row)
        tree: list[schemas.CategoryTreeNode] = []
        for row in rows:
            if row.parent_id is not None:
                continue
            node = schemas.CategoryTreeNode(
                **schemas.CategoryOut.model_validate(row).model_dump(),
                children=[schemas.CategoryOut.model_validate(c) for c in children.get(row.id, [])],
            )
            tree.append(node)
        return tree

    def list_flat(self, user_id: int, *, include_archived: bool = False) -> list[models.Category]:
        q = self.db.query(models.Category).filter(models.Category.user_id == user_id)
        if not include_archived:
            q = q.filter(models.Category.archived.is_(False))
        rows = q.order_by(models.Category.sort_order, models.Category.id).all()
        by_parent: dict[int | None, list[models.Category]] = {}
        for row in rows:
            by_parent.setdefault(row.parent_id, []).append(row)
        ordered: list[models.Category] = []
        for root in by_parent.get(None, []):
            ordered.append(root)
            ordered.extend(by_parent.get(root.id, []))
        # children whose root is archived (and filtered out) still get listed
        seen = {row.id for row in ordered}
        ordered.extend(row for row in rows if row.id not in seen)
        return ordered

    def find(self, user_id: int, category_id: int) -> models.Category | None:
        return (
            self.db.query(models.Category)
            .filter(models.Category.id == category_id, models.Category.user_id == user_id)
            .first()
        )

    def get(self, user_id: int, category_id: int) -> models.Category:
        row = self.find(user_id, category_id)
        if not row:
            raise NotFound("Category not found")
        return row

    # ---- Writes ----------------------------------------------------------
    def create(self, user_id: int, payload: schemas.CategoryCreate) -> models.Category:
        name = _clean_name(payload.name)
        if payload.parent_id is not None:
            self._require_root_parent(user_id, payload.parent_id)
        with atomic(self.db):
            sort_order = payload.sort_order
            if sort_order is None:
                sort_order = self._next_sort_order(user_id, payload.parent_id)
            elif self._sort_order_taken(user_id, payload.parent_id, sort_order):
                raise Conflict(
                    f"Sort order {sort_order} is already used at this level",
                    code="DuplicateSortOrder",
                )
            row = models.Category(
                user_id=user_id,
                name=name,
                description=payload.description,
                parent_id=payload.parent_id,
                sort_order=sort_order,
                icon=payload.icon,
                color=payload.color,
                type=payload.type,
            )
            self.db.add(row)
        self.db.refresh(row)
        return row

    def update(self, user_id: int, category_id: int, patch: schemas.CategoryUpdate) -> models.Category:
        row = self.get(user_id, category_id)
        data = patch.model_dump(exclude_unset=True)
        if "name" in data:
            data["name"] = _clean_name(data["name"])
        if "type" in data and data["type"] is None:
            raise InvalidInput("Category type cannot be empty", code="InvalidKind")
        if "archived" in data and data["archived"] is None:
            data["archived"] = False
        if not data:
            return row
        with atomic(self.db):
            for key, value in data.items():
                setattr(row, key, value)
        self.db.refresh(row)
        return row

    def move(self, user_id: int, category_id: int, new_parent_id: Optional[int]) -> models.Category:
        with atomic(self.db):
            row = self.get(user_id, category_id)
            if new_parent_id is not None:
                if new_parent_id == row.id:
                    raise Conflict("A category cannot be its own parent", code="InvalidParent")
                self._require_root_parent(user_id, new_parent_id)
                if self._has_children(user_id, row.id):
                    raise Conflict(
                        "A category with children can only live at the root level",
                        code="InvalidParent",
                    )
            row.sort_order = self._next_sort_order(user_id, new_parent_id, exclude_id=row.id)
            row.parent_id = new_parent_id
        self.db.refresh(row)
        logger.info("Category %s moved under %s for user %s", category_id, new_parent_id, user_id)
        return row

    def reorder_siblings(self, user_id: int, parent_id: Optional[int], ordered_ids: list[int]) -> None:
        """Assign sort_order = position for every member of one sibling set.

        ``ordered_ids`` has to be exactly the sibling set (archived members
        included). Anything else is rejected before a single row is touched.
        """
        with atomic(self.db):
            siblings = (
                self._siblings_query(user_id, parent_id)
                .with_for_update()
                .all()
            )
            by_id = {row.id: row for row in siblings}
            if len(set(ordered_ids)) != len(ordered_ids):
                raise InvalidInput("orderedIds contains duplicates", code="InvalidOrdering")
            if set(ordered_ids) != set(by_id):
                raise InvalidInput(
                    "orderedIds must list exactly the categories of this level",
                    code="InvalidOrdering",
                )
            for index, cid in enumerate(ordered_ids):
                by_id[cid].sort_order = index
        logger.info("Reordered %d categories under %s for user %s", len(ordered_ids), parent_id, user_id)

    def archive(self, user_id: int, category_id: int) -> models.Category:
        return self._set_archived(user_id, category_id, True)

    def unarchive(self, user_id: int, category_id: int) -> models.Category:
        return self._set_archived(user_id, category_id, False)

    def hard_delete(self, user_id: int, category_id: int) -> None:
        with atomic(self.db):
            row = self.get(user_id, category_id)
            if self._has_children(user_id, row.id):
                raise Conflict("Cannot delete a category that has children. Archive it instead.", code="HasChildren")
            used = (
                self.db.query(func.count(models.Transaction.id))
                .filter(models.Transaction.category_id == row.id)
                .scalar()
            )
            if used:
                raise Conflict("Category is used by transactions. Archive it instead.", code="InUse")
            # rules pointing here fall back to "no category"
            self.db.query(models.TransactionRule).filter(
                models.TransactionRule.category_id == row.id,
                models.TransactionRule.user_id == user_id,
            ).update({models.TransactionRule.category_id: None}, synchronize_session=False)
            self.db.delete(row)
        logger.info("Category %s deleted for user %s", category_id, user_id)

    # ---- Helpers ---------------------------------------------------------
    def _set_archived(self, user_id: int, category_id: int, archived: bool) -> models.Category:
        row = self.get(user_id, category_id)
        with atomic(self.db):
            row.archived = archived
        self.db.refresh(row)
        return row

    def _siblings_query(self, user_id: int, parent_id: Optional[int]):
        q = self.db.query(models.Category).filter(models.Category.user_id == user_id)
        if parent_id is None:
            return q.filter(models.Category.parent_id.is_(None))
        return q.filter(models.Category.parent_id == parent_id)

    def _next_sort_order(self, user_id: int, parent_id: Optional[int], *, exclude_id: int | None = None) -> int:
        q = self._siblings_query(user_id, parent_id).with_entities(func.max(models.Category.sort_order))
        if exclude_id is not None:
            q = q.filter(models.Category.id != exclude_id)
        current = q.scalar()
        return 0 if current is None else int(current) + 1

    def _sort_order_taken(self, user_id: int, parent_id: Optional[int], sort_order: int) -> bool:
        hit = (
            self._siblings_query(user_id, parent_id)
            .filter(models.Category.sort_order == sort_order)
            .with_entities(models.Category.id)
            .first()
        )
        return hit is not None

    def _has_children(self, user_id: int, category_id: int) -> bool:
        count = (
            self.db.query(func.count(models.Category.id))
            .filter(models.Category.parent_id == category_id, models.Category.user_id == user_id)
            .scalar()
        )
        return bool(count)

    def _require_root_parent(self, user_id: int, parent_id: int) -> models.Category:
        parent = self.find(user_id, parent_id)
        if not parent:
            raise InvalidInput("Parent category not found", code="InvalidParent")
        if parent.parent_id is not None:
            raise Conflict("Categories can only be nested one level deep", code="InvalidParent")
        return parent
