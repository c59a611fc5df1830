from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fintrack import models
from fintrack.core.database import get_db
from fintrack.core.deps import get_current_user
from fintrack.schemas import (
    CategoryCreate,
    CategoryMove,
    CategoryOut,
    CategoryReorder,
    CategoryTreeOut,
    CategoryUpdate,
    OkOut,
)
from fintrack.services import CategoryService


router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=CategoryTreeOut)
def list_tree(db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    return CategoryTreeOut(categories=CategoryService(db).list_tree(current_user.id))


@router.get("/flat", response_model=list[CategoryOut])
def list_flat(
    include_archived: bool = Query(False, alias="includeArchived"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return CategoryService(db).list_flat(current_user.id, include_archived=include_archived)


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return CategoryService(db).create(current_user.id, payload)


@router.post("/reorder", response_model=OkOut)
def reorder_categories(
    payload: CategoryReorder,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    CategoryService(db).reorder_siblings(current_user.id, payload.parent_id, payload.ordered_ids)
    return OkOut()


@router.patch("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return CategoryService(db).update(current_user.id, category_id, payload)


@router.post("/{category_id}/move", response_model=CategoryOut)
def move_category(
    category_id: int,
    payload: CategoryMove,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return CategoryService(db).move(current_user.id, category_id, payload.parent_id)


@router.post("/{category_id}/archive", response_model=CategoryOut)
def archive_category(category_id: int, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    return CategoryService(db).archive(current_user.id, category_id)


@router.post("/{category_id}/unarchive", response_model=CategoryOut)
def unarchive_category(category_id: int, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    return CategoryService(db).unarchive(current_user.id, category_id)


@router.delete("/{category_id}", status_code=204)
def delete_category(category_id: int, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    CategoryService(db).hard_delete(current_user.id, category_id)
    return None
