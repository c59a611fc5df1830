from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fintrack import models
from fintrack.core.database import get_db
from fintrack.core.deps import get_current_user
from fintrack.schemas import OkOut, RuleCreate, RuleOut, RuleReorder, RuleTestIn, RuleTestOut, RuleUpdate
from fintrack.services import RuleService


router = APIRouter(prefix="/transaction-rules", tags=["transaction-rules"])


@router.get("", response_model=list[RuleOut])
def list_rules(db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    return RuleService(db).list(current_user.id)


@router.post("", response_model=RuleOut, status_code=201)
def create_rule(payload: RuleCreate, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    return RuleService(db).create(current_user.id, payload)


@router.post("/reorder", response_model=OkOut)
def reorder_rules(payload: RuleReorder, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    RuleService(db).reorder(current_user.id, payload.ids)
    return OkOut()


@router.post("/test", response_model=RuleTestOut)
def test_rules(payload: RuleTestIn, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    rule = RuleService(db).test(current_user.id, payload.description)
    return RuleTestOut(rule=RuleOut.model_validate(rule) if rule else None)


@router.put("/{rule_id}", response_model=RuleOut)
def update_rule(
    rule_id: int,
    payload: RuleUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return RuleService(db).update(current_user.id, rule_id, payload)


@router.delete("/{rule_id}", status_code=204)
def delete_rule(rule_id: int, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    RuleService(db).remove(current_user.id, rule_id)
    return None
