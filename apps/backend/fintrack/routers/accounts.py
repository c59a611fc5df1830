from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fintrack import models
from fintrack.core.database import get_db
from fintrack.core.deps import get_current_user
from fintrack.schemas import AccountBalanceOut, AccountCreate, AccountOut, AccountUpdate
from fintrack.services import AccountService


router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("", response_model=list[AccountOut])
def list_accounts(db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    return AccountService(db).list(current_user.id)


@router.get("/balances", response_model=list[AccountBalanceOut])
def list_balances(db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    balances = AccountService(db).balances(current_user.id)
    return [AccountBalanceOut(account_id=account_id, balance=value) for account_id, value in balances.items()]


@router.post("", response_model=AccountOut, status_code=201)
def create_account(
    payload: AccountCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return AccountService(db).create(current_user.id, payload)


@router.get("/{account_id}", response_model=AccountOut)
def get_account(account_id: int, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    return AccountService(db).get(current_user.id, account_id)


@router.put("/{account_id}", response_model=AccountOut)
@router.patch("/{account_id}", response_model=AccountOut)
def update_account(
    account_id: int,
    payload: AccountUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return AccountService(db).update(current_user.id, account_id, payload)


@router.delete("/{account_id}", status_code=204)
def delete_account(account_id: int, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    AccountService(db).soft_delete(current_user.id, account_id)
    return None


@router.get("/{account_id}/current-balance", response_model=AccountBalanceOut)
def get_current_balance(
    account_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    balance = AccountService(db).get_current_balance(current_user.id, account_id)
    return AccountBalanceOut(account_id=account_id, balance=balance)
