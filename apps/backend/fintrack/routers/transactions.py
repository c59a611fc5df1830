"""Transactions router.

Static sub-paths (``/group-by-category``, ``/transfers``, ``/balances``) are
registered before ``/{tx_id}`` so they are not swallowed by the id route.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fintrack import models
from fintrack.core.config import settings
from fintrack.core.database import get_db
from fintrack.core.deps import get_current_user
from fintrack.core.errors import InvalidInput
from fintrack.schemas import (
    AccountBalanceOut,
    GroupByCategoryOut,
    SortBy,
    SortDir,
    TransactionCreate,
    TransactionFilters,
    TransactionListOut,
    TransactionOut,
    TransactionUpdate,
    TransferConvert,
    TransferConvertOut,
    TransferCreate,
    TransferListOut,
    TransferOut,
)
from fintrack.services import TransactionService, TransferService


router = APIRouter(prefix="/transactions", tags=["transactions"])


def transaction_filters(
    account_id: Optional[int] = Query(None, alias="accountId"),
    category_id: Optional[str] = Query(None, alias="categoryId"),
    q: Optional[str] = Query(None),
    date_from: Optional[dt.date] = Query(None, alias="from"),
    date_to: Optional[dt.date] = Query(None, alias="to"),
    sort_by: SortBy = Query("date", alias="sortBy"),
    sort_dir: SortDir = Query("desc", alias="sortDir"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, alias="pageSize"),
) -> TransactionFilters:
    """Query string -> filters. ``categoryId=null`` (or empty) selects uncategorized rows."""
    data: dict[str, object] = {
        "account_id": account_id,
        "q": q,
        "date_from": date_from,
        "date_to": date_to,
        "sort_by": sort_by,
        "sort_dir": sort_dir,
        "page": page,
        "page_size": page_size,
    }
    if category_id is not None:
        raw = category_id.strip().lower()
        if raw in ("", "null", "none"):
            data["category_id"] = None
        else:
            try:
                data["category_id"] = int(raw)
            except ValueError:
                raise InvalidInput(f"Invalid categoryId: {category_id!r}", code="InvalidCategory") from None
    return TransactionFilters.model_validate(data)


@router.get("", response_model=TransactionListOut)
def list_transactions(
    filters: TransactionFilters = Depends(transaction_filters),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return TransactionService(db).list(current_user.id, filters)


@router.post("", response_model=TransactionOut, status_code=201)
def create_transaction(
    payload: TransactionCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return TransactionService(db).create(current_user.id, payload)


@router.get("/group-by-category", response_model=GroupByCategoryOut)
def group_by_category(
    filters: TransactionFilters = Depends(transaction_filters),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return GroupByCategoryOut(groups=TransactionService(db).group_by_category(current_user.id, filters))


@router.get("/balances/{account_id}", response_model=AccountBalanceOut)
def get_account_balance(
    account_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    balance = TransactionService(db).get_current_balance(current_user.id, account_id)
    return AccountBalanceOut(account_id=account_id, balance=balance)


# ---- Transfers ------------------------------------------------------------


@router.get("/transfers", response_model=TransferListOut)
def list_transfers(
    account_id: Optional[int] = Query(None, alias="accountId"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    legs = TransferService(db).list_transfers(current_user.id, account_id)
    return TransferListOut(items=[TransactionOut.model_validate(leg) for leg in legs])


@router.post("/transfers", response_model=TransferOut, status_code=201)
def create_transfer(
    payload: TransferCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    transfer_id, out_leg, in_leg = TransferService(db).create_transfer(current_user.id, payload)
    return TransferOut(
        transfer_id=transfer_id,
        out_leg=TransactionOut.model_validate(out_leg),
        in_leg=TransactionOut.model_validate(in_leg),
    )


@router.post("/transfers/convert", response_model=TransferConvertOut)
def convert_to_transfer(
    payload: TransferConvert,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    transfer_id, source, destination = TransferService(db).convert_to_transfer(current_user.id, payload)
    return TransferConvertOut(
        transfer_id=transfer_id,
        source=TransactionOut.model_validate(source),
        destination=TransactionOut.model_validate(destination),
    )


@router.delete("/transfers/{transfer_id}", status_code=204)
def delete_transfer(
    transfer_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    TransferService(db).remove_transfer(current_user.id, transfer_id)
    return None


# ---- Single transaction ---------------------------------------------------


@router.get("/{tx_id}", response_model=TransactionOut)
def get_transaction(tx_id: str, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    return TransactionService(db).get(current_user.id, tx_id)


@router.put("/{tx_id}", response_model=TransactionOut)
@router.patch("/{tx_id}", response_model=TransactionOut)
def update_transaction(
    tx_id: str,
    payload: TransactionUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return TransactionService(db).update(current_user.id, tx_id, payload)


@router.delete("/{tx_id}", status_code=204)
def delete_transaction(tx_id: str, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    TransactionService(db).remove(current_user.id, tx_id)
    return None
