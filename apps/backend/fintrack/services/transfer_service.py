"""
Transfer service

A transfer is two Transaction rows sharing one ``transfer_id``:
- OUT leg: -|amount|, DEBIT, on the source account
- IN leg:  +|amount|, CREDIT, on the destination account
Both legs are written in one unit of work; a failure leaves neither behind.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from fintrack import models, schemas
from fintrack.core.database import atomic
from fintrack.core.errors import Conflict, InvalidInput, NotFound
from fintrack.services.transaction_service import TransactionService, today
from fintrack.utils.money import ensure_cents, normalize_amount_for_kind

logger = logging.getLogger(__name__)


def _opposite(kind: models.TransactionKind) -> models.TransactionKind:
    if kind == models.TransactionKind.DEBIT:
        return models.TransactionKind.CREDIT
    return models.TransactionKind.DEBIT


class TransferService:
    def __init__(self, db: Session, transactions: TransactionService | None = None) -> None:
        self.db = db
        self.transactions = transactions or TransactionService(db)

    def create_transfer(
        self, user_id: int, dto: schemas.TransferCreate
    ) -> tuple[str, models.Transaction, models.Transaction]:
        """Create both legs; returns ``(transfer_id, out_leg, in_leg)``."""
        amount = ensure_cents(dto.amount)
        if amount <= 0:
            raise InvalidInput("Transfer amount must be a positive number of cents", code="InvalidAmount")
        if dto.from_account_id == dto.to_account_id:
            raise InvalidInput("Source and destination accounts must differ", code="InvalidTransfer")
        self.transactions.require_account(user_id, dto.from_account_id)
        self.transactions.require_account(user_id, dto.to_account_id)

        transfer_id = models.new_uuid()
        when = dto.date or today()
        description = dto.description or ""
        with atomic(self.db):
            out_leg = self._new_leg(
                transfer_id,
                account_id=dto.from_account_id,
                kind=models.TransactionKind.DEBIT,
                amount=amount,
                date=when,
                description=description,
                notes=dto.notes,
            )
            in_leg = self._new_leg(
                transfer_id,
                account_id=dto.to_account_id,
                kind=models.TransactionKind.CREDIT,
                amount=amount,
                date=when,
                description=description,
                notes=dto.notes,
            )
        self.db.refresh(out_leg)
        self.db.refresh(in_leg)
        logger.info(
            "Transfer %s created for user %s: %s -> %s (%s cents)",
            transfer_id,
            user_id,
            dto.from_account_id,
            dto.to_account_id,
            amount,
        )
        return transfer_id, out_leg, in_leg

    def remove_transfer(self, user_id: int, transfer_id: str) -> int:
        with atomic(self.db):
            legs = (
                self.transactions.owned_query(user_id)
                .filter(models.Transaction.transfer_id == transfer_id)
                .all()
            )
            if not legs:
                raise NotFound("Transfer not found")
            for leg in legs:
                self.db.delete(leg)
        logger.info("Transfer %s removed for user %s (%d legs)", transfer_id, user_id, len(legs))
        return len(legs)

    def list_transfers(self, user_id: int, account_id: Optional[int] = None) -> list[models.Transaction]:
        q = self.transactions.owned_query(user_id).filter(models.Transaction.transfer_id.is_not(None))
        if account_id is not None:
            q = q.filter(models.Transaction.account_id == account_id)
        return q.order_by(
            models.Transaction.date.desc(),
            models.Transaction.created_at.desc(),
            models.Transaction.transfer_id,
            models.Transaction.amount,
        ).all()

    def convert_to_transfer(
        self, user_id: int, dto: schemas.TransferConvert
    ) -> tuple[str, models.Transaction, models.Transaction]:
        """Turn an ordinary transaction into the source leg of a transfer.

        The source keeps its sign and kind; the counter leg goes to
        ``to_account_id`` with the opposite kind. Returns
        ``(transfer_id, source, destination)``.
        """
        source = self.transactions.get(user_id, dto.tx_id)
        if source.transfer_id is not None:
            raise Conflict("Transaction is already part of a transfer", code="AlreadyTransfer")
        if dto.to_account_id == source.account_id:
            raise InvalidInput("Destination must differ from the source account", code="InvalidTransfer")
        self.transactions.require_account(user_id, dto.to_account_id)

        if dto.amount is not None:
            magnitude = ensure_cents(dto.amount)
            if magnitude <= 0:
                raise InvalidInput("Transfer amount must be a positive number of cents", code="InvalidAmount")
        else:
            magnitude = abs(int(source.amount))

        transfer_id = models.new_uuid()
        with atomic(self.db):
            source.transfer_id = transfer_id
            destination = self._new_leg(
                transfer_id,
                account_id=dto.to_account_id,
                kind=_opposite(source.kind),
                amount=magnitude,
                date=dto.date or source.date,
                description=dto.description if dto.description is not None else source.description,
                notes=dto.notes if dto.notes is not None else source.notes,
            )
        self.db.refresh(source)
        self.db.refresh(destination)
        logger.info(
            "Transaction %s converted to transfer %s for user %s (counter leg on %s)",
            source.id,
            transfer_id,
            user_id,
            dto.to_account_id,
        )
        return transfer_id, source, destination

    def _new_leg(
        self,
        transfer_id: str,
        *,
        account_id: int,
        kind: models.TransactionKind,
        amount: int,
        date,
        description: str,
        notes: Optional[str],
    ) -> models.Transaction:
        leg = models.Transaction(
            transfer_id=transfer_id,
            account_id=account_id,
            kind=kind,
            amount=normalize_amount_for_kind(amount, kind),
            date=date,
            description=description,
            notes=notes,
        )
        self.db.add(leg)
        self.db.flush()
        return leg
