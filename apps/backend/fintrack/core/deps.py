from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from fintrack.core.config import settings
from fintrack.core.database import get_db
from fintrack import models


def get_current_user(
    x_user_id: Optional[int] = Header(default=None),
    db: Session = Depends(get_db),
) -> models.User:
    """Very lightweight current user resolver.

    Authentication lives upstream; it forwards the authenticated user id in
    ``X-User-Id``. Without the header (dev only) the first user is used,
    creating a demo one if none exists. Tests override this dependency to act
    as different users.
    """
    if x_user_id is not None:
        user = db.query(models.User).filter(models.User.id == x_user_id, models.User.is_active.is_(True)).first()
        if not user:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return user
    if settings.ENV != "dev":
        raise HTTPException(status_code=401, detail="Unauthorized")
    user = db.query(models.User).order_by(models.User.id).first()
    if not user:
        user = models.User(email="demo@example.com", is_active=True)
        db.add(user)
        db.commit()
        db.refresh(user)
    return user
