"""Shared endpoint dependencies."""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from travel_ledger.db.dependencies import get_db
from travel_ledger.services.notification_service import NotificationService


def get_actor_id(x_user_id: Optional[UUID] = Header(default=None)) -> Optional[UUID]:
    """Acting user, set by the authenticating gateway."""
    return x_user_id


def get_notifier(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)
