"""Notification service for financial events."""

from typing import Optional, Protocol
from uuid import UUID

import structlog
from sqlalchemy.orm import Session

from travel_ledger.models.notification import Notification

logger = structlog.get_logger()


class NotificationSink(Protocol):
    """Fire-and-forget receiver of notifications."""

    def notify(
        self,
        title: str,
        message: str,
        notification_type: str,
        severity: str = "info",
        reference_type: Optional[str] = None,
        reference_id: Optional[UUID] = None,
        reference_code: Optional[str] = None,
        amount: Optional[str] = None,
        user_id: Optional[UUID] = None,
    ) -> None:
        ...


class NotificationService:
    """Stores notifications for the notification center."""

    def __init__(self, db: Session):
        self.db = db

    def notify(
        self,
        title: str,
        message: str,
        notification_type: str,
        severity: str = "info",
        reference_type: Optional[str] = None,
        reference_id: Optional[UUID] = None,
        reference_code: Optional[str] = None,
        amount: Optional[str] = None,
        user_id: Optional[UUID] = None,
    ) -> Notification:
        notification = Notification(
            title=title,
            message=message,
            notification_type=notification_type,
            severity=severity,
            reference_type=reference_type,
            reference_id=reference_id,
            reference_code=reference_code,
            amount=amount,
            user_id=user_id,
        )

        try:
            self.db.add(notification)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Notification created",
            notification_id=str(notification.id),
            notification_type=notification_type,
            reference_code=reference_code
        )
        return notification


def notify_safely(sink: NotificationSink | None, **kwargs) -> bool:
    """
    Deliver a notification without letting a failure escape.

    Called after the financial operation has committed.

    Returns:
        True if the sink accepted the notification
    """
    if sink is None:
        return False
    try:
        sink.notify(**kwargs)
        return True
    except Exception as e:
        logger.error(
            "Notification delivery failed",
            title=kwargs.get("title"),
            reference_code=kwargs.get("reference_code"),
            error=str(e)
        )
        return False


def format_amount(amount, currency: str = "AED") -> str:
    return f"{currency} {amount:,.2f}"
