"""Notification model."""

from uuid import uuid4, UUID
from sqlalchemy import String, Boolean, Text, Index, Uuid
from sqlalchemy.orm import mapped_column, Mapped

from travel_ledger.models.base import Base, TimestampMixin


class Notification(TimestampMixin, Base):
    """Notification emitted after a financial operation commits."""

    __tablename__ = "notifications"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    title: Mapped[str] = mapped_column(String(256), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)  # booking, receipt, cancellation
    severity: Mapped[str] = mapped_column(String(20), default="info", nullable=False)  # success, warning, error, info

    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    reference_code: Mapped[str | None] = mapped_column(String(100), nullable=True)  # e.g. "BKG-2025-000042"
    amount: Mapped[str | None] = mapped_column(String(50), nullable=True)  # Formatted amount

    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Target user (null = all users)
    user_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    __table_args__ = (
        Index("idx_notifications_reference", "reference_type", "reference_id"),
    )
