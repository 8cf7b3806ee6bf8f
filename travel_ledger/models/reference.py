"""Reference data consumed by the financial core."""

from decimal import Decimal
from uuid import uuid4, UUID
from sqlalchemy import String, Boolean, Integer, Numeric, UniqueConstraint, Uuid
from sqlalchemy.orm import mapped_column, Mapped

from travel_ledger.models.base import Base, TimestampMixin


class Currency(TimestampMixin, Base):
    """Currency with its rate to the base currency."""

    __tablename__ = "currencies"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rate_to_base: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class Employee(TimestampMixin, Base):
    """Employee who can earn booking commissions."""

    __tablename__ = "employees"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    default_commission_rate: Mapped[Decimal | None] = mapped_column(Numeric(7, 4), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class DocumentSequence(TimestampMixin, Base):
    """Counter row handing out document numbers for one (name, period)."""

    __tablename__ = "document_sequences"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    # Year for yearly series, empty string for global ones
    period: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    next_value: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("name", "period", name="uq_document_sequences_name_period"),
    )
