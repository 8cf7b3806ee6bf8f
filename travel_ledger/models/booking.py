"""Booking models."""

from datetime import date
from decimal import Decimal
from uuid import uuid4, UUID
from sqlalchemy import String, Boolean, Date, ForeignKey, Numeric, Text, Index, Uuid
from sqlalchemy.orm import mapped_column, Mapped, relationship

from travel_ledger.models.base import Base, TimestampMixin, enum_column, money_column
from travel_ledger.domain.booking.enums import BookingStatus, ServiceType


class Booking(TimestampMixin, Base):
    """Travel booking with its derived tax, commission and profit figures.

    ``cost_in_base`` is the primary supplier cost only; supplier lines add to
    it through ``total_cost_in_base``.
    """

    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    booking_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    service_type: Mapped[ServiceType] = mapped_column(enum_column(ServiceType), nullable=False)

    customer_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    supplier_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    # Primary supplier cost
    cost_amount: Mapped[Decimal] = money_column()
    cost_currency: Mapped[str] = mapped_column(String(10), default="AED", nullable=False)
    cost_in_base: Mapped[Decimal] = money_column()

    sale_amount: Mapped[Decimal] = money_column()
    sale_currency: Mapped[str] = mapped_column(String(10), default="AED", nullable=False)
    sale_in_base: Mapped[Decimal] = money_column()

    is_uae_booking: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    vat_applicable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    net_before_vat: Mapped[Decimal] = money_column()
    vat_amount: Mapped[Decimal] = money_column()
    total_with_vat: Mapped[Decimal] = money_column()
    gross_profit: Mapped[Decimal] = money_column()
    net_profit: Mapped[Decimal] = money_column()

    booking_agent_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("employees.id"),
        nullable=True
    )
    agent_commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(7, 4), default=Decimal("0"), nullable=False
    )
    agent_commission_amount: Mapped[Decimal] = money_column()

    customer_service_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("employees.id"),
        nullable=True
    )
    cs_commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(7, 4), default=Decimal("0"), nullable=False
    )
    cs_commission_amount: Mapped[Decimal] = money_column()
    total_commission: Mapped[Decimal] = money_column()

    status: Mapped[BookingStatus] = mapped_column(
        enum_column(BookingStatus),
        default=BookingStatus.CONFIRMED,
        nullable=False
    )

    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    travel_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    return_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Refund bookings point back at the booking they negate
    refund_of_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("bookings.id"),
        nullable=True
    )
    created_by: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    supplier_lines: Mapped[list["BookingSupplierLine"]] = relationship(
        "BookingSupplierLine",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingSupplierLine.created_at",
    )
    invoice: Mapped["Invoice | None"] = relationship(
        "Invoice",
        back_populates="booking",
        uselist=False,
    )

    __table_args__ = (
        Index("idx_bookings_status", "status"),
        Index("idx_bookings_refund_of", "refund_of_id"),
    )

    @property
    def total_cost_in_base(self) -> Decimal:
        """Primary supplier cost plus every supplier line, in base currency."""
        total = Decimal(self.cost_in_base or 0)
        for line in self.supplier_lines:
            total += Decimal(line.cost_in_base or 0)
        return total

    def __repr__(self) -> str:
        return f"<Booking {self.booking_number} {self.status.value} sale={self.sale_in_base}>"


class BookingSupplierLine(TimestampMixin, Base):
    """Additional supplier cost split of a booking."""

    __tablename__ = "booking_supplier_lines"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False
    )
    supplier_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    cost_amount: Mapped[Decimal] = money_column()
    cost_currency: Mapped[str] = mapped_column(String(10), default="AED", nullable=False)
    cost_in_base: Mapped[Decimal] = money_column()

    sale_amount: Mapped[Decimal | None] = money_column(nullable=True, default=None)
    sale_currency: Mapped[str | None] = mapped_column(String(10), nullable=True)
    sale_in_base: Mapped[Decimal | None] = money_column(nullable=True, default=None)

    booking: Mapped[Booking] = relationship("Booking", back_populates="supplier_lines")

    __table_args__ = (
        Index("idx_booking_supplier_lines_booking", "booking_id"),
    )
