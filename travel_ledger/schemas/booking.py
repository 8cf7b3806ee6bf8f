"""Booking schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from travel_ledger.domain.booking.enums import BookingStatus, ServiceType

# Booking columns that must keep a value once set
REQUIRED_ON_UPDATE = (
    "service_type",
    "customer_id",
    "cost_amount",
    "cost_currency",
    "sale_amount",
    "sale_currency",
    "is_uae_booking",
    "vat_applicable",
    "booking_date",
)


class SupplierLineCreate(BaseModel):
    """Schema for an additional supplier cost split."""
    supplier_id: Optional[UUID] = None
    description: Optional[str] = Field(default=None, max_length=500)
    cost_amount: Decimal = Field(..., ge=0, decimal_places=2)
    cost_currency: str = Field(default="AED", max_length=10)
    sale_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    sale_currency: Optional[str] = Field(default=None, max_length=10)


class SupplierLineResponse(BaseModel):
    id: UUID
    supplier_id: Optional[UUID] = None
    description: Optional[str] = None
    cost_amount: Decimal
    cost_currency: str
    cost_in_base: Decimal
    sale_amount: Optional[Decimal] = None
    sale_currency: Optional[str] = None
    sale_in_base: Optional[Decimal] = None

    class Config:
        from_attributes = True


class BookingCreate(BaseModel):
    """Schema for creating a booking.

    Commission rates left out fall back to the employee's default rate; an
    explicit 0 is kept as 0.
    """
    service_type: ServiceType
    customer_id: UUID
    supplier_id: Optional[UUID] = None

    cost_amount: Decimal = Field(..., ge=0, decimal_places=2)
    cost_currency: str = Field(default="AED", max_length=10)
    sale_amount: Decimal = Field(..., ge=0, decimal_places=2)
    sale_currency: str = Field(default="AED", max_length=10)

    is_uae_booking: bool = True
    vat_applicable: bool = True

    booking_agent_id: Optional[UUID] = None
    agent_commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    customer_service_id: Optional[UUID] = None
    cs_commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)

    booking_date: Optional[date] = None
    travel_date: Optional[date] = None
    return_date: Optional[date] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None

    supplier_lines: List[SupplierLineCreate] = Field(default_factory=list)


class BookingUpdate(BaseModel):
    """Schema for editing a booking; only fields sent are changed."""
    service_type: Optional[ServiceType] = None
    customer_id: Optional[UUID] = None
    supplier_id: Optional[UUID] = None

    cost_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    cost_currency: Optional[str] = Field(default=None, max_length=10)
    sale_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    sale_currency: Optional[str] = Field(default=None, max_length=10)

    is_uae_booking: Optional[bool] = None
    vat_applicable: Optional[bool] = None

    booking_agent_id: Optional[UUID] = None
    agent_commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    customer_service_id: Optional[UUID] = None
    cs_commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)

    booking_date: Optional[date] = None
    travel_date: Optional[date] = None
    return_date: Optional[date] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None

    @model_validator(mode="after")
    def reject_cleared_required_fields(self):
        cleared = sorted(
            field for field in REQUIRED_ON_UPDATE
            if field in self.model_fields_set and getattr(self, field) is None
        )
        if cleared:
            raise ValueError(f"Fields cannot be cleared: {', '.join(cleared)}")
        return self


class CommissionUpdate(BaseModel):
    """Schema for a commission edit, which puts the booking back in review."""
    booking_agent_id: Optional[UUID] = None
    agent_commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    customer_service_id: Optional[UUID] = None
    cs_commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class BookingResponse(BaseModel):
    """Schema for booking response."""
    id: UUID
    booking_number: str
    service_type: ServiceType
    status: BookingStatus
    customer_id: UUID
    supplier_id: Optional[UUID] = None

    cost_amount: Decimal
    cost_currency: str
    cost_in_base: Decimal
    sale_amount: Decimal
    sale_currency: str
    sale_in_base: Decimal

    is_uae_booking: bool
    vat_applicable: bool
    net_before_vat: Decimal
    vat_amount: Decimal
    total_with_vat: Decimal
    gross_profit: Decimal
    net_profit: Decimal

    booking_agent_id: Optional[UUID] = None
    agent_commission_rate: Decimal
    agent_commission_amount: Decimal
    customer_service_id: Optional[UUID] = None
    cs_commission_rate: Decimal
    cs_commission_amount: Decimal
    total_commission: Decimal

    booking_date: date
    travel_date: Optional[date] = None
    return_date: Optional[date] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    refund_of_id: Optional[UUID] = None

    supplier_lines: List[SupplierLineResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SkippedPosting(BaseModel):
    step: str
    reason: str


class BookingPostingResponse(BaseModel):
    """Booking together with the outcome of its journal posting."""
    booking: BookingResponse
    entries_created: int
    skipped: List[SkippedPosting] = Field(default_factory=list)


class CancellationResponse(BaseModel):
    """Response after cancelling a booking."""
    booking: BookingResponse
    refund_booking: BookingResponse
    credit_note_id: Optional[UUID] = None
    credit_note_amount: Optional[Decimal] = None
    refund_entries: int
