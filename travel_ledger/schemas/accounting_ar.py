"""Accounts Receivable schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from travel_ledger.domain.accounting.enums import InvoiceStatus, ReceiptStatus, PaymentMethod


class InvoiceCreate(BaseModel):
    """Schema for invoicing a booking."""
    booking_id: UUID
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None


class InvoiceResponse(BaseModel):
    """Schema for invoice response."""
    id: UUID
    invoice_number: str
    booking_id: UUID
    customer_id: UUID
    invoice_date: date
    due_date: Optional[date] = None
    status: InvoiceStatus
    currency: str
    subtotal: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ReceiptCreate(BaseModel):
    """Schema for recording a customer payment."""
    customer_id: UUID
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    payment_method: PaymentMethod
    receipt_date: Optional[date] = None
    invoice_id: Optional[UUID] = None
    bank_account_id: Optional[UUID] = None
    reference: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None


class ReceiptUpdate(BaseModel):
    """Schema for editing a receipt; only fields sent are changed."""
    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    payment_method: Optional[PaymentMethod] = None
    receipt_date: Optional[date] = None
    status: Optional[ReceiptStatus] = None
    invoice_id: Optional[UUID] = None
    bank_account_id: Optional[UUID] = None
    reference: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None


class ReceiptResponse(BaseModel):
    """Schema for receipt response."""
    id: UUID
    receipt_number: str
    customer_id: UUID
    receipt_date: date
    amount: Decimal
    payment_method: PaymentMethod
    status: ReceiptStatus
    invoice_id: Optional[UUID] = None
    bank_account_id: Optional[UUID] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
