"""Accounts Receivable models."""

from datetime import datetime, date
from decimal import Decimal
from uuid import uuid4, UUID
from sqlalchemy import String, Date, ForeignKey, Text, Uuid
from sqlalchemy.orm import mapped_column, Mapped, relationship

from travel_ledger.models.base import Base, TimestampMixin, enum_column, money_column
from travel_ledger.domain.accounting.enums import InvoiceStatus, ReceiptStatus, PaymentMethod


class Invoice(TimestampMixin, Base):
    """Customer invoice issued for a single booking (base currency only)."""

    __tablename__ = "invoices"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    invoice_number: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id"),
        nullable=False,
        unique=True
    )
    customer_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)

    status: Mapped[InvoiceStatus] = mapped_column(
        enum_column(InvoiceStatus),
        default=InvoiceStatus.UNPAID,
        nullable=False
    )

    currency: Mapped[str] = mapped_column(String(10), default="AED", nullable=False)
    subtotal: Mapped[Decimal] = money_column()
    vat_amount: Mapped[Decimal] = money_column()
    total_amount: Mapped[Decimal] = money_column()
    # Cache only; reconciliation recomputes it from receipts
    paid_amount: Mapped[Decimal] = money_column()

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    booking: Mapped["Booking"] = relationship("Booking", back_populates="invoice")
    receipts: Mapped[list["Receipt"]] = relationship("Receipt", back_populates="invoice")
    credit_notes: Mapped[list["CreditNote"]] = relationship(
        "CreditNote",
        back_populates="invoice",
        cascade="all, delete-orphan"
    )


class CreditNote(TimestampMixin, Base):
    """Amount owed back to a customer after a paid invoice was cancelled."""

    __tablename__ = "credit_notes"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    invoice_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False
    )
    booking_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("bookings.id"), nullable=False)
    customer_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)

    amount: Mapped[Decimal] = money_column()
    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    created_by: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    invoice: Mapped[Invoice] = relationship("Invoice", back_populates="credit_notes")


class BankAccount(TimestampMixin, Base):
    """Company bank account a receipt can be paid into."""

    __tablename__ = "bank_accounts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default="AED", nullable=False)
    account_number: Mapped[str | None] = mapped_column(String(100), nullable=True)


class Receipt(TimestampMixin, Base):
    """Customer payment, optionally applied to one invoice."""

    __tablename__ = "receipts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    receipt_number: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    receipt_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = money_column()

    payment_method: Mapped[PaymentMethod] = mapped_column(enum_column(PaymentMethod), nullable=False)
    bank_account_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("bank_accounts.id"),
        nullable=True
    )
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[ReceiptStatus] = mapped_column(
        enum_column(ReceiptStatus),
        default=ReceiptStatus.COMPLETED,
        nullable=False
    )

    customer_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    invoice_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("invoices.id"),
        nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    invoice: Mapped[Invoice | None] = relationship("Invoice", back_populates="receipts")
    bank_account: Mapped[BankAccount | None] = relationship("BankAccount")
