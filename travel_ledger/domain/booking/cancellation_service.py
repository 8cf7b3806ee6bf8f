"""Booking cancellation and refund."""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List
from uuid import UUID

from sqlalchemy.orm import Session

from travel_ledger.core.config import get_settings
from travel_ledger.models.accounting import CreditNote, Invoice, JournalEntry
from travel_ledger.models.booking import Booking, BookingSupplierLine
from travel_ledger.domain.accounting.ar_service import apply_payments
from travel_ledger.domain.accounting.enums import InvoiceStatus
from travel_ledger.domain.accounting.gl_service import create_refund_entries
from travel_ledger.domain.accounting.sequences import next_refund_number
from travel_ledger.domain.booking.enums import BookingStatus, CLOSED_STATUSES
from travel_ledger.domain.exceptions import InvalidStateError, NotFoundError
from travel_ledger.services.notification_service import (
    NotificationSink,
    notify_safely,
    format_amount,
)

logger = logging.getLogger(__name__)

# Booking columns copied to the refund booking with their sign flipped
NEGATED_BOOKING_FIELDS = (
    "cost_amount",
    "cost_in_base",
    "sale_amount",
    "sale_in_base",
    "net_before_vat",
    "vat_amount",
    "total_with_vat",
    "gross_profit",
    "net_profit",
    "agent_commission_amount",
    "cs_commission_amount",
    "total_commission",
)


@dataclass
class CancellationResult:
    booking: Booking
    refund_booking: Booking
    credit_note: CreditNote | None = None
    refund_entries: List[JournalEntry] = field(default_factory=list)


def _append_note(existing: str | None, note: str) -> str:
    return f"{existing}\n\n{note}" if existing else note


def _negate(value):
    return -value if value is not None else None


def _cancel_invoice(
    db: Session,
    invoice: Invoice,
    booking: Booking,
    reason: str,
    cancelled_by: UUID | None,
) -> CreditNote | None:
    """Cancel the booking's invoice; a fully paid one gets a credit note."""
    apply_payments(db, invoice)
    credit_note = None

    if invoice.status == InvoiceStatus.PAID:
        credit_note = CreditNote(
            invoice=invoice,
            booking_id=booking.id,
            customer_id=invoice.customer_id,
            amount=invoice.total_amount,
            reason=reason,
            created_by=cancelled_by,
        )
        db.add(credit_note)
        invoice.notes = _append_note(
            invoice.notes,
            f"Credit note issued for {format_amount(invoice.total_amount, invoice.currency)}: {reason}"
        )
        logger.info(f"Credit note of {invoice.total_amount} issued for invoice {invoice.invoice_number}")
    else:
        invoice.notes = _append_note(
            invoice.notes,
            f"Cancelled due to booking cancellation: {booking.booking_number}"
        )

    invoice.status = InvoiceStatus.CANCELLED
    return credit_note


def _refund_booking(db: Session, booking: Booking, credit_note: CreditNote | None,
                    cancelled_by: UUID | None) -> Booking:
    refund = Booking(
        booking_number=next_refund_number(db),
        service_type=booking.service_type,
        customer_id=booking.customer_id,
        supplier_id=booking.supplier_id,
        cost_currency=booking.cost_currency,
        sale_currency=booking.sale_currency,
        is_uae_booking=booking.is_uae_booking,
        vat_applicable=booking.vat_applicable,
        booking_agent_id=booking.booking_agent_id,
        agent_commission_rate=booking.agent_commission_rate,
        customer_service_id=booking.customer_service_id,
        cs_commission_rate=booking.cs_commission_rate,
        status=BookingStatus.REFUNDED,
        booking_date=date.today(),
        travel_date=booking.travel_date,
        return_date=booking.return_date,
        notes=f"Refund for cancelled booking {booking.booking_number}",
        internal_notes=f"System generated refund. Original booking: {booking.booking_number}"
        + (f"\nCredit note amount: {credit_note.amount}" if credit_note else ""),
        refund_of_id=booking.id,
        created_by=cancelled_by,
    )
    for name in NEGATED_BOOKING_FIELDS:
        setattr(refund, name, _negate(getattr(booking, name)))

    for line in booking.supplier_lines:
        refund.supplier_lines.append(BookingSupplierLine(
            supplier_id=line.supplier_id,
            description=line.description,
            cost_amount=_negate(line.cost_amount),
            cost_currency=line.cost_currency,
            cost_in_base=_negate(line.cost_in_base),
            sale_amount=_negate(line.sale_amount),
            sale_currency=line.sale_currency,
            sale_in_base=_negate(line.sale_in_base),
        ))

    db.add(refund)
    return refund


def cancel_booking(
    db: Session,
    booking_id: UUID,
    reason: str | None = None,
    cancelled_by: UUID | None = None,
    notifier: NotificationSink | None = None,
) -> CancellationResult:
    """
    Cancel a booking and book its refund.

    Steps, in one transaction:
    1. Cancel the invoice, issuing a credit note when it was fully paid
    2. Create a REFUNDED mirror booking holding the negated amounts
    3. Post refund entries reversing revenue, VAT, cost and commissions
    4. Mark the original booking CANCELLED

    Raises:
        NotFoundError: If the booking does not exist
        InvalidStateError: If the booking is already cancelled or refunded
    """
    try:
        booking = db.query(Booking).filter(Booking.id == booking_id).with_for_update().first()
        if not booking:
            raise NotFoundError("Booking", booking_id)
        if booking.status in CLOSED_STATUSES:
            raise InvalidStateError(
                f"Booking {booking.booking_number} is already {booking.status.value}",
                booking.status
            )

        reason = reason or f"Cancellation of booking {booking.booking_number}"

        credit_note = None
        invoice = db.query(Invoice).filter(
            Invoice.booking_id == booking.id
        ).with_for_update().first()
        if invoice and invoice.status != InvoiceStatus.CANCELLED:
            credit_note = _cancel_invoice(db, invoice, booking, reason, cancelled_by)

        refund = _refund_booking(db, booking, credit_note, cancelled_by)
        db.flush()

        entries = create_refund_entries(db, booking, cancelled_by)

        booking.status = BookingStatus.CANCELLED
        booking.internal_notes = _append_note(
            booking.internal_notes,
            f"CANCELLED - Refund booking: {refund.booking_number}"
            + (f"\nCredit note: {credit_note.amount}" if credit_note else "")
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    db.refresh(refund)
    logger.info(
        f"Cancelled booking {booking.booking_number}, refund booking {refund.booking_number}, "
        f"{len(entries)} refund entries"
    )

    notify_safely(
        notifier,
        title=f"Booking cancelled - {booking.booking_number}",
        message=f"Booking {booking.booking_number} cancelled, refund booking {refund.booking_number} created",
        notification_type="cancellation",
        severity="warning",
        reference_type="booking",
        reference_id=booking.id,
        reference_code=booking.booking_number,
        amount=format_amount(booking.sale_in_base, get_settings().base_currency),
        user_id=cancelled_by,
    )
    return CancellationResult(
        booking=booking,
        refund_booking=refund,
        credit_note=credit_note,
        refund_entries=entries,
    )
