"""Accounts Receivable service: invoices, receipts and payment reconciliation."""

import logging
from datetime import date
from decimal import Decimal
from typing import Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from travel_ledger.core.config import get_settings
from travel_ledger.models.accounting import Invoice, Receipt, BankAccount
from travel_ledger.models.booking import Booking
from travel_ledger.domain.accounting.enums import (
    InvoiceStatus,
    PaymentMethod,
    ReceiptStatus,
    TransactionType,
    INVOICE_TRANSACTION_TYPES,
)
from travel_ledger.domain.accounting.gl_service import (
    create_invoice_entries,
    create_receipt_entry,
    reverse_source_entries,
)
from travel_ledger.domain.accounting.sequences import next_invoice_number, next_receipt_number
from travel_ledger.domain.booking.calculations import money, ZERO
from travel_ledger.domain.booking.enums import BookingStatus, ServiceType, CLOSED_STATUSES
from travel_ledger.domain.exceptions import (
    DuplicateInvoiceError,
    InvalidStateError,
    InvoiceFullyPaidError,
    LedgerValidationError,
    NotFoundError,
    OverpaymentError,
)
from travel_ledger.services.notification_service import (
    NotificationSink,
    notify_safely,
    format_amount,
)

logger = logging.getLogger(__name__)

_UNSET = object()


def _epsilon() -> Decimal:
    return Decimal(str(get_settings().reconciliation_epsilon))


def invoice_amounts(booking: Booking) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Invoice (subtotal, vat, total) for a booking.

    Only UAE VAT-inclusive bookings show VAT on the invoice; flights and
    everything else are invoiced at the sale price.
    """
    sale = money(booking.sale_in_base or 0)
    if (
        booking.is_uae_booking
        and booking.vat_applicable
        and booking.service_type != ServiceType.FLIGHT
    ):
        return money(booking.net_before_vat), money(booking.vat_amount), sale
    return sale, ZERO, sale


def invoice_status_for(total: Decimal, paid: Decimal, epsilon: Decimal | None = None) -> InvoiceStatus:
    """Payment status from the invoice total and the amount received."""
    eps = epsilon if epsilon is not None else _epsilon()
    total = Decimal(total)
    paid = Decimal(paid)
    if abs(total - paid) < eps or paid >= total:
        return InvoiceStatus.PAID
    if paid > ZERO:
        return InvoiceStatus.PARTIALLY_PAID
    return InvoiceStatus.UNPAID


def paid_total(db: Session, invoice_id: UUID, exclude_receipt_id: UUID | None = None) -> Decimal:
    """Sum of non-cancelled receipts applied to the invoice."""
    query = db.query(Receipt).filter(
        Receipt.invoice_id == invoice_id,
        Receipt.status != ReceiptStatus.CANCELLED
    )
    if exclude_receipt_id is not None:
        query = query.filter(Receipt.id != exclude_receipt_id)
    return money(sum((Decimal(r.amount) for r in query.all()), ZERO))


def _get_invoice(db: Session, invoice_id: UUID, for_update: bool = False) -> Invoice:
    query = db.query(Invoice).filter(Invoice.id == invoice_id)
    if for_update:
        query = query.with_for_update()
    invoice = query.first()
    if not invoice:
        raise NotFoundError("Invoice", invoice_id)
    return invoice


def check_receipt_amount(
    db: Session,
    invoice: Invoice,
    amount: Decimal,
    exclude_receipt_id: UUID | None = None,
) -> Decimal:
    """
    Guard a new or changed receipt amount against the invoice balance.

    Returns:
        Remaining balance before this receipt

    Raises:
        InvoiceFullyPaidError: If nothing remains to be paid
        OverpaymentError: If the amount exceeds the remaining balance
    """
    eps = _epsilon()
    total = money(invoice.total_amount)
    already_paid = paid_total(db, invoice.id, exclude_receipt_id)
    remaining = money(total - already_paid)

    if invoice_status_for(total, already_paid, eps) == InvoiceStatus.PAID:
        raise InvoiceFullyPaidError(invoice.invoice_number, total, already_paid)

    # Amounts are whole cents, so one cent over the balance is an overpayment
    if money(amount) - remaining >= eps:
        raise OverpaymentError(invoice.invoice_number, money(amount), remaining, total, already_paid)

    return remaining


def apply_payments(db: Session, invoice: Invoice) -> Invoice:
    """Reconcile an already loaded invoice inside the caller's transaction."""
    paid = paid_total(db, invoice.id)
    invoice.paid_amount = paid

    if invoice.status == InvoiceStatus.CANCELLED:
        db.flush()
        return invoice

    new_status = invoice_status_for(invoice.total_amount, paid)
    if new_status != invoice.status:
        logger.info(
            f"Invoice {invoice.invoice_number} status {invoice.status.value} -> {new_status.value} "
            f"(paid {paid} of {invoice.total_amount})"
        )
    invoice.status = new_status

    booking = db.query(Booking).filter(Booking.id == invoice.booking_id).with_for_update().first()
    if booking:
        if new_status == InvoiceStatus.PAID and booking.status in (
            BookingStatus.CONFIRMED, BookingStatus.PENDING_REVIEW
        ):
            booking.status = BookingStatus.COMPLETE
            logger.info(f"Booking {booking.booking_number} completed by full payment")
        elif new_status != InvoiceStatus.PAID and booking.status == BookingStatus.COMPLETE:
            booking.status = BookingStatus.CONFIRMED
            logger.info(f"Booking {booking.booking_number} reopened, invoice no longer paid")

    db.flush()
    return invoice


def reconcile_invoice(db: Session, invoice_id: UUID) -> Invoice:
    """
    Recompute an invoice's paid amount and status from its receipts.

    The booking follows: PAID completes it, losing PAID reopens it.
    Cancelled invoices keep their status.
    """
    try:
        invoice = _get_invoice(db, invoice_id, for_update=True)
        apply_payments(db, invoice)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(invoice)
    return invoice


def create_invoice(
    db: Session,
    booking_id: UUID,
    invoice_date: date | None = None,
    due_date: date | None = None,
    notes: str | None = None,
    created_by: UUID | None = None,
) -> Invoice:
    """
    Issue the invoice of a booking.

    Args:
        db: Database session
        booking_id: Booking to invoice
        invoice_date: Defaults to today
        due_date: Optional due date
        notes: Free text printed on the invoice
        created_by: Acting user

    Returns:
        Created Invoice, UNPAID

    Raises:
        NotFoundError: If the booking does not exist
        InvalidStateError: If the booking is cancelled or refunded
        DuplicateInvoiceError: If the booking already has an invoice
    """
    try:
        booking = db.query(Booking).filter(Booking.id == booking_id).with_for_update().first()
        if not booking:
            raise NotFoundError("Booking", booking_id)
        if booking.status in CLOSED_STATUSES:
            raise InvalidStateError(
                f"Cannot invoice booking {booking.booking_number} in status {booking.status.value}",
                booking.status
            )

        existing = db.query(Invoice).filter(Invoice.booking_id == booking.id).first()
        if existing:
            raise DuplicateInvoiceError(booking.booking_number, existing.invoice_number)

        invoice_date = invoice_date or date.today()
        subtotal, vat_amount, total = invoice_amounts(booking)

        invoice = Invoice(
            invoice_number=next_invoice_number(db, invoice_date),
            invoice_date=invoice_date,
            due_date=due_date,
            booking=booking,
            customer_id=booking.customer_id,
            currency=get_settings().base_currency,
            subtotal=subtotal,
            vat_amount=vat_amount,
            total_amount=total,
            paid_amount=ZERO,
            status=InvoiceStatus.UNPAID,
            notes=notes,
            created_by=created_by,
        )
        db.add(invoice)

        if booking.status == BookingStatus.PENDING_REVIEW:
            booking.status = BookingStatus.CONFIRMED
        db.flush()

        create_invoice_entries(db, invoice, created_by)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(invoice)
    logger.info(f"Created invoice {invoice.invoice_number} for booking {booking.booking_number} total={total}")
    return invoice


def refresh_invoice_amounts(db: Session, invoice: Invoice, created_by: UUID | None = None) -> Invoice:
    """
    Carry a booking's changed figures onto its invoice.

    Legacy invoice entries are reversed and reposted, then the status is
    reconciled against the new total. Flushes only.
    """
    if invoice.status == InvoiceStatus.CANCELLED:
        return invoice

    subtotal, vat_amount, total = invoice_amounts(invoice.booking)
    invoice.subtotal = subtotal
    invoice.vat_amount = vat_amount
    invoice.total_amount = total
    db.flush()

    reverse_source_entries(db, invoice.id, INVOICE_TRANSACTION_TYPES, created_by)
    create_invoice_entries(db, invoice, created_by)
    return apply_payments(db, invoice)


def _validated_amount(amount) -> Decimal:
    amount = money(amount)
    if amount <= ZERO:
        raise LedgerValidationError(f"Receipt amount must be positive: {amount}")
    return amount


def _check_bank_account(db: Session, bank_account_id: UUID | None) -> None:
    if bank_account_id is not None:
        if not db.query(BankAccount).filter(BankAccount.id == bank_account_id).first():
            raise NotFoundError("Bank account", bank_account_id)


def create_receipt(
    db: Session,
    customer_id: UUID,
    amount: Decimal,
    payment_method: PaymentMethod,
    receipt_date: date | None = None,
    invoice_id: UUID | None = None,
    bank_account_id: UUID | None = None,
    reference: str | None = None,
    notes: str | None = None,
    created_by: UUID | None = None,
    notifier: NotificationSink | None = None,
) -> Receipt:
    """
    Record a customer payment.

    Posting rules:
    - Debit cash/bank, credit Accounts Receivable
    - The linked invoice (if any) is reconciled and its booking cascaded

    Raises:
        NotFoundError: If the invoice or bank account does not exist
        InvalidStateError: If the invoice is cancelled
        InvoiceFullyPaidError, OverpaymentError: From the overpayment guard
    """
    try:
        amount = _validated_amount(amount)
        _check_bank_account(db, bank_account_id)

        invoice = None
        if invoice_id is not None:
            invoice = _get_invoice(db, invoice_id, for_update=True)
            if invoice.status == InvoiceStatus.CANCELLED:
                raise InvalidStateError(
                    f"Invoice {invoice.invoice_number} is cancelled", invoice.status
                )
            if invoice.customer_id != customer_id:
                raise LedgerValidationError(
                    f"Invoice {invoice.invoice_number} belongs to another customer"
                )
            check_receipt_amount(db, invoice, amount)

        receipt_date = receipt_date or date.today()
        receipt = Receipt(
            receipt_number=next_receipt_number(db, receipt_date),
            receipt_date=receipt_date,
            amount=amount,
            payment_method=payment_method,
            bank_account_id=bank_account_id,
            reference=reference,
            status=ReceiptStatus.COMPLETED,
            customer_id=customer_id,
            invoice_id=invoice_id,
            notes=notes,
            created_by=created_by,
        )
        db.add(receipt)
        db.flush()

        create_receipt_entry(db, receipt, created_by)
        if invoice:
            apply_payments(db, invoice)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(receipt)
    logger.info(f"Created receipt {receipt.receipt_number} amount={amount}")

    notify_safely(
        notifier,
        title=f"Payment received - {receipt.receipt_number}",
        message=f"Receipt {receipt.receipt_number} recorded"
        + (f" against invoice {invoice.invoice_number}" if invoice else ""),
        notification_type="receipt",
        severity="success",
        reference_type="receipt",
        reference_id=receipt.id,
        reference_code=receipt.receipt_number,
        amount=format_amount(amount, get_settings().base_currency),
        user_id=created_by,
    )
    return receipt


def update_receipt(
    db: Session,
    receipt_id: UUID,
    amount: Decimal | None = None,
    payment_method: PaymentMethod | None = None,
    receipt_date: date | None = None,
    status: ReceiptStatus | None = None,
    invoice_id=_UNSET,
    bank_account_id=_UNSET,
    reference: str | None = None,
    notes: str | None = None,
    updated_by: UUID | None = None,
) -> Receipt:
    """
    Change a receipt and re-reconcile every invoice it touches.

    Cancelling a receipt reverses its payment entry; any change to the amount,
    payment method, bank account or date reposts it. ``invoice_id`` and
    ``bank_account_id`` accept None to unlink.
    """
    try:
        receipt = db.query(Receipt).filter(Receipt.id == receipt_id).with_for_update().first()
        if not receipt:
            raise NotFoundError("Receipt", receipt_id)

        old_invoice_id = receipt.invoice_id
        old_posting = (receipt.amount, receipt.payment_method, receipt.bank_account_id,
                       receipt.receipt_date, receipt.status)

        if amount is not None:
            receipt.amount = _validated_amount(amount)
        if payment_method is not None:
            receipt.payment_method = payment_method
        if receipt_date is not None:
            receipt.receipt_date = receipt_date
        if status is not None:
            receipt.status = status
        if bank_account_id is not _UNSET:
            _check_bank_account(db, bank_account_id)
            receipt.bank_account_id = bank_account_id
        if invoice_id is not _UNSET:
            receipt.invoice_id = invoice_id
        if reference is not None:
            receipt.reference = reference
        if notes is not None:
            receipt.notes = notes

        new_invoice = None
        if receipt.invoice_id is not None:
            new_invoice = _get_invoice(db, receipt.invoice_id, for_update=True)
            if receipt.invoice_id != old_invoice_id and new_invoice.customer_id != receipt.customer_id:
                raise LedgerValidationError(
                    f"Invoice {new_invoice.invoice_number} belongs to another customer"
                )
            if receipt.status == ReceiptStatus.COMPLETED:
                if new_invoice.status == InvoiceStatus.CANCELLED:
                    raise InvalidStateError(
                        f"Invoice {new_invoice.invoice_number} is cancelled", new_invoice.status
                    )
                check_receipt_amount(db, new_invoice, receipt.amount, exclude_receipt_id=receipt.id)
        db.flush()
        db.expire(receipt, ["bank_account"])

        new_posting = (receipt.amount, receipt.payment_method, receipt.bank_account_id,
                       receipt.receipt_date, receipt.status)
        if new_posting != old_posting:
            reverse_source_entries(db, receipt.id, [TransactionType.RECEIPT_PAYMENT], updated_by)
            if receipt.status == ReceiptStatus.COMPLETED:
                create_receipt_entry(db, receipt, updated_by)

        if old_invoice_id is not None and old_invoice_id != receipt.invoice_id:
            apply_payments(db, _get_invoice(db, old_invoice_id, for_update=True))
        if new_invoice is not None:
            apply_payments(db, new_invoice)

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(receipt)
    logger.info(f"Updated receipt {receipt.receipt_number} status={receipt.status.value} amount={receipt.amount}")
    return receipt


def delete_receipt(db: Session, receipt_id: UUID, deleted_by: UUID | None = None) -> None:
    """Delete a receipt, reverse its payment entry and reconcile its invoice."""
    try:
        receipt = db.query(Receipt).filter(Receipt.id == receipt_id).with_for_update().first()
        if not receipt:
            raise NotFoundError("Receipt", receipt_id)

        receipt_number = receipt.receipt_number
        invoice_id = receipt.invoice_id

        reverse_source_entries(db, receipt.id, [TransactionType.RECEIPT_PAYMENT], deleted_by)
        db.delete(receipt)
        db.flush()

        if invoice_id is not None:
            apply_payments(db, _get_invoice(db, invoice_id, for_update=True))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Deleted receipt {receipt_number}")
