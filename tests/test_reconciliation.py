"""Tests for invoices, receipts and payment reconciliation."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from travel_ledger.domain.accounting import chart
from travel_ledger.domain.accounting.ar_service import (
    create_invoice,
    create_receipt,
    delete_receipt,
    invoice_status_for,
    reconcile_invoice,
    update_receipt,
)
from travel_ledger.domain.accounting.enums import (
    InvoiceStatus,
    PaymentMethod,
    ReceiptStatus,
    TransactionType,
)
from travel_ledger.domain.accounting.gl_service import find_active_entries
from travel_ledger.domain.booking.enums import BookingStatus, ServiceType
from travel_ledger.domain.exceptions import (
    DuplicateInvoiceError,
    InvoiceFullyPaidError,
    LedgerValidationError,
    NotFoundError,
    OverpaymentError,
)
from travel_ledger.models.accounting import BankAccount, JournalEntry


@pytest.fixture
def invoice(seeded_db: Session, make_booking):
    """Invoice of 1000.00 on a non-VAT UAE booking."""
    booking = make_booking(sale_amount=Decimal("1000.00"), cost_amount=Decimal("600.00"),
                           vat_applicable=False)
    return create_invoice(seeded_db, booking.id)


def _pay(db: Session, invoice, amount: str, method=PaymentMethod.BANK_TRANSFER, **kwargs):
    return create_receipt(
        db,
        customer_id=invoice.customer_id,
        amount=Decimal(amount),
        payment_method=method,
        invoice_id=invoice.id,
        **kwargs,
    )


@pytest.mark.parametrize(
    "paid,expected",
    [
        ("1000.00", InvoiceStatus.PAID),
        ("999.995", InvoiceStatus.PAID),
        ("1000.01", InvoiceStatus.PAID),
        ("999.99", InvoiceStatus.PARTIALLY_PAID),
        ("500.00", InvoiceStatus.PARTIALLY_PAID),
        ("0", InvoiceStatus.UNPAID),
    ],
)
def test_invoice_status_boundary(paid, expected):
    assert invoice_status_for(Decimal("1000.00"), Decimal(paid), Decimal("0.01")) == expected


def test_invoice_amounts_for_uae_inclusive_booking(seeded_db: Session, make_booking):
    booking = make_booking()
    invoice = create_invoice(seeded_db, booking.id)

    assert invoice.invoice_number.startswith("INV-")
    assert invoice.status == InvoiceStatus.UNPAID
    assert invoice.subtotal == Decimal("1000.00")
    assert invoice.vat_amount == Decimal("50.00")
    assert invoice.total_amount == Decimal("1050.00")


def test_flight_invoiced_at_sale_price(seeded_db: Session, make_booking):
    booking = make_booking(service_type=ServiceType.FLIGHT, sale_amount=Decimal("1000"),
                           cost_amount=Decimal("800"))
    invoice = create_invoice(seeded_db, booking.id)

    assert invoice.vat_amount == Decimal("0.00")
    assert invoice.total_amount == Decimal("1000.00")


def test_invoice_does_not_repost_booking_revenue(seeded_db: Session, invoice):
    """Test that invoicing a posted booking adds no revenue entries."""
    entries = find_active_entries(
        seeded_db, invoice.id,
        [TransactionType.INVOICE_REVENUE, TransactionType.INVOICE_VAT_UAE],
    )
    assert entries == []


def test_booking_invoiced_once(seeded_db: Session, invoice):
    with pytest.raises(DuplicateInvoiceError):
        create_invoice(seeded_db, invoice.booking_id)


def test_partial_then_full_payment(seeded_db: Session, invoice):
    """Test status progression and the booking cascade on full payment."""
    _pay(seeded_db, invoice, "500.00")
    seeded_db.refresh(invoice)
    assert invoice.status == InvoiceStatus.PARTIALLY_PAID
    assert invoice.paid_amount == Decimal("500.00")
    assert invoice.booking.status == BookingStatus.CONFIRMED

    _pay(seeded_db, invoice, "500.00")
    seeded_db.refresh(invoice)
    assert invoice.status == InvoiceStatus.PAID
    assert invoice.paid_amount == Decimal("1000.00")
    seeded_db.refresh(invoice.booking)
    assert invoice.booking.status == BookingStatus.COMPLETE


def test_fresh_overpayment_rejected(seeded_db: Session, invoice):
    """Test that one cent over a fresh invoice is refused."""
    with pytest.raises(OverpaymentError) as exc_info:
        _pay(seeded_db, invoice, "1000.01")

    assert exc_info.value.remaining == Decimal("1000.00")
    assert "exceeds remaining invoice balance" in str(exc_info.value)
    seeded_db.refresh(invoice)
    assert invoice.status == InvoiceStatus.UNPAID
    assert invoice.receipts == []


def test_overpayment_on_partial_invoice(seeded_db: Session, invoice):
    _pay(seeded_db, invoice, "600.00")

    with pytest.raises(OverpaymentError) as exc_info:
        _pay(seeded_db, invoice, "400.50")
    assert exc_info.value.remaining == Decimal("400.00")
    assert exc_info.value.already_paid == Decimal("600.00")


def test_fully_paid_invoice_rejects_receipts(seeded_db: Session, invoice):
    _pay(seeded_db, invoice, "1000.00")

    with pytest.raises(InvoiceFullyPaidError):
        _pay(seeded_db, invoice, "1.00")


def test_receipt_for_other_customer_rejected(seeded_db: Session, invoice):
    with pytest.raises(LedgerValidationError):
        create_receipt(
            seeded_db,
            customer_id=uuid4(),
            amount=Decimal("100"),
            payment_method=PaymentMethod.CASH,
            invoice_id=invoice.id,
        )


def test_receipt_posts_to_cash_or_bank(seeded_db: Session, invoice):
    usd_bank = BankAccount(name="Emirates NBD USD", currency="USD")
    seeded_db.add(usd_bank)
    seeded_db.commit()

    _pay(seeded_db, invoice, "100.00", method=PaymentMethod.CASH)
    _pay(seeded_db, invoice, "200.00", bank_account_id=usd_bank.id)
    _pay(seeded_db, invoice, "300.00")

    assert chart.find_account_by_code(seeded_db, chart.CASH_ON_HAND_AED).debit_balance == Decimal("100.00")
    assert chart.find_account_by_code(seeded_db, chart.BANK_USD).debit_balance == Decimal("200.00")
    assert chart.find_account_by_code(seeded_db, chart.BANK_MAIN_AED).debit_balance == Decimal("300.00")
    assert chart.find_account_by_code(seeded_db, chart.ACCOUNTS_RECEIVABLE).credit_balance == Decimal("600.00")


def test_receipt_without_invoice(seeded_db: Session, customer_id):
    receipt = create_receipt(
        seeded_db,
        customer_id=customer_id,
        amount=Decimal("250.00"),
        payment_method=PaymentMethod.CARD,
    )

    assert receipt.receipt_number.startswith("REC-")
    assert receipt.invoice_id is None
    assert len(find_active_entries(seeded_db, receipt.id, [TransactionType.RECEIPT_PAYMENT])) == 1


def test_cancelling_receipt_reopens_booking(seeded_db: Session, invoice):
    """Test that losing PAID takes the booking back to CONFIRMED."""
    receipt = _pay(seeded_db, invoice, "1000.00")
    seeded_db.refresh(invoice.booking)
    assert invoice.booking.status == BookingStatus.COMPLETE

    update_receipt(seeded_db, receipt.id, status=ReceiptStatus.CANCELLED)

    seeded_db.refresh(invoice)
    seeded_db.refresh(invoice.booking)
    assert invoice.status == InvoiceStatus.UNPAID
    assert invoice.paid_amount == Decimal("0.00")
    assert invoice.booking.status == BookingStatus.CONFIRMED
    assert find_active_entries(seeded_db, receipt.id, [TransactionType.RECEIPT_PAYMENT]) == []


def test_changing_receipt_amount_reposts_entry(seeded_db: Session, invoice):
    receipt = _pay(seeded_db, invoice, "400.00")

    update_receipt(seeded_db, receipt.id, amount=Decimal("1000.00"))

    seeded_db.refresh(invoice)
    assert invoice.status == InvoiceStatus.PAID
    active = find_active_entries(seeded_db, receipt.id, [TransactionType.RECEIPT_PAYMENT])
    assert [entry.amount for entry in active] == [Decimal("1000.00")]
    reversals = seeded_db.query(JournalEntry).filter(
        JournalEntry.source_id == receipt.id,
        JournalEntry.transaction_type == TransactionType.REVERSAL
    ).count()
    assert reversals == 1


def test_update_receipt_guards_overpayment(seeded_db: Session, invoice):
    receipt = _pay(seeded_db, invoice, "400.00")
    _pay(seeded_db, invoice, "500.00")

    with pytest.raises(OverpaymentError):
        update_receipt(seeded_db, receipt.id, amount=Decimal("600.00"))

    seeded_db.refresh(receipt)
    assert receipt.amount == Decimal("400.00")


def test_moving_receipt_to_another_invoice(seeded_db: Session, invoice, make_booking):
    other_booking = make_booking(sale_amount=Decimal("300.00"), cost_amount=Decimal("100.00"),
                                 vat_applicable=False)
    other_invoice = create_invoice(seeded_db, other_booking.id)
    receipt = _pay(seeded_db, invoice, "300.00")

    update_receipt(seeded_db, receipt.id, invoice_id=other_invoice.id)

    seeded_db.refresh(invoice)
    seeded_db.refresh(other_invoice)
    assert invoice.status == InvoiceStatus.UNPAID
    assert other_invoice.status == InvoiceStatus.PAID


def test_receipt_cannot_move_to_other_customers_invoice(seeded_db: Session, invoice, make_booking):
    other_booking = make_booking(customer_id=uuid4(), sale_amount=Decimal("300.00"),
                                 cost_amount=Decimal("100.00"), vat_applicable=False)
    other_invoice = create_invoice(seeded_db, other_booking.id)
    receipt = _pay(seeded_db, invoice, "300.00")

    with pytest.raises(LedgerValidationError, match="belongs to another customer"):
        update_receipt(seeded_db, receipt.id, invoice_id=other_invoice.id)

    seeded_db.refresh(receipt)
    seeded_db.refresh(other_invoice)
    assert receipt.invoice_id == invoice.id
    assert other_invoice.status == InvoiceStatus.UNPAID


def test_delete_receipt_reconciles_invoice(seeded_db: Session, invoice):
    receipt = _pay(seeded_db, invoice, "1000.00")

    delete_receipt(seeded_db, receipt.id)

    seeded_db.refresh(invoice)
    assert invoice.status == InvoiceStatus.UNPAID
    assert chart.find_account_by_code(seeded_db, chart.BANK_MAIN_AED).balance == Decimal("0.00")

    with pytest.raises(NotFoundError):
        delete_receipt(seeded_db, receipt.id)


def test_reconcile_invoice_is_stable(seeded_db: Session, invoice):
    _pay(seeded_db, invoice, "250.00")

    first = reconcile_invoice(seeded_db, invoice.id)
    second = reconcile_invoice(seeded_db, invoice.id)

    assert first.status == second.status == InvoiceStatus.PARTIALLY_PAID
    assert second.paid_amount == Decimal("250.00")
