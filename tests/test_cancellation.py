"""Tests for booking cancellation and refunds."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from travel_ledger.domain.accounting import chart
from travel_ledger.domain.accounting.ar_service import create_invoice, create_receipt
from travel_ledger.domain.accounting.enums import (
    InvoiceStatus,
    PaymentMethod,
    TransactionType,
    REFUND_TRANSACTION_TYPES,
)
from travel_ledger.domain.accounting.gl_service import find_active_entries, trial_balance
from travel_ledger.domain.booking.cancellation_service import cancel_booking
from travel_ledger.domain.booking.enums import BookingStatus, ServiceType
from travel_ledger.domain.exceptions import InvalidStateError, NotFoundError
from travel_ledger.models import CreditNote


class BrokenNotifier:
    def notify(self, **kwargs):
        raise RuntimeError("notification center unreachable")


@pytest.fixture
def booking(make_booking):
    """Non-VAT booking: sale 1000, cost 600, agent 40%."""
    return make_booking(
        sale_amount=Decimal("1000.00"),
        cost_amount=Decimal("600.00"),
        is_uae_booking=False,
        vat_applicable=False,
        agent_commission_rate=Decimal("40"),
    )


def test_refund_booking_mirrors_original(seeded_db: Session, booking):
    """Test that the refund booking holds the negated figures."""
    assert booking.agent_commission_amount == Decimal("160.00")
    assert booking.net_profit == Decimal("240.00")

    result = cancel_booking(seeded_db, booking.id, reason="Customer request")

    assert result.booking.status == BookingStatus.CANCELLED
    refund = result.refund_booking
    assert refund.status == BookingStatus.REFUNDED
    assert refund.booking_number.startswith("REFUND-")
    assert refund.refund_of_id == booking.id
    assert refund.sale_in_base == Decimal("-1000.00")
    assert refund.cost_in_base == Decimal("-600.00")
    assert refund.agent_commission_amount == Decimal("-160.00")
    assert refund.net_profit == Decimal("-240.00")
    assert refund.booking_number in result.booking.internal_notes


def test_refund_entries_swap_original_accounts(seeded_db: Session, booking):
    result = cancel_booking(seeded_db, booking.id)

    entries = find_active_entries(seeded_db, booking.id, REFUND_TRANSACTION_TYPES)
    by_type = {entry.transaction_type: entry for entry in entries}

    assert len(result.refund_entries) == 3
    assert set(by_type) == {
        TransactionType.REFUND_REVENUE,
        TransactionType.REFUND_COST,
        TransactionType.REFUND_COMMISSION_AGENT,
    }
    assert by_type[TransactionType.REFUND_REVENUE].amount == Decimal("1000.00")
    assert by_type[TransactionType.REFUND_REVENUE].credit_account.code == chart.ACCOUNTS_RECEIVABLE
    assert by_type[TransactionType.REFUND_COST].amount == Decimal("600.00")
    assert by_type[TransactionType.REFUND_COST].debit_account.code == chart.SUPPLIERS_PAYABLE
    assert by_type[TransactionType.REFUND_COMMISSION_AGENT].amount == Decimal("160.00")

    # Original and refund postings cancel out on every touched account
    for code in (chart.ACCOUNTS_RECEIVABLE, "4120", "5120", chart.SUPPLIERS_PAYABLE,
                 chart.EMPLOYEE_COMMISSIONS, chart.COMMISSIONS_PAYABLE):
        account = chart.find_account_by_code(seeded_db, code)
        assert account.balance == Decimal("0.00"), code
    assert trial_balance(seeded_db).is_balanced


def test_uae_booking_refunds_vat(seeded_db: Session, make_booking):
    booking = make_booking()

    cancel_booking(seeded_db, booking.id)

    refund_vat = find_active_entries(seeded_db, booking.id, [TransactionType.REFUND_VAT])
    assert [entry.amount for entry in refund_vat] == [Decimal("50.00")]
    assert chart.find_account_by_code(seeded_db, chart.VAT_PAYABLE).balance == Decimal("0.00")


def test_unpaid_invoice_cancelled_without_credit_note(seeded_db: Session, booking):
    invoice = create_invoice(seeded_db, booking.id)

    result = cancel_booking(seeded_db, booking.id)

    seeded_db.refresh(invoice)
    assert result.credit_note is None
    assert invoice.status == InvoiceStatus.CANCELLED
    assert booking.booking_number in invoice.notes


def test_paid_invoice_gets_credit_note(seeded_db: Session, booking):
    """Test that cancelling a fully paid booking issues a credit note."""
    invoice = create_invoice(seeded_db, booking.id)
    create_receipt(
        seeded_db,
        customer_id=booking.customer_id,
        amount=Decimal("1000.00"),
        payment_method=PaymentMethod.BANK_TRANSFER,
        invoice_id=invoice.id,
    )

    result = cancel_booking(seeded_db, booking.id, reason="Visa refused")

    seeded_db.refresh(invoice)
    assert invoice.status == InvoiceStatus.CANCELLED
    assert "Credit note issued for AED 1,000.00: Visa refused" in invoice.notes
    credit_note = seeded_db.query(CreditNote).one()
    assert result.credit_note.id == credit_note.id
    assert credit_note.amount == Decimal("1000.00")
    assert credit_note.customer_id == booking.customer_id
    assert credit_note.reason == "Visa refused"


def test_cancelled_booking_cannot_be_cancelled_again(seeded_db: Session, booking):
    result = cancel_booking(seeded_db, booking.id)

    with pytest.raises(InvalidStateError):
        cancel_booking(seeded_db, booking.id)
    with pytest.raises(InvalidStateError):
        cancel_booking(seeded_db, result.refund_booking.id)


def test_cancel_unknown_booking(seeded_db: Session):
    with pytest.raises(NotFoundError):
        cancel_booking(seeded_db, uuid4())


def test_notification_failure_does_not_abort(seeded_db: Session, booking):
    result = cancel_booking(seeded_db, booking.id, notifier=BrokenNotifier())

    seeded_db.refresh(result.booking)
    assert result.booking.status == BookingStatus.CANCELLED


def test_loss_booking_refund_uses_absolute_amounts(seeded_db: Session, make_booking):
    """Test that a negative figure is refunded with sides swapped back."""
    booking = make_booking(
        service_type=ServiceType.VISA,
        sale_amount=Decimal("300.00"),
        cost_amount=Decimal("400.00"),
        vat_applicable=False,
        agent_commission_rate=Decimal("10"),
    )
    assert booking.agent_commission_amount == Decimal("-10.00")

    cancel_booking(seeded_db, booking.id)

    for code in (chart.EMPLOYEE_COMMISSIONS, chart.COMMISSIONS_PAYABLE, chart.ACCOUNTS_RECEIVABLE):
        assert chart.find_account_by_code(seeded_db, code).balance == Decimal("0.00"), code
    assert trial_balance(seeded_db).is_balanced


def test_negative_margin_vat_is_not_refunded(seeded_db: Session, make_booking):
    """Test that VAT never posted on a loss is not refunded either."""
    booking = make_booking(
        sale_amount=Decimal("1000.00"),
        cost_amount=Decimal("1100.00"),
        is_uae_booking=False,
    )
    assert booking.vat_amount == Decimal("-5.00")
    assert booking.net_profit == Decimal("-95.00")

    result = cancel_booking(seeded_db, booking.id)

    assert TransactionType.REFUND_VAT not in {entry.transaction_type for entry in result.refund_entries}
    assert chart.find_account_by_code(seeded_db, chart.VAT_PAYABLE).balance == Decimal("0.00")
    assert trial_balance(seeded_db).is_balanced
