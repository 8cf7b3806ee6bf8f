"""Tests for booking creation, edits, commissions and supplier lines."""

from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy.orm import Session

from travel_ledger.domain.accounting.ar_service import create_invoice, create_receipt
from travel_ledger.domain.accounting.enums import (
    InvoiceStatus,
    PaymentMethod,
    TransactionType,
    BOOKING_TRANSACTION_TYPES,
)
from travel_ledger.domain.accounting.gl_service import find_active_entries, trial_balance
from travel_ledger.domain.booking.booking_service import (
    add_supplier_line,
    approve_booking,
    create_booking,
    list_booking_entries,
    remove_supplier_line,
    update_booking,
    update_commissions,
)
from travel_ledger.domain.booking.enums import BookingStatus, ServiceType
from travel_ledger.domain.exceptions import (
    ExchangeRateUnavailableError,
    InvalidStateError,
    NotFoundError,
)
from travel_ledger.models import Currency, Notification
from travel_ledger.schemas.booking import (
    BookingCreate,
    BookingUpdate,
    CommissionUpdate,
    SupplierLineCreate,
)
from travel_ledger.services.notification_service import NotificationService


def _active_amounts(db: Session, booking_id):
    return {
        entry.transaction_type: entry.amount
        for entry in find_active_entries(db, booking_id, BOOKING_TRANSACTION_TYPES)
    }


def test_create_booking_converts_currency(seeded_db: Session, customer_id, rates):
    """Test that foreign-currency amounts are converted before calculating."""
    data = BookingCreate(
        service_type=ServiceType.HOTEL,
        customer_id=customer_id,
        cost_amount=Decimal("100.00"),
        cost_currency="usd",
        sale_amount=Decimal("1050.00"),
    )

    booking, report = create_booking(seeded_db, data, rates=rates)

    assert booking.booking_number.startswith("BKG-")
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.cost_currency == "USD"
    assert booking.cost_in_base == Decimal("367.25")
    assert booking.sale_in_base == Decimal("1050.00")
    assert booking.gross_profit == Decimal("632.75")
    assert report.complete
    assert len(report.created) == 3


def test_unknown_currency_rejected(seeded_db: Session, customer_id, rates):
    data = BookingCreate(
        service_type=ServiceType.HOTEL,
        customer_id=customer_id,
        cost_amount=Decimal("100.00"),
        cost_currency="GBP",
        sale_amount=Decimal("1050.00"),
    )

    with pytest.raises(ExchangeRateUnavailableError):
        create_booking(seeded_db, data, rates=rates)


def test_database_rates_used_by_default(seeded_db: Session, customer_id):
    seeded_db.add(Currency(code="EUR", name="Euro", rate_to_base=Decimal("4.00")))
    seeded_db.commit()

    booking, _ = create_booking(seeded_db, BookingCreate(
        service_type=ServiceType.VISA,
        customer_id=customer_id,
        cost_amount=Decimal("50.00"),
        cost_currency="EUR",
        sale_amount=Decimal("420.00"),
    ))

    assert booking.cost_in_base == Decimal("200.00")


def test_employee_default_rate_applies(seeded_db: Session, customer_id, agent, rates):
    """Test the rate fallback: explicit, then employee default."""
    defaulted, _ = create_booking(seeded_db, BookingCreate(
        service_type=ServiceType.HOTEL,
        customer_id=customer_id,
        cost_amount=Decimal("500"),
        sale_amount=Decimal("1050"),
        booking_agent_id=agent.id,
    ), rates=rates)
    explicit_zero, _ = create_booking(seeded_db, BookingCreate(
        service_type=ServiceType.HOTEL,
        customer_id=customer_id,
        cost_amount=Decimal("500"),
        sale_amount=Decimal("1050"),
        booking_agent_id=agent.id,
        agent_commission_rate=Decimal("0"),
    ), rates=rates)

    assert defaulted.agent_commission_rate == Decimal("10")
    assert defaulted.agent_commission_amount == Decimal("50.00")
    assert explicit_zero.agent_commission_rate == Decimal("0")
    assert explicit_zero.agent_commission_amount == Decimal("0.00")
    assert TransactionType.COMMISSION_AGENT not in _active_amounts(seeded_db, explicit_zero.id)


def test_create_booking_notifies(seeded_db: Session, customer_id, rates):
    booking, _ = create_booking(seeded_db, BookingCreate(
        service_type=ServiceType.TRANSFER,
        customer_id=customer_id,
        cost_amount=Decimal("80"),
        sale_amount=Decimal("210"),
    ), rates=rates, notifier=NotificationService(seeded_db))

    notification = seeded_db.query(Notification).one()
    assert notification.reference_id == booking.id
    assert notification.reference_code == booking.booking_number
    assert notification.amount == "AED 210.00"


def test_update_amount_reposts_via_reversal(seeded_db: Session, make_booking, rates):
    """Test that a sale change reverses old entries and posts new ones."""
    booking = make_booking()
    original_entries = len(list_booking_entries(seeded_db, booking.id))

    updated, report = update_booking(
        seeded_db, booking.id, BookingUpdate(sale_amount=Decimal("2100.00")), rates=rates
    )

    assert updated.net_before_vat == Decimal("2000.00")
    assert updated.vat_amount == Decimal("100.00")
    amounts = _active_amounts(seeded_db, booking.id)
    assert amounts[TransactionType.BOOKING_REVENUE] == Decimal("2000.00")
    assert amounts[TransactionType.BOOKING_VAT_UAE] == Decimal("100.00")
    assert amounts[TransactionType.BOOKING_COST] == Decimal("500.00")
    assert len(report.created) == 3

    entries = list_booking_entries(seeded_db, booking.id)
    reversals = [e for e in entries if e.transaction_type == TransactionType.REVERSAL]
    assert len(reversals) == original_entries
    assert trial_balance(seeded_db).is_balanced


def test_metadata_update_leaves_ledger_alone(seeded_db: Session, make_booking, rates):
    booking = make_booking()
    before = len(list_booking_entries(seeded_db, booking.id))

    updated, report = update_booking(
        seeded_db, booking.id, BookingUpdate(notes="Sea view requested"), rates=rates
    )

    assert updated.notes == "Sea view requested"
    assert report.created == []
    assert len(list_booking_entries(seeded_db, booking.id)) == before


@pytest.mark.parametrize(
    "field", ["sale_amount", "cost_amount", "sale_currency", "service_type", "is_uae_booking"]
)
def test_update_cannot_clear_required_field(field):
    with pytest.raises(ValidationError, match="Fields cannot be cleared"):
        BookingUpdate(**{field: None})


def test_update_may_clear_optional_fields():
    update = BookingUpdate(travel_date=None, agent_commission_rate=None)
    assert update.model_dump(exclude_unset=True) == {"travel_date": None, "agent_commission_rate": None}


def test_lowercase_currency_is_not_a_change(seeded_db: Session, make_booking, rates):
    """Test that resending the stored currency in lower case does not repost."""
    booking = make_booking()
    before = len(list_booking_entries(seeded_db, booking.id))

    updated, report = update_booking(
        seeded_db, booking.id, BookingUpdate(sale_currency="aed", cost_currency="aed"), rates=rates
    )

    assert updated.sale_currency == "AED"
    assert report.created == []
    assert len(list_booking_entries(seeded_db, booking.id)) == before


def test_update_carries_new_total_to_invoice(seeded_db: Session, make_booking, rates):
    booking = make_booking()
    invoice = create_invoice(seeded_db, booking.id)
    create_receipt(
        seeded_db,
        customer_id=booking.customer_id,
        amount=Decimal("1050.00"),
        payment_method=PaymentMethod.CASH,
        invoice_id=invoice.id,
    )
    seeded_db.refresh(booking)
    assert booking.status == BookingStatus.COMPLETE

    update_booking(seeded_db, booking.id, BookingUpdate(sale_amount=Decimal("2100.00")), rates=rates)

    seeded_db.refresh(invoice)
    seeded_db.refresh(booking)
    assert invoice.total_amount == Decimal("2100.00")
    assert invoice.status == InvoiceStatus.PARTIALLY_PAID
    assert booking.status == BookingStatus.CONFIRMED


def test_commission_change_needs_review(seeded_db: Session, make_booking):
    """Test that commission edits go to review and approval confirms them."""
    booking = make_booking(agent_commission_rate=Decimal("10"))

    updated, _ = update_commissions(
        seeded_db, booking.id, CommissionUpdate(agent_commission_rate=Decimal("20"))
    )

    assert updated.status == BookingStatus.PENDING_REVIEW
    assert updated.agent_commission_amount == Decimal("100.00")
    assert _active_amounts(seeded_db, booking.id)[TransactionType.COMMISSION_AGENT] == Decimal("100.00")

    approved = approve_booking(seeded_db, booking.id)
    assert approved.status == BookingStatus.CONFIRMED

    with pytest.raises(InvalidStateError):
        approve_booking(seeded_db, booking.id)


def test_commission_rate_follows_new_agent(seeded_db: Session, make_booking, agent):
    booking = make_booking()

    updated, _ = update_commissions(seeded_db, booking.id, CommissionUpdate(booking_agent_id=agent.id))

    assert updated.booking_agent_id == agent.id
    assert updated.agent_commission_rate == Decimal("10")


def test_supplier_lines_add_cost(seeded_db: Session, make_booking, rates):
    booking = make_booking()

    updated, _ = add_supplier_line(
        seeded_db,
        booking.id,
        SupplierLineCreate(description="Airport transfer", cost_amount=Decimal("100.00")),
        rates=rates,
    )

    assert updated.total_cost_in_base == Decimal("600.00")
    assert updated.gross_profit == Decimal("400.00")
    cost_entries = [
        entry for entry in find_active_entries(seeded_db, booking.id, [TransactionType.BOOKING_COST])
    ]
    assert sorted(entry.amount for entry in cost_entries) == [Decimal("100.00"), Decimal("500.00")]

    line_id = updated.supplier_lines[0].id
    updated, _ = remove_supplier_line(seeded_db, booking.id, line_id)

    assert updated.supplier_lines == []
    assert updated.gross_profit == Decimal("500.00")
    with pytest.raises(NotFoundError):
        remove_supplier_line(seeded_db, booking.id, line_id)
