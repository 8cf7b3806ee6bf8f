"""Booking service: amounts, commissions and journal posting for bookings."""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from travel_ledger.core.config import get_settings
from travel_ledger.models.accounting import JournalEntry
from travel_ledger.models.booking import Booking, BookingSupplierLine
from travel_ledger.models.reference import Employee
from travel_ledger.domain.accounting.ar_service import refresh_invoice_amounts, apply_payments
from travel_ledger.domain.accounting.gl_service import (
    PostingReport,
    generate_booking_entries,
    regenerate_booking_entries,
)
from travel_ledger.domain.accounting.sequences import next_booking_number
from travel_ledger.domain.booking.calculations import (
    BookingFinancials,
    calculate_booking_financials,
    convert_to_base,
    resolve_commission_rate,
)
from travel_ledger.domain.booking.enums import BookingStatus, RateSource, CLOSED_STATUSES
from travel_ledger.domain.exceptions import InvalidStateError, NotFoundError
from travel_ledger.schemas.booking import (
    BookingCreate,
    BookingUpdate,
    CommissionUpdate,
    SupplierLineCreate,
)
from travel_ledger.services.exchange_rates import ExchangeRateProvider, DatabaseExchangeRateProvider
from travel_ledger.services.notification_service import (
    NotificationSink,
    notify_safely,
    format_amount,
)

logger = logging.getLogger(__name__)

# Inputs that change a booking's figures and therefore its journal entries
FINANCIAL_FIELDS = (
    "service_type",
    "cost_amount",
    "cost_currency",
    "sale_amount",
    "sale_currency",
    "is_uae_booking",
    "vat_applicable",
    "booking_agent_id",
    "agent_commission_rate",
    "customer_service_id",
    "cs_commission_rate",
)


def default_commission_rate(db: Session, employee_id: UUID | None) -> Decimal | None:
    if employee_id is None:
        return None
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFoundError("Employee", employee_id)
    return employee.default_commission_rate


def _resolve_rate(db: Session, role: str, employee_id: UUID | None, explicit) -> Decimal:
    rate, source = resolve_commission_rate(explicit, default_commission_rate(db, employee_id))
    if source == RateSource.EMPLOYEE_DEFAULT:
        logger.info(f"{role} commission rate {rate}% taken from employee {employee_id} default")
    elif source == RateSource.NONE and employee_id is not None:
        logger.warning(f"{role} {employee_id} has no commission rate, using 0%")
    return rate


def get_booking(db: Session, booking_id: UUID, for_update: bool = False) -> Booking:
    query = db.query(Booking).filter(Booking.id == booking_id)
    if for_update:
        query = query.with_for_update()
    booking = query.first()
    if not booking:
        raise NotFoundError("Booking", booking_id)
    return booking


def _get_open_booking(db: Session, booking_id: UUID) -> Booking:
    booking = get_booking(db, booking_id, for_update=True)
    if booking.status in CLOSED_STATUSES:
        raise InvalidStateError(
            f"Booking {booking.booking_number} is {booking.status.value}", booking.status
        )
    return booking


def apply_financials(booking: Booking) -> BookingFinancials:
    """Recalculate and store every derived figure of a booking."""
    financials = calculate_booking_financials(
        sale=booking.sale_in_base,
        cost=booking.total_cost_in_base,
        is_uae=booking.is_uae_booking,
        vat_rate=Decimal(str(get_settings().default_vat_rate)),
        service_type=booking.service_type,
        agent_rate=booking.agent_commission_rate,
        cs_rate=booking.cs_commission_rate,
        vat_applicable=booking.vat_applicable,
    )

    booking.net_before_vat = financials.net_before_vat
    booking.vat_amount = financials.vat_amount
    booking.total_with_vat = financials.total_with_vat
    booking.gross_profit = financials.gross_profit
    booking.agent_commission_amount = financials.agent_commission
    booking.cs_commission_amount = financials.cs_commission
    booking.total_commission = financials.total_commission
    booking.net_profit = financials.net_profit
    return financials


def _supplier_line(data: SupplierLineCreate, rates: ExchangeRateProvider) -> BookingSupplierLine:
    line = BookingSupplierLine(
        supplier_id=data.supplier_id,
        description=data.description,
        cost_amount=data.cost_amount,
        cost_currency=data.cost_currency.upper(),
        cost_in_base=convert_to_base(data.cost_amount, rates.rate_to_base(data.cost_currency)),
    )
    if data.sale_amount is not None:
        sale_currency = (data.sale_currency or data.cost_currency).upper()
        line.sale_amount = data.sale_amount
        line.sale_currency = sale_currency
        line.sale_in_base = convert_to_base(data.sale_amount, rates.rate_to_base(sale_currency))
    return line


def _repost(db: Session, booking: Booking, actor: UUID | None) -> PostingReport:
    """Recalculate, replace the booking's entries, and carry totals to its invoice."""
    apply_financials(booking)
    db.flush()
    report = regenerate_booking_entries(db, booking, actor)
    if booking.invoice is not None:
        refresh_invoice_amounts(db, booking.invoice, actor)
    return report


def create_booking(
    db: Session,
    data: BookingCreate,
    created_by: UUID | None = None,
    rates: ExchangeRateProvider | None = None,
    notifier: NotificationSink | None = None,
) -> Tuple[Booking, PostingReport]:
    """
    Create a booking and post its journal entries.

    Amounts are converted to the base currency, commission rates resolved
    (explicit, then employee default, then 0), every derived figure computed,
    and cost, revenue, VAT and commission entries posted in the same
    transaction.

    Returns:
        The committed booking and the posting report
    """
    rates = rates or DatabaseExchangeRateProvider(db)

    try:
        booking_date = data.booking_date or date.today()
        booking = Booking(
            booking_number=next_booking_number(db, booking_date),
            service_type=data.service_type,
            customer_id=data.customer_id,
            supplier_id=data.supplier_id,
            cost_amount=data.cost_amount,
            cost_currency=data.cost_currency.upper(),
            cost_in_base=convert_to_base(data.cost_amount, rates.rate_to_base(data.cost_currency)),
            sale_amount=data.sale_amount,
            sale_currency=data.sale_currency.upper(),
            sale_in_base=convert_to_base(data.sale_amount, rates.rate_to_base(data.sale_currency)),
            is_uae_booking=data.is_uae_booking,
            vat_applicable=data.vat_applicable,
            booking_agent_id=data.booking_agent_id,
            agent_commission_rate=_resolve_rate(
                db, "Agent", data.booking_agent_id, data.agent_commission_rate
            ),
            customer_service_id=data.customer_service_id,
            cs_commission_rate=_resolve_rate(
                db, "Customer service", data.customer_service_id, data.cs_commission_rate
            ),
            status=BookingStatus.CONFIRMED,
            booking_date=booking_date,
            travel_date=data.travel_date,
            return_date=data.return_date,
            notes=data.notes,
            internal_notes=data.internal_notes,
            created_by=created_by,
        )
        for line_data in data.supplier_lines:
            booking.supplier_lines.append(_supplier_line(line_data, rates))

        apply_financials(booking)
        db.add(booking)
        db.flush()

        report = generate_booking_entries(db, booking, created_by)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info(
        f"Created booking {booking.booking_number} sale={booking.sale_in_base} "
        f"cost={booking.total_cost_in_base} net_profit={booking.net_profit}"
    )

    notify_safely(
        notifier,
        title=f"Booking created - {booking.booking_number}",
        message=f"{booking.service_type.value.replace('_', ' ').title()} booking {booking.booking_number} confirmed",
        notification_type="booking",
        severity="warning" if report.skipped else "success",
        reference_type="booking",
        reference_id=booking.id,
        reference_code=booking.booking_number,
        amount=format_amount(booking.sale_in_base, get_settings().base_currency),
        user_id=created_by,
    )
    return booking, report


def update_booking(
    db: Session,
    booking_id: UUID,
    data: BookingUpdate,
    updated_by: UUID | None = None,
    rates: ExchangeRateProvider | None = None,
) -> Tuple[Booking, PostingReport]:
    """
    Edit a booking.

    When a financial input changes the figures are recalculated, the active
    journal entries are reversed and reposted, and the invoice (if any) takes
    the new totals. Pure metadata edits leave the ledger alone.
    """
    rates = rates or DatabaseExchangeRateProvider(db)
    changes = data.model_dump(exclude_unset=True)
    for field in ("cost_currency", "sale_currency"):
        if changes.get(field):
            changes[field] = changes[field].upper()

    try:
        booking = _get_open_booking(db, booking_id)

        financial_change = any(
            field in changes and changes[field] != getattr(booking, field)
            for field in FINANCIAL_FIELDS
        )

        for field, value in changes.items():
            if field in ("agent_commission_rate", "cs_commission_rate") and value is None:
                continue
            setattr(booking, field, value)

        # A new employee or a cleared rate falls back to the employee default
        if changes.get("agent_commission_rate") is None and (
            "booking_agent_id" in changes or "agent_commission_rate" in changes
        ):
            booking.agent_commission_rate = _resolve_rate(db, "Agent", booking.booking_agent_id, None)
        if changes.get("cs_commission_rate") is None and (
            "customer_service_id" in changes or "cs_commission_rate" in changes
        ):
            booking.cs_commission_rate = _resolve_rate(
                db, "Customer service", booking.customer_service_id, None
            )

        report = PostingReport()
        if financial_change:
            booking.cost_in_base = convert_to_base(
                booking.cost_amount, rates.rate_to_base(booking.cost_currency)
            )
            booking.sale_in_base = convert_to_base(
                booking.sale_amount, rates.rate_to_base(booking.sale_currency)
            )
            report = _repost(db, booking, updated_by)

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info(
        f"Updated booking {booking.booking_number}"
        + (f", reposted {len(report.created)} entries" if financial_change else "")
    )
    return booking, report


def update_commissions(
    db: Session,
    booking_id: UUID,
    data: CommissionUpdate,
    updated_by: UUID | None = None,
) -> Tuple[Booking, PostingReport]:
    """
    Change commission assignment or rates.

    The booking goes to PENDING_REVIEW until approved, and its entries are
    reposted with the new commissions.
    """
    changes = data.model_dump(exclude_unset=True)

    try:
        booking = _get_open_booking(db, booking_id)

        if "booking_agent_id" in changes:
            booking.booking_agent_id = changes["booking_agent_id"]
        if "customer_service_id" in changes:
            booking.customer_service_id = changes["customer_service_id"]

        if "agent_commission_rate" in changes or "booking_agent_id" in changes:
            booking.agent_commission_rate = _resolve_rate(
                db, "Agent", booking.booking_agent_id, changes.get("agent_commission_rate")
            )
        if "cs_commission_rate" in changes or "customer_service_id" in changes:
            booking.cs_commission_rate = _resolve_rate(
                db, "Customer service", booking.customer_service_id, changes.get("cs_commission_rate")
            )

        report = _repost(db, booking, updated_by)
        booking.status = BookingStatus.PENDING_REVIEW
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info(
        f"Commissions of booking {booking.booking_number} changed: "
        f"agent={booking.agent_commission_amount} cs={booking.cs_commission_amount}, pending review"
    )
    return booking, report


def approve_booking(db: Session, booking_id: UUID, approved_by: UUID | None = None) -> Booking:
    """Confirm a booking in review; a fully paid invoice completes it right away."""
    try:
        booking = get_booking(db, booking_id, for_update=True)
        if booking.status != BookingStatus.PENDING_REVIEW:
            raise InvalidStateError(
                f"Booking {booking.booking_number} is not pending review", booking.status
            )

        booking.status = BookingStatus.CONFIRMED
        db.flush()
        if booking.invoice is not None:
            apply_payments(db, booking.invoice)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info(f"Booking {booking.booking_number} approved by {approved_by}")
    return booking


def add_supplier_line(
    db: Session,
    booking_id: UUID,
    data: SupplierLineCreate,
    created_by: UUID | None = None,
    rates: ExchangeRateProvider | None = None,
) -> Tuple[Booking, PostingReport]:
    """Add a supplier cost split and repost the booking."""
    rates = rates or DatabaseExchangeRateProvider(db)

    try:
        booking = _get_open_booking(db, booking_id)
        booking.supplier_lines.append(_supplier_line(data, rates))
        db.flush()
        report = _repost(db, booking, created_by)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info(
        f"Added supplier line to booking {booking.booking_number}, total cost {booking.total_cost_in_base}"
    )
    return booking, report


def remove_supplier_line(
    db: Session,
    booking_id: UUID,
    line_id: UUID,
    removed_by: UUID | None = None,
) -> Tuple[Booking, PostingReport]:
    """Remove a supplier cost split and repost the booking."""
    try:
        booking = _get_open_booking(db, booking_id)
        line = next((l for l in booking.supplier_lines if l.id == line_id), None)
        if line is None:
            raise NotFoundError("Supplier line", line_id)

        booking.supplier_lines.remove(line)
        db.flush()
        report = _repost(db, booking, removed_by)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info(
        f"Removed supplier line {line_id} from booking {booking.booking_number}, "
        f"total cost {booking.total_cost_in_base}"
    )
    return booking, report


def list_booking_entries(db: Session, booking_id: UUID) -> List[JournalEntry]:
    """Every journal entry of a booking, reversals included, in posting order."""
    booking = get_booking(db, booking_id)
    return db.query(JournalEntry).filter(
        JournalEntry.source_id == booking.id
    ).order_by(JournalEntry.entry_number).all()
