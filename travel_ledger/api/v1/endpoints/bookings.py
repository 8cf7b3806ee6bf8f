"""Booking API endpoints."""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from travel_ledger.api.v1.dependencies import get_actor_id, get_notifier
from travel_ledger.api.v1.errors import to_http_exception
from travel_ledger.db.dependencies import get_db
from travel_ledger.domain.accounting.gl_service import PostingReport
from travel_ledger.domain.booking import booking_service
from travel_ledger.domain.booking.cancellation_service import cancel_booking
from travel_ledger.models.booking import Booking
from travel_ledger.schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingPostingResponse,
    BookingResponse,
    BookingUpdate,
    CancellationResponse,
    CommissionUpdate,
    SkippedPosting,
    SupplierLineCreate,
)
from travel_ledger.schemas.journal import JournalEntryResponse
from travel_ledger.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter()


def _posting_response(booking: Booking, report: PostingReport) -> BookingPostingResponse:
    return BookingPostingResponse(
        booking=BookingResponse.model_validate(booking),
        entries_created=len(report.created),
        skipped=[SkippedPosting(step=step, reason=reason) for step, reason in report.skipped],
    )


@router.post("", response_model=BookingPostingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    booking_data: BookingCreate,
    db: Session = Depends(get_db),
    actor_id: Optional[UUID] = Depends(get_actor_id),
    notifier: NotificationService = Depends(get_notifier),
) -> BookingPostingResponse:
    """
    Create a booking.

    Amounts are converted to the base currency, VAT and commissions are
    calculated and the journal entries are posted. Entries skipped because of
    a missing account are listed in the response.
    """
    try:
        booking, report = booking_service.create_booking(
            db, booking_data, created_by=actor_id, notifier=notifier
        )
        return _posting_response(booking, report)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, "create booking")


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(booking_id: UUID, db: Session = Depends(get_db)) -> BookingResponse:
    try:
        return BookingResponse.model_validate(booking_service.get_booking(db, booking_id))
    except Exception as e:
        raise to_http_exception(e, "get booking")


@router.patch("/{booking_id}", response_model=BookingPostingResponse)
def update_booking(
    booking_id: UUID,
    booking_data: BookingUpdate,
    db: Session = Depends(get_db),
    actor_id: Optional[UUID] = Depends(get_actor_id),
) -> BookingPostingResponse:
    """Edit a booking; amount changes reverse and repost its journal entries."""
    try:
        booking, report = booking_service.update_booking(
            db, booking_id, booking_data, updated_by=actor_id
        )
        return _posting_response(booking, report)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, "update booking")


@router.put("/{booking_id}/commissions", response_model=BookingPostingResponse)
def update_commissions(
    booking_id: UUID,
    commission_data: CommissionUpdate,
    db: Session = Depends(get_db),
    actor_id: Optional[UUID] = Depends(get_actor_id),
) -> BookingPostingResponse:
    """Change commissions; the booking goes back to PENDING_REVIEW."""
    try:
        booking, report = booking_service.update_commissions(
            db, booking_id, commission_data, updated_by=actor_id
        )
        return _posting_response(booking, report)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, "update commissions")


@router.post("/{booking_id}/approve", response_model=BookingResponse)
def approve_booking(
    booking_id: UUID,
    db: Session = Depends(get_db),
    actor_id: Optional[UUID] = Depends(get_actor_id),
) -> BookingResponse:
    try:
        booking = booking_service.approve_booking(db, booking_id, approved_by=actor_id)
        return BookingResponse.model_validate(booking)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, "approve booking")


@router.post(
    "/{booking_id}/supplier-lines",
    response_model=BookingPostingResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_supplier_line(
    booking_id: UUID,
    line_data: SupplierLineCreate,
    db: Session = Depends(get_db),
    actor_id: Optional[UUID] = Depends(get_actor_id),
) -> BookingPostingResponse:
    try:
        booking, report = booking_service.add_supplier_line(
            db, booking_id, line_data, created_by=actor_id
        )
        return _posting_response(booking, report)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, "add supplier line")


@router.delete("/{booking_id}/supplier-lines/{line_id}", response_model=BookingPostingResponse)
def remove_supplier_line(
    booking_id: UUID,
    line_id: UUID,
    db: Session = Depends(get_db),
    actor_id: Optional[UUID] = Depends(get_actor_id),
) -> BookingPostingResponse:
    try:
        booking, report = booking_service.remove_supplier_line(
            db, booking_id, line_id, removed_by=actor_id
        )
        return _posting_response(booking, report)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, "remove supplier line")


@router.post("/{booking_id}/cancel", response_model=CancellationResponse)
def cancel(
    booking_id: UUID,
    cancel_data: Optional[BookingCancel] = None,
    db: Session = Depends(get_db),
    actor_id: Optional[UUID] = Depends(get_actor_id),
    notifier: NotificationService = Depends(get_notifier),
) -> CancellationResponse:
    """
    Cancel a booking.

    The invoice is cancelled (with a credit note when it was paid), a REFUNDED
    mirror booking is created and refund entries are posted.
    """
    try:
        result = cancel_booking(
            db,
            booking_id,
            reason=cancel_data.reason if cancel_data else None,
            cancelled_by=actor_id,
            notifier=notifier,
        )
        return CancellationResponse(
            booking=BookingResponse.model_validate(result.booking),
            refund_booking=BookingResponse.model_validate(result.refund_booking),
            credit_note_id=result.credit_note.id if result.credit_note else None,
            credit_note_amount=result.credit_note.amount if result.credit_note else None,
            refund_entries=len(result.refund_entries),
        )
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, "cancel booking")


@router.get("/{booking_id}/journal-entries", response_model=List[JournalEntryResponse])
def list_journal_entries(booking_id: UUID, db: Session = Depends(get_db)) -> List[JournalEntryResponse]:
    """Every journal entry of the booking, reversals included."""
    try:
        entries = booking_service.list_booking_entries(db, booking_id)
        return [JournalEntryResponse.model_validate(entry) for entry in entries]
    except Exception as e:
        raise to_http_exception(e, "list journal entries")
