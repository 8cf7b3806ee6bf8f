"""Accounts Receivable API endpoints."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from travel_ledger.api.v1.dependencies import get_actor_id, get_notifier
from travel_ledger.api.v1.errors import to_http_exception
from travel_ledger.db.dependencies import get_db
from travel_ledger.domain.accounting import ar_service
from travel_ledger.domain.exceptions import NotFoundError
from travel_ledger.models.accounting import Invoice
from travel_ledger.schemas.accounting_ar import (
    InvoiceCreate,
    InvoiceResponse,
    ReceiptCreate,
    ReceiptResponse,
    ReceiptUpdate,
)
from travel_ledger.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/invoices", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
def create_invoice(
    invoice_data: InvoiceCreate,
    db: Session = Depends(get_db),
    actor_id: Optional[UUID] = Depends(get_actor_id),
) -> InvoiceResponse:
    """
    Invoice a booking.

    Returns the created invoice with UNPAID status. A booking can be invoiced once.
    """
    try:
        invoice = ar_service.create_invoice(
            db,
            invoice_data.booking_id,
            invoice_date=invoice_data.invoice_date,
            due_date=invoice_data.due_date,
            notes=invoice_data.notes,
            created_by=actor_id,
        )
        return InvoiceResponse.model_validate(invoice)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, "create invoice")


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: UUID, db: Session = Depends(get_db)) -> InvoiceResponse:
    try:
        invoice = db.query(Invoice).filter(Invoice.id == invoice_id).first()
        if not invoice:
            raise NotFoundError("Invoice", invoice_id)
        return InvoiceResponse.model_validate(invoice)
    except Exception as e:
        raise to_http_exception(e, "get invoice")


@router.post("/invoices/{invoice_id}/reconcile", response_model=InvoiceResponse)
def reconcile_invoice(invoice_id: UUID, db: Session = Depends(get_db)) -> InvoiceResponse:
    """Recompute paid amount and status from the invoice's receipts."""
    try:
        return InvoiceResponse.model_validate(ar_service.reconcile_invoice(db, invoice_id))
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, "reconcile invoice")


@router.post("/receipts", response_model=ReceiptResponse, status_code=status.HTTP_201_CREATED)
def create_receipt(
    receipt_data: ReceiptCreate,
    db: Session = Depends(get_db),
    actor_id: Optional[UUID] = Depends(get_actor_id),
    notifier: NotificationService = Depends(get_notifier),
) -> ReceiptResponse:
    """
    Record a customer payment.

    If invoice_id is provided the amount is checked against the invoice's
    remaining balance and the invoice is reconciled.
    """
    try:
        receipt = ar_service.create_receipt(
            db,
            customer_id=receipt_data.customer_id,
            amount=receipt_data.amount,
            payment_method=receipt_data.payment_method,
            receipt_date=receipt_data.receipt_date,
            invoice_id=receipt_data.invoice_id,
            bank_account_id=receipt_data.bank_account_id,
            reference=receipt_data.reference,
            notes=receipt_data.notes,
            created_by=actor_id,
            notifier=notifier,
        )
        return ReceiptResponse.model_validate(receipt)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, "create receipt")


@router.patch("/receipts/{receipt_id}", response_model=ReceiptResponse)
def update_receipt(
    receipt_id: UUID,
    receipt_data: ReceiptUpdate,
    db: Session = Depends(get_db),
    actor_id: Optional[UUID] = Depends(get_actor_id),
) -> ReceiptResponse:
    try:
        changes = receipt_data.model_dump(exclude_unset=True)
        receipt = ar_service.update_receipt(db, receipt_id, updated_by=actor_id, **changes)
        return ReceiptResponse.model_validate(receipt)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, "update receipt")


@router.delete("/receipts/{receipt_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_receipt(
    receipt_id: UUID,
    db: Session = Depends(get_db),
    actor_id: Optional[UUID] = Depends(get_actor_id),
) -> Response:
    try:
        ar_service.delete_receipt(db, receipt_id, deleted_by=actor_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, "delete receipt")
