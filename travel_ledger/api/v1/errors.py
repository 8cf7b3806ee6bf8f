"""Mapping of domain errors to HTTP errors."""

import logging

from fastapi import HTTPException, status

from travel_ledger.domain.exceptions import (
    AlreadyPostedError,
    DuplicateInvoiceError,
    InvalidStateError,
    InvoiceFullyPaidError,
    NotFoundError,
    OverpaymentError,
)

logger = logging.getLogger(__name__)

CONFLICT_ERRORS = (
    AlreadyPostedError,
    DuplicateInvoiceError,
    InvalidStateError,
    InvoiceFullyPaidError,
    OverpaymentError,
)


def to_http_exception(exc: Exception, action: str) -> HTTPException:
    """404 for missing records, 409 for state conflicts, 400 for bad input, 500 otherwise."""
    if isinstance(exc, HTTPException):
        return exc
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, CONFLICT_ERRORS):
        logger.warning(f"Conflict while trying to {action}: {exc}")
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ValueError):
        logger.error(f"Validation error while trying to {action}: {exc}")
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    logger.error(f"Error while trying to {action}: {exc}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {exc}"
    )
