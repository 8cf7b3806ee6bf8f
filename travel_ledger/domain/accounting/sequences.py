"""Document number sequences backed by locked counter rows."""

import logging
from datetime import date

from sqlalchemy.orm import Session

from travel_ledger.core.config import get_settings
from travel_ledger.models.reference import DocumentSequence

logger = logging.getLogger(__name__)


def next_value(db: Session, name: str, period: str = "") -> int:
    """
    Hand out the next number of the (name, period) series.

    The counter row is locked until the caller's transaction ends, so two
    writers never receive the same value. A missing row starts the series at 1.
    """
    sequence = db.query(DocumentSequence).filter(
        DocumentSequence.name == name,
        DocumentSequence.period == period
    ).with_for_update().first()

    if not sequence:
        sequence = DocumentSequence(name=name, period=period, next_value=1)
        db.add(sequence)
        db.flush()
        logger.info(f"Started document sequence {name} for period '{period}'")

    value = sequence.next_value
    sequence.next_value = value + 1
    db.flush()
    return value


def _yearly_number(db: Session, prefix: str, on_date: date | None, width: int) -> str:
    year = str((on_date or date.today()).year)
    value = next_value(db, prefix, year)
    return f"{prefix}-{year}-{value:0{width}d}"


def next_journal_entry_number(db: Session) -> str:
    """``JE-000123``: one global series."""
    prefix = get_settings().journal_entry_prefix
    return f"{prefix}-{next_value(db, prefix):06d}"


def next_booking_number(db: Session, on_date: date | None = None) -> str:
    return _yearly_number(db, get_settings().booking_number_prefix, on_date, 6)


def next_refund_number(db: Session, on_date: date | None = None) -> str:
    return _yearly_number(db, get_settings().refund_number_prefix, on_date, 6)


def next_invoice_number(db: Session, on_date: date | None = None) -> str:
    return _yearly_number(db, get_settings().invoice_number_prefix, on_date, 6)


def next_receipt_number(db: Session, on_date: date | None = None) -> str:
    return _yearly_number(db, get_settings().receipt_number_prefix, on_date, 4)
