"""Database models."""

from .base import Base, TimestampMixin
from .accounting import (
    ChartOfAccount,
    JournalEntry,
    Invoice,
    Receipt,
    CreditNote,
    BankAccount,
)
from .booking import Booking, BookingSupplierLine
from .reference import Currency, Employee, DocumentSequence
from .notification import Notification

__all__ = [
    "Base",
    "TimestampMixin",
    "ChartOfAccount",
    "JournalEntry",
    "Invoice",
    "Receipt",
    "CreditNote",
    "BankAccount",
    "Booking",
    "BookingSupplierLine",
    "Currency",
    "Employee",
    "DocumentSequence",
    "Notification",
]
