"""Accounting domain module."""

from .enums import (
    AccountType,
    SourceModule,
    JournalStatus,
    TransactionType,
    CommissionRole,
    InvoiceStatus,
    ReceiptStatus,
    PaymentMethod,
)

__all__ = [
    "AccountType",
    "SourceModule",
    "JournalStatus",
    "TransactionType",
    "CommissionRole",
    "InvoiceStatus",
    "ReceiptStatus",
    "PaymentMethod",
]
