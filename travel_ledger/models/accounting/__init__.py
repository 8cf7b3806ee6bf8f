"""Accounting models."""

from .chart_of_accounts import ChartOfAccount
from .journal_entry import JournalEntry
from .ar import Invoice, Receipt, CreditNote, BankAccount

__all__ = [
    "ChartOfAccount",
    "JournalEntry",
    "Invoice",
    "Receipt",
    "CreditNote",
    "BankAccount",
]
