"""Domain error taxonomy.

Validation errors subclass ``ValueError`` and lookups subclass ``LookupError``
so callers that only know the builtin types keep working.
"""

from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """Base class for every error raised by the financial core."""


class NotFoundError(LedgerError, LookupError):
    """A booking, invoice, receipt, entry or account does not exist."""

    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found")


class LedgerValidationError(LedgerError, ValueError):
    """A request conflicts with the current financial state."""


class OverpaymentError(LedgerValidationError):
    """Receipt amount exceeds the invoice's remaining balance."""

    def __init__(
        self,
        invoice_number: str,
        amount: Decimal,
        remaining: Decimal,
        invoice_total: Decimal,
        already_paid: Decimal,
    ):
        self.invoice_number = invoice_number
        self.amount = amount
        self.remaining = remaining
        self.invoice_total = invoice_total
        self.already_paid = already_paid
        super().__init__(
            f"Receipt amount ({amount}) exceeds remaining invoice balance ({remaining:.2f}). "
            f"Invoice {invoice_number} total: {invoice_total}, already paid: {already_paid:.2f}"
        )


class InvoiceFullyPaidError(LedgerValidationError):
    """Invoice has no remaining balance to receive against."""

    def __init__(self, invoice_number: str, invoice_total: Decimal, already_paid: Decimal):
        self.invoice_number = invoice_number
        self.invoice_total = invoice_total
        self.already_paid = already_paid
        super().__init__(
            f"Invoice {invoice_number} is already fully paid. "
            f"Total: {invoice_total}, Already Paid: {already_paid}"
        )


class AlreadyPostedError(LedgerValidationError):
    """Journal entry was posted before; balances were left untouched."""

    def __init__(self, entry_number: str):
        self.entry_number = entry_number
        super().__init__(f"Journal entry {entry_number} is already posted")


class InvalidStateError(LedgerValidationError):
    """Operation is not allowed in the document's current status."""

    def __init__(self, message: str, current_status: Any = None):
        self.current_status = current_status
        super().__init__(message)


class DuplicateInvoiceError(LedgerValidationError):
    """A booking can carry a single invoice."""

    def __init__(self, booking_number: str, invoice_number: str):
        self.booking_number = booking_number
        self.invoice_number = invoice_number
        super().__init__(
            f"Invoice {invoice_number} already exists for booking {booking_number}"
        )


class AccountNotConfiguredError(LedgerError):
    """Chart of accounts lacks an account the posting rules need."""

    def __init__(self, code: str, purpose: str = ""):
        self.code = code
        self.purpose = purpose
        label = f" ({purpose})" if purpose else ""
        super().__init__(f"Account {code}{label} is not configured in the chart of accounts")


class AccountHierarchyError(LedgerError):
    """Account parent chain is cyclic or deeper than allowed."""


class ExchangeRateUnavailableError(LedgerError):
    """No exchange rate to the base currency is known for a currency."""

    def __init__(self, currency_code: str):
        self.currency_code = currency_code
        super().__init__(f"No exchange rate to base currency for {currency_code}")
