"""Accounting domain enums."""

from enum import Enum as PyEnum


class AccountType(str, PyEnum):
    """Chart of Accounts account types."""
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @property
    def is_debit_normal(self) -> bool:
        """Assets and expenses grow on the debit side."""
        return self in (AccountType.ASSET, AccountType.EXPENSE)


class SourceModule(str, PyEnum):
    """Business document a journal entry belongs to."""
    BOOKING = "booking"
    INVOICE = "invoice"
    RECEIPT = "receipt"
    MANUAL = "manual"


class JournalStatus(str, PyEnum):
    """Journal entry status."""
    DRAFT = "draft"
    POSTED = "posted"


class TransactionType(str, PyEnum):
    """Business event recorded by a journal entry."""
    BOOKING_COST = "booking_cost"
    BOOKING_REVENUE = "booking_revenue"
    BOOKING_VAT_UAE = "booking_vat_uae"
    BOOKING_VAT_NON_UAE = "booking_vat_non_uae"
    INVOICE_REVENUE = "invoice_revenue"
    INVOICE_VAT_UAE = "invoice_vat_uae"
    INVOICE_VAT_NON_UAE = "invoice_vat_non_uae"
    COMMISSION_AGENT = "commission_agent"
    COMMISSION_CS = "commission_cs"
    RECEIPT_PAYMENT = "receipt_payment"
    REFUND_REVENUE = "refund_revenue"
    REFUND_VAT = "refund_vat"
    REFUND_COST = "refund_cost"
    REFUND_COMMISSION_AGENT = "refund_commission_agent"
    REFUND_COMMISSION_CS = "refund_commission_cs"
    REVERSAL = "reversal"


# Entry types regenerated from a booking's figures
BOOKING_TRANSACTION_TYPES = (
    TransactionType.BOOKING_COST,
    TransactionType.BOOKING_REVENUE,
    TransactionType.BOOKING_VAT_UAE,
    TransactionType.BOOKING_VAT_NON_UAE,
    TransactionType.COMMISSION_AGENT,
    TransactionType.COMMISSION_CS,
)

INVOICE_TRANSACTION_TYPES = (
    TransactionType.INVOICE_REVENUE,
    TransactionType.INVOICE_VAT_UAE,
    TransactionType.INVOICE_VAT_NON_UAE,
)

REFUND_TRANSACTION_TYPES = (
    TransactionType.REFUND_REVENUE,
    TransactionType.REFUND_VAT,
    TransactionType.REFUND_COST,
    TransactionType.REFUND_COMMISSION_AGENT,
    TransactionType.REFUND_COMMISSION_CS,
)


class CommissionRole(str, PyEnum):
    """Employee role a commission is paid to."""
    AGENT = "agent"  # Booking agent
    CS = "cs"  # Customer service


class InvoiceStatus(str, PyEnum):
    """Invoice payment status."""
    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    CANCELLED = "cancelled"


class ReceiptStatus(str, PyEnum):
    """Receipt status."""
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, PyEnum):
    """How a receipt was paid."""
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    CHEQUE = "cheque"
