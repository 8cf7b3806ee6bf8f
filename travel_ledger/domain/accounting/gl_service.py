"""General Ledger service for journal entry operations.

Functions here only ``flush()``; the calling service owns the transaction and
commits once its whole sequence has succeeded.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from typing import Callable, Iterable, List, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from travel_ledger.core.config import get_settings
from travel_ledger.models.accounting import (
    ChartOfAccount,
    JournalEntry,
    Invoice,
    Receipt,
)
from travel_ledger.models.booking import Booking
from travel_ledger.domain.accounting.enums import (
    AccountType,
    CommissionRole,
    JournalStatus,
    PaymentMethod,
    SourceModule,
    TransactionType,
    BOOKING_TRANSACTION_TYPES,
)
from travel_ledger.domain.accounting import chart
from travel_ledger.domain.accounting.sequences import next_journal_entry_number
from travel_ledger.domain.booking.calculations import money, ZERO
from travel_ledger.domain.exceptions import (
    AccountNotConfiguredError,
    AccountHierarchyError,
    AlreadyPostedError,
    InvalidStateError,
    LedgerValidationError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


@dataclass
class PostingReport:
    """Outcome of generating a booking's entries."""
    created: List[JournalEntry] = field(default_factory=list)
    # (step, reason)
    skipped: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.skipped


@dataclass
class TrialBalance:
    total_debits: Decimal
    total_credits: Decimal

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


def signed_balance(account_type: AccountType, debit_balance: Decimal, credit_balance: Decimal) -> Decimal:
    """Balance in the account's normal direction."""
    if account_type.is_debit_normal:
        return money(debit_balance - credit_balance)
    return money(credit_balance - debit_balance)


def find_active_entries(
    db: Session,
    source_id: UUID,
    transaction_types: Iterable[TransactionType],
) -> List[JournalEntry]:
    """Entries of the source that still count: not reversed, not reversals."""
    types = [t for t in transaction_types if t != TransactionType.REVERSAL]
    return db.query(JournalEntry).filter(
        JournalEntry.source_id == source_id,
        JournalEntry.transaction_type.in_(types),
        JournalEntry.reversed_by_id.is_(None)
    ).order_by(JournalEntry.entry_number).all()


def has_active_entry(db: Session, source_id: UUID, transaction_type: TransactionType) -> bool:
    return bool(find_active_entries(db, source_id, [transaction_type]))


def create_journal_entry(
    db: Session,
    entry_date: date,
    description: str,
    debit_account: ChartOfAccount,
    credit_account: ChartOfAccount,
    amount: Decimal,
    transaction_type: TransactionType,
    source_module: SourceModule,
    source_id: UUID | None,
    reference: str | None = None,
    created_by: UUID | None = None,
    reverses_entry_id: UUID | None = None,
    post: bool = True,
) -> JournalEntry:
    """
    Create a journal entry and, by default, post it.

    Args:
        db: Database session
        entry_date: Journal entry date
        description: Entry description
        debit_account: Account receiving the debit
        credit_account: Account receiving the credit
        amount: Non-negative amount in base currency
        transaction_type: Business event recorded
        source_module: Document kind the entry belongs to
        source_id: ID of the booking, invoice or receipt
        reference: Optional document number shown with the entry
        created_by: Acting user
        reverses_entry_id: Entry compensated by this one, for REVERSAL entries
        post: Post immediately (DRAFT otherwise)

    Returns:
        Created JournalEntry instance

    Raises:
        LedgerValidationError: If the amount is negative or both sides are the same account
    """
    amount = money(amount)
    if amount < ZERO:
        raise LedgerValidationError(f"Journal entry amount must not be negative: {amount}")
    if debit_account.id == credit_account.id:
        raise LedgerValidationError(
            f"Journal entry debits and credits the same account {debit_account.code}"
        )

    entry = JournalEntry(
        entry_number=next_journal_entry_number(db),
        date=entry_date,
        description=description,
        reference=reference,
        debit_account_id=debit_account.id,
        credit_account_id=credit_account.id,
        amount=amount,
        transaction_type=transaction_type,
        source_module=source_module,
        source_id=source_id,
        status=JournalStatus.DRAFT,
        reverses_entry_id=reverses_entry_id,
        created_by=created_by,
    )
    db.add(entry)
    db.flush()

    logger.info(
        f"Created journal entry {entry.entry_number} {transaction_type.value} "
        f"Dr {debit_account.code} / Cr {credit_account.code} {amount}"
    )

    if post:
        post_journal_entry(db, entry.id)
    return entry


def _apply_side(account: ChartOfAccount, amount: Decimal, is_debit: bool) -> None:
    if is_debit:
        account.debit_balance = money(Decimal(account.debit_balance or 0) + amount)
    else:
        account.credit_balance = money(Decimal(account.credit_balance or 0) + amount)
    account.balance = signed_balance(
        account.account_type,
        Decimal(account.debit_balance),
        Decimal(account.credit_balance),
    )


def post_journal_entry(db: Session, entry_id: UUID) -> JournalEntry:
    """
    Post a DRAFT entry: update both accounts, then every ancestor.

    Raises:
        NotFoundError: If the entry or one of its accounts does not exist
        AlreadyPostedError: If the entry is already POSTED (balances untouched)
    """
    entry = db.query(JournalEntry).filter(
        JournalEntry.id == entry_id
    ).with_for_update().first()
    if not entry:
        raise NotFoundError("Journal entry", entry_id)

    if entry.status == JournalStatus.POSTED:
        logger.warning(f"Journal entry {entry.entry_number} already posted, balances unchanged")
        raise AlreadyPostedError(entry.entry_number)

    debit_account = db.query(ChartOfAccount).filter(
        ChartOfAccount.id == entry.debit_account_id
    ).with_for_update().first()
    credit_account = db.query(ChartOfAccount).filter(
        ChartOfAccount.id == entry.credit_account_id
    ).with_for_update().first()
    if not debit_account:
        raise NotFoundError("Account", entry.debit_account_id)
    if not credit_account:
        raise NotFoundError("Account", entry.credit_account_id)

    amount = money(entry.amount)
    _apply_side(debit_account, amount, is_debit=True)
    _apply_side(credit_account, amount, is_debit=False)

    entry.status = JournalStatus.POSTED
    entry.posted_at = datetime.utcnow()
    db.flush()

    recompute_ancestors(db, debit_account)
    recompute_ancestors(db, credit_account)

    return entry


def recompute_ancestors(db: Session, account: ChartOfAccount) -> int:
    """
    Recompute every ancestor of ``account`` from its direct children.

    The walk is bounded by ``account_hierarchy_max_depth`` and tracks visited
    accounts, so a corrupted parent chain fails instead of looping.

    Returns:
        Number of ancestors updated

    Raises:
        AccountHierarchyError: On a cycle or a chain deeper than allowed
    """
    max_depth = get_settings().account_hierarchy_max_depth
    visited = {account.id}
    parent_id = account.parent_id
    updated = 0

    while parent_id is not None:
        if parent_id in visited:
            raise AccountHierarchyError(f"Cycle in account hierarchy above {account.code}")
        if updated >= max_depth:
            raise AccountHierarchyError(
                f"Account hierarchy above {account.code} exceeds {max_depth} levels"
            )
        visited.add(parent_id)

        parent = db.query(ChartOfAccount).filter(
            ChartOfAccount.id == parent_id
        ).with_for_update().first()
        if not parent:
            break

        children = db.query(ChartOfAccount).filter(ChartOfAccount.parent_id == parent.id).all()
        debit_total = sum((Decimal(child.debit_balance or 0) for child in children), ZERO)
        credit_total = sum((Decimal(child.credit_balance or 0) for child in children), ZERO)

        parent.debit_balance = money(debit_total)
        parent.credit_balance = money(credit_total)
        parent.balance = signed_balance(parent.account_type, parent.debit_balance, parent.credit_balance)
        db.flush()

        updated += 1
        parent_id = parent.parent_id

    return updated


def reverse_journal_entry(
    db: Session,
    entry: JournalEntry,
    description: str | None = None,
    created_by: UUID | None = None,
) -> JournalEntry:
    """
    Compensate a posted entry with a REVERSAL entry (accounts swapped).

    The original entry is kept and linked to its reversal.

    Raises:
        InvalidStateError: If the entry is not posted, already reversed, or a reversal itself
    """
    if entry.status != JournalStatus.POSTED:
        raise InvalidStateError(
            f"Journal entry {entry.entry_number} is not posted", entry.status
        )
    if entry.reversed_by_id is not None:
        raise InvalidStateError(f"Journal entry {entry.entry_number} is already reversed")
    if entry.transaction_type == TransactionType.REVERSAL:
        raise InvalidStateError(f"Journal entry {entry.entry_number} is a reversal")

    reversal = create_journal_entry(
        db=db,
        entry_date=date.today(),
        description=description or f"Reversal of {entry.entry_number}",
        debit_account=entry.credit_account,
        credit_account=entry.debit_account,
        amount=entry.amount,
        transaction_type=TransactionType.REVERSAL,
        source_module=entry.source_module,
        source_id=entry.source_id,
        reference=entry.entry_number,
        created_by=created_by,
        reverses_entry_id=entry.id,
    )
    entry.reversed_by_id = reversal.id
    db.flush()
    return reversal


def reverse_source_entries(
    db: Session,
    source_id: UUID,
    transaction_types: Iterable[TransactionType],
    created_by: UUID | None = None,
) -> List[JournalEntry]:
    """Reverse every active entry of a source with one of the given types."""
    reversals = []
    for entry in find_active_entries(db, source_id, transaction_types):
        if entry.status != JournalStatus.POSTED:
            continue
        reversals.append(reverse_journal_entry(db, entry, created_by=created_by))
    if reversals:
        logger.info(f"Reversed {len(reversals)} journal entries for source {source_id}")
    return reversals


def _booking_entry(
    db: Session,
    booking: Booking,
    description: str,
    debit_account: ChartOfAccount,
    credit_account: ChartOfAccount,
    amount: Decimal,
    transaction_type: TransactionType,
    created_by: UUID | None,
) -> JournalEntry:
    # Negative figures (loss-making bookings) post with the sides swapped
    if amount < ZERO:
        debit_account, credit_account = credit_account, debit_account
        amount = -amount
    return create_journal_entry(
        db=db,
        entry_date=booking.booking_date,
        description=description,
        debit_account=debit_account,
        credit_account=credit_account,
        amount=amount,
        transaction_type=transaction_type,
        source_module=SourceModule.BOOKING,
        source_id=booking.id,
        reference=booking.booking_number,
        created_by=created_by,
    )


def create_cost_entries(
    db: Session,
    booking: Booking,
    created_by: UUID | None = None,
) -> List[JournalEntry]:
    """
    Post supplier costs: one entry for the primary supplier, one per supplier line.

    Posting rules:
    - Debit service-type cost account (51xx)
    - Credit Suppliers - Trade Payables (2111)
    """
    if has_active_entry(db, booking.id, TransactionType.BOOKING_COST):
        logger.info(f"Cost entries already exist for booking {booking.booking_number}")
        return []

    cost_account = chart.require_account(
        db, chart.cost_account_code(booking.service_type), f"{booking.service_type.value} cost"
    )
    payables_account = chart.require_account(db, chart.SUPPLIERS_PAYABLE, "supplier payables")

    entries = []
    primary_cost = money(booking.cost_in_base or 0)
    if primary_cost != ZERO:
        entries.append(_booking_entry(
            db, booking,
            f"Supplier cost - {booking.booking_number}",
            cost_account, payables_account, primary_cost,
            TransactionType.BOOKING_COST, created_by,
        ))

    for index, line in enumerate(booking.supplier_lines, start=1):
        line_cost = money(line.cost_in_base or 0)
        if line_cost == ZERO:
            continue
        label = line.description or f"supplier line {index}"
        entries.append(_booking_entry(
            db, booking,
            f"Supplier cost - {booking.booking_number} ({label})",
            cost_account, payables_account, line_cost,
            TransactionType.BOOKING_COST, created_by,
        ))

    return entries


def create_revenue_entry(
    db: Session,
    booking: Booking,
    created_by: UUID | None = None,
) -> JournalEntry | None:
    """
    Post booking revenue net of VAT.

    Posting rules:
    - Debit Accounts Receivable (1121)
    - Credit service-type revenue account (41xx)
    """
    amount = money(booking.net_before_vat or 0)
    if amount <= ZERO:
        logger.info(f"No revenue to post for booking {booking.booking_number}")
        return None
    if has_active_entry(db, booking.id, TransactionType.BOOKING_REVENUE):
        logger.info(f"Revenue entry already exists for booking {booking.booking_number}")
        return None

    receivable_account = chart.require_account(db, chart.ACCOUNTS_RECEIVABLE, "accounts receivable")
    revenue_account = chart.require_account(
        db, chart.revenue_account_code(booking.service_type), f"{booking.service_type.value} revenue"
    )
    return _booking_entry(
        db, booking,
        f"Revenue - {booking.booking_number}",
        receivable_account, revenue_account, amount,
        TransactionType.BOOKING_REVENUE, created_by,
    )


def create_vat_entry(
    db: Session,
    booking: Booking,
    created_by: UUID | None = None,
) -> JournalEntry | None:
    """
    Post VAT payable for the booking.

    Posting rules:
    - Debit Accounts Receivable (1121)
    - Credit VAT Payable (2121)
    """
    amount = money(booking.vat_amount or 0)
    if amount <= ZERO:
        return None

    transaction_type = (
        TransactionType.BOOKING_VAT_UAE if booking.is_uae_booking
        else TransactionType.BOOKING_VAT_NON_UAE
    )
    if has_active_entry(db, booking.id, transaction_type):
        logger.info(f"VAT entry already exists for booking {booking.booking_number}")
        return None

    receivable_account = chart.require_account(db, chart.ACCOUNTS_RECEIVABLE, "accounts receivable")
    vat_account = chart.require_account(db, chart.VAT_PAYABLE, "VAT payable")
    return _booking_entry(
        db, booking,
        f"VAT - {booking.booking_number}",
        receivable_account, vat_account, amount,
        transaction_type, created_by,
    )


def create_commission_entry(
    db: Session,
    booking: Booking,
    role: CommissionRole,
    created_by: UUID | None = None,
) -> JournalEntry | None:
    """
    Post one employee commission.

    Posting rules:
    - Debit Employee Commissions (6120)
    - Credit Commissions Payable (2132)
    """
    if role == CommissionRole.AGENT:
        amount = money(booking.agent_commission_amount or 0)
        transaction_type = TransactionType.COMMISSION_AGENT
        label = "Agent commission"
    else:
        amount = money(booking.cs_commission_amount or 0)
        transaction_type = TransactionType.COMMISSION_CS
        label = "Customer service commission"

    if amount == ZERO:
        return None
    if has_active_entry(db, booking.id, transaction_type):
        logger.info(f"{label} entry already exists for booking {booking.booking_number}")
        return None

    expense_account = chart.require_account(db, chart.EMPLOYEE_COMMISSIONS, "employee commissions")
    payable_account = chart.require_account(db, chart.COMMISSIONS_PAYABLE, "commissions payable")
    return _booking_entry(
        db, booking,
        f"{label} - {booking.booking_number}",
        expense_account, payable_account, amount,
        transaction_type, created_by,
    )


def generate_booking_entries(
    db: Session,
    booking: Booking,
    created_by: UUID | None = None,
) -> PostingReport:
    """
    Post cost, revenue, VAT and commission entries for a booking.

    Each step is guarded on its own: a missing account skips that step, is
    logged and recorded in the report, and the remaining steps still run.
    With ``ledger_strict_accounts`` the missing account is raised instead.
    """
    strict = get_settings().ledger_strict_accounts
    report = PostingReport()

    steps: List[Tuple[str, Callable[[], object]]] = [
        ("cost", lambda: create_cost_entries(db, booking, created_by)),
        ("revenue", lambda: create_revenue_entry(db, booking, created_by)),
        ("vat", lambda: create_vat_entry(db, booking, created_by)),
        ("agent_commission", lambda: create_commission_entry(db, booking, CommissionRole.AGENT, created_by)),
        ("cs_commission", lambda: create_commission_entry(db, booking, CommissionRole.CS, created_by)),
    ]

    for name, step in steps:
        try:
            result = step()
        except AccountNotConfiguredError as e:
            if strict:
                raise
            logger.error(f"Skipped {name} entry for booking {booking.booking_number}: {e}")
            report.skipped.append((name, str(e)))
            continue

        if isinstance(result, list):
            report.created.extend(result)
        elif result is not None:
            report.created.append(result)

    logger.info(
        f"Generated {len(report.created)} journal entries for booking {booking.booking_number}"
        + (f", skipped {[name for name, _ in report.skipped]}" if report.skipped else "")
    )
    return report


def regenerate_booking_entries(
    db: Session,
    booking: Booking,
    created_by: UUID | None = None,
) -> PostingReport:
    """Reverse the booking's active entries and post fresh ones from its current figures."""
    reverse_source_entries(db, booking.id, BOOKING_TRANSACTION_TYPES, created_by)
    return generate_booking_entries(db, booking, created_by)


def create_invoice_entries(
    db: Session,
    invoice: Invoice,
    created_by: UUID | None = None,
) -> List[JournalEntry]:
    """
    Post revenue and VAT from an invoice.

    Only used for bookings without an active booking revenue entry, so revenue
    is never recognised twice.
    """
    if has_active_entry(db, invoice.booking_id, TransactionType.BOOKING_REVENUE):
        return []

    booking = invoice.booking
    entries = []
    receivable_account = chart.require_account(db, chart.ACCOUNTS_RECEIVABLE, "accounts receivable")

    subtotal = money(invoice.subtotal or 0)
    if subtotal > ZERO and not has_active_entry(db, invoice.id, TransactionType.INVOICE_REVENUE):
        revenue_account = chart.require_account(
            db, chart.revenue_account_code(booking.service_type), f"{booking.service_type.value} revenue"
        )
        entries.append(create_journal_entry(
            db=db,
            entry_date=invoice.invoice_date,
            description=f"Invoice revenue - {invoice.invoice_number}",
            debit_account=receivable_account,
            credit_account=revenue_account,
            amount=subtotal,
            transaction_type=TransactionType.INVOICE_REVENUE,
            source_module=SourceModule.INVOICE,
            source_id=invoice.id,
            reference=invoice.invoice_number,
            created_by=created_by,
        ))

    vat_amount = money(invoice.vat_amount or 0)
    vat_type = (
        TransactionType.INVOICE_VAT_UAE if booking.is_uae_booking
        else TransactionType.INVOICE_VAT_NON_UAE
    )
    if vat_amount > ZERO and not has_active_entry(db, invoice.id, vat_type):
        vat_account = chart.require_account(db, chart.VAT_PAYABLE, "VAT payable")
        entries.append(create_journal_entry(
            db=db,
            entry_date=invoice.invoice_date,
            description=f"Invoice VAT - {invoice.invoice_number}",
            debit_account=receivable_account,
            credit_account=vat_account,
            amount=vat_amount,
            transaction_type=vat_type,
            source_module=SourceModule.INVOICE,
            source_id=invoice.id,
            reference=invoice.invoice_number,
            created_by=created_by,
        ))

    return entries


def receipt_cash_account_code(receipt: Receipt) -> str:
    if receipt.payment_method == PaymentMethod.CASH:
        return chart.CASH_ON_HAND_AED
    if receipt.bank_account and (receipt.bank_account.currency or "").upper() == "USD":
        return chart.BANK_USD
    return chart.BANK_MAIN_AED


def create_receipt_entry(
    db: Session,
    receipt: Receipt,
    created_by: UUID | None = None,
) -> JournalEntry | None:
    """
    Post a customer payment.

    Posting rules:
    - Debit Cash on Hand (1111) for cash, Bank USD (1115) for a USD bank
      account, Bank Main (1114) otherwise
    - Credit Accounts Receivable (1121)
    """
    if has_active_entry(db, receipt.id, TransactionType.RECEIPT_PAYMENT):
        logger.info(f"Receipt {receipt.receipt_number} already has a payment entry")
        return None

    cash_account = chart.require_account(db, receipt_cash_account_code(receipt), "receipt cash/bank")
    receivable_account = chart.require_account(db, chart.ACCOUNTS_RECEIVABLE, "accounts receivable")

    return create_journal_entry(
        db=db,
        entry_date=receipt.receipt_date,
        description=f"Customer payment - {receipt.receipt_number}",
        debit_account=cash_account,
        credit_account=receivable_account,
        amount=receipt.amount,
        transaction_type=TransactionType.RECEIPT_PAYMENT,
        source_module=SourceModule.RECEIPT,
        source_id=receipt.id,
        reference=receipt.receipt_number,
        created_by=created_by,
    )


def create_refund_entries(
    db: Session,
    booking: Booking,
    created_by: UUID | None = None,
) -> List[JournalEntry]:
    """
    Post the mirror of a cancelled booking's revenue, VAT, cost and commissions.

    Each entry swaps the accounts of the original posting and uses the
    absolute original amount. Zero components are skipped.
    """
    revenue_code = chart.revenue_account_code(booking.service_type)
    cost_code = chart.cost_account_code(booking.service_type)

    # (type, amount, debit code, credit code, label)
    components = [
        (TransactionType.REFUND_REVENUE, booking.net_before_vat,
         revenue_code, chart.ACCOUNTS_RECEIVABLE, "Refund revenue"),
        (TransactionType.REFUND_VAT, booking.vat_amount,
         chart.VAT_PAYABLE, chart.ACCOUNTS_RECEIVABLE, "Refund VAT"),
        (TransactionType.REFUND_COST, booking.total_cost_in_base,
         chart.SUPPLIERS_PAYABLE, cost_code, "Refund supplier cost"),
        (TransactionType.REFUND_COMMISSION_AGENT, booking.agent_commission_amount,
         chart.COMMISSIONS_PAYABLE, chart.EMPLOYEE_COMMISSIONS, "Refund agent commission"),
        (TransactionType.REFUND_COMMISSION_CS, booking.cs_commission_amount,
         chart.COMMISSIONS_PAYABLE, chart.EMPLOYEE_COMMISSIONS, "Refund customer service commission"),
    ]

    entries = []
    for transaction_type, amount, debit_code, credit_code, label in components:
        amount = money(amount or 0)
        if amount == ZERO:
            continue
        # Negative margin VAT is never posted by create_vat_entry
        if transaction_type == TransactionType.REFUND_VAT and amount < ZERO:
            continue
        if has_active_entry(db, booking.id, transaction_type):
            continue
        if amount < ZERO:
            debit_code, credit_code = credit_code, debit_code
        debit_account = chart.require_account(db, debit_code, label)
        credit_account = chart.require_account(db, credit_code, label)
        entries.append(create_journal_entry(
            db=db,
            entry_date=date.today(),
            description=f"{label} - {booking.booking_number}",
            debit_account=debit_account,
            credit_account=credit_account,
            amount=abs(amount),
            transaction_type=transaction_type,
            source_module=SourceModule.BOOKING,
            source_id=booking.id,
            reference=booking.booking_number,
            created_by=created_by,
        ))

    logger.info(f"Created {len(entries)} refund entries for booking {booking.booking_number}")
    return entries


def trial_balance(db: Session) -> TrialBalance:
    """Total debit and credit balances over leaf accounts."""
    accounts = db.query(ChartOfAccount).all()
    parent_ids = {account.parent_id for account in accounts if account.parent_id is not None}

    total_debits = ZERO
    total_credits = ZERO
    for account in accounts:
        if account.id in parent_ids:
            continue
        total_debits += Decimal(account.debit_balance or 0)
        total_credits += Decimal(account.credit_balance or 0)

    return TrialBalance(total_debits=money(total_debits), total_credits=money(total_credits))
