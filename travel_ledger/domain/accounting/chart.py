"""Chart of accounts lookups, hierarchy guard and default travel chart."""

import logging
from typing import List, Tuple

from sqlalchemy.orm import Session

from travel_ledger.core.config import get_settings
from travel_ledger.models.accounting import ChartOfAccount
from travel_ledger.domain.accounting.enums import AccountType
from travel_ledger.domain.booking.enums import ServiceType
from travel_ledger.domain.exceptions import AccountNotConfiguredError, AccountHierarchyError

logger = logging.getLogger(__name__)


# Fixed posting accounts
CASH_ON_HAND_AED = "1111"
BANK_MAIN_AED = "1114"
BANK_USD = "1115"
ACCOUNTS_RECEIVABLE = "1121"
SUPPLIERS_PAYABLE = "2111"
VAT_PAYABLE = "2121"
COMMISSIONS_PAYABLE = "2132"
EMPLOYEE_COMMISSIONS = "6120"

DEFAULT_REVENUE_ACCOUNT = "4180"
DEFAULT_COST_ACCOUNT = "5180"

REVENUE_ACCOUNT_BY_SERVICE = {
    ServiceType.FLIGHT: "4110",
    ServiceType.HOTEL: "4120",
    ServiceType.VISA: "4130",
    ServiceType.TRANSFER: "4140",
    ServiceType.RENTAL_CAR: "4150",
    ServiceType.CRUISE: "4160",
    ServiceType.TRAIN: "4170",
    ServiceType.ACTIVITY: "4180",
    ServiceType.PACKAGE: "4160",
    ServiceType.UMRAH: "4180",
}

COST_ACCOUNT_BY_SERVICE = {
    ServiceType.FLIGHT: "5110",
    ServiceType.HOTEL: "5120",
    ServiceType.VISA: "5130",
    ServiceType.TRANSFER: "5140",
    ServiceType.RENTAL_CAR: "5150",
    ServiceType.CRUISE: "5160",
    ServiceType.TRAIN: "5170",
    ServiceType.ACTIVITY: "5180",
    ServiceType.PACKAGE: "5160",
    ServiceType.UMRAH: "5180",
}


def revenue_account_code(service_type: ServiceType) -> str:
    return REVENUE_ACCOUNT_BY_SERVICE.get(service_type, DEFAULT_REVENUE_ACCOUNT)


def cost_account_code(service_type: ServiceType) -> str:
    return COST_ACCOUNT_BY_SERVICE.get(service_type, DEFAULT_COST_ACCOUNT)


def find_account_by_code(
    db: Session,
    code: str,
    for_update: bool = False,
) -> ChartOfAccount | None:
    """Return the active account with ``code``, or None.

    ``for_update`` takes a row lock, used by posting before balances change.
    """
    query = db.query(ChartOfAccount).filter(
        ChartOfAccount.code == code,
        ChartOfAccount.is_active == True
    )
    if for_update:
        query = query.with_for_update()
    return query.first()


def require_account(
    db: Session,
    code: str,
    purpose: str = "",
    for_update: bool = False,
) -> ChartOfAccount:
    """Like ``find_account_by_code`` but raises ``AccountNotConfiguredError``."""
    account = find_account_by_code(db, code, for_update=for_update)
    if not account:
        raise AccountNotConfiguredError(code, purpose)
    return account


def set_account_parent(
    db: Session,
    account: ChartOfAccount,
    parent: ChartOfAccount | None,
) -> ChartOfAccount:
    """
    Attach ``account`` under ``parent`` after checking the tree stays acyclic.

    Args:
        db: Database session
        account: Account being moved
        parent: New parent, or None to make the account a root

    Returns:
        The updated account (flushed, not committed)

    Raises:
        AccountHierarchyError: If the move would create a cycle or exceed the
            configured maximum depth
    """
    if parent is None:
        account.parent = None
        db.flush()
        return account

    max_depth = get_settings().account_hierarchy_max_depth
    node = parent
    depth = 0
    while node is not None:
        if node.id == account.id:
            raise AccountHierarchyError(
                f"Setting {parent.code} as parent of {account.code} would create a cycle"
            )
        depth += 1
        if depth > max_depth:
            raise AccountHierarchyError(
                f"Account hierarchy above {parent.code} exceeds {max_depth} levels"
            )
        node = node.parent

    account.parent = parent
    db.flush()
    return account


# (code, name, type, parent code)
DEFAULT_CHART: List[Tuple[str, str, AccountType, str | None]] = [
    ("1000", "Assets", AccountType.ASSET, None),
    ("1100", "Current Assets", AccountType.ASSET, "1000"),
    ("1110", "Cash and Bank", AccountType.ASSET, "1100"),
    ("1111", "Cash on Hand - AED", AccountType.ASSET, "1110"),
    ("1112", "Cash on Hand - USD", AccountType.ASSET, "1110"),
    ("1113", "Cash on Hand - EUR", AccountType.ASSET, "1110"),
    ("1114", "Bank Account - Main AED", AccountType.ASSET, "1110"),
    ("1115", "Bank Account - USD", AccountType.ASSET, "1110"),
    ("1120", "Accounts Receivable", AccountType.ASSET, "1100"),
    ("1121", "Customers - Trade Receivables", AccountType.ASSET, "1120"),
    ("1122", "Allowance for Doubtful Debts", AccountType.ASSET, "1120"),
    ("1140", "Other Current Assets", AccountType.ASSET, "1100"),
    ("1141", "VAT Receivable", AccountType.ASSET, "1140"),
    ("1142", "Employee Advances", AccountType.ASSET, "1140"),

    ("2000", "Liabilities", AccountType.LIABILITY, None),
    ("2100", "Current Liabilities", AccountType.LIABILITY, "2000"),
    ("2110", "Accounts Payable", AccountType.LIABILITY, "2100"),
    ("2111", "Suppliers - Trade Payables", AccountType.LIABILITY, "2110"),
    ("2120", "Taxes Payable", AccountType.LIABILITY, "2100"),
    ("2121", "VAT Payable", AccountType.LIABILITY, "2120"),
    ("2130", "Accrued Expenses", AccountType.LIABILITY, "2100"),
    ("2131", "Salaries Payable", AccountType.LIABILITY, "2130"),
    ("2132", "Commissions Payable", AccountType.LIABILITY, "2130"),
    ("2140", "Customer Deposits", AccountType.LIABILITY, "2100"),

    ("3000", "Equity", AccountType.EQUITY, None),
    ("3100", "Capital", AccountType.EQUITY, "3000"),
    ("3200", "Retained Earnings", AccountType.EQUITY, "3000"),

    ("4000", "Revenue", AccountType.REVENUE, None),
    ("4100", "Travel Services Revenue", AccountType.REVENUE, "4000"),
    ("4110", "Flight Booking Revenue", AccountType.REVENUE, "4100"),
    ("4120", "Hotel Booking Revenue", AccountType.REVENUE, "4100"),
    ("4130", "Visa Services Revenue", AccountType.REVENUE, "4100"),
    ("4140", "Transfer Services Revenue", AccountType.REVENUE, "4100"),
    ("4150", "Car Rental Revenue", AccountType.REVENUE, "4100"),
    ("4160", "Cruise and Package Revenue", AccountType.REVENUE, "4100"),
    ("4170", "Train Tickets Revenue", AccountType.REVENUE, "4100"),
    ("4180", "Other Services Revenue", AccountType.REVENUE, "4100"),

    ("5000", "Cost of Services", AccountType.EXPENSE, None),
    ("5100", "Supplier Costs", AccountType.EXPENSE, "5000"),
    ("5110", "Flight Ticket Costs", AccountType.EXPENSE, "5100"),
    ("5120", "Hotel Accommodation Costs", AccountType.EXPENSE, "5100"),
    ("5130", "Visa Processing Costs", AccountType.EXPENSE, "5100"),
    ("5140", "Transfer Service Costs", AccountType.EXPENSE, "5100"),
    ("5150", "Car Rental Costs", AccountType.EXPENSE, "5100"),
    ("5160", "Cruise and Package Costs", AccountType.EXPENSE, "5100"),
    ("5170", "Train Tickets Costs", AccountType.EXPENSE, "5100"),
    ("5180", "Other Services Costs", AccountType.EXPENSE, "5100"),

    ("6000", "Operating Expenses", AccountType.EXPENSE, None),
    ("6100", "Employee Expenses", AccountType.EXPENSE, "6000"),
    ("6110", "Salaries and Wages", AccountType.EXPENSE, "6100"),
    ("6120", "Employee Commissions", AccountType.EXPENSE, "6100"),
    ("6900", "Other Expenses", AccountType.EXPENSE, "6000"),
    ("6910", "Foreign Exchange Loss", AccountType.EXPENSE, "6900"),
    ("6920", "Bad Debt Expense", AccountType.EXPENSE, "6900"),
]


def seed_chart_of_accounts(db: Session) -> int:
    """
    Create the default travel chart of accounts.

    Existing codes are left untouched, so the seed can run on every startup.

    Returns:
        Number of accounts created
    """
    existing = {account.code: account for account in db.query(ChartOfAccount).all()}
    created = 0

    for code, name, account_type, _ in DEFAULT_CHART:
        if code in existing:
            continue
        account = ChartOfAccount(code=code, name=name, account_type=account_type)
        db.add(account)
        existing[code] = account
        created += 1
    db.flush()

    # Parents in a second pass so ordering of DEFAULT_CHART does not matter
    for code, _, _, parent_code in DEFAULT_CHART:
        account = existing[code]
        if parent_code and account.parent_id is None:
            set_account_parent(db, account, existing[parent_code])

    db.commit()
    if created:
        logger.info(f"Seeded {created} chart of accounts entries")
    return created
