"""Ledger schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from travel_ledger.domain.accounting.enums import (
    AccountType,
    JournalStatus,
    SourceModule,
    TransactionType,
)


class AccountResponse(BaseModel):
    id: UUID
    code: str
    name: str
    account_type: AccountType
    parent_id: Optional[UUID] = None
    is_active: bool
    debit_balance: Decimal
    credit_balance: Decimal
    balance: Decimal

    class Config:
        from_attributes = True


class JournalEntryResponse(BaseModel):
    """Schema for journal entry response."""
    id: UUID
    entry_number: str
    date: date
    description: Optional[str] = None
    reference: Optional[str] = None
    debit_account_id: UUID
    credit_account_id: UUID
    amount: Decimal
    transaction_type: TransactionType
    source_module: SourceModule
    source_id: Optional[UUID] = None
    status: JournalStatus
    posted_at: Optional[datetime] = None
    reverses_entry_id: Optional[UUID] = None
    reversed_by_id: Optional[UUID] = None

    class Config:
        from_attributes = True


class TrialBalanceResponse(BaseModel):
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool
