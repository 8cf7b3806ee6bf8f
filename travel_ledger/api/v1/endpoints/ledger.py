"""Ledger API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from travel_ledger.api.v1.errors import to_http_exception
from travel_ledger.db.dependencies import get_db
from travel_ledger.domain.accounting.chart import find_account_by_code
from travel_ledger.domain.accounting.gl_service import post_journal_entry, trial_balance
from travel_ledger.domain.exceptions import NotFoundError
from travel_ledger.schemas.journal import (
    AccountResponse,
    JournalEntryResponse,
    TrialBalanceResponse,
)

router = APIRouter()


@router.get("/accounts/{code}", response_model=AccountResponse)
def get_account(code: str, db: Session = Depends(get_db)) -> AccountResponse:
    try:
        account = find_account_by_code(db, code)
        if not account:
            raise NotFoundError("Account", code)
        return AccountResponse.model_validate(account)
    except Exception as e:
        raise to_http_exception(e, "get account")


@router.post("/entries/{entry_id}/post", response_model=JournalEntryResponse)
def post_entry(entry_id: UUID, db: Session = Depends(get_db)) -> JournalEntryResponse:
    """Post a DRAFT journal entry. Posting twice is rejected with 409."""
    try:
        entry = post_journal_entry(db, entry_id)
        db.commit()
        db.refresh(entry)
        return JournalEntryResponse.model_validate(entry)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, "post journal entry")


@router.get("/trial-balance", response_model=TrialBalanceResponse)
def get_trial_balance(db: Session = Depends(get_db)) -> TrialBalanceResponse:
    result = trial_balance(db)
    return TrialBalanceResponse(
        total_debits=result.total_debits,
        total_credits=result.total_credits,
        is_balanced=result.is_balanced,
    )
