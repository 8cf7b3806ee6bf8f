from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from travel_ledger.db.dependencies import get_db
from travel_ledger.domain.accounting.chart import find_account_by_code, ACCOUNTS_RECEIVABLE

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    database: str
    chart_of_accounts: str


@router.get("", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)):
    """Check the database and that the chart of accounts is seeded."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"

    if db_status == "healthy":
        try:
            seeded = find_account_by_code(db, ACCOUNTS_RECEIVABLE) is not None
            chart_status = "healthy" if seeded else "not seeded"
        except Exception as e:
            chart_status = f"unhealthy: {str(e)}"
    else:
        chart_status = "unknown"

    return HealthResponse(
        status="healthy" if db_status == chart_status == "healthy" else "degraded",
        database=db_status,
        chart_of_accounts=chart_status,
    )


@router.get("/live", response_model=dict)
def liveness_check():
    """Kubernetes liveness probe."""
    return {"status": "alive"}
