from fastapi import APIRouter

from .endpoints import health, bookings, accounting_ar, ledger

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
api_router.include_router(accounting_ar.router, prefix="/ar", tags=["accounts-receivable"])
api_router.include_router(ledger.router, prefix="/ledger", tags=["ledger"])
