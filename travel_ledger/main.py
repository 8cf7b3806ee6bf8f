import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from travel_ledger.core.config import get_settings
from travel_ledger.core.logging_config import configure_logging
from travel_ledger.api.v1 import api_router

settings = get_settings()

app = FastAPI(
    title=settings.project_name,
    openapi_url=f"{settings.api_v1_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "name": settings.project_name,
        "docs": "/docs",
        "base_currency": settings.base_currency,
    }


@app.on_event("startup")
def startup_event():
    """Configure logging, then prepare the schema and chart of accounts."""
    configure_logging()
    logger = logging.getLogger(__name__)

    from travel_ledger.db.session import SessionLocal, engine
    from travel_ledger.domain.accounting.chart import seed_chart_of_accounts
    from travel_ledger.models import Base

    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")

    if settings.seed_chart_of_accounts:
        db = SessionLocal()
        try:
            seed_chart_of_accounts(db)
        except Exception as e:
            db.rollback()
            logger.error(f"Chart of accounts seed failed: {e}")
        finally:
            db.close()
