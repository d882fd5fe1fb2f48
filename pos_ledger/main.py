"""
POS Ledger: FastAPI application.

This is the entry point for the application.
All routers are registered here.
"""

import logging

from fastapi import FastAPI

from pos_ledger.config import get_settings
from pos_ledger.api.health import router as health_router
from pos_ledger.api.catalog import router as catalog_router
from pos_ledger.api.parties import router as parties_router
from pos_ledger.api.transactions import router as transactions_router
from pos_ledger.api.reports import router as reports_router

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Point-of-sale ledger: sales, purchases, cash and credit",
)

# Register routers
app.include_router(health_router)
app.include_router(catalog_router)
app.include_router(parties_router)
app.include_router(transactions_router)
app.include_router(reports_router)

logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} ({settings.ENVIRONMENT})")
