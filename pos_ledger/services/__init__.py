"""Business logic services."""

from pos_ledger.services.catalog_service import CatalogService
from pos_ledger.services.party_service import PartyService
from pos_ledger.services.ledger_service import LedgerService
from pos_ledger.services.cash_position import CashPositionService
from pos_ledger.services.report_service import ReportService

__all__ = [
    "CatalogService",
    "PartyService",
    "LedgerService",
    "CashPositionService",
    "ReportService",
]
