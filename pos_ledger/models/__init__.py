"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from pos_ledger.models.base import Base
from pos_ledger.models.enums import (
    TransactionKind,
    TransactionStatus,
    PaymentMethod,
    PartyRole,
)
from pos_ledger.models.catalog import Category, Product
from pos_ledger.models.party import Party
from pos_ledger.models.transaction import Transaction
from pos_ledger.models.line_item import LineItem, PaymentSplit
from pos_ledger.models.audit_log import BalanceMovement, StockMovement

__all__ = [
    "Base",
    "TransactionKind",
    "TransactionStatus",
    "PaymentMethod",
    "PartyRole",
    "Category",
    "Product",
    "Party",
    "Transaction",
    "LineItem",
    "PaymentSplit",
    "BalanceMovement",
    "StockMovement",
]
