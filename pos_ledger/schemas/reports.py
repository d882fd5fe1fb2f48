"""
Pydantic schemas for the read-side views.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from pos_ledger.models.enums import PaymentMethod


class CashPositionResponse(BaseModel):
    currency: str
    start: datetime | None
    end: datetime | None
    cash_in: Decimal
    cash_out: Decimal
    transfer_in: Decimal
    transfer_out: Decimal
    credit_in: Decimal
    credit_out: Decimal
    net_cash: Decimal
    net_transfer: Decimal


class MethodTotal(BaseModel):
    method: PaymentMethod
    amount: Decimal


class MonthTotal(BaseModel):
    month: str  # YYYY-MM
    total: Decimal


class SalesReportResponse(BaseModel):
    currency: str
    start: datetime
    end: datetime
    total_sales: Decimal
    transaction_count: int
    by_method: list[MethodTotal]
    by_month: list[MonthTotal] | None = None
