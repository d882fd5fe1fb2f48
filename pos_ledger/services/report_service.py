"""
Sales reporting.

Period rollups over completed SALE transactions: total, count,
a breakdown by payment method and, for windows longer than a
month, a breakdown by calendar month. Reversal counter-entries are
SALE transactions with negative amounts, so cancelled sales net out.
"""

import calendar
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from pos_ledger.config import Settings, get_settings
from pos_ledger.models.transaction import Transaction
from pos_ledger.models.enums import (
    TransactionKind,
    TransactionStatus,
    PaymentMethod,
)
from pos_ledger.money import ZERO
from pos_ledger.schemas.reports import (
    SalesReportResponse,
    MethodTotal,
    MonthTotal,
)


def period_window(year: int, month: Optional[int] = None) -> tuple[datetime, datetime]:
    """
    Inclusive bounds of a calendar month, or of the whole year
    when month is None.
    """
    if month is None:
        return datetime(year, 1, 1), datetime(year, 12, 31, 23, 59, 59, 999999)
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month {month}")
    last_day = calendar.monthrange(year, month)[1]
    return (
        datetime(year, month, 1),
        datetime(year, month, last_day, 23, 59, 59, 999999),
    )


def spans_months(start: datetime, end: datetime) -> bool:
    return (start.year, start.month) != (end.year, end.month)


def aggregate(
    transactions: Iterable[Transaction],
    start: datetime,
    end: datetime,
    currency: str,
) -> SalesReportResponse:
    """Roll matched sale transactions up into a report."""
    total_sales = ZERO
    count = 0
    by_method: dict[PaymentMethod, Decimal] = {}
    by_month: dict[str, Decimal] = {}

    for txn in transactions:
        amount = Decimal(str(txn.total_amount))
        total_sales += amount
        count += 1

        month_key = txn.created_at.strftime("%Y-%m")
        by_month[month_key] = by_month.get(month_key, ZERO) + amount

        for payment in txn.payments:
            by_method[payment.method] = (
                by_method.get(payment.method, ZERO) + Decimal(str(payment.amount))
            )

    return SalesReportResponse(
        currency=currency,
        start=start,
        end=end,
        total_sales=total_sales,
        transaction_count=count,
        # Declaration order of the enum, not order of first appearance
        by_method=[
            MethodTotal(method=method, amount=by_method[method])
            for method in PaymentMethod
            if method in by_method
        ],
        by_month=[
            MonthTotal(month=month, total=total)
            for month, total in sorted(by_month.items())
        ] if spans_months(start, end) else None,
    )


class ReportService:

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    def get_sales(self, start: datetime, end: datetime) -> list[Transaction]:
        """Completed sales created within [start, end], oldest first."""
        transactions = self.db.execute(
            select(Transaction)
            .where(
                Transaction.kind == TransactionKind.SALE,
                Transaction.status == TransactionStatus.COMPLETED,
                Transaction.created_at >= start,
                Transaction.created_at <= end,
            )
            .options(selectinload(Transaction.payments))
            .order_by(Transaction.created_at, Transaction.id)
        ).scalars().all()
        return list(transactions)

    def aggregate_sales_report(
        self, start: datetime, end: datetime
    ) -> SalesReportResponse:
        if start > end:
            raise ValueError(f"Report window start {start} is after end {end}")
        return aggregate(
            self.get_sales(start, end), start, end, self.settings.CURRENCY
        )

    def period_report(
        self, year: int, month: Optional[int] = None
    ) -> SalesReportResponse:
        """Monthly report, or annual report with a monthly breakdown."""
        start, end = period_window(year, month)
        return self.aggregate_sales_report(start, end)
