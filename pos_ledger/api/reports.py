"""
Read-side report endpoints.

Both views are computed from committed transactions at query time;
nothing is cached.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pos_ledger.config import get_settings
from pos_ledger.models.base import get_db
from pos_ledger.services.cash_position import CashPositionService
from pos_ledger.services.report_service import ReportService
from pos_ledger.schemas.reports import (
    CashPositionResponse,
    SalesReportResponse,
)

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/cash-position", response_model=CashPositionResponse)
def cash_position(
    start: datetime | None = None,
    end: datetime | None = None,
    db: Session = Depends(get_db),
):
    """Money in and out of the drawer and the bank, by instrument."""
    position = CashPositionService(db).project_cash_position(start, end)
    return CashPositionResponse(
        currency=get_settings().CURRENCY,
        start=start,
        end=end,
        cash_in=position.cash_in,
        cash_out=position.cash_out,
        transfer_in=position.transfer_in,
        transfer_out=position.transfer_out,
        credit_in=position.credit_in,
        credit_out=position.credit_out,
        net_cash=position.net_cash,
        net_transfer=position.net_transfer,
    )


@router.get("/sales", response_model=SalesReportResponse)
def sales_report(
    start: datetime,
    end: datetime,
    db: Session = Depends(get_db),
):
    """Completed sales between start and end, both inclusive."""
    try:
        return ReportService(db).aggregate_sales_report(start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/sales/period", response_model=SalesReportResponse)
def sales_period_report(
    year: int,
    month: int | None = None,
    db: Session = Depends(get_db),
):
    """Sales for one month, or for a whole year when month is omitted."""
    try:
        return ReportService(db).period_report(year, month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
