"""
Tests for the sales reporting aggregator.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from pos_ledger.config import Settings
from pos_ledger.models.enums import TransactionKind, PaymentMethod
from pos_ledger.services.ledger_service import LedgerService
from pos_ledger.services.report_service import (
    ReportService,
    period_window,
    spans_months,
)
from pos_ledger.schemas.posting import (
    PostingRequest,
    LineRequest,
    PaymentRequest,
    MovementRequest,
)


def post_sale(db_session, when, payments):
    """Helper: post a sale and pin its timestamp to `when`."""
    total = sum(Decimal(str(amount)) for _, amount in payments)
    txn = LedgerService(db_session).post(PostingRequest(
        kind=TransactionKind.SALE,
        lines=[LineRequest(label="Item", quantity=Decimal("1"), unit_price=total)],
        payments=[
            PaymentRequest(method=method, amount=Decimal(str(amount)))
            for method, amount in payments
        ],
    ))
    txn.created_at = when
    db_session.commit()
    return txn


class TestPeriodWindow:

    def test_month_window(self):
        start, end = period_window(2024, 2)

        assert start == datetime(2024, 2, 1)
        assert end.date() == datetime(2024, 2, 29).date()
        assert (end.hour, end.minute, end.second) == (23, 59, 59)

    def test_year_window(self):
        start, end = period_window(2025)

        assert start == datetime(2025, 1, 1)
        assert end.date() == datetime(2025, 12, 31).date()

    def test_invalid_month(self):
        with pytest.raises(ValueError):
            period_window(2025, 13)

    def test_spans_months(self):
        assert not spans_months(datetime(2025, 3, 1), datetime(2025, 3, 31))
        assert spans_months(datetime(2025, 3, 31), datetime(2025, 4, 1))


class TestSalesReport:

    def test_totals_and_method_breakdown(self, db_session):
        post_sale(db_session, datetime(2025, 3, 5, 10), [(PaymentMethod.CASH, 1000)])
        post_sale(db_session, datetime(2025, 3, 12, 18), [
            (PaymentMethod.TRANSFER, 300), (PaymentMethod.CASH, 200),
        ])
        post_sale(db_session, datetime(2025, 3, 20, 9), [(PaymentMethod.QR, 150)])

        report = ReportService(db_session).period_report(2025, 3)

        assert report.total_sales == Decimal("1650")
        assert report.transaction_count == 3
        assert [(m.method, m.amount) for m in report.by_method] == [
            (PaymentMethod.CASH, Decimal("1200")),
            (PaymentMethod.TRANSFER, Decimal("300")),
            (PaymentMethod.QR, Decimal("150")),
        ]
        assert report.by_month is None

    def test_window_bounds_are_inclusive(self, db_session):
        post_sale(db_session, datetime(2025, 3, 1, 0, 0, 0), [(PaymentMethod.CASH, 100)])
        post_sale(db_session, datetime(2025, 3, 31, 23, 59, 59), [(PaymentMethod.CASH, 200)])
        post_sale(db_session, datetime(2025, 4, 1, 0, 0, 0), [(PaymentMethod.CASH, 400)])

        report = ReportService(db_session).aggregate_sales_report(
            datetime(2025, 3, 1), datetime(2025, 3, 31, 23, 59, 59)
        )

        assert report.total_sales == Decimal("300")
        assert report.transaction_count == 2

    def test_only_sales_are_counted(self, db_session):
        post_sale(db_session, datetime(2025, 5, 2), [(PaymentMethod.CASH, 100)])
        ledger = LedgerService(db_session)
        ledger.record_movement(MovementRequest(
            kind=TransactionKind.INCOME, amount=Decimal("999"), description="Loan",
        ))
        db_session.commit()

        report = ReportService(db_session).aggregate_sales_report(
            datetime(2000, 1, 1), datetime(2100, 1, 1)
        )

        assert report.total_sales == Decimal("100")
        assert report.transaction_count == 1

    def test_annual_report_breaks_down_by_month(self, db_session):
        post_sale(db_session, datetime(2025, 1, 15), [(PaymentMethod.CASH, 100)])
        post_sale(db_session, datetime(2025, 1, 20), [(PaymentMethod.CASH, 50)])
        post_sale(db_session, datetime(2025, 6, 1), [(PaymentMethod.TRANSFER, 300)])

        report = ReportService(db_session).period_report(2025)

        assert [(m.month, m.total) for m in report.by_month] == [
            ("2025-01", Decimal("150")),
            ("2025-06", Decimal("300")),
        ]

    def test_reversed_sale_nets_out(self, db_session):
        txn = post_sale(db_session, datetime(2025, 7, 3), [(PaymentMethod.CASH, 800)])
        post_sale(db_session, datetime(2025, 7, 4), [(PaymentMethod.CASH, 200)])
        reversal = LedgerService(db_session).reverse(txn.id, "wrong price")
        reversal.created_at = datetime(2025, 7, 5)
        db_session.commit()

        report = ReportService(db_session).period_report(2025, 7)

        assert report.total_sales == Decimal("200")
        assert report.by_method[0].amount == Decimal("200")

    def test_repeated_report_is_identical(self, db_session):
        post_sale(db_session, datetime(2025, 8, 8), [(PaymentMethod.CASH, 100)])
        service = ReportService(db_session)

        assert service.period_report(2025) == service.period_report(2025)

    def test_start_after_end_rejected(self, db_session):
        with pytest.raises(ValueError):
            ReportService(db_session).aggregate_sales_report(
                datetime(2025, 2, 1), datetime(2025, 1, 1)
            )

    def test_report_is_labelled_with_configured_currency(self, db_session):
        settings = Settings()
        settings.CURRENCY = "USD"

        report = ReportService(db_session, settings).period_report(2025, 1)

        assert report.currency == "USD"
