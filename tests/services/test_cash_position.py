"""
Tests for the cash position projector.
"""

from decimal import Decimal

from pos_ledger.models.enums import TransactionKind, PaymentMethod
from pos_ledger.services.cash_position import (
    CashPosition,
    CashPositionService,
    project,
)
from pos_ledger.services.ledger_service import LedgerService
from pos_ledger.schemas.posting import (
    PostingRequest,
    LineRequest,
    PaymentRequest,
    SettlementRequest,
    MovementRequest,
)


K = TransactionKind
M = PaymentMethod


class TestProject:

    def test_empty_stream_is_all_zero(self):
        position = project([])

        assert position == CashPosition()
        assert position.net_cash == 0
        assert position.net_transfer == 0

    def test_inflows_and_outflows_by_instrument(self):
        position = project([
            (K.SALE, M.CASH, Decimal("1000")),
            (K.SALE, M.TRANSFER, Decimal("300")),
            (K.SALE, M.QR, Decimal("200")),
            (K.INCOME, M.CASH, Decimal("50")),
            (K.DEBT_COLLECTION, M.CASH, Decimal("400")),
            (K.EXPENSE, M.CASH, Decimal("250")),
            (K.EXPENSE, M.QR, Decimal("80")),
            (K.DEBT_PAYMENT, M.TRANSFER, Decimal("120")),
        ])

        assert position.cash_in == Decimal("1450")
        assert position.cash_out == Decimal("250")
        assert position.transfer_in == Decimal("500")
        assert position.transfer_out == Decimal("200")
        assert position.net_cash == Decimal("1200")
        assert position.net_transfer == Decimal("300")

    def test_credit_is_kept_out_of_cash_and_transfer(self):
        position = project([
            (K.SALE, M.CREDIT_CUSTOMER, Decimal("400")),
            (K.EXPENSE, M.CREDIT_PROVIDER, Decimal("700")),
        ])

        assert position.credit_in == Decimal("400")
        assert position.credit_out == Decimal("700")
        assert position.net_cash == 0
        assert position.net_transfer == 0

    def test_reversal_rows_cancel_without_special_case(self):
        original = [(K.SALE, M.CASH, Decimal("600")), (K.SALE, M.QR, Decimal("400"))]
        reversal = [(kind, method, -amount) for kind, method, amount in original]

        assert project(original + reversal) == project([])


class TestCashPositionService:

    def _sale(self, service, amount, method=M.CASH, party_id=None):
        return service.post(PostingRequest(
            kind=K.SALE,
            lines=[LineRequest(label="Item", quantity=Decimal("1"), unit_price=amount)],
            payments=[PaymentRequest(method=method, amount=amount)],
            party_id=party_id,
        ))

    def test_reflects_posted_transactions(self, db_session, client_party):
        ledger = LedgerService(db_session)
        self._sale(ledger, Decimal("1000"))
        self._sale(ledger, Decimal("500"), M.TRANSFER)
        self._sale(ledger, Decimal("300"), M.CREDIT_CUSTOMER, client_party.id)
        ledger.record_movement(MovementRequest(
            kind=K.EXPENSE, amount=Decimal("200"), description="Cleaning supplies",
        ))
        ledger.settle_debt(SettlementRequest(
            party_id=client_party.id, amount=Decimal("100"),
        ))
        db_session.commit()

        position = CashPositionService(db_session).project_cash_position()

        assert position.cash_in == Decimal("1100")
        assert position.cash_out == Decimal("200")
        assert position.transfer_in == Decimal("500")
        assert position.credit_in == Decimal("300")
        assert position.net_cash == Decimal("900")

    def test_post_and_reverse_nets_to_zero(self, db_session, product, client_party):
        ledger = LedgerService(db_session)
        projector = CashPositionService(db_session)
        self._sale(ledger, Decimal("250"))
        db_session.commit()
        before = projector.project_cash_position()

        txn = ledger.post(PostingRequest(
            kind=K.SALE,
            lines=[LineRequest(
                product_id=product.id, label=product.name,
                quantity=Decimal("2"), unit_price=Decimal("500"),
            )],
            payments=[
                PaymentRequest(method=M.CASH, amount=Decimal("600")),
                PaymentRequest(method=M.CREDIT_CUSTOMER, amount=Decimal("400")),
            ],
            party_id=client_party.id,
        ))
        db_session.commit()
        assert projector.project_cash_position() != before

        ledger.reverse(txn.id, "error")
        db_session.commit()

        assert projector.project_cash_position() == before

    def test_repeated_projection_is_identical(self, db_session):
        ledger = LedgerService(db_session)
        self._sale(ledger, Decimal("1000"))
        self._sale(ledger, Decimal("40"), M.QR)
        db_session.commit()
        projector = CashPositionService(db_session)

        assert projector.project_cash_position() == projector.project_cash_position()
