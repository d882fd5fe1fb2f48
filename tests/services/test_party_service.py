"""
Tests for the PartyService and CatalogService stores.
"""

from decimal import Decimal

import pytest

from pos_ledger.models.enums import TransactionKind, PartyRole, PaymentMethod
from pos_ledger.services.catalog_service import CatalogService
from pos_ledger.services.ledger_service import LedgerService
from pos_ledger.services.party_service import PartyService
from pos_ledger.services.exceptions import NotFound
from pos_ledger.schemas.catalog import (
    CategoryCreate,
    ProductCreate,
    ProductUpdate,
    PartyCreate,
    PartyUpdate,
)
from pos_ledger.schemas.posting import (
    PostingRequest,
    LineRequest,
    PaymentRequest,
    SettlementRequest,
)


def credit_sale(db_session, party, amount):
    return LedgerService(db_session).post(PostingRequest(
        kind=TransactionKind.SALE,
        lines=[LineRequest(label="Item", quantity=Decimal("1"), unit_price=amount)],
        payments=[PaymentRequest(method=PaymentMethod.CREDIT_CUSTOMER, amount=amount)],
        party_id=party.id,
    ))


class TestParties:

    def test_new_party_starts_at_zero(self, db_session):
        service = PartyService(db_session)
        party = service.create_party(PartyCreate(
            name="Carlos", phone="555-0101", role=PartyRole.CLIENT,
        ))
        db_session.commit()

        assert party.balance == Decimal("0")
        assert party.role == PartyRole.CLIENT

    def test_update_party_contact(self, db_session, client_party):
        service = PartyService(db_session)

        party = service.update_party(client_party.id, PartyUpdate(phone="555-0199"))
        db_session.commit()

        assert party.phone == "555-0199"
        assert party.name == "Maria Gomez"

    def test_list_by_role(self, db_session, client_party, provider_party):
        service = PartyService(db_session)

        clients = service.list_parties(PartyRole.CLIENT)
        everyone = service.list_parties()

        assert [p.id for p in clients] == [client_party.id]
        assert len(everyone) == 2

    def test_debtors_sorted_by_balance(self, db_session, client_party):
        service = PartyService(db_session)
        other = service.create_party(PartyCreate(name="Ana", role=PartyRole.CLIENT))
        service.create_party(PartyCreate(name="Zero", role=PartyRole.CLIENT))
        db_session.commit()
        credit_sale(db_session, client_party, Decimal("300"))
        credit_sale(db_session, other, Decimal("900"))
        db_session.commit()

        debtors = service.list_debtors()

        assert [p.name for p in debtors] == ["Ana", "Maria Gomez"]

    def test_adjust_balance_unknown_party(self, db_session):
        with pytest.raises(NotFound):
            PartyService(db_session).adjust_balance(404, Decimal("10"))

    def test_reconciliation_after_postings_and_reversal(
        self, db_session, client_party
    ):
        ledger = LedgerService(db_session)
        first = credit_sale(db_session, client_party, Decimal("500"))
        credit_sale(db_session, client_party, Decimal("250"))
        ledger.settle_debt(SettlementRequest(
            party_id=client_party.id, amount=Decimal("100"),
        ))
        db_session.commit()
        ledger.reverse(first.id, "error")
        db_session.commit()

        result = PartyService(db_session).reconcile_balance(client_party.id)

        assert result.stored_balance == Decimal("150")
        assert result.replayed_balance == Decimal("150")
        assert result.drift == 0
        assert result.movement_count == 4

    def test_reconciliation_detects_drift(self, db_session, client_party):
        credit_sale(db_session, client_party, Decimal("500"))
        db_session.commit()

        # A write that bypassed the ledger
        client_party.balance = Decimal("450")
        db_session.commit()

        result = PartyService(db_session).reconcile_balance(client_party.id)

        assert result.drift == Decimal("-50")


class TestCatalog:

    def test_create_product_in_category(self, db_session):
        service = CatalogService(db_session)
        category = service.create_category(CategoryCreate(name="Dairy"))
        product = service.create_product(ProductCreate(
            name="Milk", price=Decimal("900"), stock=Decimal("24"),
            category_id=category.id,
        ))
        db_session.commit()

        assert product.category_id == category.id
        assert service.list_products(category.id)[0].name == "Milk"

    def test_duplicate_category_rejected(self, db_session):
        service = CatalogService(db_session)
        service.create_category(CategoryCreate(name="Dairy"))
        db_session.commit()

        with pytest.raises(ValueError, match="already exists"):
            service.create_category(CategoryCreate(name="Dairy"))

    def test_unknown_category_rejected(self, db_session):
        with pytest.raises(NotFound):
            CatalogService(db_session).create_product(ProductCreate(
                name="Milk", category_id=99,
            ))

    def test_update_product_leaves_stock_alone(self, db_session, product):
        service = CatalogService(db_session)

        updated = service.update_product(product.id, ProductUpdate(
            price=Decimal("550"),
        ))
        db_session.commit()

        assert updated.price == Decimal("550")
        assert updated.stock == Decimal("10")

    def test_adjust_stock_returns_new_stock(self, db_session, product):
        service = CatalogService(db_session)

        stock = service.adjust_stock(product.id, Decimal("-3"))
        db_session.commit()

        assert stock == Decimal("7")
        assert product.stock == Decimal("7")

    def test_adjust_stock_unknown_product(self, db_session):
        with pytest.raises(NotFound):
            CatalogService(db_session).adjust_stock(404, Decimal("1"))
