"""
Shared test fixtures.

Sets up an isolated test database so tests never touch
the real database. Each test starts from freshly created
tables, which are dropped again afterwards.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pos_ledger.main import app
from pos_ledger.models.base import Base, get_db
from pos_ledger.models.enums import PartyRole
from pos_ledger.services.catalog_service import CatalogService
from pos_ledger.services.party_service import PartyService
from pos_ledger.schemas.catalog import ProductCreate, PartyCreate


# SQLite keeps the suite free of external database infrastructure.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    The get_db dependency is overridden so the app uses the
    test session instead of the real database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def product(db_session):
    """A unit-sold product priced at 500 with 10 in stock."""
    item = CatalogService(db_session).create_product(ProductCreate(
        name="Yerba 1kg", price=Decimal("500"), stock=Decimal("10"),
    ))
    db_session.commit()
    return item


@pytest.fixture
def weighable_product(db_session):
    item = CatalogService(db_session).create_product(ProductCreate(
        name="Cheese", price=Decimal("8000"), stock=Decimal("5"),
        is_weighable=True,
    ))
    db_session.commit()
    return item


@pytest.fixture
def client_party(db_session):
    party = PartyService(db_session).create_party(PartyCreate(
        name="Maria Gomez", role=PartyRole.CLIENT,
    ))
    db_session.commit()
    return party


@pytest.fixture
def provider_party(db_session):
    party = PartyService(db_session).create_party(PartyCreate(
        name="Distribuidora Sur", role=PartyRole.PROVIDER,
    ))
    db_session.commit()
    return party
