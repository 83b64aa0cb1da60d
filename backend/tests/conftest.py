"""
Pytest fixtures for MediStock backend tests.

Provides test database setup, catalog/stock fixtures, and test client.
"""

import pytest
from medistock import create_app
from medistock.extensions import db
from medistock.models import Item, MAIN_STORE, POINT_OF_SALE
from medistock.models.catalog import normalize_key
from medistock.services import ledger_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOW_STOCK_MIN_PACKS': 20,
        'REPORT_ROW_LIMIT': 50,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_item(session, name: str, weight: str = "", pack_size: int | None = None) -> Item:
    item = Item(
        name=name,
        weight=weight,
        pack_size=pack_size,
        name_key=normalize_key(name),
        weight_key=normalize_key(weight),
    )
    session.add(item)
    session.commit()
    return item


def put_stock(session, item: Item, location: str, unit_cost_cents: int, packs: int):
    """Helper to seed a cost lot directly through the ledger."""
    ledger_service.upsert_quantity(item.id, location, unit_cost_cents, packs)
    session.commit()


def packs_at(item: Item, location: str, unit_cost_cents: int) -> int:
    """Current pack count of a lot, 0 when the lot does not exist."""
    entry = ledger_service._find_entry(item.id, location, unit_cost_cents)
    return entry.pack_qty if entry is not None else 0


@pytest.fixture(scope='function')
def paracetamol(db_session):
    """Catalog item with no stock."""
    return make_item(db_session, "Paracetamol", "500mg", pack_size=10)


@pytest.fixture(scope='function')
def ibuprofen(db_session):
    """Second catalog item with no stock."""
    return make_item(db_session, "Ibuprofen", "200mg", pack_size=20)


@pytest.fixture(scope='function')
def stocked_store(db_session, paracetamol):
    """Paracetamol: 100 packs @ 1000 in Main Store."""
    put_stock(db_session, paracetamol, MAIN_STORE, 1000, 100)
    return paracetamol


@pytest.fixture(scope='function')
def stocked_shelf(db_session, paracetamol):
    """Paracetamol: 10 packs @ 1000 on the Point-of-Sale shelf."""
    put_stock(db_session, paracetamol, POINT_OF_SALE, 1000, 10)
    return paracetamol
