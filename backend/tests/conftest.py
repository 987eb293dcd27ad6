"""
Pytest fixtures for shopledger backend tests.

Provides the app on an in-memory database, a per-test clean session,
service objects bound to that session, and a product factory.
"""

import itertools

import pytest

from shopledger import create_app
from shopledger.config import TestConfig
from shopledger.extensions import db
from shopledger.services.ledger_store import LedgerStore
from shopledger.services.schemas import ProductCreate, SupplierCreate
from shopledger.services.stock_engine import StockMutationEngine


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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


@pytest.fixture(scope='function')
def store(db_session):
    return LedgerStore(db_session)


@pytest.fixture(scope='function')
def engine(db_session, store):
    return StockMutationEngine(db_session, store=store)


@pytest.fixture(scope='function')
def make_product(store):
    """Factory: make_product(current_stock=10, minimum_stock_level=5, ...)."""
    counter = itertools.count(1)

    def _make(**overrides):
        n = next(counter)
        data = {
            "name": f"Product {n:02d}",
            "sku": f"SKU-{n:03d}",
            "buying_price_cents": 400,
            "selling_price_cents": 1000,
            "current_stock": 0,
            "minimum_stock_level": 5,
        }
        data.update(overrides)
        return store.create_product(ProductCreate(**data))

    return _make


@pytest.fixture(scope='function')
def supplier(store):
    return store.create_supplier(
        SupplierCreate(name="Premium Wholesale Co.", contact_person="John Smith", email="john@premiumwholesale.com")
    )
