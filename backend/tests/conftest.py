"""
Pytest fixtures for WMS backend tests.

Provides test database setup, inventory/order factories, and test client.
"""

import pytest
from wms import create_app
from wms.config import TestConfig
from wms.extensions import db
from wms.services import inventory_service, purchase_order_service

ACTOR = "tester"


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


@pytest.fixture
def actor_headers():
    """Headers an upstream gateway would forward."""
    return {'X-Actor-Id': ACTOR}


@pytest.fixture
def make_item(db_session):
    """Factory: create an inventory item with opening stock."""
    counter = {'n': 0}

    def _make(sku=None, name=None, quantity=0, rate='1.00', item_type='Product'):
        counter['n'] += 1
        return inventory_service.create_item(
            {
                'sku': sku or f"SKU-{counter['n']:03d}",
                'name': name or f"Item {counter['n']}",
                'type': item_type,
                'rate': rate,
                'quantity': quantity,
            },
            actor_id=ACTOR,
        )

    return _make


@pytest.fixture
def make_purchase_order(db_session):
    """Factory: create a purchase order, approved (status Sent) unless draft=True."""

    def _make(items, draft=False, **extra):
        data = {
            'vendor_name': 'Acme Supply',
            'vendor_email': 'orders@acme.example',
            'items': items,
            **extra,
        }
        po = purchase_order_service.create_purchase_order(data, actor_id=ACTOR)
        if not draft:
            po = purchase_order_service.approve_purchase_order(po.id, actor_id=ACTOR)
        return po

    return _make
