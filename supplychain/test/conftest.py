"""
Pytest configuration and fixtures for the inventory engine tests
"""
import os
import tempfile

import pytest

# Keep test runs from writing into the project's logs/ directory
os.environ.setdefault('SUPPLYCHAIN_LOG_DIR', os.path.join(tempfile.gettempdir(), 'supplychain-test-logs'))

from supplychain import create_app  # noqa: E402
from supplychain import db as _db  # noqa: E402
from supplychain.business.inventory.catalog_manager import CatalogManager  # noqa: E402
from supplychain.business.inventory.inventory_store import InventoryStore  # noqa: E402
from supplychain.business.production.production_engine import ProductionEngine  # noqa: E402
from supplychain.business.sales.sales_engine import SalesEngine  # noqa: E402
from supplychain.business.transfers.transfer_workflow import TransferWorkflow  # noqa: E402


@pytest.fixture(scope='function')
def app(tmp_path):
    """Flask application backed by a fresh SQLite file"""
    app = create_app(test_config={
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'supplychain.db'}",
        'INVENTORY_MAX_RETRIES': 5,
        # Worker threads in the concurrency tests share the file database
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'check_same_thread': False, 'timeout': 30}},
    })

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope='function')
def session(app):
    return _db.session


@pytest.fixture(scope='function')
def client(app):
    """Create Flask test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def notifier(app):
    return app.extensions['change_notifier']


@pytest.fixture(scope='function')
def store(session, notifier):
    return InventoryStore(session, notifier)


@pytest.fixture(scope='function')
def catalog(store):
    return CatalogManager(store)


@pytest.fixture(scope='function')
def production(store):
    return ProductionEngine(store)


@pytest.fixture(scope='function')
def sales(store):
    return SalesEngine(store)


@pytest.fixture(scope='function')
def transfers(store):
    return TransferWorkflow(store)


@pytest.fixture(scope='function')
def chair_catalog(catalog):
    """LEG-001 x400, SEAT-001 x100 and a CHAIR-001 recipe of 4 legs and 1 seat"""
    leg_id = catalog.create_raw_material("Chair Leg", "LEG-001", 400)
    seat_id = catalog.create_raw_material("Chair Seat", "SEAT-001", 100)
    chair_id = catalog.create_produced_good("Dining Chair", "CHAIR-001", {"LEG-001": 4, "SEAT-001": 1})
    return {'leg': leg_id, 'seat': seat_id, 'chair': chair_id}
