"""
Concurrent writers against one SQLite file: no lost updates, no negative stock.
"""
import threading

import pytest

from supplychain import db
from supplychain.business.core.constants import ItemType
from supplychain.business.core.errors import InventoryError
from supplychain.business.inventory.inventory_store import InventoryStore
from supplychain.business.production.production_engine import ProductionEngine
from supplychain.business.sales.sales_engine import SalesEngine
from supplychain.business.transfers.transfer_workflow import TransferWorkflow
from supplychain.data.sales.sale import Sale


def run_concurrently(app, count, action):
    """Run ``action(store)`` in ``count`` threads, each with its own app context and session"""
    barrier = threading.Barrier(count)
    outcomes = []
    lock = threading.Lock()

    def worker():
        with app.app_context():
            store = InventoryStore(db.session, app.extensions['change_notifier'])
            barrier.wait()
            try:
                outcome = ("ok", action(store))
            except InventoryError as exc:
                outcome = (exc.kind, exc)
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    assert len(outcomes) == count
    return [kind for kind, _ in outcomes]


@pytest.fixture
def five_chairs(store, chair_catalog):
    store.set_quantity(ItemType.PRODUCED, chair_catalog['chair'], 5)
    return chair_catalog['chair']


def test_concurrent_sales_never_oversell(app, store, session, five_chairs):
    kinds = run_concurrently(app, 8, lambda s: SalesEngine(s).record_sale(five_chairs, 1, "PAID"))

    assert kinds.count("ok") == 5
    assert kinds.count("InsufficientStock") == 3
    assert store.get(ItemType.PRODUCED, five_chairs).quantity == 0
    assert session.query(Sale).count() == 5


def test_concurrent_production_on_shared_materials(app, store, catalog):
    leg = catalog.create_raw_material("Chair Leg", "LEG-001", 40)
    seat = catalog.create_raw_material("Chair Seat", "SEAT-001", 10)
    chair = catalog.create_produced_good("Dining Chair", "CHAIR-001", {"LEG-001": 4, "SEAT-001": 1})

    kinds = run_concurrently(app, 6, lambda s: ProductionEngine(s).produce(chair, 2))

    assert kinds.count("ok") == 5
    assert kinds.count("InsufficientStock") == 1
    assert store.get(ItemType.RAW, leg).quantity == 0
    assert store.get(ItemType.RAW, seat).quantity == 0
    assert store.get(ItemType.PRODUCED, chair).quantity == 10


def test_concurrent_approvals_move_stock_once(app, store, transfers, chair_catalog):
    request = transfers.create("PROCUREMENT", "MANUFACTURING", [
        {"item_type": "RAW", "sku": "LEG-001", "requested_qty": 20},
    ])
    request_id = request.id
    moved = []

    def approve(s):
        result = TransferWorkflow(s).approve(request_id, "PROCUREMENT")
        moved.append(result.moved)
        return result

    kinds = run_concurrently(app, 5, approve)

    assert kinds == ["ok"] * 5
    assert moved.count(True) == 1
    assert store.get(ItemType.RAW, chair_catalog['leg']).quantity == 380
    assert store.get(ItemType.RAW, chair_catalog['leg'], department="MANUFACTURING").quantity == 20
