"""
Tests for point-of-sale recording.
"""
import pytest

from supplychain.business.core.constants import Department, ItemType, MovementType
from supplychain.business.core.errors import InsufficientStock, InvalidInput, InvalidQuantity, NotFound
from supplychain.data.sales.sale import Sale


@pytest.fixture
def stocked_chairs(catalog, store):
    """CHAIR-001 with 30 units on hand"""
    catalog.create_raw_material("Chair Leg", "LEG-001", 0)
    chair_id = catalog.create_produced_good("Dining Chair", "CHAIR-001", {"LEG-001": 4})
    store.set_quantity(ItemType.PRODUCED, chair_id, 30)
    return chair_id


def test_record_sale_decrements_stock(sales, store, session, stocked_chairs):
    result = sales.record_sale(stocked_chairs, 5, "PAID")

    assert result.remaining_quantity == 25
    assert store.get(ItemType.PRODUCED, stocked_chairs).quantity == 25
    sale, = session.query(Sale).all()
    assert (sale.quantity, sale.payment_status) == (5, "PAID")
    assert sale.id == result.sale_id


def test_record_sale_accepts_lowercase_status(sales, stocked_chairs):
    assert sales.record_sale(stocked_chairs, 1, "credit").payment_status == "CREDIT"


def test_oversell_writes_no_sale(sales, store, session, stocked_chairs):
    with pytest.raises(InsufficientStock):
        sales.record_sale(stocked_chairs, 31, "PAID")

    assert store.get(ItemType.PRODUCED, stocked_chairs).quantity == 30
    assert session.query(Sale).count() == 0


def test_sale_movement_references_the_sale(sales, store, stocked_chairs):
    result = sales.record_sale(stocked_chairs, 2, "CREDIT")

    movement = store.movements(ItemType.PRODUCED, stocked_chairs)[-1]
    assert movement.movement_type == MovementType.SALE
    assert (movement.reference_type, movement.reference_id) == ("sale", result.sale_id)


def test_record_sale_validation(sales, stocked_chairs):
    with pytest.raises(InvalidQuantity):
        sales.record_sale(stocked_chairs, 0, "PAID")
    with pytest.raises(InvalidInput):
        sales.record_sale(stocked_chairs, 1, "LATER")
    with pytest.raises(NotFound):
        sales.record_sale(stocked_chairs + 1, 1, "PAID")


def test_list_sales_filters_by_good(sales, stocked_chairs):
    sales.record_sale(stocked_chairs, 1, "PAID")
    sales.record_sale(stocked_chairs, 2, "PAID")

    assert [s.quantity for s in sales.list_sales(stocked_chairs)] == [1, 2]
    assert sales.list_sales(stocked_chairs + 1) == []


def test_sale_event_published(sales, notifier, stocked_chairs):
    received = []

    def on_sale(sender, event):
        received.append(event)

    notifier.sale_recorded.connect(on_sale)
    try:
        result = sales.record_sale(stocked_chairs, 4, "PAID")
    finally:
        notifier.sale_recorded.disconnect(on_sale)

    assert [(e.entity_kind, e.entity_id) for e in received] == [("SALE", result.sale_id)]


def test_sale_draws_from_the_manufacturing_holding(sales, store, stocked_chairs):
    store.adjust_quantity(ItemType.PRODUCED, stocked_chairs, 10, department=Department.RETAIL)

    sales.record_sale(stocked_chairs, 3, "PAID")

    assert store.get(ItemType.PRODUCED, stocked_chairs).quantity == 27
    assert store.get(ItemType.PRODUCED, stocked_chairs, department=Department.RETAIL).quantity == 10
