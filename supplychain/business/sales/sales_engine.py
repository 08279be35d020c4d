from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select

from supplychain.business.core.constants import ItemType, MovementType
from supplychain.business.core.errors import InvalidInput
from supplychain.business.core.validation import parse_payment_status, require_int
from supplychain.business.events.change_notifier import SALE_RECORDED, ChangeEvent
from supplychain.business.inventory.inventory_store import InventoryStore, StockAdjustment
from supplychain.data.sales.sale import Sale
from supplychain.logger import get_logger

logger = get_logger("supplychain.business.sales")


@dataclass(frozen=True)
class SaleResult:
    sale_id: int
    good_id: int
    quantity: int
    payment_status: str
    remaining_quantity: int

    def to_dict(self) -> dict:
        return {
            "sale_id": self.sale_id,
            "good_id": self.good_id,
            "quantity": self.quantity,
            "payment_status": self.payment_status,
            "remaining_quantity": self.remaining_quantity,
        }


class SalesEngine:
    """Records point-of-sale transactions against produced goods stock."""

    def __init__(self, store: InventoryStore):
        self.store = store
        self.session = store.session

    def record_sale(self, good_id, quantity, payment_status) -> SaleResult:
        quantity = require_int(quantity, "quantity", minimum=1)
        status = parse_payment_status(payment_status)
        good_id = require_int(good_id, "good id", minimum=1, error_cls=InvalidInput)

        def work():
            self.store.get(ItemType.PRODUCED, good_id)

            # The sale row and the decrement share one transaction: a shortfall rolls both back
            sale = Sale(produced_good_id=good_id, quantity=quantity, payment_status=status.value)
            self.session.add(sale)
            self.session.flush()

            level, = self.store.apply(
                [StockAdjustment(ItemType.PRODUCED, good_id, -quantity, movement_type=MovementType.SALE)],
                reference_type="sale",
                reference_id=sale.id,
            )

            self.store.stage_event(ChangeEvent(
                topic=SALE_RECORDED,
                entity_kind="SALE",
                entity_id=sale.id,
                version=1,
                payload={"good_id": good_id, "quantity": quantity, "payment_status": status.value},
            ))
            return SaleResult(sale.id, good_id, quantity, status.value, level.quantity)

        result = self.store.run_atomic(work, description=f"sale of {quantity} x good {good_id}")
        logger.info(
            f"Recorded sale {result.sale_id}: {quantity} x good {good_id} ({status.value}), "
            f"{result.remaining_quantity} left"
        )
        return result

    def list_sales(self, good_id: int | None = None) -> list[Sale]:
        query = select(Sale).order_by(Sale.id)
        if good_id is not None:
            query = query.where(Sale.produced_good_id == good_id)
        return list(self.session.scalars(query))
