from __future__ import annotations

from dataclasses import dataclass, field

from supplychain.business.core.constants import ItemType, MovementType
from supplychain.business.core.errors import InvalidInput, InvalidQuantity, NotFound
from supplychain.business.core.validation import MAX_QUANTITY, require_int
from supplychain.business.inventory.inventory_store import InventoryStore, StockAdjustment
from supplychain.data.inventory.produced_good import ProducedGood
from supplychain.logger import get_logger

logger = get_logger("supplychain.business.production")


@dataclass(frozen=True)
class ProductionResult:
    good_id: int
    sku: str
    units: int
    quantity: int
    consumed: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "good_id": self.good_id,
            "sku": self.sku,
            "units": self.units,
            "quantity": self.quantity,
            "consumed": dict(self.consumed),
        }


class ProductionEngine:
    """Converts raw materials into produced goods according to the good's recipe."""

    def __init__(self, store: InventoryStore):
        self.store = store
        self.session = store.session

    def produce(self, good_id, units) -> ProductionResult:
        units = require_int(units, "units", minimum=1)
        good_id = require_int(good_id, "good id", minimum=1, error_cls=InvalidInput)

        def work():
            good = self.session.get(ProducedGood, good_id)
            if good is None:
                raise NotFound(f"Produced good {good_id} not found")
            if not good.recipe_lines:
                raise InvalidInput(f"Produced good {good.sku} has no recipe")

            consumed: dict[str, int] = {}
            adjustments = []
            for line in good.recipe_lines:
                required = line.quantity_per_unit * units
                if required > MAX_QUANTITY:
                    raise InvalidQuantity(
                        f"Producing {units} x {good.sku} needs {required} of {line.raw_sku}, above {MAX_QUANTITY}"
                    )
                consumed[line.raw_sku] = required
                adjustments.append(StockAdjustment(
                    ItemType.RAW, line.raw_material_id, -required, movement_type=MovementType.CONSUMPTION,
                ))
            adjustments.append(StockAdjustment(
                ItemType.PRODUCED, good.id, units, movement_type=MovementType.PRODUCTION,
            ))

            levels = self.store.apply(
                adjustments,
                reference_type="produced_good",
                reference_id=good.id,
                notes=f"Produce {units} x {good.sku}",
            )
            produced = next(l for l in levels if l.entity_kind == ItemType.PRODUCED.value)
            return ProductionResult(good.id, good.sku, units, produced.quantity, consumed)

        result = self.store.run_atomic(work, description=f"produce {units} of good {good_id}")
        logger.info(f"Produced {units} x {result.sku}; consumed {result.consumed}; on hand {result.quantity}",
                    extra={"sku": result.sku, "item_type": ItemType.PRODUCED.value})
        return result
