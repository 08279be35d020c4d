from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from supplychain.business.core.constants import DEFAULT_COLOR_CODE, DEFAULT_UNIT, ItemType
from supplychain.business.core.errors import DuplicateSku, InvalidInput, InventoryError, UnknownRawSku
from supplychain.business.core.validation import require_int, require_text
from supplychain.business.inventory.inventory_store import InventoryStore
from supplychain.data.inventory.produced_good import ProducedGood, RecipeLine
from supplychain.data.inventory.raw_material import RawMaterial
from supplychain.logger import get_logger

logger = get_logger("supplychain.business.inventory.catalog")

# Spreadsheet exports name the same column several ways
_COLUMN_ALIASES = {
    'name': ('name', 'Name'),
    'sku': ('sku', 'SKU', 'Sku'),
    'quantity': ('quantity', 'Quantity', 'Qty', 'qty'),
    'unit': ('unit', 'Unit'),
    'color_code': ('color_code', 'Color Code', 'color', 'Color'),
}


@dataclass(frozen=True)
class RowError:
    row_number: int
    sku: str | None
    kind: str
    message: str

    def to_dict(self) -> dict:
        return {"row": self.row_number, "sku": self.sku, "error": self.kind, "message": self.message}


@dataclass
class ImportResult:
    inserted: int = 0
    updated: int = 0
    errors: list[RowError] = field(default_factory=list)

    @property
    def imported(self) -> int:
        return self.inserted + self.updated

    def to_dict(self) -> dict:
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "imported": self.imported,
            "errors": [e.to_dict() for e in self.errors],
        }


def _pick(row: Mapping[str, Any], field_name: str):
    for alias in _COLUMN_ALIASES[field_name]:
        value = row.get(alias)
        if value is not None and value != "":
            return value
    return None


def normalize_raw_material_row(row: Mapping[str, Any]) -> dict:
    """
    Validate one raw material row and map its column aliases to model fields.

    Quantity may arrive as text or float from a spreadsheet; whole numbers are
    accepted, anything else is rejected.
    """
    name = require_text(_pick(row, 'name'), "Name")
    sku = require_text(_pick(row, 'sku'), "SKU")

    raw_qty = _pick(row, 'quantity')
    if raw_qty is None:
        quantity = 0
    elif isinstance(raw_qty, bool):
        raise InvalidInput(f"Quantity for {sku} must be a number, got {raw_qty!r}")
    elif isinstance(raw_qty, int):
        quantity = raw_qty
    else:
        try:
            as_float = float(raw_qty)
        except (TypeError, ValueError, OverflowError):
            raise InvalidInput(f"Quantity for {sku} must be a number, got {raw_qty!r}")
        if not as_float.is_integer():
            raise InvalidInput(f"Quantity for {sku} must be a whole number, got {raw_qty!r}")
        quantity = int(as_float)
    quantity = require_int(quantity, f"Quantity for {sku}", minimum=0, error_cls=InvalidInput)

    unit = str(_pick(row, 'unit') or DEFAULT_UNIT).strip() or DEFAULT_UNIT
    color_code = str(_pick(row, 'color_code') or DEFAULT_COLOR_CODE).strip() or DEFAULT_COLOR_CODE

    return {'name': name, 'sku': sku, 'quantity': quantity, 'unit': unit, 'color_code': color_code}


class CatalogManager:
    """
    Creates catalog items and imports raw materials.

    Initial quantities are written on insert; every later quantity change on an
    existing item goes through the InventoryStore.
    """

    def __init__(self, store: InventoryStore):
        self.store = store
        self.session = store.session

    def create_raw_material(self, name, sku, quantity=0, unit=DEFAULT_UNIT, color_code=DEFAULT_COLOR_CODE) -> int:
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidInput(f"Quantity must be an integer, got {quantity!r}")
        data = normalize_raw_material_row({
            'name': name, 'sku': sku, 'quantity': quantity, 'unit': unit, 'color_code': color_code,
        })

        def work():
            if self._sku_exists(RawMaterial, data['sku']):
                raise DuplicateSku(data['sku'])
            material = RawMaterial.from_dict(data)
            self.session.add(material)
            self._flush_unique(data['sku'])
            return material.id

        material_id = self.store.run_atomic(work, description=f"create raw material {data['sku']}")
        logger.info(f"Created raw material {data['sku']} (id={material_id}, quantity={data['quantity']})",
                    extra={"sku": data['sku'], "item_type": ItemType.RAW.value})
        return material_id

    def create_produced_good(self, name, sku, recipe: Mapping[str, Any]) -> int:
        name = require_text(name, "Name")
        sku = require_text(sku, "SKU")
        lines = self._validate_recipe(recipe)

        def work():
            if self._sku_exists(ProducedGood, sku):
                raise DuplicateSku(sku)

            materials = {
                m.sku: m for m in self.session.scalars(
                    select(RawMaterial).where(RawMaterial.sku.in_(list(lines)))
                )
            }
            missing = set(lines) - set(materials)
            if missing:
                raise UnknownRawSku(missing)

            good = ProducedGood(name=name, sku=sku, quantity=0)
            for raw_sku, per_unit in sorted(lines.items()):
                good.recipe_lines.append(RecipeLine(
                    raw_material_id=materials[raw_sku].id,
                    raw_sku=raw_sku,
                    quantity_per_unit=per_unit,
                ))
            self.session.add(good)
            self._flush_unique(sku)
            return good.id

        good_id = self.store.run_atomic(work, description=f"create produced good {sku}")
        logger.info(f"Created produced good {sku} (id={good_id}, recipe={dict(sorted(lines.items()))})")
        return good_id

    def bulk_upsert_raw_materials(self, rows: Iterable[Mapping[str, Any]]) -> ImportResult:
        """
        Insert new SKUs and update existing ones; each row commits on its own.

        Row numbers follow spreadsheet numbering (header is row 1). A rejected row
        is reported in ``errors`` and does not stop the rest of the import.
        """
        result = ImportResult()
        seen: dict[str, int] = {}

        for index, row in enumerate(rows, start=2):
            sku_hint = None
            try:
                if not isinstance(row, Mapping):
                    raise InvalidInput(f"Row must be a mapping, got {type(row).__name__}")
                sku_hint = _pick(row, 'sku')
                data = normalize_raw_material_row(row)
                if data['sku'] in seen:
                    raise InvalidInput(f"SKU {data['sku']} repeats row {seen[data['sku']]}")
                seen[data['sku']] = index

                inserted = self.store.run_atomic(
                    lambda: self._upsert_row(data),
                    description=f"import raw material {data['sku']}",
                )
            except InventoryError as exc:
                result.errors.append(RowError(index, str(sku_hint) if sku_hint is not None else None,
                                              exc.kind, exc.message))
                continue

            if inserted:
                result.inserted += 1
            else:
                result.updated += 1

        logger.info(
            f"Raw material import finished: {result.inserted} inserted, {result.updated} updated, "
            f"{len(result.errors)} rejected"
        )
        return result

    def list_raw_materials(self) -> list[RawMaterial]:
        return list(self.session.scalars(select(RawMaterial).order_by(RawMaterial.name)))

    def list_produced_goods(self) -> list[ProducedGood]:
        return list(self.session.scalars(select(ProducedGood).order_by(ProducedGood.name)))

    def _upsert_row(self, data: dict) -> bool:
        material = self.session.scalars(
            select(RawMaterial).where(RawMaterial.sku == data['sku'])
        ).first()
        if material is None:
            self.session.add(RawMaterial.from_dict(data))
            self.session.flush()
            return True

        material.name = data['name']
        material.unit = data['unit']
        material.color_code = data['color_code']
        self.session.flush()
        self.store.apply_set_quantity(ItemType.RAW, material.id, data['quantity'], notes="bulk import")
        return False

    @staticmethod
    def _validate_recipe(recipe) -> dict[str, int]:
        if not isinstance(recipe, Mapping) or not recipe:
            raise InvalidInput("Recipe must map at least one raw material SKU to a quantity.")
        lines: dict[str, int] = {}
        for raw_sku, per_unit in recipe.items():
            raw_sku = require_text(raw_sku, "Recipe SKU")
            if raw_sku in lines:
                raise InvalidInput(f"Recipe lists {raw_sku} more than once.")
            lines[raw_sku] = require_int(per_unit, f"Recipe quantity for {raw_sku}", minimum=1,
                                         error_cls=InvalidInput)
        return lines

    def _sku_exists(self, model, sku: str) -> bool:
        return self.session.execute(select(model.id).where(model.sku == sku)).first() is not None

    def _flush_unique(self, sku: str) -> None:
        # A concurrent insert of the same SKU surfaces here rather than as a retryable conflict
        try:
            self.session.flush()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateSku(sku) from exc
