from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Iterable, TypeVar

from flask import current_app, has_app_context
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from supplychain import db
from supplychain.business.core.constants import HOME_DEPARTMENT, Department, ItemType, MovementType
from supplychain.business.core.errors import (
    Conflict, InsufficientStock, InvalidInput, InvalidQuantity, InventoryError, NotFound, Shortfall,
)
from supplychain.business.core.validation import MAX_QUANTITY, parse_department, parse_item_type, require_int
from supplychain.business.events.change_notifier import STOCK_CHANGED, ChangeEvent, ChangeNotifier
from supplychain.data.core.timestamped_base import utcnow
from supplychain.data.inventory.department_stock import DepartmentStock
from supplychain.data.inventory.produced_good import ProducedGood
from supplychain.data.inventory.raw_material import RawMaterial
from supplychain.data.inventory.stock_movement import StockMovement
from supplychain.logger import get_logger

logger = get_logger("supplychain.business.inventory.store")

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
RETRY_BACKOFF_SECONDS = 0.02

_MODELS = {
    ItemType.RAW: RawMaterial,
    ItemType.PRODUCED: ProducedGood,
}

# Lock/serialization failures reported by the supported drivers
_RETRYABLE_MESSAGES = (
    "database is locked",
    "deadlock",
    "could not serialize",
    "lock wait timeout",
)

# Unique-key races (two first receipts of the same holding); CHECK and foreign key
# violations are deterministic and never retried
_UNIQUE_VIOLATION_MESSAGES = (
    "unique constraint",
    "duplicate key",
    "duplicate entry",
)


@dataclass(frozen=True)
class StockAdjustment:
    """One signed change to one department's holding of one item"""
    entity_kind: ItemType
    entity_id: int
    delta: int
    department: Department | None = None
    movement_type: str = MovementType.ADJUSTMENT


@dataclass(frozen=True)
class StockLevel:
    entity_kind: str
    entity_id: int
    sku: str
    department: str
    quantity: int
    version: int

    def to_dict(self) -> dict:
        return {
            "entity_kind": self.entity_kind,
            "entity_id": self.entity_id,
            "sku": self.sku,
            "department": self.department,
            "quantity": self.quantity,
            "version": self.version,
        }


def _driver_message(exc: SQLAlchemyError) -> str:
    return str(exc.orig).lower() if getattr(exc, "orig", None) is not None else str(exc).lower()


def _is_retryable(exc: SQLAlchemyError) -> bool:
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, IntegrityError):
        return any(token in _driver_message(exc) for token in _UNIQUE_VIOLATION_MESSAGES)
    if isinstance(exc, OperationalError):
        return any(token in _driver_message(exc) for token in _RETRYABLE_MESSAGES)
    return False


class InventoryStore:
    """
    Sole writer of quantity fields on raw materials, produced goods and department holdings.

    Every change is a guarded single-statement update
    (``quantity = quantity + delta WHERE quantity + delta >= 0``), so concurrent
    writers can never both read the same value and drive a row negative. Units of
    work run through ``run_atomic``: commit on success, rollback on any failure,
    and a bounded retry when the database reports a concurrent modification.

    Holdings:
    - the item row's ``quantity`` is the home department's stock
      (RAW -> PROCUREMENT, PRODUCED -> MANUFACTURING)
    - every other department's stock lives in DepartmentStock
    """

    def __init__(self, session=None, notifier: ChangeNotifier | None = None, max_retries: int | None = None):
        self.session = session if session is not None else db.session
        self.notifier = notifier
        if max_retries is None:
            max_retries = current_app.config.get('INVENTORY_MAX_RETRIES', DEFAULT_MAX_RETRIES) \
                if has_app_context() else DEFAULT_MAX_RETRIES
        self.max_retries = max_retries
        self._in_unit = False
        self._pending_events: list[ChangeEvent] = []

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------

    def run_atomic(self, work: Callable[[], T], *, description: str = "inventory operation") -> T:
        """
        Run ``work`` as one transaction.

        A call made while another unit of work is running joins it instead of
        committing on its own.
        """
        if self._in_unit:
            return work()

        attempt = 0
        while True:
            attempt += 1
            self._in_unit = True
            self._pending_events = []
            try:
                result = work()
                self.session.commit()
            except InventoryError as exc:
                self._abort()
                logger.warning(f"{description} rejected ({exc.kind}): {exc.message}")
                raise
            except SQLAlchemyError as exc:
                self._abort()
                if not _is_retryable(exc):
                    logger.error(f"{description} failed", exc_info=True)
                    raise
                if attempt >= self.max_retries:
                    logger.warning(f"{description} gave up after {attempt} attempts: {exc}", extra={"attempt": attempt})
                    raise Conflict(
                        f"{description} could not complete after {attempt} attempts due to concurrent changes"
                    ) from exc
                logger.warning(f"{description} hit a concurrent change, retrying ({attempt}/{self.max_retries})",
                               extra={"attempt": attempt})
                time.sleep(RETRY_BACKOFF_SECONDS * attempt)
                continue
            except Exception:
                self._abort()
                logger.error(f"{description} failed", exc_info=True)
                raise
            finally:
                self._in_unit = False

            events, self._pending_events = self._pending_events, []
            if self.notifier is not None and events:
                self.notifier.publish(events)
            return result

    def _abort(self) -> None:
        self.session.rollback()
        self._pending_events = []

    def stage_event(self, event: ChangeEvent) -> None:
        """Queue an event to be published once the current unit of work commits"""
        self._pending_events.append(event)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def adjust_quantity(self, entity_kind, entity_id, delta, *, department=None,
                        movement_type: str = MovementType.ADJUSTMENT, notes: str | None = None) -> StockLevel:
        adjustment = StockAdjustment(entity_kind, entity_id, delta, department, movement_type)
        levels = self.batch_adjust([adjustment], notes=notes)
        return levels[0]

    def batch_adjust(self, adjustments: Iterable[StockAdjustment], *, reference_type: str | None = None,
                     reference_id: int | None = None, notes: str | None = None) -> list[StockLevel]:
        """Apply every adjustment or none of them"""
        adjustments = list(adjustments)
        return self.run_atomic(
            lambda: self.apply(adjustments, reference_type=reference_type, reference_id=reference_id, notes=notes),
            description="batch adjust",
        )

    def set_quantity(self, entity_kind, entity_id, quantity, *, notes: str | None = None) -> StockLevel:
        return self.run_atomic(
            lambda: self.apply_set_quantity(entity_kind, entity_id, quantity, notes=notes),
            description="set quantity",
        )

    def get(self, entity_kind, entity_id, *, department=None) -> StockLevel:
        kind = parse_item_type(entity_kind)
        entity_id = require_int(entity_id, "entity id", minimum=1, error_cls=InvalidInput)
        dept = self._resolve_department(kind, department)
        sku = self._require_sku(kind, entity_id)

        if dept == HOME_DEPARTMENT[kind]:
            model = _MODELS[kind]
            quantity, version = self.session.execute(
                select(model.quantity, model.version).where(model.id == entity_id)
            ).one()
            return StockLevel(kind.value, entity_id, sku, dept.value, quantity, version)

        row = self._holding_row(kind, entity_id, dept)
        if row is None:
            return StockLevel(kind.value, entity_id, sku, dept.value, 0, 0)
        return StockLevel(kind.value, entity_id, sku, dept.value, row.quantity, row.version)

    def holdings(self, entity_kind, entity_id) -> list[StockLevel]:
        """Every department's stock of one item, home department first"""
        kind = parse_item_type(entity_kind)
        levels = [self.get(kind, entity_id)]
        rows = self.session.execute(
            select(DepartmentStock.department, DepartmentStock.quantity, DepartmentStock.version)
            .where(DepartmentStock.item_type == kind.value, DepartmentStock.item_id == entity_id)
            .order_by(DepartmentStock.department)
        ).all()
        sku = levels[0].sku
        levels.extend(StockLevel(kind.value, entity_id, sku, dept, qty, ver) for dept, qty, ver in rows)
        return levels

    def movements(self, entity_kind, entity_id) -> list[StockMovement]:
        kind = parse_item_type(entity_kind)
        return list(self.session.scalars(
            select(StockMovement)
            .where(StockMovement.item_type == kind.value, StockMovement.item_id == entity_id)
            .order_by(StockMovement.id)
        ))

    # ------------------------------------------------------------------
    # In-transaction primitives (call inside run_atomic)
    # ------------------------------------------------------------------

    def apply(self, adjustments: Iterable[StockAdjustment], *, reference_type: str | None = None,
              reference_id: int | None = None, notes: str | None = None) -> list[StockLevel]:
        """
        Apply adjustments inside the current transaction.

        Deltas for the same holding are merged and holdings are updated in sorted
        order so concurrent batches lock rows in the same sequence. Every shortfall
        is collected before raising, which keeps the error deterministic for a
        given state; the caller's rollback discards the rows already updated.
        """
        merged = self._merge(adjustments)
        if not merged:
            raise InvalidInput("At least one stock adjustment is required.")

        levels: list[StockLevel] = []
        shortfalls: list[Shortfall] = []

        for key in sorted(merged, key=lambda k: (k[0].value, k[1], k[2].value)):
            kind, entity_id, dept = key
            delta, movement_type = merged[key]
            sku = self._require_sku(kind, entity_id)

            if dept == HOME_DEPARTMENT[kind]:
                level, available = self._apply_to_item(kind, entity_id, sku, dept, delta)
            else:
                level, available = self._apply_to_holding(kind, entity_id, sku, dept, delta)

            if level is None:
                shortfalls.append(Shortfall(kind.value, entity_id, sku, dept.value, available, -delta))
                continue

            levels.append(level)
            if delta != 0:
                self._record_movement(level, delta, movement_type, reference_type, reference_id, notes)

        if shortfalls:
            raise InsufficientStock(shortfalls)
        return levels

    def apply_set_quantity(self, entity_kind, entity_id, quantity, *, notes: str | None = None) -> StockLevel:
        """Compare-and-swap an absolute quantity onto the home holding"""
        kind = parse_item_type(entity_kind)
        quantity = require_int(quantity, "quantity", minimum=0)
        model = _MODELS[kind]

        row = self.session.execute(
            select(model.sku, model.quantity, model.version).where(model.id == entity_id)
        ).first()
        if row is None:
            raise NotFound(f"{kind.value} item {entity_id} not found")

        dept = HOME_DEPARTMENT[kind]
        delta = quantity - row.quantity
        if delta == 0:
            return StockLevel(kind.value, entity_id, row.sku, dept.value, row.quantity, row.version)

        result = self.session.execute(
            update(model)
            .where(model.id == entity_id, model.version == row.version)
            .values(quantity=quantity, version=row.version + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise StaleDataError(f"{kind.value} item {entity_id} changed while setting its quantity")
        self._expire_cached(model, entity_id)

        level = StockLevel(kind.value, entity_id, row.sku, dept.value, quantity, row.version + 1)
        self._record_movement(level, delta, MovementType.IMPORT, None, None, notes)
        return level

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _merge(self, adjustments: Iterable[StockAdjustment]) -> dict:
        merged: dict[tuple[ItemType, int, Department], tuple[int, str]] = {}
        for adjustment in adjustments:
            kind = parse_item_type(adjustment.entity_kind)
            entity_id = require_int(adjustment.entity_id, "entity id", minimum=1, error_cls=InvalidInput)
            delta = require_int(adjustment.delta, "delta")
            dept = self._resolve_department(kind, adjustment.department)
            key = (kind, entity_id, dept)
            if key in merged:
                previous, movement_type = merged[key]
                merged[key] = (require_int(previous + delta, "delta"), movement_type)
            else:
                merged[key] = (delta, adjustment.movement_type)
        return merged

    @staticmethod
    def _resolve_department(kind: ItemType, department) -> Department:
        if department is None:
            return HOME_DEPARTMENT[kind]
        return parse_department(department)

    def _require_sku(self, kind: ItemType, entity_id: int) -> str:
        model = _MODELS[kind]
        sku = self.session.execute(select(model.sku).where(model.id == entity_id)).scalar_one_or_none()
        if sku is None:
            raise NotFound(f"{kind.value} item {entity_id} not found")
        return sku

    def _holding_row(self, kind: ItemType, entity_id: int, dept: Department):
        return self.session.execute(
            select(DepartmentStock.quantity, DepartmentStock.version).where(
                DepartmentStock.department == dept.value,
                DepartmentStock.item_type == kind.value,
                DepartmentStock.item_id == entity_id,
            )
        ).first()

    def _apply_to_item(self, kind, entity_id, sku, dept, delta):
        model = _MODELS[kind]
        if delta != 0:
            result = self.session.execute(
                update(model)
                .where(model.id == entity_id, model.quantity + delta >= 0, model.quantity + delta <= MAX_QUANTITY)
                .values(quantity=model.quantity + delta, version=model.version + 1, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            self._expire_cached(model, entity_id)
            if result.rowcount == 0:
                available = self.session.execute(
                    select(model.quantity).where(model.id == entity_id)
                ).scalar_one()
                self._check_ceiling(sku, dept, available, delta)
                return None, available

        quantity, version = self.session.execute(
            select(model.quantity, model.version).where(model.id == entity_id)
        ).one()
        return StockLevel(kind.value, entity_id, sku, dept.value, quantity, version), quantity

    def _apply_to_holding(self, kind, entity_id, sku, dept, delta):
        where = (
            DepartmentStock.department == dept.value,
            DepartmentStock.item_type == kind.value,
            DepartmentStock.item_id == entity_id,
        )
        if delta != 0:
            result = self.session.execute(
                update(DepartmentStock)
                .where(*where, DepartmentStock.quantity + delta >= 0,
                       DepartmentStock.quantity + delta <= MAX_QUANTITY)
                .values(quantity=DepartmentStock.quantity + delta, version=DepartmentStock.version + 1,
                        updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                row = self._holding_row(kind, entity_id, dept)
                if row is not None:
                    self._check_ceiling(sku, dept, row.quantity, delta)
                    return None, row.quantity
                if delta < 0:
                    return None, 0
                # First stock of this item for the department; a concurrent insert
                # of the same holding fails the unique constraint and is retried.
                self.session.add(DepartmentStock(
                    department=dept.value, item_type=kind.value, item_id=entity_id, quantity=delta, version=1,
                ))
                self.session.flush()

        row = self._holding_row(kind, entity_id, dept)
        if row is None:
            return StockLevel(kind.value, entity_id, sku, dept.value, 0, 0), 0
        return StockLevel(kind.value, entity_id, sku, dept.value, row.quantity, row.version), row.quantity

    @staticmethod
    def _check_ceiling(sku: str, dept: Department, available: int, delta: int) -> None:
        # A rejected update that did not hit zero must have hit the integer ceiling
        if available + delta > MAX_QUANTITY:
            raise InvalidQuantity(
                f"{sku} at {dept.value} would exceed {MAX_QUANTITY} (on hand {available}, delta {delta})"
            )

    def _expire_cached(self, model, entity_id: int) -> None:
        cached = self.session.identity_map.get(self.session.identity_key(model, entity_id))
        if cached is not None:
            self.session.expire(cached, ['quantity', 'version', 'updated_at'])

    def _record_movement(self, level: StockLevel, delta: int, movement_type: str,
                         reference_type: str | None, reference_id: int | None, notes: str | None) -> None:
        self.session.add(StockMovement(
            item_type=level.entity_kind,
            item_id=level.entity_id,
            department=level.department,
            movement_type=movement_type,
            quantity_delta=delta,
            quantity_after=level.quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
        ))
        self.stage_event(ChangeEvent(
            topic=STOCK_CHANGED,
            entity_kind=level.entity_kind,
            entity_id=level.entity_id,
            version=level.version,
            department=level.department,
            payload={"sku": level.sku, "quantity": level.quantity, "delta": delta, "movement_type": movement_type},
        ))
