from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from supplychain.business.core.constants import Department, ItemType
from supplychain.business.core.errors import InvalidInput, SameDept
from supplychain.business.core.validation import parse_department, parse_item_type, require_int


@dataclass(frozen=True)
class TransferItemInput:
    """A requested line; either ``item_id`` or ``sku`` (or both) identifies the item"""
    item_type: ItemType
    requested_qty: int
    item_id: int | None = None
    sku: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TransferItemInput":
        if not isinstance(payload, Mapping):
            raise InvalidInput("Each transfer item must be an object.")
        item_type = parse_item_type(payload.get('item_type'))
        requested_qty = require_int(payload.get('requested_qty'), "requested_qty", minimum=1,
                                    error_cls=InvalidInput)
        item_id = payload.get('item_id')
        if item_id is not None:
            item_id = require_int(item_id, "item_id", minimum=1, error_cls=InvalidInput)
        sku = payload.get('sku')
        if sku is not None:
            sku = str(sku).strip() or None
        if item_id is None and sku is None:
            raise InvalidInput("Each transfer item needs an item_id or a sku.")
        return cls(item_type=item_type, requested_qty=requested_qty, item_id=item_id, sku=sku)


@dataclass(frozen=True)
class CreateTransferCommand:
    from_dept: Department
    to_dept: Department
    items: tuple[TransferItemInput, ...]

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CreateTransferCommand":
        if not isinstance(payload, Mapping):
            raise InvalidInput("Request body must be a JSON object.")
        from_dept = parse_department(payload.get('from_dept'), "from_dept")
        to_dept = parse_department(payload.get('to_dept'), "to_dept")
        if from_dept == to_dept:
            raise SameDept(f"A department cannot request stock from itself ({from_dept.value}).")
        items = payload.get('items')
        if not isinstance(items, list) or not items:
            raise InvalidInput("A transfer request needs at least one item.")
        return cls(
            from_dept=from_dept,
            to_dept=to_dept,
            items=tuple(TransferItemInput.from_payload(item) for item in items),
        )


@dataclass(frozen=True)
class AdjustTransferCommand:
    """Structured replacement for the interactive quantity prompt"""
    request_id: int
    actor_dept: Department
    new_approved_qty: int

    @classmethod
    def from_payload(cls, request_id: int, payload: Mapping[str, Any]) -> "AdjustTransferCommand":
        if not isinstance(payload, Mapping):
            raise InvalidInput("Request body must be a JSON object.")
        return cls(
            request_id=require_int(request_id, "request id", minimum=1, error_cls=InvalidInput),
            actor_dept=parse_department(payload.get('actor_dept'), "actor_dept"),
            new_approved_qty=require_int(payload.get('new_approved_qty'), "new_approved_qty", minimum=0),
        )
