"""
Typed failures raised by the inventory engine.

Every class carries a stable ``kind`` string so transports can report the
failure without inspecting the message. Validation failures are raised before
any write; every other failure is raised after the transaction was rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass


class InventoryError(Exception):
    kind = "InventoryError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class InvalidInput(InventoryError):
    kind = "InvalidInput"


class InvalidQuantity(InvalidInput):
    kind = "InvalidQuantity"


class SameDept(InvalidInput):
    kind = "SameDept"


class NotFound(InventoryError):
    kind = "NotFound"


class UnknownRawSku(NotFound):
    kind = "UnknownRawSku"

    def __init__(self, skus):
        self.skus = sorted(skus)
        super().__init__(f"Unknown raw material SKU(s): {', '.join(self.skus)}")

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["skus"] = self.skus
        return payload


class DuplicateSku(InventoryError):
    kind = "DuplicateSku"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"SKU {sku!r} already exists")


@dataclass(frozen=True)
class Shortfall:
    item_type: str
    item_id: int
    sku: str
    department: str
    available: int
    requested: int

    def to_dict(self) -> dict:
        return {
            "item_type": self.item_type,
            "item_id": self.item_id,
            "sku": self.sku,
            "department": self.department,
            "available": self.available,
            "requested": self.requested,
        }


class InsufficientStock(InventoryError):
    kind = "InsufficientStock"

    def __init__(self, shortfalls: list[Shortfall]):
        self.shortfalls = sorted(shortfalls, key=lambda s: (s.sku, s.department, s.item_type))
        details = ", ".join(
            f"{s.sku}@{s.department} (available {s.available}, requested {s.requested})"
            for s in self.shortfalls
        )
        super().__init__(f"Insufficient stock: {details}")

    @property
    def first(self) -> Shortfall:
        return self.shortfalls[0]

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["shortfalls"] = [s.to_dict() for s in self.shortfalls]
        return payload


class Forbidden(InventoryError):
    kind = "Forbidden"


class AlreadyApproved(InventoryError):
    kind = "AlreadyApproved"


class Conflict(InventoryError):
    kind = "Conflict"
