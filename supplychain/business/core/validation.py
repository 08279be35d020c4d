from __future__ import annotations

from enum import Enum
from typing import Any, Type, TypeVar

from supplychain.business.core.constants import Department, ItemType, PaymentStatus
from supplychain.business.core.errors import InvalidInput, InvalidQuantity

E = TypeVar("E", bound=Enum)

# Largest value every supported database stores in an INTEGER column
MAX_QUANTITY = 2**31 - 1


def _parse_enum(enum_cls: Type[E], value: Any, label: str) -> E:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        key = value.strip().upper()
        try:
            return enum_cls(key)
        except ValueError:
            pass
    allowed = ", ".join(member.value for member in enum_cls)
    raise InvalidInput(f"Invalid {label} {value!r}. Use one of: {allowed}.")


def parse_department(value: Any, label: str = "department") -> Department:
    return _parse_enum(Department, value, label)


def parse_item_type(value: Any) -> ItemType:
    return _parse_enum(ItemType, value, "item type")


def parse_payment_status(value: Any) -> PaymentStatus:
    return _parse_enum(PaymentStatus, value, "payment status")


def require_int(value: Any, label: str, *, minimum: int | None = None, maximum: int = MAX_QUANTITY,
                error_cls: Type[InvalidInput] = InvalidQuantity) -> int:
    # bool is an int subclass; "True units" is never a quantity
    if isinstance(value, bool) or not isinstance(value, int):
        raise error_cls(f"{label} must be an integer, got {value!r}")
    if minimum is not None and value < minimum:
        raise error_cls(f"{label} must be >= {minimum}, got {value}")
    if abs(value) > maximum:
        raise error_cls(f"{label} is out of range (limit {maximum}), got {value}")
    return value


def require_text(value: Any, label: str) -> str:
    if value is None:
        raise InvalidInput(f"{label} is required.")
    text = str(value).strip()
    if not text:
        raise InvalidInput(f"{label} is required.")
    return text
