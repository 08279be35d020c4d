from __future__ import annotations

from enum import Enum


class Department(str, Enum):
    PROCUREMENT = "PROCUREMENT"
    MANUFACTURING = "MANUFACTURING"
    DISTRIBUTION = "DISTRIBUTION"
    RETAIL = "RETAIL"
    POS = "POS"


class ItemType(str, Enum):
    RAW = "RAW"
    PRODUCED = "PRODUCED"


class TransferStatus(str, Enum):
    PENDING = "PENDING"
    ADJUSTED = "ADJUSTED"
    APPROVED = "APPROVED"


class PaymentStatus(str, Enum):
    PAID = "PAID"
    CREDIT = "CREDIT"


class MovementType:
    ADJUSTMENT = "Adjustment"
    PRODUCTION = "Production"
    CONSUMPTION = "Consumption"
    SALE = "Sale"
    TRANSFER_OUT = "TransferOut"
    TRANSFER_IN = "TransferIn"
    IMPORT = "Import"


# The item row's own quantity column is the stock held by its home department;
# every other department's holding lives in department_stock.
HOME_DEPARTMENT = {
    ItemType.RAW: Department.PROCUREMENT,
    ItemType.PRODUCED: Department.MANUFACTURING,
}

DEFAULT_UNIT = "pcs"
DEFAULT_COLOR_CODE = "#000000"
