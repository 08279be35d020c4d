"""Inventory models - CRUD only, no business logic"""

from supplychain.data.inventory.raw_material import RawMaterial
from supplychain.data.inventory.produced_good import ProducedGood, RecipeLine
from supplychain.data.inventory.department_stock import DepartmentStock
from supplychain.data.inventory.stock_movement import StockMovement

__all__ = [
    'RawMaterial',
    'ProducedGood',
    'RecipeLine',
    'DepartmentStock',
    'StockMovement',
]
