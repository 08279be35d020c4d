from flask import current_app

from supplychain import db
from supplychain.business.inventory.catalog_manager import CatalogManager
from supplychain.business.inventory.inventory_store import InventoryStore
from supplychain.business.production.production_engine import ProductionEngine
from supplychain.business.sales.sales_engine import SalesEngine
from supplychain.business.transfers.transfer_workflow import TransferWorkflow


def inventory_store() -> InventoryStore:
    """A store bound to the request's session and the app's notifier"""
    return InventoryStore(db.session, current_app.extensions['change_notifier'])


def catalog_manager() -> CatalogManager:
    return CatalogManager(inventory_store())


def production_engine() -> ProductionEngine:
    return ProductionEngine(inventory_store())


def sales_engine() -> SalesEngine:
    return SalesEngine(inventory_store())


def transfer_workflow() -> TransferWorkflow:
    return TransferWorkflow(inventory_store())
