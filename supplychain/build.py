#!/usr/bin/env python3
"""
Database build for the supply chain inventory engine
Creates the tables and optionally seeds the demo chair catalog
"""

from sqlalchemy import select

from supplychain import create_app, db
from supplychain.logger import get_logger

logger = get_logger("supplychain.build")

DEMO_RAW_MATERIALS = (
    {'name': 'Chair Leg', 'sku': 'LEG-001', 'quantity': 400, 'unit': 'pcs'},
    {'name': 'Chair Seat', 'sku': 'SEAT-001', 'quantity': 100, 'unit': 'pcs'},
)

DEMO_PRODUCED_GOODS = (
    {'name': 'Dining Chair', 'sku': 'CHAIR-001', 'recipe': {'LEG-001': 4, 'SEAT-001': 1}},
)


def build_models():
    """Create every table registered on the models"""
    logger.info("Creating database tables")
    db.create_all()
    logger.info("Database tables created")


def seed_demo_catalog():
    """
    Insert the demo catalog; SKUs that already exist are left untouched.

    Returns the number of items inserted.
    """
    from supplychain.business.inventory.catalog_manager import CatalogManager
    from supplychain.business.inventory.inventory_store import InventoryStore
    from supplychain.data.inventory.produced_good import ProducedGood
    from supplychain.data.inventory.raw_material import RawMaterial

    catalog = CatalogManager(InventoryStore(db.session))
    inserted = 0

    for material in DEMO_RAW_MATERIALS:
        if db.session.execute(select(RawMaterial.id).where(RawMaterial.sku == material['sku'])).first():
            logger.debug(f"Demo raw material {material['sku']} already present")
            continue
        catalog.create_raw_material(**material)
        inserted += 1

    for good in DEMO_PRODUCED_GOODS:
        if db.session.execute(select(ProducedGood.id).where(ProducedGood.sku == good['sku'])).first():
            logger.debug(f"Demo produced good {good['sku']} already present")
            continue
        catalog.create_produced_good(good['name'], good['sku'], good['recipe'])
        inserted += 1

    logger.info(f"Demo catalog seeded: {inserted} item(s) inserted")
    return inserted


def build_database(seed_demo=False, app=None):
    """
    Main build entry point

    Args:
        seed_demo (bool): Insert the demo chair catalog after creating tables
        app: Flask app to build against (default: a new one from the environment)
    """
    app = app or create_app()

    with app.app_context():
        logger.info(f"Starting database build (seed_demo={seed_demo})")
        build_models()
        if seed_demo:
            try:
                seed_demo_catalog()
            except Exception as e:
                logger.error(f"Demo catalog seeding failed: {e}")
                raise
        logger.info("Database build completed successfully")
