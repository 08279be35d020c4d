"""
Data layer: Flask-SQLAlchemy models (CRUD only, no business logic).

Quantity columns on these models are written exclusively by
supplychain.business.inventory.inventory_store.
"""
