"""
Inventory business layer.

The InventoryStore is the only writer of quantity fields; the catalog manager
creates items and imports raw materials through it.
"""
