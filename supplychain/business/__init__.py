"""
Domain layer for the supply chain inventory engine.
Contains the inventory store, production, sales and transfer workflows,
separated from data persistence and transport concerns.
"""
