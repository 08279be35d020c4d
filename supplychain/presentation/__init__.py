"""
Presentation layer: the JSON transport over the inventory engine.
"""
