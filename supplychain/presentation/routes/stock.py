from flask import jsonify

from supplychain.presentation.routes import api_bp
from supplychain.presentation.routes.services import inventory_store


@api_bp.get('/stock/<kind>/<int:item_id>')
def stock_holdings(kind, item_id):
    levels = inventory_store().holdings(kind, item_id)
    return jsonify([level.to_dict() for level in levels])


@api_bp.get('/stock/<kind>/<int:item_id>/movements')
def stock_movements(kind, item_id):
    store = inventory_store()
    # Resolves the item first so an unknown id is a 404 rather than an empty ledger
    store.get(kind, item_id)
    return jsonify([movement.to_dict() for movement in store.movements(kind, item_id)])
