from flask import jsonify

from supplychain.business.core.constants import DEFAULT_COLOR_CODE, DEFAULT_UNIT
from supplychain.business.core.errors import InvalidInput
from supplychain.presentation.routes import api_bp, json_body
from supplychain.presentation.routes.services import catalog_manager


@api_bp.get('/raw-materials')
def list_raw_materials():
    materials = catalog_manager().list_raw_materials()
    return jsonify([m.to_dict() for m in materials])


@api_bp.post('/raw-materials')
def create_raw_material():
    payload = json_body()
    material_id = catalog_manager().create_raw_material(
        payload.get('name'),
        payload.get('sku'),
        quantity=payload.get('quantity', 0),
        unit=payload.get('unit') or DEFAULT_UNIT,
        color_code=payload.get('color_code') or DEFAULT_COLOR_CODE,
    )
    return jsonify({'id': material_id}), 201


@api_bp.post('/raw-materials/import')
def import_raw_materials():
    """Bulk upsert; rejected rows are reported, the rest are applied"""
    rows = json_body().get('rows')
    if not isinstance(rows, list):
        raise InvalidInput("'rows' must be a list of objects.")
    result = catalog_manager().bulk_upsert_raw_materials(rows)
    return jsonify(result.to_dict())


@api_bp.get('/produced-goods')
def list_produced_goods():
    goods = catalog_manager().list_produced_goods()
    return jsonify([g.to_dict() for g in goods])


@api_bp.post('/produced-goods')
def create_produced_good():
    payload = json_body()
    good_id = catalog_manager().create_produced_good(
        payload.get('name'),
        payload.get('sku'),
        payload.get('recipe'),
    )
    return jsonify({'id': good_id}), 201
