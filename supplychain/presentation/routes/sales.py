from flask import jsonify, request

from supplychain.presentation.routes import api_bp, json_body
from supplychain.presentation.routes.services import sales_engine


@api_bp.post('/sales')
def record_sale():
    payload = json_body()
    result = sales_engine().record_sale(
        payload.get('good_id'),
        payload.get('quantity'),
        payload.get('payment_status'),
    )
    return jsonify(result.to_dict()), 201


@api_bp.get('/sales')
def list_sales():
    good_id = request.args.get('good_id', type=int)
    sales = sales_engine().list_sales(good_id)
    return jsonify([sale.to_dict() for sale in sales])
