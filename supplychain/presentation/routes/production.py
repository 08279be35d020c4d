from flask import jsonify

from supplychain.presentation.routes import api_bp, json_body
from supplychain.presentation.routes.services import production_engine


@api_bp.post('/produced-goods/<int:good_id>/produce')
def produce(good_id):
    result = production_engine().produce(good_id, json_body().get('units'))
    return jsonify(result.to_dict())
