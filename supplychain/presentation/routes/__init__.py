"""
Routes package for the supply chain inventory API
"""

from flask import Blueprint, jsonify, request

from supplychain.business.core.errors import (
    AlreadyApproved, Conflict, DuplicateSku, Forbidden, InsufficientStock, InvalidInput, InventoryError, NotFound,
)
from supplychain.logger import get_logger

logger = get_logger("supplychain.routes")

api_bp = Blueprint('api', __name__)

# Subclasses share their parent's status
_STATUS_CODES = (
    (InvalidInput, 400),
    (Forbidden, 403),
    (NotFound, 404),
    (DuplicateSku, 409),
    (InsufficientStock, 409),
    (AlreadyApproved, 409),
    (Conflict, 409),
)


def status_for(error: InventoryError) -> int:
    for error_cls, status in _STATUS_CODES:
        if isinstance(error, error_cls):
            return status
    return 400


@api_bp.errorhandler(InventoryError)
def handle_inventory_error(error: InventoryError):
    return jsonify(error.to_dict()), status_for(error)


def json_body() -> dict:
    """The request's JSON object; anything else is rejected as InvalidInput"""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidInput("Request body must be a JSON object.")
    return payload


# Import route modules
from . import catalog, stock, production, sales, transfers  # noqa: E402,F401


def init_app(app):
    """Initialize all route blueprints with the Flask app"""
    logger.debug("Initializing route blueprints")
    app.register_blueprint(api_bp, url_prefix='/api')
    logger.debug("Registered api blueprint at /api")
