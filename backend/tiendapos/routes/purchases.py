# backend/tiendapos/routes/purchases.py
"""Supplier purchase routes (owner/admin). A purchase adds its quantities to stock."""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_action, require_tenant
from ..permissions import Action
from ..services import purchases_service
from ..validation import NotFoundError, ValidationError, require_json_object


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")

MAX_PAGE_SIZE = 200


@purchases_bp.get("")
@purchases_bp.get("/")
@require_auth
@require_action(Action.PURCHASES)
@require_tenant
def list_purchases_route():
    """
    Query params: limit (default 50, max 200), offset.
    """
    limit = min(max(request.args.get("limit", default=50, type=int), 1), MAX_PAGE_SIZE)
    offset = max(request.args.get("offset", default=0, type=int), 0)

    purchases = purchases_service.list_purchases(g.access.tenant_id, limit=limit, offset=offset)
    return jsonify({
        "purchases": [purchase.to_dict() for purchase in purchases],
        "limit": limit,
        "offset": offset,
    }), 200


@purchases_bp.get("/<int:purchase_id>")
@require_auth
@require_action(Action.PURCHASES)
@require_tenant
def get_purchase_route(purchase_id: int):
    try:
        purchase = purchases_service.get_purchase(g.access.tenant_id, purchase_id)
        return jsonify({"purchase": purchase.to_dict(include_items=True)}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@purchases_bp.post("")
@purchases_bp.post("/")
@require_auth
@require_action(Action.PURCHASES)
@require_tenant
def create_purchase_route():
    """
    Request body:
    {
        "supplier_name": "Distribuidora Norte",
        "items": [
            {"product_id": 1, "qty": 24, "cost_price": 8000}
        ]
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        purchase = purchases_service.record_purchase(
            g.access.tenant_id,
            data.get("supplier_name"),
            data.get("items"),
            operator_id=g.operator_id,
        )
        return jsonify({"purchase": purchase.to_dict(include_items=True)}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to record purchase")
        return jsonify({"error": "Internal server error"}), 500
