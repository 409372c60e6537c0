# backend/tiendapos/routes/sales.py
"""Sales history routes (owner/admin). Sales are created only through POS checkout."""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_action, require_tenant
from ..permissions import Action
from ..services import sales_service
from ..validation import NotFoundError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

MAX_PAGE_SIZE = 200


@sales_bp.get("")
@sales_bp.get("/")
@require_auth
@require_action(Action.SALES_HISTORY)
@require_tenant
def list_sales_route():
    """
    Query params: register_id, limit (default 50, max 200), offset.
    """
    limit = min(max(request.args.get("limit", default=50, type=int), 1), MAX_PAGE_SIZE)
    offset = max(request.args.get("offset", default=0, type=int), 0)

    sales = sales_service.list_sales(
        g.access.tenant_id,
        register_id=request.args.get("register_id", type=int),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "sales": [sale.to_dict() for sale in sales],
        "limit": limit,
        "offset": offset,
    }), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_action(Action.SALES_HISTORY)
@require_tenant
def get_sale_route(sale_id: int):
    """Sale with its item snapshots."""
    try:
        sale = sales_service.get_sale(g.access.tenant_id, sale_id)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
