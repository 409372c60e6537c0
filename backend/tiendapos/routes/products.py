# backend/tiendapos/routes/products.py
"""
Product catalogue routes.

- Listing/search: any operator of the tenant (POS product picker)
- Create/update/delete: owner/admin
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_action, require_tenant
from ..permissions import Action
from ..services import products_service
from ..validation import NotFoundError, ValidationError


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@products_bp.get("/")
@require_auth
@require_action(Action.PRODUCTS)
@require_tenant
def list_products_route():
    """
    Query params: search (substring of name), page (0-based).
    """
    try:
        products, has_more = products_service.list_products(
            g.access.tenant_id,
            search=request.args.get("search"),
            page=request.args.get("page", default=0, type=int),
        )
        return jsonify({
            "products": [p.to_dict() for p in products],
            "has_more": has_more,
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@products_bp.get("/<int:product_id>")
@require_auth
@require_action(Action.PRODUCTS)
@require_tenant
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(g.access.tenant_id, product_id)
        return jsonify({"product": product.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@products_bp.post("")
@products_bp.post("/")
@require_auth
@require_action(Action.MANAGE_PRODUCTS)
@require_tenant
def create_product_route():
    """
    Request body:
    {
        "name": "Cafe americano",
        "price": 15000,
        "stock": 40,        (optional, default 0)
        "icon": "coffee"    (optional)
    }
    """
    try:
        product = products_service.create_product(g.access.tenant_id, request.get_json(silent=True))
        return jsonify({"product": product.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>")
@require_auth
@require_action(Action.MANAGE_PRODUCTS)
@require_tenant
def update_product_route(product_id: int):
    try:
        product = products_service.update_product(g.access.tenant_id, product_id, request.get_json(silent=True))
        return jsonify({"product": product.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_action(Action.MANAGE_PRODUCTS)
@require_tenant
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(g.access.tenant_id, product_id)
        return jsonify({"message": "Product deleted"}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
