# backend/tiendapos/routes/pos.py
"""
POS API Routes: cart editing and checkout.

The cart lives in the caller's OperatorSession (g.pos); nothing here is
persisted until checkout commits the sale.

SECURITY:
- POS action (any authenticated, non-suspended operator with a tenant)
- Products are resolved inside the caller's tenant only
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_action, require_tenant
from ..permissions import Action
from ..services import products_service, sales_service
from ..services.cart_service import RemovalConfirmationRequired
from ..services.register_service import RegisterClosedError
from ..services.sales_service import InsufficientPaymentError, InsufficientStockError
from ..validation import NotFoundError, ValidationError, coerce_int


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


def _cart_response(status: int = 200):
    return jsonify({"cart": g.pos.cart.to_dict()}), status


@pos_bp.get("/cart")
@require_auth
@require_action(Action.POS)
@require_tenant
def get_cart_route():
    return _cart_response()


@pos_bp.post("/cart/items")
@require_auth
@require_action(Action.POS)
@require_tenant
def add_cart_item_route():
    """
    Add one unit of a product to the cart.

    Request body: {"product_id": 12}
    """
    try:
        data = request.get_json(silent=True) or {}
        product_id = coerce_int(data.get("product_id"), "product_id")
        product = products_service.get_product(g.access.tenant_id, product_id)
        g.pos.cart.add_item(product)
        return _cart_response(201)

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@pos_bp.put("/cart/items/<int:product_id>")
@require_auth
@require_action(Action.POS)
@require_tenant
def set_cart_item_quantity_route(product_id: int):
    """
    Set the absolute quantity of a line.

    Request body: {"qty": 3}
    qty 0 removes the line only with "confirmed": true.
    """
    try:
        data = request.get_json(silent=True) or {}
        # Only the JSON literal true confirms a removal
        confirmed = data.get("confirmed") is True
        g.pos.cart.set_quantity(product_id, data.get("qty"), confirmed=confirmed)
        return _cart_response()

    except RemovalConfirmationRequired as e:
        return jsonify({"error": str(e), "confirmation_required": True}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@pos_bp.patch("/cart/items/<int:product_id>")
@require_auth
@require_action(Action.POS)
@require_tenant
def adjust_cart_item_quantity_route(product_id: int):
    """
    Step a line's quantity by delta (stepper buttons).

    Request body: {"delta": -1}
    A step that would reach zero leaves the line unchanged.
    """
    try:
        data = request.get_json(silent=True) or {}
        g.pos.cart.adjust_quantity(product_id, data.get("delta"))
        return _cart_response()

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@pos_bp.delete("/cart/items/<int:product_id>")
@require_auth
@require_action(Action.POS)
@require_tenant
def remove_cart_item_route(product_id: int):
    try:
        g.pos.cart.remove_item(product_id)
        return _cart_response()
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@pos_bp.delete("/cart")
@require_auth
@require_action(Action.POS)
@require_tenant
def clear_cart_route():
    g.pos.cart.clear()
    return _cart_response()


@pos_bp.post("/checkout")
@require_auth
@require_action(Action.POS)
@require_tenant
def checkout_route():
    """
    Commit the cart as a sale against the operator's open register.

    Request body:
    {
        "payment_method": "CASH" | "CARD",
        "tendered": 50000,          (required for CASH)
        "register_id": 7            (optional; defaults to the open register)
    }

    Never retried server-side: a failed checkout leaves the cart intact so
    the operator can try again.
    """
    try:
        data = request.get_json(silent=True) or {}

        register_id = data.get("register_id")
        if register_id is None:
            register_id = g.pos.register.require_open().id

        sale = sales_service.commit_sale(
            g.pos.cart,
            operator_id=g.operator_id,
            tenant_id=g.access.tenant_id,
            register_id=register_id,
            payment_method=data.get("payment_method"),
            tendered=data.get("tendered"),
        )

        current_app.logger.info(
            "Sale %s committed: operator=%s register=%s total=%s method=%s",
            sale.id, g.operator_id, sale.register_id, sale.total, sale.payment_method,
        )
        return jsonify({"sale": sale.to_dict(include_items=True), "cart": g.pos.cart.to_dict()}), 201

    except InsufficientPaymentError as e:
        return jsonify({"error": str(e), "shortfall": e.shortfall, "details": e.details}), 400
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except RegisterClosedError as e:
        g.pos.register.invalidate()
        return jsonify({"error": str(e), "redirect": "/pos"}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to commit sale")
        return jsonify({"error": "Internal server error"}), 500
