# backend/tiendapos/routes/registers.py
"""
Cash Register API Routes

DESIGN:
- Each operator runs their own register: open -> close (immutable once closed)
- The open register gates product selection and checkout
- Owners/admins may read summaries of any register in their tenant
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_action, require_tenant
from ..extensions import db
from ..models import CashRegister, TeamMember
from ..permissions import Action
from ..services import access_service, register_service
from ..services.register_service import DuplicateRegisterError, RegisterClosedError
from ..validation import NotFoundError, ValidationError


registers_bp = Blueprint("registers", __name__, url_prefix="/api/registers")


def _register_in_tenant(register: CashRegister) -> bool:
    if register.operator_id == g.access.tenant_id:
        return True
    return db.session.query(TeamMember).filter_by(
        user_id=register.operator_id,
        owner_id=g.access.tenant_id,
    ).first() is not None


@registers_bp.get("/current")
@require_auth
@require_action(Action.POS)
@require_tenant
def current_register_route():
    """Open register for the operator, or null. Served from the session cache."""
    register = g.pos.register.status()
    return jsonify({"register": register.to_dict() if register else None}), 200


@registers_bp.post("/open")
@require_auth
@require_action(Action.POS)
@require_tenant
def open_register_route():
    """
    Open a register with the counted float.

    Request body: {"amount": 50000}
    """
    try:
        data = request.get_json(silent=True) or {}
        register = g.pos.register.open(data.get("amount"))

        current_app.logger.info("Register %s opened by %s with %s", register.id, g.operator_id, register.opening_amount)
        return jsonify({"register": register.to_dict()}), 201

    except DuplicateRegisterError as e:
        return jsonify({"error": str(e), "register_id": e.register_id}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to open register")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.post("/close")
@require_auth
@require_action(Action.POS)
@require_tenant
def close_register_route():
    """
    Close the operator's open register with the counted total.

    Request body: {"amount": 80000}
    """
    try:
        data = request.get_json(silent=True) or {}
        register = g.pos.register.close(data.get("amount"))

        current_app.logger.info(
            "Register %s closed by %s: counted=%s expected=%s variance=%s",
            register.id, g.operator_id, register.closing_amount, register.expected_amount, register.variance,
        )
        return jsonify({"register": register.to_dict()}), 200

    except RegisterClosedError as e:
        return jsonify({"error": str(e), "redirect": "/pos"}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to close register")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.get("/<int:register_id>/summary")
@require_auth
@require_action(Action.POS)
@require_tenant
def register_summary_route(register_id: int):
    """
    Sales count, totals by payment method and reconciliation for a register.

    Operators see their own registers; owners/admins any register in the tenant.
    """
    try:
        register = register_service.get_register(register_id)

        if register.operator_id != g.operator_id:
            if not access_service.is_permitted(g.access, Action.SALES_HISTORY) or not _register_in_tenant(register):
                return jsonify({"error": "Register not found"}), 404

        return jsonify(register_service.get_register_summary(register_id)), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
