# backend/tiendapos/routes/admin.py
"""
Platform administration routes (super-admin only).

Suspending a tenant blocks its owner and every team member on their next
request; only sign-out remains available to them.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_action
from ..permissions import Action
from ..services import tenant_service
from ..validation import ConflictError, NotFoundError, ValidationError


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/tenants")
@require_auth
@require_action(Action.SUPER_ADMIN)
def list_tenants_route():
    """Query params: search (business name, email or id)."""
    profiles = tenant_service.list_profiles(request.args.get("search"))
    return jsonify({"tenants": [p.to_dict() for p in profiles]}), 200


@admin_bp.put("/tenants/<string:profile_id>/status")
@require_auth
@require_action(Action.SUPER_ADMIN)
def set_tenant_status_route(profile_id: str):
    """
    Request body: {"status": "suspended"} or {"status": "active"}
    Without a body the status is toggled.
    """
    try:
        data = request.get_json(silent=True) or {}
        if data.get("status") is None:
            profile = tenant_service.toggle_tenant_status(profile_id)
        else:
            profile = tenant_service.set_tenant_status(profile_id, data.get("status"))

        current_app.logger.warning("Tenant %s set to %s by %s", profile.id, profile.status, g.operator_id)
        return jsonify({"tenant": profile.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
