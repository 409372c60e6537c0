# backend/tiendapos/routes/auth.py
"""
Identity collaborator endpoints.

The external identity provider authenticates operators and reports:
- sign-up   -> POST /api/auth/profiles   (X-Identity-Key)
- sign-in   -> POST /api/auth/sessions   (X-Identity-Key)
- sign-out  -> DELETE /api/auth/sessions/current (Bearer token)

Sign-out never checks suspension: it is the one thing a suspended
operator can still do.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_identity_key, require_session
from ..services import access_service, session_service, tenant_service
from ..services.pos_session import get_registry
from ..validation import ConflictError, NotFoundError, ValidationError, require_text


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/profiles")
@require_identity_key
def create_profile_route():
    """
    Register an operator profile after sign-up.

    Request body:
    {
        "id": "<operator id from identity provider>",
        "email": "owner@example.com",
        "business_name": "Cafe Central",   (optional)
        "currency": "COP"                  (optional)
    }
    """
    try:
        profile = tenant_service.create_profile(request.get_json(silent=True))
        return jsonify({"profile": profile.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create profile")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/sessions")
@require_identity_key
def sign_in_route():
    """
    Sign-in event: issue a session token for an operator.

    Request body: {"operator_id": "..."}
    """
    try:
        data = request.get_json(silent=True) or {}
        operator_id = require_text(data.get("operator_id"), "operator_id", max_length=64)

        session, token = session_service.create_session(
            operator_id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        access = access_service.resolve_access(operator_id)

        current_app.logger.info("Operator %s signed in (session %s)", operator_id, session.id)
        return jsonify({
            "token": token,
            "session": session.to_dict(),
            "access": access.to_dict(),
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to sign in operator")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.delete("/sessions/current")
@require_session
def sign_out_route():
    """Sign-out: revoke the token and drop the session's cart and register handle."""
    try:
        session = session_service.revoke_session(g.session_token, reason="Sign-out")
        if not session:
            return jsonify({"error": "Invalid or expired token"}), 401

        get_registry().discard(session.id)

        current_app.logger.info("Operator %s signed out (session %s)", g.operator_id, session.id)
        return jsonify({"message": "Signed out"}), 200

    except Exception:
        current_app.logger.exception("Failed to sign out operator")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Resolved access context for the UI (role, tenant, super-admin flag)."""
    profile = tenant_service.get_profile(g.operator_id)
    tenant = None
    if g.access.tenant_id:
        tenant = tenant_service.get_profile(g.access.tenant_id).to_dict()
    return jsonify({
        "profile": profile.to_dict(),
        "tenant": tenant,
        "access": g.access.to_dict(),
    }), 200
