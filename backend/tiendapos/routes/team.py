# backend/tiendapos/routes/team.py
"""
Team management routes (owner/admin).

Admins act on their owner's team: the team is always g.access.tenant_id.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_action, require_tenant
from ..models import TeamMember
from ..permissions import Action
from ..services import team_service
from ..validation import ConflictError, NotFoundError, ValidationError


team_bp = Blueprint("team", __name__, url_prefix="/api/team")


@team_bp.get("")
@team_bp.get("/")
@require_auth
@require_action(Action.TEAM)
@require_tenant
def list_team_route():
    owner_id = g.access.tenant_id
    return jsonify({
        "members": [m.to_dict() for m in team_service.list_members(owner_id)],
        "invitations": [i.to_dict() for i in team_service.list_invitations(owner_id)],
    }), 200


@team_bp.post("/invitations")
@require_auth
@require_action(Action.TEAM)
@require_tenant
def invite_member_route():
    """
    Add a team member by email.

    Request body: {"email": "ana@example.com", "role": "cashier"}

    Returns 201 with "member" if the email already has a profile, or 202
    with "invitation" when it is stored as pending.
    """
    try:
        data = request.get_json(silent=True) or {}
        result = team_service.invite_member(g.access.tenant_id, data.get("email"), data.get("role"))

        if isinstance(result, TeamMember):
            current_app.logger.info("Operator %s added to team %s as %s", result.user_id, result.owner_id, result.role)
            return jsonify({"member": result.to_dict()}), 201
        return jsonify({"invitation": result.to_dict()}), 202

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to invite team member")
        return jsonify({"error": "Internal server error"}), 500


@team_bp.delete("/invitations/<int:invitation_id>")
@require_auth
@require_action(Action.TEAM)
@require_tenant
def cancel_invitation_route(invitation_id: int):
    try:
        team_service.cancel_invitation(g.access.tenant_id, invitation_id)
        return jsonify({"message": "Invitation cancelled"}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@team_bp.patch("/members/<int:member_id>")
@require_auth
@require_action(Action.TEAM)
@require_tenant
def update_member_route(member_id: int):
    """
    Request body: {"role": "admin"} and/or {"status": "inactive"}
    """
    try:
        data = request.get_json(silent=True) or {}
        member = team_service.update_member(
            g.access.tenant_id,
            member_id,
            role=data.get("role"),
            status=data.get("status"),
        )
        return jsonify({"member": member.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@team_bp.delete("/members/<int:member_id>")
@require_auth
@require_action(Action.TEAM)
@require_tenant
def remove_member_route(member_id: int):
    try:
        team_service.remove_member(g.access.tenant_id, member_id)
        return jsonify({"message": "Member removed"}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
