"""
Team Management Service

WHY: Owners bring employees into their tenant with a role. An employee
works with the owner's products, registers are still personal, and the
owner's suspension blocks the whole team.

RULES:
- Only admin and cashier roles are assignable
- An operator belongs to at most one team
- Owners cannot invite themselves; super-admins cannot be invited
- Unknown emails become pending invitations, accepted when that email
  registers a profile
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Profile, TeamMember, TeamInvitation
from ..models.tenancy import MEMBER_STATUS_ACTIVE, MEMBER_STATUS_INACTIVE
from ..permissions import ASSIGNABLE_ROLES, Role
from ..validation import ConflictError, NotFoundError, ValidationError, require_text


MEMBER_STATUSES = {MEMBER_STATUS_ACTIVE, MEMBER_STATUS_INACTIVE}


def normalize_email(email) -> str:
    value = require_text(email, "email", max_length=255).lower()
    if "@" not in value:
        raise ValidationError("email is invalid")
    return value


def parse_assignable_role(value) -> Role:
    try:
        role = Role(str(value).strip().lower())
    except ValueError:
        role = None
    if role not in ASSIGNABLE_ROLES:
        allowed = ", ".join(sorted(r.value for r in ASSIGNABLE_ROLES))
        raise ValidationError(f"role must be one of: {allowed}")
    return role


def list_members(owner_id: str) -> list[TeamMember]:
    return db.session.query(TeamMember).filter_by(owner_id=owner_id).order_by(TeamMember.id).all()


def list_invitations(owner_id: str) -> list[TeamInvitation]:
    return db.session.query(TeamInvitation).filter_by(owner_id=owner_id).order_by(TeamInvitation.id).all()


def _add_member(owner_id: str, profile: Profile, role: Role) -> TeamMember:
    if profile.id == owner_id:
        raise ConflictError("You cannot add yourself to your own team")
    if profile.is_super_admin:
        raise ConflictError("Platform administrators cannot join a team")

    existing = db.session.query(TeamMember).filter_by(user_id=profile.id).first()
    if existing:
        if existing.owner_id == owner_id:
            raise ConflictError("This user is already a member of the team")
        raise ConflictError("This user already belongs to another team")

    member = TeamMember(
        user_id=profile.id,
        owner_id=owner_id,
        role=role.value,
        status=MEMBER_STATUS_ACTIVE,
    )
    db.session.add(member)
    return member


def invite_member(owner_id: str, email, role) -> TeamMember | TeamInvitation:
    """
    Add an operator to the owner's team by email.

    Returns the new TeamMember when the email has a profile, otherwise a
    pending TeamInvitation.
    """
    email = normalize_email(email)
    role = parse_assignable_role(role)

    profile = db.session.query(Profile).filter(db.func.lower(Profile.email) == email).first()

    try:
        if profile:
            result = _add_member(owner_id, profile, role)
        else:
            pending = db.session.query(TeamInvitation).filter_by(owner_id=owner_id, email=email).first()
            if pending:
                raise ConflictError("An invitation for this email is already pending")
            result = TeamInvitation(email=email, owner_id=owner_id, role=role.value)
            db.session.add(result)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("This user is already a member of a team")
    except Exception:
        db.session.rollback()
        raise

    return result


def accept_pending_invitations(profile: Profile) -> TeamMember | None:
    """
    Turn the oldest pending invitation for the profile's email into a
    membership. Other invitations for the same email are dropped since an
    operator belongs to one team. Does not commit.
    """
    if not profile.email:
        return None

    invitations = db.session.query(TeamInvitation).filter(
        db.func.lower(TeamInvitation.email) == profile.email.lower()
    ).order_by(TeamInvitation.id).all()
    if not invitations:
        return None

    first = invitations[0]
    member = _add_member(first.owner_id, profile, Role(first.role))
    for invitation in invitations:
        db.session.delete(invitation)
    return member


def get_member(owner_id: str, member_id: int) -> TeamMember:
    member = db.session.query(TeamMember).filter_by(id=member_id, owner_id=owner_id).first()
    if not member:
        raise NotFoundError("Team member not found")
    return member


def update_member(owner_id: str, member_id: int, *, role=None, status=None) -> TeamMember:
    member = get_member(owner_id, member_id)

    if role is None and status is None:
        raise ValidationError("role or status required")

    if role is not None:
        member.role = parse_assignable_role(role).value
    if status is not None:
        status = str(status).strip().lower()
        if status not in MEMBER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(MEMBER_STATUSES))}")
        member.status = status

    db.session.commit()
    return member


def remove_member(owner_id: str, member_id: int) -> None:
    member = get_member(owner_id, member_id)
    db.session.delete(member)
    db.session.commit()


def cancel_invitation(owner_id: str, invitation_id: int) -> None:
    invitation = db.session.query(TeamInvitation).filter_by(id=invitation_id, owner_id=owner_id).first()
    if not invitation:
        raise NotFoundError("Invitation not found")
    db.session.delete(invitation)
    db.session.commit()
