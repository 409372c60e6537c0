"""
Tenant Profile Service

WHY: Profiles are created when the identity provider registers an operator,
and platform super-admins can suspend or reactivate whole tenants.

Suspension is read by access_service on every request, so it takes effect
on the next call without touching sessions.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Profile
from ..models.tenancy import PROFILE_STATUS_ACTIVE, PROFILE_STATUS_SUSPENDED
from ..validation import ConflictError, NotFoundError, ValidationError, optional_text, require_json_object, require_text
from .team_service import accept_pending_invitations, normalize_email


PROFILE_FIELDS = {"business_name", "address", "phone", "tax_id", "currency"}
PROFILE_STATUSES = {PROFILE_STATUS_ACTIVE, PROFILE_STATUS_SUSPENDED}


def get_profile(profile_id: str) -> Profile:
    profile = db.session.query(Profile).filter_by(id=profile_id).first()
    if not profile:
        raise NotFoundError("Profile not found")
    return profile


def create_profile(payload) -> Profile:
    """
    Register a new operator profile (identity provider sign-up event).

    Pending team invitations for the email are accepted in the same
    transaction.
    """
    payload = require_json_object(payload)
    profile_id = require_text(payload.get("id"), "id", max_length=64)
    email = normalize_email(payload["email"]) if payload.get("email") else None

    unknown = [k for k in payload if k not in PROFILE_FIELDS | {"id", "email"}]
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    if db.session.query(Profile).filter_by(id=profile_id).first():
        raise ConflictError("Profile already exists")

    profile = Profile(id=profile_id, email=email, status=PROFILE_STATUS_ACTIVE, is_super_admin=False)
    for field in ("business_name", "address", "phone", "tax_id"):
        setattr(profile, field, optional_text(payload.get(field), field, max_length=255))
    currency = optional_text(payload.get("currency"), "currency", max_length=8)
    if currency:
        profile.currency = currency.upper()

    try:
        db.session.add(profile)
        db.session.flush()
        accept_pending_invitations(profile)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Profile email already in use")
    except Exception:
        db.session.rollback()
        raise

    return profile


def list_profiles(search: str | None = None) -> list[Profile]:
    """All profiles, newest first; search matches business name, email or id."""
    query = db.session.query(Profile)
    if search and search.strip():
        term = search.strip().lower()
        query = query.filter(db.or_(
            db.func.lower(Profile.business_name).contains(term, autoescape=True),
            db.func.lower(Profile.email).contains(term, autoescape=True),
            Profile.id.contains(search.strip(), autoescape=True),
        ))
    return query.order_by(Profile.created_at.desc(), Profile.id).all()


def set_tenant_status(profile_id: str, status: str) -> Profile:
    """Suspend or reactivate a tenant. Super-admin profiles cannot be suspended."""
    status = str(status or "").strip().lower()
    if status not in PROFILE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(sorted(PROFILE_STATUSES))}")

    profile = get_profile(profile_id)
    if profile.is_super_admin and status == PROFILE_STATUS_SUSPENDED:
        raise ConflictError("Platform administrators cannot be suspended")

    profile.status = status
    db.session.commit()
    return profile


def toggle_tenant_status(profile_id: str) -> Profile:
    profile = get_profile(profile_id)
    new_status = PROFILE_STATUS_ACTIVE if profile.is_suspended else PROFILE_STATUS_SUSPENDED
    return set_tenant_status(profile_id, new_status)


def set_super_admin(profile_id: str, enabled: bool = True) -> Profile:
    profile = get_profile(profile_id)
    profile.is_super_admin = enabled
    if enabled:
        profile.status = PROFILE_STATUS_ACTIVE
    db.session.commit()
    return profile
