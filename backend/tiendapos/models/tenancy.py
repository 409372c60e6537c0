from __future__ import annotations

from ..extensions import db
from tiendapos.time_utils import to_utc_z


PROFILE_STATUS_ACTIVE = "active"
PROFILE_STATUS_SUSPENDED = "suspended"

MEMBER_STATUS_ACTIVE = "active"
MEMBER_STATUS_INACTIVE = "inactive"


class Profile(db.Model):
    """
    Operator profile, and tenant root for owners.

    MULTI-TENANT: A tenant is identified by its owner's profile id. Team
    members have their own profile (their personal account) but work inside
    the owner's tenant via TeamMember.

    The id is the operator id issued by the identity provider.
    """
    __tablename__ = "profiles"

    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(255), nullable=True, unique=True, index=True)

    # Business metadata (only meaningful on the owner's profile)
    business_name = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    tax_id = db.Column(db.String(64), nullable=True)
    currency = db.Column(db.String(8), nullable=False, default="USD")

    status = db.Column(db.String(16), nullable=False, default=PROFILE_STATUS_ACTIVE, index=True)  # active, suspended
    is_super_admin = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Profile id={self.id!r} business_name={self.business_name!r} status={self.status}>"

    @property
    def is_suspended(self) -> bool:
        return self.status == PROFILE_STATUS_SUSPENDED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "business_name": self.business_name,
            "address": self.address,
            "phone": self.phone,
            "tax_id": self.tax_id,
            "currency": self.currency,
            "status": self.status,
            "is_super_admin": self.is_super_admin,
            "created_at": to_utc_z(self.created_at),
        }


class TeamMember(db.Model):
    """
    Subordinate operator working inside an owner's tenant.

    One row per user: an operator belongs to at most one team.
    """
    __tablename__ = "team_members"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_team_members_user"),
        db.Index("ix_team_members_owner_status", "owner_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey("profiles.id"), nullable=False)
    owner_id = db.Column(db.String(64), db.ForeignKey("profiles.id"), nullable=False, index=True)

    role = db.Column(db.String(16), nullable=False)  # admin, cashier
    status = db.Column(db.String(16), nullable=False, default=MEMBER_STATUS_ACTIVE)  # active, inactive

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    profile = db.relationship("Profile", foreign_keys=[user_id])
    owner = db.relationship("Profile", foreign_keys=[owner_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "owner_id": self.owner_id,
            "role": self.role,
            "status": self.status,
            "email": self.profile.email if self.profile else None,
            "created_at": to_utc_z(self.created_at),
        }


class TeamInvitation(db.Model):
    """Pending invitation for an email that has no profile yet."""
    __tablename__ = "team_invitations"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "email", name="uq_team_invitations_owner_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    owner_id = db.Column(db.String(64), db.ForeignKey("profiles.id"), nullable=False, index=True)
    role = db.Column(db.String(16), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "owner_id": self.owner_id,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
        }
