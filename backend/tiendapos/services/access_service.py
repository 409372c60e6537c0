# Overview: Resolves an operator's role, tenant and suspension state, and gates actions.

"""
Access Control Resolution with Multi-Tenant Support

WHY: Every request must know which tenant the operator works in, with which
role, and whether that tenant is suspended. Resolution reads persisted state
on every call so a suspension or team change takes effect immediately.

RESOLUTION ORDER:
1. Own profile. Super-admins short-circuit (never suspended, no tenant).
2. Own profile suspended -> suspended, short-circuit.
3. Active team membership -> tenant = owner, role = membership role.
4. Otherwise the operator owns their own tenant.
5. Tenant profile suspended -> suspended (employees of a suspended business
   are blocked even if their personal account is fine).

DESIGN PRINCIPLES:
- Fail closed: unmapped actions and suspended tenants are denied
- Denial is a routine navigation outcome (is_permitted returns False);
  require_action is the raising variant for service-level checks
"""

from dataclasses import dataclass

from ..extensions import db
from ..models import Profile, TeamMember
from ..models.tenancy import MEMBER_STATUS_ACTIVE
from ..permissions import Action, Role, allowed_roles
from ..validation import NotFoundError


class AccessError(Exception):
    """Base class for access gate failures."""
    pass


class AuthorizationError(AccessError):
    """Raised when the resolved role is not allowed to perform an action."""
    def __init__(self, action: Action, role: Role | None):
        super().__init__(f"Role {role.value if role else 'none'} may not perform {action.value}")
        self.action = action
        self.role = role


class SuspendedAccountError(AccessError):
    """Raised when the operator or the operator's tenant is suspended."""
    pass


@dataclass(frozen=True)
class AccessContext:
    """
    Resolved access for one operator at one point in time.

    tenant_id is None only for super-admins.
    """
    operator_id: str
    role: Role
    tenant_id: str | None
    suspended: bool
    is_super_admin: bool

    def to_dict(self) -> dict:
        return {
            "operator_id": self.operator_id,
            "role": self.role.value,
            "tenant_id": self.tenant_id,
            "suspended": self.suspended,
            "is_super_admin": self.is_super_admin,
        }


def get_active_membership(operator_id: str) -> TeamMember | None:
    return db.session.query(TeamMember).filter_by(
        user_id=operator_id,
        status=MEMBER_STATUS_ACTIVE,
    ).first()


def resolve_access(operator_id: str) -> AccessContext:
    """
    Resolve (role, tenant_id, suspended, is_super_admin) for an operator.

    Raises NotFoundError if the operator's own profile, or the owner profile
    of their team, does not exist.
    """
    profile = db.session.query(Profile).filter_by(id=operator_id).first()
    if not profile:
        raise NotFoundError("Profile not found")

    if profile.is_super_admin:
        return AccessContext(
            operator_id=operator_id,
            role=Role.SUPER_ADMIN,
            tenant_id=None,
            suspended=False,
            is_super_admin=True,
        )

    if profile.is_suspended:
        return AccessContext(
            operator_id=operator_id,
            role=Role.OWNER,
            tenant_id=operator_id,
            suspended=True,
            is_super_admin=False,
        )

    membership = get_active_membership(operator_id)
    if membership:
        tenant_id = membership.owner_id
        role = Role(membership.role)
    else:
        tenant_id = operator_id
        role = Role.OWNER

    if tenant_id == operator_id:
        tenant = profile
    else:
        tenant = db.session.query(Profile).filter_by(id=tenant_id).first()
        if not tenant:
            raise NotFoundError("Tenant profile not found")

    return AccessContext(
        operator_id=operator_id,
        role=role,
        tenant_id=tenant_id,
        suspended=tenant.is_suspended,
        is_super_admin=False,
    )


def is_permitted(context: AccessContext, action: Action) -> bool:
    """
    Authorization gate.

    Suspended operators are denied everything (sign-out is not an action
    and is never gated). Super-admins pass every action.
    """
    if context.suspended:
        return False
    if context.is_super_admin:
        return True
    roles = allowed_roles(action)
    if roles is None:
        return True
    return context.role in roles


def require_action(context: AccessContext, action: Action) -> None:
    """Raising variant of is_permitted, suspension checked first."""
    if context.suspended:
        raise SuspendedAccountError("Account suspended")
    if not is_permitted(context, action):
        raise AuthorizationError(action, context.role)


def require_tenant(context: AccessContext) -> str:
    """
    Tenant id for tenant-scoped work.

    Super-admins have no tenant of their own and cannot operate a POS.
    """
    if context.tenant_id is None:
        raise AuthorizationError(Action.POS, context.role)
    return context.tenant_id
