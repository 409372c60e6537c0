"""
Role and action definitions.

WHY: One place decides which roles may perform which action. Routes and
services consult ACTION_ROLES through access_service; nothing else compares
role strings.

DESIGN PRINCIPLES:
- Roles are resolved per request, never stored on the session
- owner and admin share every tenant-level action
- cashier is limited to the POS-facing actions
- super_admin passes every gate (except suspension, which never applies to it)
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    CASHIER = "cashier"
    SUPER_ADMIN = "super_admin"


# Roles an owner may assign to team members
ASSIGNABLE_ROLES = frozenset({Role.ADMIN, Role.CASHIER})


class Action(str, Enum):
    # Any authenticated operator
    DASHBOARD = "dashboard"
    PRODUCTS = "products"
    POS = "pos"

    # Tenant management (owner/admin)
    SALES_HISTORY = "sales_history"
    SETTINGS = "settings"
    PURCHASES = "purchases"
    EXPENSES = "expenses"
    FINANCIAL_REPORTS = "financial_reports"
    TEAM = "team"
    MANAGE_PRODUCTS = "manage_products"

    # Platform
    SUPER_ADMIN = "super_admin"


# None means "any authenticated, non-suspended operator"
ANY_AUTHENTICATED = None

_MANAGERS = frozenset({Role.OWNER, Role.ADMIN})

ACTION_ROLES: dict[Action, frozenset[Role] | None] = {
    Action.DASHBOARD: ANY_AUTHENTICATED,
    Action.PRODUCTS: ANY_AUTHENTICATED,
    Action.POS: ANY_AUTHENTICATED,
    Action.SALES_HISTORY: _MANAGERS,
    Action.SETTINGS: _MANAGERS,
    Action.PURCHASES: _MANAGERS,
    Action.EXPENSES: _MANAGERS,
    Action.FINANCIAL_REPORTS: _MANAGERS,
    Action.TEAM: _MANAGERS,
    Action.MANAGE_PRODUCTS: _MANAGERS,
    Action.SUPER_ADMIN: frozenset({Role.SUPER_ADMIN}),
}


def allowed_roles(action: Action) -> frozenset[Role] | None:
    """Roles permitted for action; raises KeyError for unmapped actions (fail closed)."""
    return ACTION_ROLES[action]
