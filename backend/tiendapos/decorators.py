# Overview: Request and access decorators for API routes.

import hmac
from functools import wraps

from flask import request, jsonify, g, current_app

from .permissions import Action
from .services import access_service, pos_session, session_service
from .services.pos_session import get_registry
from .validation import NotFoundError


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def _is_authenticated() -> bool:
    return hasattr(g, 'operator_id') and hasattr(g, 'access')


def suspended_response():
    return jsonify({"error": "Account suspended", "suspended": True}), 403


def denied_response(action: Action):
    # Routine navigation outcome: the client falls back to its default view
    return jsonify({"error": "Access denied", "action": action.value, "redirect": "/"}), 403


def require_session(f):
    """
    Require a valid session token without resolving access.

    Used by sign-out, which stays available to suspended operators.

    Sets g.operator_id and g.session_context.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token, on_expired=get_registry().discard)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.operator_id = context.operator_id
        g.session_context = context
        g.session_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_auth(f):
    """
    Require authentication and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.operator_id: The authenticated operator id
    - g.access: AccessContext (role, tenant_id, suspended, is_super_admin)
    - g.session_context: The validated SessionContext
    - g.pos: The OperatorSession (cart + register handle) for this session

    Returns 401 for missing/invalid tokens or a vanished profile, and 403
    for suspended operators or tenants.
    """
    @wraps(f)
    @require_session
    def decorated_function(*args, **kwargs):
        try:
            access = access_service.resolve_access(g.operator_id)
        except NotFoundError:
            return jsonify({"error": "Invalid session: profile not found"}), 401

        if access.suspended:
            current_app.logger.info("Suspended operator %s blocked from %s", g.operator_id, request.path)
            return suspended_response()

        g.access = access
        registry = get_registry()
        session_id = g.session_context.session.id
        if registry.get(session_id) is None:
            # New POS state: sweep entries of sessions that died elsewhere
            pos_session.prune_registry()
        g.pos = registry.get_or_create(session_id, g.operator_id)
        return f(*args, **kwargs)

    return decorated_function


def require_action(action: Action):
    """
    Require the resolved role to be allowed to perform action.

    Must be applied after @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not access_service.is_permitted(g.access, action):
                current_app.logger.warning(
                    "Access denied: operator=%s role=%s action=%s path=%s",
                    g.operator_id, g.access.role.value, action.value, request.path,
                )
                return denied_response(action)

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_tenant(f):
    """Require a tenant context (super-admins have none). Apply after @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if g.access.tenant_id is None:
            return denied_response(Action.POS)
        return f(*args, **kwargs)
    return decorated_function


def require_identity_key(f):
    """Require the identity provider's shared key in X-Identity-Key."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        provided = request.headers.get("X-Identity-Key", "")
        expected = current_app.config.get("IDENTITY_SERVICE_KEY") or ""
        if not expected or not hmac.compare_digest(provided.encode(), expected.encode()):
            return jsonify({"error": "Identity provider authentication required"}), 401
        return f(*args, **kwargs)
    return decorated_function
