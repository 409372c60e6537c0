# Overview: Operator session tokens issued on the identity provider's sign-in events.

"""
Session Token Management Service

WHY: The identity provider authenticates operators; this service only turns
its "operator X signed in" event into a revocable bearer token and its
"signed out" event into a revocation. Credentials never reach the core.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout (SESSION_ABSOLUTE_TIMEOUT_HOURS)
- Idle timeout (SESSION_IDLE_TIMEOUT_HOURS)
- Revocable on sign-out

Role and tenant are NOT captured here; access_service resolves them on
every request.
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable

from flask import current_app

from ..extensions import db
from ..models import SessionToken, Profile
from tiendapos.time_utils import utcnow
from ..validation import NotFoundError


@dataclass
class SessionContext:
    """Validated session: who is calling, and which session row they hold."""
    operator_id: str
    session: SessionToken


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24))


def _idle_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_IDLE_TIMEOUT_HOURS", 8))


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy). Sent to the client, never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    operator_id: str,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create a session token for an operator (sign-in event).

    Returns (session_record, plaintext_token).

    Raises NotFoundError if the operator has no profile. Suspended operators
    still get a session: the only thing they can do with it is sign out.
    """
    profile = db.session.query(Profile).filter_by(id=operator_id).first()
    if not profile:
        raise NotFoundError("Profile not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        operator_id=operator_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str, on_expired: Callable[[int], object] | None = None) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if the token is unknown, revoked, expired or idle.
    Updates last_used_at on success.

    on_expired is called with the session id when this call finds the
    session past its absolute or idle timeout.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        if on_expired:
            on_expired(session.id)
        return None

    if now - session.last_used_at > _idle_timeout():
        # Auto-revoke idle sessions
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = "Idle timeout"
        db.session.commit()
        if on_expired:
            on_expired(session.id)
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(operator_id=session.operator_id, session=session)


def revoke_session(token: str, reason: str = "Sign-out") -> SessionToken | None:
    """
    Revoke session token (sign-out event).

    Returns the revoked session, or None if no active session matched.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason

    db.session.commit()
    return session


def revoke_all_operator_sessions(operator_id: str, reason: str) -> list[int]:
    """
    Revoke all active sessions for an operator.

    Returns the ids of the revoked sessions.
    """
    now = utcnow()

    sessions = db.session.query(SessionToken).filter_by(
        operator_id=operator_id,
        is_revoked=False
    ).all()

    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason

    db.session.commit()
    return [session.id for session in sessions]


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """
    Delete expired and revoked sessions older than the retention window.

    Returns count of sessions deleted.
    """
    cutoff = utcnow() - timedelta(days=retention_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked == True  # noqa: E712
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted


def live_session_ids(session_ids) -> set[int]:
    """Subset of session_ids that would still pass validate_session."""
    ids = list(session_ids)
    if not ids:
        return set()

    now = utcnow()
    rows = db.session.query(SessionToken.id).filter(
        SessionToken.id.in_(ids),
        SessionToken.is_revoked == False,  # noqa: E712
        SessionToken.expires_at >= now,
        SessionToken.last_used_at >= now - _idle_timeout(),
    ).all()
    return {row[0] for row in rows}
