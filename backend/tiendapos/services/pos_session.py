"""
Session-scoped POS state.

Each signed-in session gets one OperatorSession holding its cart and its
register handle. The registry lives on the Flask app
(app.extensions["pos_sessions"]) and is keyed by session token id, so two
browser tabs of the same operator have separate carts but share the
persisted register.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from flask import current_app

from . import session_service
from .cart_service import Cart
from .register_service import RegisterLifecycleManager


EXTENSION_KEY = "pos_sessions"


@dataclass
class OperatorSession:
    session_id: int
    operator_id: str
    cart: Cart = field(default_factory=Cart)
    register: RegisterLifecycleManager = field(init=False)

    def __post_init__(self) -> None:
        self.register = RegisterLifecycleManager(self.operator_id)


class PosSessionRegistry:
    """Maps session token id -> OperatorSession. The lock guards the mapping only."""

    def __init__(self) -> None:
        self._sessions: dict[int, OperatorSession] = {}
        self._lock = threading.Lock()

    def get_or_create(self, session_id: int, operator_id: str) -> OperatorSession:
        with self._lock:
            state = self._sessions.get(session_id)
            if state is None or state.operator_id != operator_id:
                state = OperatorSession(session_id=session_id, operator_id=operator_id)
                self._sessions[session_id] = state
            return state

    def get(self, session_id: int) -> OperatorSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def discard(self, session_id: int) -> OperatorSession | None:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def session_ids(self) -> list[int]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def init_app(app) -> None:
    app.extensions[EXTENSION_KEY] = PosSessionRegistry()


def get_registry() -> PosSessionRegistry:
    return current_app.extensions[EXTENSION_KEY]


def prune_registry() -> int:
    """
    Drop entries whose session is no longer live (revoked, expired, idle or
    deleted by cleanup), wherever that happened. Returns the count dropped.
    """
    registry = get_registry()
    checked = registry.session_ids()
    live = session_service.live_session_ids(checked)
    # Only ids checked above; entries created meanwhile are kept
    return sum(1 for sid in checked if sid not in live and registry.discard(sid) is not None)
