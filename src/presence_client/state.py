"""Session state snapshots and the observer channel that broadcasts them."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .errors import AuthErrorKind
from .logger import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class SessionState:
    """Immutable view of the authentication session."""

    token: Optional[str] = None
    is_authenticated: bool = False
    is_initialized: bool = False
    is_loading: bool = False
    error: Optional[AuthErrorKind] = None

    def __repr__(self) -> str:
        # Keep tokens out of logs and tracebacks.
        token = "<set>" if self.token else None
        return (
            f"SessionState(token={token}, is_authenticated={self.is_authenticated}, "
            f"is_initialized={self.is_initialized}, is_loading={self.is_loading}, "
            f"error={self.error!s})"
        )


Listener = Callable[[SessionState], None]


@dataclass(frozen=True)
class SubscriptionHandle:
    """Opaque token returned by ``SessionPublisher.subscribe``."""

    id: int


class SessionPublisher:
    """Explicit publish/subscribe channel for ``SessionState`` snapshots.

    Listeners run synchronously, in subscription order, after a transition
    has been fully applied. One failing listener does not prevent the rest
    from being notified.
    """

    def __init__(self) -> None:
        self._listeners: Dict[int, Listener] = {}
        self._ids = itertools.count(1)

    def subscribe(self, listener: Listener) -> SubscriptionHandle:
        handle = SubscriptionHandle(next(self._ids))
        self._listeners[handle.id] = listener
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        self._listeners.pop(handle.id, None)

    def publish(self, state: SessionState) -> None:
        for listener in list(self._listeners.values()):
            try:
                listener(state)
            except Exception:
                LOGGER.exception("Session listener %r failed", listener)

    def __len__(self) -> int:
        return len(self._listeners)
