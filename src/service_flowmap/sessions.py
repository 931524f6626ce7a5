"""Bounded in-memory store for interactive flow-map sessions."""

from __future__ import annotations

import time
from collections.abc import Callable

from loguru import logger

from .config.defaults import MAX_SESSIONS, SESSION_TTL_SECONDS
from .core.controller import FlowMapController
from .core.exceptions import SessionError


class SessionStore:
    """LRU store of session controllers with an idle timeout.

    Every successful lookup refreshes a session. Sessions idle for longer
    than ``ttl_seconds`` are dropped on the next access to the store, and
    adding a session beyond ``max_sessions`` evicts the least recently used.
    """

    def __init__(
        self,
        max_sessions: int = MAX_SESSIONS,
        ttl_seconds: float = SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_sessions = max_sessions
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # Insertion order is access order, oldest first
        self._sessions: dict[str, tuple[FlowMapController, float]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def add(self, session_id: str, controller: FlowMapController) -> None:
        self._expire()
        self._sessions.pop(session_id, None)
        while len(self._sessions) >= self.max_sessions:
            oldest = next(iter(self._sessions))
            del self._sessions[oldest]
            logger.debug(f"Evicted least recently used session {oldest}")
        self._sessions[session_id] = (controller, self._clock())

    def get(self, session_id: str) -> FlowMapController:
        """Return the session's controller and mark it as recently used.

        Raises:
            SessionError: If the session does not exist or has expired
        """
        self._expire()
        entry = self._sessions.pop(session_id, None)
        if entry is None:
            raise SessionError(f"Unknown session {session_id}", {"session_id": session_id})
        controller, _ = entry
        self._sessions[session_id] = (controller, self._clock())
        return controller

    def remove(self, session_id: str) -> None:
        """Drop a session.

        Raises:
            SessionError: If the session does not exist or has expired
        """
        self._expire()
        if self._sessions.pop(session_id, None) is None:
            raise SessionError(f"Unknown session {session_id}", {"session_id": session_id})

    def _expire(self) -> None:
        cutoff = self._clock() - self.ttl_seconds
        expired = [sid for sid, (_, last_used) in self._sessions.items() if last_used <= cutoff]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.debug(f"Expired {len(expired)} idle sessions")
