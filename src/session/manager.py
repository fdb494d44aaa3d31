# src/session/manager.py — v1
"""Registry of ingestion sessions, at most one live session per scope."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from photoingest.analyzer.retry import SleepFn
from photoingest.core.errors import InvalidSessionStateError
from photoingest.session.session import IngestionSession

if TYPE_CHECKING:
    from photoingest.analyzer.base_client import BaseAnalyzerClient
    from photoingest.config.settings import Settings
    from photoingest.storage.base_store import BaseRecordStore

logger = logging.getLogger(__name__)


class SessionManager:
    """Creates sessions and tracks the live one for each scope.

    A scope may hold a new session only once its previous one reached a
    terminal state (complete or cancelled). A paused session still counts
    as live.
    """

    def __init__(
        self,
        store: BaseRecordStore,
        analyzer: BaseAnalyzerClient,
        settings: Settings | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._store = store
        self._analyzer = analyzer
        self._settings = settings
        self._sleep = sleep
        self._sessions: dict[str, IngestionSession] = {}

    def create_session(self, scope: str) -> IngestionSession:
        """Open a new session for ``scope``.

        Raises:
            InvalidSessionStateError: If the scope already has a live session.
        """
        existing = self._sessions.get(scope)
        if existing is not None and not existing.status.is_terminal:
            raise InvalidSessionStateError("create a new session", existing.status.value)

        session = IngestionSession(
            scope=scope,
            store=self._store,
            analyzer=self._analyzer,
            settings=self._settings,
            sleep=self._sleep,
        )
        self._sessions[scope] = session
        logger.debug("Created session %s for scope %s", session.session_id[:8], scope)
        return session

    def get(self, scope: str) -> IngestionSession | None:
        return self._sessions.get(scope)

    def active_sessions(self) -> list[IngestionSession]:
        """Sessions that have not reached a terminal state."""
        return [s for s in self._sessions.values() if not s.status.is_terminal]

    def minimized_sessions(self) -> list[IngestionSession]:
        """Live sessions running without an attached progress view."""
        return [s for s in self.active_sessions() if s.is_minimized]

    def discard(self, scope: str) -> None:
        """Forget a finished session.

        Raises:
            InvalidSessionStateError: If the session is still live.
        """
        session = self._sessions.get(scope)
        if session is None:
            return
        if not session.status.is_terminal:
            raise InvalidSessionStateError("discard", session.status.value)
        del self._sessions[scope]
