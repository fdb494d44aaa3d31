# src/logging/context.py — v1
"""Contextual logging support: attach session_id, scope, filename and stage
to log records emitted while a file moves through the pipeline.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging. Each per-file task runs in its own
# copy of the context, so concurrent files in a batch never see each other's.
_session_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "session_id", default=None
)
_scope: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "scope", default=None
)
_filename: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "filename", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    session_id: str | None = None
    scope: str | None = None
    filename: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        session_id=_session_id.get(),
        scope=_scope.get(),
        filename=_filename.get(),
        stage=_stage.get(),
    )


def set_session_context(session_id: str, scope: str) -> None:
    """Set session-level context (called once when a session starts running)."""
    _session_id.set(session_id)
    _scope.set(scope)


def set_file_context(filename: str, stage: str | None = None) -> None:
    """Set file-level context (called per file, updated per stage)."""
    _filename.set(filename)
    _stage.set(stage)


def set_stage(stage: str) -> None:
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _session_id.set(None)
    _scope.set(None)
    _filename.set(None)
    _stage.set(None)
