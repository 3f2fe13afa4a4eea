"""Single-flight session slots for background operations.

Each operation kind owns one slot. Starting a session cancels the previous one
of the same kind, and results are only committed by the current session.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

SESSION_SCAN = "scan"
SESSION_CONTENT_SEARCH = "content_search"
SESSION_GENERATION = "generation"
SESSION_KINDS = (SESSION_SCAN, SESSION_CONTENT_SEARCH, SESSION_GENERATION)

STATUS_IDLE = "idle"
STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
STATUS_FAILED = "failed"


@dataclass
class Session:
    """One in-flight unit of background work."""

    kind: str
    generation: int
    cancel_event: threading.Event = field(default_factory=threading.Event)
    worker: threading.Thread | None = None
    status: str = STATUS_RUNNING
    message: str = ""

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    @property
    def finished(self) -> bool:
        return self.status != STATUS_RUNNING


class SessionSlots:
    """Current session per kind plus a monotonic generation counter.

    Not thread-safe on its own; callers hold the coordinator lock.
    """

    def __init__(self) -> None:
        self._generation = 0
        self._current: dict[str, Session] = {}

    def begin(self, kind: str) -> Session:
        """Cancel the current session of ``kind`` and register a new one."""
        if kind not in SESSION_KINDS:
            raise ValueError(f"unknown session kind: {kind!r}")
        previous = self._current.get(kind)
        if previous is not None and not previous.finished:
            previous.cancel()
        self._generation += 1
        session = Session(kind=kind, generation=self._generation)
        self._current[kind] = session
        return session

    def current(self, kind: str) -> Session | None:
        return self._current.get(kind)

    def is_current(self, session: Session) -> bool:
        """Return whether ``session`` may still commit results."""
        return self._current.get(session.kind) is session and not session.cancelled

    def cancel(self, kind: str) -> Session | None:
        session = self._current.get(kind)
        if session is not None and not session.finished:
            session.cancel()
            return session
        return None

    def cancel_all(self) -> None:
        for kind in SESSION_KINDS:
            self.cancel(kind)

    def status(self, kind: str) -> str:
        session = self._current.get(kind)
        return STATUS_IDLE if session is None else session.status

    def running(self) -> list[Session]:
        return [session for session in self._current.values() if not session.finished]


__all__ = [
    "SESSION_CONTENT_SEARCH",
    "SESSION_GENERATION",
    "SESSION_KINDS",
    "SESSION_SCAN",
    "STATUS_CANCELLED",
    "STATUS_COMPLETED",
    "STATUS_FAILED",
    "STATUS_IDLE",
    "STATUS_RUNNING",
    "Session",
    "SessionSlots",
]
