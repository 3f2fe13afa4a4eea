"""Runtime orchestration: application state, sessions, and the coordinator.

``ScanCoordinator`` is the entry point; submodules hold the state object,
selection operations, session slots, capabilities, and persisted config.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .coordinator import PollResult, ScanCoordinator, SessionEvent


def __getattr__(name: str):
    if name in {"PollResult", "ScanCoordinator", "SessionEvent"}:
        from . import coordinator as _coordinator

        return getattr(_coordinator, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "PollResult",
    "ScanCoordinator",
    "SessionEvent",
]
