"""Exception taxonomy shared by scanning, searching, and generation."""

from __future__ import annotations

from pathlib import Path


class CfcError(Exception):
    """Base class for cfconcat failures."""


class OperationCancelled(CfcError):
    """Raised when a cooperative cancellation signal trips mid-operation.

    Callers discard partial results. This is a normal session outcome and is
    not reported as a failure.
    """

    def __init__(self, operation: str = "operation") -> None:
        super().__init__(f"{operation} was cancelled")
        self.operation = operation


class ScanRootError(CfcError):
    """Raised when the scan root is missing or is not a directory."""

    def __init__(self, root: Path, reason: str) -> None:
        super().__init__(f"{reason}: {root}")
        self.root = root
        self.reason = reason


__all__ = ["CfcError", "OperationCancelled", "ScanRootError"]
