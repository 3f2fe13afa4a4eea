"""Narrow capability interfaces injected into the coordinator.

Each protocol has one production implementation and one deterministic double.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Protocol


class DirectoryPicker(Protocol):
    def pick_directory(self) -> Path | None: ...


class OutputSink(Protocol):
    def write(self, text: str, destination: Path) -> Path: ...


class ArgumentDirectoryPicker:
    """Pick the directory given on the command line, else the working directory."""

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path is not None else None

    def pick_directory(self) -> Path | None:
        return (self._path or Path.cwd()).expanduser()


class ScriptedDirectoryPicker:
    """Return queued answers in order, then ``None`` (a cancelled dialog)."""

    def __init__(self, answers: Iterable[Path | None] = ()) -> None:
        self._answers = list(answers)
        self.calls = 0

    def pick_directory(self) -> Path | None:
        self.calls += 1
        if not self._answers:
            return None
        return self._answers.pop(0)


class FileOutputSink:
    def write(self, text: str, destination: Path) -> Path:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(text, encoding="utf-8")
        return destination


class MemoryOutputSink:
    """Keep written artifacts in memory keyed by destination."""

    def __init__(self) -> None:
        self.writes: dict[Path, str] = {}

    def write(self, text: str, destination: Path) -> Path:
        self.writes[destination] = text
        return destination


__all__ = [
    "ArgumentDirectoryPicker",
    "DirectoryPicker",
    "FileOutputSink",
    "MemoryOutputSink",
    "OutputSink",
    "ScriptedDirectoryPicker",
]
