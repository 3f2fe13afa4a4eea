"""Domain datatypes for scanned directory inventories."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Entry:
    """One discovered filesystem node below the scan root.

    ``depth`` is ``1`` for direct children of the root. Entries are never
    patched; a rescan replaces the whole inventory.
    """

    path: Path
    is_dir: bool
    is_binary: bool = False
    size: int = 0
    depth: int = 1
    parent: Path | None = None

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class ScanProgress:
    """Progress record published by background sessions."""

    processed: int
    total: int = 0  # 0 = unknown
    status: str = ""
    current_path: Path | None = None
    large_files_skipped: int = 0
    total_size: int | None = None
    total_lines: int | None = None


@dataclass(frozen=True)
class ScanResult:
    """Complete inventory plus files dropped by the size ceiling."""

    entries: tuple[Entry, ...]
    large_files: tuple[Path, ...] = ()

    @property
    def large_files_skipped(self) -> int:
        return len(self.large_files)


__all__ = [
    "Entry",
    "ScanProgress",
    "ScanResult",
]
