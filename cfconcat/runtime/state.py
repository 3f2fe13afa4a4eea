"""Single explicit application state object shared by runtime operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..inventory.types import Entry, ScanProgress
from ..output.concat import GenerationResult
from .config import AppConfig

READY_MESSAGE = "Ready."


@dataclass
class AppState:
    config: AppConfig = field(default_factory=AppConfig)
    root: Path | None = None
    inventory: list[Entry] = field(default_factory=list)
    filtered: list[Entry] = field(default_factory=list)
    selected: set[Path] = field(default_factory=set)
    expanded: set[Path] = field(default_factory=set)
    loaded_dirs: set[Path] = field(default_factory=set)
    name_query: str = ""
    extension_query: str = ""
    content_query: str = ""
    content_matches: set[Path] = field(default_factory=set)
    previewed: Path | None = None
    fully_scanned: bool = False
    large_files: tuple[Path, ...] = ()
    status_message: str = READY_MESSAGE
    progress: ScanProgress | None = None
    last_artifact: GenerationResult | None = None
    last_output_path: Path | None = None
    patterns_need_rescan: bool = False

    def reset_view(self) -> None:
        """Forget selection, expansion, queries, and preview for a new root."""
        self.selected = set()
        self.expanded = set()
        self.name_query = ""
        self.extension_query = ""
        self.content_query = ""
        self.content_matches = set()
        self.previewed = None

    def clear_directory(self) -> None:
        """Drop the scanned directory and everything derived from it."""
        self.reset_view()
        self.root = None
        self.inventory = []
        self.filtered = []
        self.loaded_dirs = set()
        self.fully_scanned = False
        self.large_files = ()
        self.progress = None
        self.last_artifact = None
        self.last_output_path = None
        self.patterns_need_rescan = False
        self.status_message = READY_MESSAGE


__all__ = ["AppState", "READY_MESSAGE"]
