"""Concatenation of selected files into a single text artifact."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from ..errors import OperationCancelled
from ..inventory.classify import MAX_FILE_SIZE, is_binary_file
from ..inventory.types import Entry
from .ascii_tree import render_ascii_tree

logger = logging.getLogger(__name__)

HEADER_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
TREE_RULE = "=" * 52
FILE_START_MARKER = "=====================FILE-START=================="
FILE_END_MARKER = "----------------------FILE-END-------------------"
BINARY_PLACEHOLDER = "[BINARY OR UNREADABLE FILE - CONTENT SKIPPED]"


def too_large_placeholder(size: int) -> str:
    return f"[FILE TOO LARGE: {size} bytes - CONTENT SKIPPED]"


@dataclass(frozen=True)
class GenerationResult:
    """Rendered artifact plus totals over the included file contents."""

    text: str
    file_count: int
    total_size: int
    total_lines: int


def display_path(path: Path, root: Path, use_relative_paths: bool) -> str:
    """Return the header path for ``path``.

    Relative mode renders the path relative to the parent of ``root`` so the
    root directory name stays visible; it falls back to the absolute path.
    """
    if not use_relative_paths:
        return str(path)
    anchor = root.parent
    if anchor == root:
        return str(path)
    try:
        return path.relative_to(anchor).as_posix()
    except ValueError:
        return str(path)


def _read_block(path: Path, is_binary: bool) -> tuple[str, bool]:
    """Return ``(content, is_real_content)`` for one file block."""
    if is_binary:
        return BINARY_PLACEHOLDER, False
    try:
        size = int(path.stat().st_size)
    except OSError as exc:
        logger.warning("Skipping unreadable file %s: %s", path, exc)
        return BINARY_PLACEHOLDER, False
    if size > MAX_FILE_SIZE:
        return too_large_placeholder(size), False
    try:
        return path.read_text(encoding="utf-8"), True
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Skipping unreadable file %s: %s", path, exc)
        return BINARY_PLACEHOLDER, False


def generate_concatenation(
    selected_paths: Sequence[Path],
    root: Path,
    *,
    include_tree: bool,
    use_relative_paths: bool,
    tree_entries: Iterable[Entry] = (),
    tree_ignore_patterns: Iterable[str] = (),
    inventory: Iterable[Entry] | None = None,
    should_cancel: Callable[[], bool] | None = None,
    now: Callable[[], datetime] | None = None,
) -> GenerationResult:
    """Render ``selected_paths`` (in the given order) into one artifact.

    Binary classification comes from ``inventory`` when the path is known and
    is computed otherwise. Per-file failures become inline placeholders and
    never abort the artifact. ``should_cancel`` is checked before each file.
    """
    known_binary = {entry.path: entry.is_binary for entry in inventory or () if not entry.is_dir}
    files = [path for path in selected_paths if not path.is_dir()]
    timestamp = (now or datetime.now)().strftime(HEADER_TIMESTAMP_FORMAT)

    parts = [
        f"# CFC Output - Generated: {timestamp}\n",
        f"# Total files: {len(files)}\n\n",
    ]
    if include_tree:
        parts.append("# DIRECTORY TREE\n")
        parts.append(f"{TREE_RULE}\n")
        parts.append(render_ascii_tree(tree_entries, root, tree_ignore_patterns))
        parts.append(f"{TREE_RULE}\n\n")

    total_size = 0
    total_lines = 0
    for path in files:
        if should_cancel is not None and should_cancel():
            raise OperationCancelled("generation")
        is_binary = known_binary.get(path)
        if is_binary is None:
            is_binary = is_binary_file(path)
        content, is_real = _read_block(path, is_binary)
        if is_real:
            total_size += len(content.encode("utf-8"))
            total_lines += len(content.splitlines())

        parts.append(f"{display_path(path, root, use_relative_paths)}\n")
        parts.append(f"{FILE_START_MARKER}\n")
        parts.append(content)
        if not content.endswith("\n"):
            parts.append("\n")
        parts.append(f"{FILE_END_MARKER}\n\n")

    return GenerationResult(
        text="".join(parts),
        file_count=len(files),
        total_size=total_size,
        total_lines=total_lines,
    )


__all__ = [
    "BINARY_PLACEHOLDER",
    "FILE_END_MARKER",
    "FILE_START_MARKER",
    "GenerationResult",
    "display_path",
    "generate_concatenation",
    "too_large_placeholder",
]
