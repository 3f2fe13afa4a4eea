"""Cancellable recursive directory walk producing a flat entry inventory."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable
from pathlib import Path

from ..errors import OperationCancelled, ScanRootError
from ..ignore import IgnoreMatcher, is_vcs_metadata_path
from .classify import MAX_FILE_SIZE, is_binary_file
from .types import Entry, ScanProgress, ScanResult

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL_SECONDS = 0.1


def _check_root(root: Path) -> Path:
    try:
        resolved = root.resolve()
    except OSError as exc:
        raise ScanRootError(root, f"cannot resolve scan root ({exc})") from exc
    if not resolved.exists():
        raise ScanRootError(resolved, "scan root does not exist")
    if not resolved.is_dir():
        raise ScanRootError(resolved, "scan root is not a directory")
    return resolved


def _sorted_children(directory: Path) -> list[os.DirEntry[str]]:
    """Return ``directory`` children by name, or ``[]`` when unreadable."""
    try:
        with os.scandir(directory) as entries:
            children = list(entries)
    except OSError as exc:
        logger.debug("Skipping unreadable directory %s: %s", directory, exc)
        return []
    children.sort(key=lambda child: child.name)
    return children


def scan_directory(
    root: Path,
    ignore_matcher: IgnoreMatcher | None = None,
    *,
    should_cancel: Callable[[], bool] | None = None,
    on_progress: Callable[[ScanProgress], None] | None = None,
    classify: Callable[[Path, int | None], bool] = is_binary_file,
) -> ScanResult:
    """Walk ``root`` and return every non-ignored entry below it.

    Ignored directories are not descended into and VCS metadata is always
    skipped. Files above ``MAX_FILE_SIZE`` are left out of the inventory and
    reported through ``ScanResult.large_files``. ``should_cancel`` is polled
    before each entry; a tripped signal raises ``OperationCancelled``.
    """
    root = _check_root(root)
    entries: list[Entry] = []
    large_files: list[Path] = []
    processed = 0
    last_progress_at = time.monotonic()

    def report(current: Path | None, total: int = 0) -> None:
        if on_progress is None:
            return
        on_progress(
            ScanProgress(
                processed=processed,
                total=total,
                status=f"Scanning... {processed} items",
                current_path=current,
                large_files_skipped=len(large_files),
            )
        )

    # Subdirectories are pushed reversed so they are visited in name order.
    stack: list[tuple[Path, int]] = [(root, 0)]
    while stack:
        directory, depth = stack.pop()
        subdirectories: list[tuple[Path, int]] = []
        for child in _sorted_children(directory):
            if should_cancel is not None and should_cancel():
                raise OperationCancelled("scan")
            processed += 1
            child_path = Path(child.path)

            now = time.monotonic()
            if now - last_progress_at >= PROGRESS_INTERVAL_SECONDS:
                report(child_path)
                last_progress_at = now

            if is_vcs_metadata_path(child_path, root):
                continue
            if ignore_matcher is not None and ignore_matcher.matches(child_path):
                continue

            try:
                is_dir = child.is_dir(follow_symlinks=False)
                size = 0 if is_dir else int(child.stat(follow_symlinks=False).st_size)
            except OSError as exc:
                logger.debug("Skipping %s: %s", child_path, exc)
                continue

            if is_dir:
                entries.append(
                    Entry(path=child_path, is_dir=True, depth=depth + 1, parent=directory)
                )
                subdirectories.append((child_path, depth + 1))
                continue

            if size > MAX_FILE_SIZE:
                large_files.append(child_path)
                continue

            entries.append(
                Entry(
                    path=child_path,
                    is_dir=False,
                    is_binary=classify(child_path, size),
                    size=size,
                    depth=depth + 1,
                    parent=directory,
                )
            )
        stack.extend(reversed(subdirectories))

    report(None, total=processed)
    if large_files:
        logger.info("Skipped %d files larger than %d bytes", len(large_files), MAX_FILE_SIZE)
    return ScanResult(entries=tuple(entries), large_files=tuple(large_files))


__all__ = ["PROGRESS_INTERVAL_SECONDS", "scan_directory"]
