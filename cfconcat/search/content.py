"""Parallel substring search across eligible inventory files."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from ..errors import OperationCancelled
from ..inventory.classify import MAX_FILE_SIZE
from ..inventory.types import Entry

logger = logging.getLogger(__name__)


def _eligible(entry: Entry) -> bool:
    return not entry.is_dir and not entry.is_binary and entry.size <= MAX_FILE_SIZE


def file_contains(path: Path, needle: str, case_sensitive: bool) -> bool:
    """Return whether ``path`` decodes as UTF-8 and contains ``needle``.

    Read and decode failures are a non-match.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Content search skipped %s: %s", path, exc)
        return False
    if not case_sensitive:
        text = text.lower()
    return needle in text


def search_content(
    entries: Iterable[Entry],
    query: str,
    case_sensitive: bool = False,
    *,
    should_cancel: Callable[[], bool] | None = None,
    max_workers: int | None = None,
) -> set[Path]:
    """Return paths of text files whose content contains ``query``.

    Directories, binary entries, and files above the size ceiling are never
    read. Raises ``OperationCancelled`` when ``should_cancel`` trips; files
    already being read may still finish first.
    """
    if not query:
        return set()
    candidates = [entry.path for entry in entries if _eligible(entry)]
    if not candidates:
        return set()

    needle = query if case_sensitive else query.lower()

    def cancelled() -> bool:
        return should_cancel is not None and should_cancel()

    def search_one(path: Path) -> bool:
        if cancelled():
            return False
        return file_contains(path, needle, case_sensitive)

    if max_workers is None:
        max_workers = min(32, (os.cpu_count() or 1) + 4)
    max_workers = max(1, min(max_workers, len(candidates)))

    matches: set[Path] = set()
    with ThreadPoolExecutor(
        max_workers=max_workers,
        thread_name_prefix="cfconcat-content-search",
    ) as executor:
        futures = [(path, executor.submit(search_one, path)) for path in candidates]
        for path, future in futures:
            if cancelled():
                for _pending_path, pending in futures:
                    pending.cancel()
                break
            if future.result():
                matches.add(path)

    if cancelled():
        raise OperationCancelled("content search")
    return matches


__all__ = ["file_contains", "search_content"]
