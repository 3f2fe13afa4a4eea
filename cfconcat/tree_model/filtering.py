"""Filter pipeline deriving the visible inventory from queries and rules.

Every function here is pure: the same inventory, rules, queries, match set and
preserved directories always produce the same output.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from ..ignore import IgnoreMatcher, is_vcs_metadata_path
from ..inventory.classify import NO_EXTENSION
from ..inventory.types import Entry


@dataclass(frozen=True)
class FilterQuery:
    """User-entered filter queries plus case sensitivity for the name query."""

    name_query: str = ""
    extension_query: str = ""
    content_query: str = ""
    case_sensitive: bool = False

    @property
    def has_content_query(self) -> bool:
        return bool(self.content_query.strip())

    @property
    def has_name_query(self) -> bool:
        return bool(self.name_query.strip())

    @property
    def has_extension_query(self) -> bool:
        return bool(self.extension_query.strip())


def _ancestors_below(path: Path, root: Path) -> list[Path]:
    """Return directories strictly between ``path`` and ``root``, nearest first."""
    ancestors: list[Path] = []
    parent = path.parent
    while parent != root and parent.is_relative_to(root):
        ancestors.append(parent)
        if parent.parent == parent:
            break
        parent = parent.parent
    return ancestors


def required_ancestors(paths: Iterable[Path], root: Path) -> set[Path]:
    """Return every directory strictly between each of ``paths`` and ``root``."""
    required: set[Path] = set()
    for path in paths:
        for ancestor in _ancestors_below(path, root):
            if ancestor in required:
                break
            required.add(ancestor)
    return required


def base_inventory(
    entries: Iterable[Entry],
    ignore_matcher: IgnoreMatcher | None,
    root: Path,
) -> list[Entry]:
    """Drop ignored entries, VCS metadata, and anything below a dropped directory."""
    kept: list[Entry] = []
    dropped_dirs: set[Path] = set()
    for entry in entries:
        if is_vcs_metadata_path(entry.path, root) or (
            ignore_matcher is not None and ignore_matcher.matches(entry.path)
        ):
            if entry.is_dir:
                dropped_dirs.add(entry.path)
            continue
        kept.append(entry)
    if not dropped_dirs:
        return kept
    return [
        entry
        for entry in kept
        if not any(ancestor in dropped_dirs for ancestor in _ancestors_below(entry.path, root))
    ]


def remove_empty_directories(
    entries: Iterable[Entry],
    preserved: set[Path] | frozenset[Path] = frozenset(),
) -> tuple[list[Entry], set[Path]]:
    """Remove directories without descendant files until nothing changes.

    Returns ``(entries, removed_dirs)``. Directories in ``preserved`` are never
    removed, and neither are their ancestors, so ancestor chains stay intact.
    """
    working = list(entries)
    removed: set[Path] = set()
    while True:
        populated = {entry.path.parent for entry in working}
        pass_removed = {
            entry.path
            for entry in working
            if entry.is_dir and entry.path not in preserved and entry.path not in populated
        }
        if not pass_removed:
            return working, removed
        removed.update(pass_removed)
        working = [entry for entry in working if entry.path not in pass_removed]


def matches_name(entry: Entry, query: str, case_sensitive: bool = False) -> bool:
    """Return whether the file name contains ``query``."""
    if case_sensitive:
        return query in entry.name
    return query.lower() in entry.name.lower()


def matches_extension(entry: Entry, query: str) -> bool:
    """Return whether the entry's extension equals ``query``.

    The comparison ignores case and a leading dot. Extensionless files match
    an empty query or the ``"no extension"`` sentinel.
    """
    wanted = query.strip()
    wanted = wanted[1:] if wanted.startswith(".") else wanted
    suffix = entry.path.suffix
    if suffix:
        return suffix[1:].lower() == wanted.lower()
    return not wanted or wanted.lower() == NO_EXTENSION


def preserved_directories(
    entries: Iterable[Entry],
    loaded_dirs: set[Path] | frozenset[Path],
    expanded: set[Path] | frozenset[Path],
    remove_empty_dirs: bool,
) -> set[Path]:
    """Return directories that pruning must keep.

    Unloaded directories are always preserved. Expanded ones are preserved
    only while empty-directory removal is off.
    """
    preserved = {entry.path for entry in entries if entry.is_dir and entry.path not in loaded_dirs}
    if not remove_empty_dirs:
        preserved.update(expanded)
    return preserved


def _retain_with_ancestors(working: list[Entry], matched: set[Path], root: Path) -> list[Entry]:
    required = required_ancestors(matched, root)
    return [entry for entry in working if entry.path in matched or entry.path in required]


def filter_inventory(
    entries: Iterable[Entry],
    root: Path,
    *,
    ignore_matcher: IgnoreMatcher | None = None,
    remove_empty_dirs: bool = False,
    fully_scanned: bool = True,
    query: FilterQuery = FilterQuery(),
    content_matches: set[Path] | frozenset[Path] = frozenset(),
    preserved_dirs: set[Path] | frozenset[Path] = frozenset(),
) -> list[Entry]:
    """Return the visible subset of ``entries`` for the given rules and queries.

    Steps run in a fixed order: ignore rules, empty-directory pruning (only
    after a full scan), content matches, then name/extension matches. Each
    active query keeps its matches plus the directories leading to them, and an
    active query with no matches yields an empty result.
    """
    working = base_inventory(entries, ignore_matcher, root)

    if remove_empty_dirs and fully_scanned:
        working, _removed = remove_empty_directories(working, set(preserved_dirs))

    if query.has_content_query:
        if not content_matches:
            return []
        working = _retain_with_ancestors(working, set(content_matches), root)

    if query.has_name_query or query.has_extension_query:
        matched = {
            entry.path
            for entry in working
            if not entry.is_dir
            and (not query.has_name_query or matches_name(entry, query.name_query, query.case_sensitive))
            and (not query.has_extension_query or matches_extension(entry, query.extension_query))
        }
        if not matched:
            return []
        working = _retain_with_ancestors(working, matched, root)

    return working


def prune_selection(selected: Iterable[Path], filtered: Iterable[Entry]) -> set[Path]:
    """Return ``selected`` restricted to files still present in ``filtered``."""
    visible_files = {entry.path for entry in filtered if not entry.is_dir}
    return {path for path in selected if path in visible_files}


__all__ = [
    "FilterQuery",
    "base_inventory",
    "filter_inventory",
    "matches_extension",
    "matches_name",
    "preserved_directories",
    "prune_selection",
    "remove_empty_directories",
    "required_ancestors",
]
