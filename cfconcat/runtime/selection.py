"""Selection, expansion, and refilter operations over ``AppState``.

Callers hold the coordinator lock; every function here mutates the state it
is given and does no I/O.
"""

from __future__ import annotations

from pathlib import Path

from ..ignore import IgnoreMatcher, cached_ignore_matcher
from ..tree_model.filtering import (
    FilterQuery,
    filter_inventory,
    matches_extension,
    matches_name,
    preserved_directories,
    prune_selection,
    required_ancestors,
)
from ..tree_model.projection import SELECTION_FULL, directory_selection_state
from .state import AppState


def filter_query(state: AppState) -> FilterQuery:
    return FilterQuery(
        name_query=state.name_query,
        extension_query=state.extension_query,
        content_query=state.content_query,
        case_sensitive=state.config.case_sensitive_search,
    )


def ignore_matcher(state: AppState) -> IgnoreMatcher:
    return cached_ignore_matcher(frozenset(state.config.ignore_patterns), state.root)


def apply_filters(state: AppState) -> None:
    """Recompute ``state.filtered`` and intersect the selection with it."""
    if state.root is None:
        state.filtered = []
        state.selected = set()
        return
    preserved = preserved_directories(
        state.inventory,
        state.loaded_dirs,
        state.expanded,
        state.config.remove_empty_directories,
    )
    state.filtered = filter_inventory(
        state.inventory,
        state.root,
        ignore_matcher=ignore_matcher(state),
        remove_empty_dirs=state.config.remove_empty_directories,
        fully_scanned=state.fully_scanned,
        query=filter_query(state),
        content_matches=state.content_matches,
        preserved_dirs=preserved,
    )
    state.selected = prune_selection(state.selected, state.filtered)


def auto_expand_for_matches(state: AppState) -> None:
    """Expand every directory leading to a visible name/extension/content match."""
    if state.root is None:
        return
    case_sensitive = state.config.case_sensitive_search
    matched: list[Path] = []
    for entry in state.filtered:
        if entry.is_dir:
            continue
        if (
            (state.name_query and matches_name(entry, state.name_query, case_sensitive))
            or (state.extension_query and matches_extension(entry, state.extension_query))
            or entry.path in state.content_matches
        ):
            matched.append(entry.path)
    state.expanded.update(required_ancestors(matched, state.root))


def visible_files(state: AppState) -> set[Path]:
    return {entry.path for entry in state.filtered if not entry.is_dir}


def toggle_selection(state: AppState, path: Path) -> bool:
    """Flip selection of one visible file; return whether it is now selected."""
    if path not in visible_files(state):
        return False
    if path in state.selected:
        state.selected.discard(path)
        return False
    state.selected.add(path)
    return True


def toggle_directory_selection(state: AppState, directory: Path) -> None:
    """Deselect a fully selected directory, otherwise select all files under it."""
    nested = {
        entry.path
        for entry in state.filtered
        if not entry.is_dir and entry.path.is_relative_to(directory) and entry.path != directory
    }
    if directory_selection_state(directory, state.filtered, state.selected) == SELECTION_FULL:
        state.selected.difference_update(nested)
    else:
        state.selected.update(nested)


def select_all(state: AppState) -> None:
    state.selected = visible_files(state)


def deselect_all(state: AppState) -> None:
    state.selected = set()


def toggle_expansion(state: AppState, directory: Path) -> bool:
    """Flip expansion of ``directory``; return whether it is now expanded."""
    if directory in state.expanded:
        state.expanded.discard(directory)
        return False
    state.expanded.add(directory)
    return True


def expand_all(state: AppState) -> None:
    state.expanded = {entry.path for entry in state.filtered if entry.is_dir}


def collapse_all(state: AppState) -> None:
    state.expanded = set()


def selected_in_path_order(state: AppState) -> list[Path]:
    """Return selected files drawn from the full inventory, sorted by path."""
    return sorted(
        entry.path for entry in state.inventory if not entry.is_dir and entry.path in state.selected
    )


def relative_ignore_pattern(state: AppState, path: Path) -> str | None:
    """Return the ignore pattern naming ``path`` relative to the root.

    Directories get a trailing ``/``. Returns ``None`` for paths outside the
    root or the root itself.
    """
    if state.root is None:
        return None
    try:
        relative = path.relative_to(state.root)
    except ValueError:
        return None
    if not relative.parts:
        return None
    pattern = relative.as_posix()
    is_dir = any(entry.path == path and entry.is_dir for entry in state.inventory) or path.is_dir()
    return f"{pattern}/" if is_dir else pattern


__all__ = [
    "apply_filters",
    "auto_expand_for_matches",
    "collapse_all",
    "deselect_all",
    "expand_all",
    "filter_query",
    "ignore_matcher",
    "relative_ignore_pattern",
    "select_all",
    "selected_in_path_order",
    "toggle_directory_selection",
    "toggle_expansion",
    "toggle_selection",
    "visible_files",
]
