"""Projection of a filtered inventory into a sorted, tri-state view tree."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from ..inventory.types import Entry
from .filtering import matches_extension, matches_name

SELECTION_NONE = "none"
SELECTION_PARTIAL = "partial"
SELECTION_FULL = "full"


@dataclass(frozen=True)
class ViewNode:
    """Presentation node rebuilt from scratch on every state change."""

    name: str
    path: Path
    is_dir: bool
    is_binary: bool
    size: int
    selection_state: str
    expanded: bool = False
    is_match: bool = False
    previewed: bool = False
    children_loaded: bool = True
    children: tuple["ViewNode", ...] = ()


def selection_state_for_counts(selected: int, total: int) -> str:
    """Return the tri-state label for ``selected`` of ``total`` files."""
    if total == 0 or selected == 0:
        return SELECTION_NONE
    if selected == total:
        return SELECTION_FULL
    return SELECTION_PARTIAL


def directory_selection_state(directory: Path, entries: Iterable[Entry], selected: set[Path]) -> str:
    """Return the tri-state of files nested under ``directory`` in ``entries``."""
    total = 0
    chosen = 0
    for entry in entries:
        if entry.is_dir or not entry.path.is_relative_to(directory) or entry.path == directory:
            continue
        total += 1
        if entry.path in selected:
            chosen += 1
    return selection_state_for_counts(chosen, total)


def _sort_key(entry: Entry) -> tuple[bool, str]:
    return (not entry.is_dir, entry.name)


def project_tree(
    entries: Iterable[Entry],
    root: Path,
    *,
    selected: set[Path],
    expanded: set[Path],
    content_matches: set[Path] | frozenset[Path] = frozenset(),
    name_query: str = "",
    extension_query: str = "",
    case_sensitive: bool = False,
    previewed: Path | None = None,
    loaded_dirs: set[Path] | None = None,
) -> list[ViewNode]:
    """Build the view forest for ``entries`` starting at children of ``root``.

    Entries whose parent is neither ``root`` nor another entry are not
    reachable and are left out.
    """
    children_by_parent: dict[Path, list[Entry]] = {}
    for entry in entries:
        children_by_parent.setdefault(entry.path.parent, []).append(entry)
    for children in children_by_parent.values():
        children.sort(key=_sort_key)

    def is_match(entry: Entry) -> bool:
        if name_query and matches_name(entry, name_query, case_sensitive):
            return True
        if extension_query and matches_extension(entry, extension_query):
            return True
        return entry.path in content_matches

    def build(entry: Entry) -> tuple[ViewNode, int, int]:
        """Return the node plus its (selected, total) descendant file counts."""
        if not entry.is_dir:
            chosen = 1 if entry.path in selected else 0
            node = ViewNode(
                name=entry.name,
                path=entry.path,
                is_dir=False,
                is_binary=entry.is_binary,
                size=entry.size,
                selection_state=SELECTION_FULL if chosen else SELECTION_NONE,
                is_match=is_match(entry),
                previewed=previewed == entry.path,
            )
            return node, chosen, 1

        child_nodes: list[ViewNode] = []
        chosen = 0
        total = 0
        for child in children_by_parent.get(entry.path, []):
            child_node, child_chosen, child_total = build(child)
            child_nodes.append(child_node)
            chosen += child_chosen
            total += child_total
        node = ViewNode(
            name=entry.name,
            path=entry.path,
            is_dir=True,
            is_binary=entry.is_binary,
            size=entry.size,
            selection_state=selection_state_for_counts(chosen, total),
            expanded=entry.path in expanded,
            is_match=is_match(entry),
            previewed=previewed == entry.path,
            children_loaded=loaded_dirs is None or entry.path in loaded_dirs,
            children=tuple(child_nodes),
        )
        return node, chosen, total

    return [build(entry)[0] for entry in children_by_parent.get(root, [])]


def iter_nodes(nodes: Iterable[ViewNode]) -> Iterable[ViewNode]:
    """Yield every node depth-first in display order."""
    for node in nodes:
        yield node
        yield from iter_nodes(node.children)


__all__ = [
    "SELECTION_FULL",
    "SELECTION_NONE",
    "SELECTION_PARTIAL",
    "ViewNode",
    "directory_selection_state",
    "iter_nodes",
    "project_tree",
    "selection_state_for_counts",
]
