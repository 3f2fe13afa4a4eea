"""Filtering and view-tree projection over scanned inventories."""

from __future__ import annotations

from .filtering import (
    FilterQuery,
    base_inventory,
    filter_inventory,
    matches_extension,
    matches_name,
    preserved_directories,
    prune_selection,
    remove_empty_directories,
    required_ancestors,
)
from .projection import (
    SELECTION_FULL,
    SELECTION_NONE,
    SELECTION_PARTIAL,
    ViewNode,
    directory_selection_state,
    iter_nodes,
    project_tree,
)

__all__ = [
    "FilterQuery",
    "SELECTION_FULL",
    "SELECTION_NONE",
    "SELECTION_PARTIAL",
    "ViewNode",
    "base_inventory",
    "directory_selection_state",
    "filter_inventory",
    "iter_nodes",
    "matches_extension",
    "matches_name",
    "preserved_directories",
    "project_tree",
    "prune_selection",
    "remove_empty_directories",
    "required_ancestors",
]
