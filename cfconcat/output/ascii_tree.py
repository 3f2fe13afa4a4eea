"""Ascii directory tree block embedded at the top of generated artifacts."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ..ignore import compile_ignore_patterns
from ..inventory.types import Entry

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE_PREFIX = "│   "
SPACE_PREFIX = "    "
DIR_ICON = "📁 "
FILE_ICON = "📄 "


@dataclass
class _TreeNode:
    name: str
    is_dir: bool
    children: dict[str, "_TreeNode"] = field(default_factory=dict)


def _insert(tree: dict[str, _TreeNode], parts: tuple[str, ...], is_dir: bool) -> None:
    level = tree
    for index, part in enumerate(parts):
        is_last = index == len(parts) - 1
        node = level.get(part)
        if node is None:
            node = _TreeNode(name=part, is_dir=is_dir if is_last else True)
            level[part] = node
        elif not is_last:
            node.is_dir = True
        level = node.children


def _render(level: dict[str, _TreeNode], prefix: str, lines: list[str]) -> None:
    nodes = sorted(level.values(), key=lambda node: (not node.is_dir, node.name))
    for index, node in enumerate(nodes):
        is_last = index == len(nodes) - 1
        connector = LAST_BRANCH if is_last else BRANCH
        icon = DIR_ICON if node.is_dir else FILE_ICON
        lines.append(f"{prefix}{connector}{icon}{node.name}\n")
        if node.children:
            _render(node.children, prefix + (SPACE_PREFIX if is_last else PIPE_PREFIX), lines)


def render_ascii_tree(
    entries: Iterable[Entry],
    root: Path,
    ignore_patterns: Iterable[str] = (),
) -> str:
    """Render ``entries`` below ``root`` as an indented connector tree.

    ``ignore_patterns`` hide entries from the tree only and follow the same
    normalization as scan ignore rules. Missing intermediate directories are
    synthesized.
    """
    matcher = compile_ignore_patterns(ignore_patterns, root=root)
    tree: dict[str, _TreeNode] = {}
    for entry in entries:
        if matcher.matches(entry.path):
            continue
        try:
            parts = entry.path.relative_to(root).parts
        except ValueError:
            parts = entry.path.parts
        if not parts:
            continue
        _insert(tree, parts, entry.is_dir)

    lines = [f"{root.name}/\n"]
    _render(tree, "", lines)
    return "".join(lines)


__all__ = ["render_ascii_tree"]
