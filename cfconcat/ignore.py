"""Ignore-pattern compilation on top of ``pathspec`` gitwildmatch rules.

User patterns are normalized before compilation so a bare name such as
``target`` and a directory pattern such as ``target/`` hide the same paths:
the node itself at any depth and everything nested beneath it.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path, PurePath

from pathspec import PathSpec

logger = logging.getLogger(__name__)

VCS_METADATA_DIRS = frozenset({".git", ".hg", ".svn"})


def normalize_pattern(raw: str) -> tuple[str, ...]:
    """Return the glob strings registered for one raw pattern line.

    Blank lines and ``#`` comments register nothing. Directory-style patterns
    (trailing ``/`` or a bare name without ``/``, ``*`` or ``?``) register the
    node and its subtree; everything else is anchored to match at any depth.
    """
    pattern = raw.strip()
    if not pattern or pattern.startswith("#"):
        return ()
    pattern = pattern.lstrip("/")
    if not pattern:
        return ()

    is_directory_style = pattern.endswith("/") or (
        "/" not in pattern and "*" not in pattern and "?" not in pattern
    )
    if is_directory_style:
        base = pattern.rstrip("/")
        if not base:
            return ()
        return (f"**/{base}", f"**/{base}/**")
    return (f"**/{pattern}",)


def _relative_posix(path: Path, root: Path | None) -> str:
    if root is not None:
        try:
            return path.relative_to(root).as_posix()
        except ValueError:
            pass
    pure = PurePath(path)
    if pure.anchor:
        return pure.relative_to(pure.anchor).as_posix()
    return pure.as_posix()


def is_vcs_metadata_path(path: Path, root: Path | None = None) -> bool:
    """Return whether any segment of ``path`` below ``root`` is VCS metadata."""
    relative = _relative_posix(path, root)
    return any(part in VCS_METADATA_DIRS for part in relative.split("/"))


@dataclass(frozen=True)
class IgnoreMatcher:
    """Compiled ignore rules; ``patterns`` lists the registered globs."""

    patterns: tuple[str, ...]
    root: Path | None = None
    _spec: PathSpec | None = field(default=None, repr=False, compare=False)

    def matches(self, path: Path) -> bool:
        """Return whether ``path`` is hidden by any registered rule."""
        if self._spec is None:
            return False
        relative = _relative_posix(path, self.root)
        if not relative or relative == ".":
            return False
        return self._spec.match_file(relative)


def compile_ignore_patterns(patterns: Iterable[str], root: Path | None = None) -> IgnoreMatcher:
    """Compile raw ignore strings into a matcher.

    Paths are matched relative to ``root`` when given. Malformed patterns are
    logged and dropped; negations (``!``) are not supported by an unordered
    rule set and are dropped the same way.
    """
    globs: set[str] = set()
    for raw in patterns:
        if raw.strip().startswith("!"):
            logger.warning("Ignoring negated ignore pattern %r", raw)
            continue
        globs.update(normalize_pattern(raw))

    compiled = []
    accepted: list[str] = []
    for glob in sorted(globs):
        try:
            spec = PathSpec.from_lines("gitwildmatch", [glob])
        except (ValueError, re.error) as exc:
            logger.warning("Dropping invalid ignore pattern %r: %s", glob, exc)
            continue
        compiled.extend(spec.patterns)
        accepted.append(glob)

    spec = PathSpec(compiled) if compiled else None
    return IgnoreMatcher(patterns=tuple(accepted), root=root, _spec=spec)


@lru_cache(maxsize=32)
def cached_ignore_matcher(patterns: frozenset[str], root: Path | None = None) -> IgnoreMatcher:
    """Return a compiled matcher for an immutable pattern set, reusing recent ones."""
    return compile_ignore_patterns(patterns, root)


__all__ = [
    "IgnoreMatcher",
    "cached_ignore_matcher",
    "VCS_METADATA_DIRS",
    "compile_ignore_patterns",
    "is_vcs_metadata_path",
    "normalize_pattern",
]
