"""Artifact rendering: ascii directory tree and file concatenation."""

from __future__ import annotations

from .ascii_tree import render_ascii_tree
from .concat import GenerationResult, display_path, generate_concatenation

__all__ = [
    "GenerationResult",
    "display_path",
    "generate_concatenation",
    "render_ascii_tree",
]
