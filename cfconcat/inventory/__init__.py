"""Directory inventory: entry model, binary classification, and scanning."""

from __future__ import annotations

from .classify import MAX_FILE_SIZE, SNIFF_BYTES, extension_of, is_binary_file
from .scanner import scan_directory
from .types import Entry, ScanProgress, ScanResult

__all__ = [
    "Entry",
    "MAX_FILE_SIZE",
    "SNIFF_BYTES",
    "ScanProgress",
    "ScanResult",
    "extension_of",
    "is_binary_file",
    "scan_directory",
]
