"""Persistent JSON configuration.

Stores ignore rules, output preferences, and the last scanned directory.
Loading is defensive: missing, malformed, or wrongly-typed values fall back to
defaults.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from pathlib import Path

from platformdirs import user_config_dir

from ..errors import CfcError

logger = logging.getLogger(__name__)

APP_NAME = "contextfileconcat"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

OUTPUT_FILENAME_FORMAT = "cfc_output_%Y%m%d_%H%M%S.txt"
DEFAULT_OUTPUT_FILENAME_RE = re.compile(r"^cfc_output_\d{8}_\d{6}\.txt$")

DEFAULT_IGNORE_PATTERNS = frozenset(
    {
        "node_modules",
        "venv",
        "target",
        ".idea",
        ".git",
        "*.log",
        "*.tmp",
        ".DS_Store",
        "Thumbs.db",
        "__pycache__",
        "*.pyc",
        "*.class",
        "*.o",
        "*.obj",
        "package-lock.json",
        "*.lock",
        ".gitignore",
        # images
        "*.png",
        "*.jpg",
        "*.jpeg",
        "*.gif",
        "*.bmp",
        "*.ico",
        "*.webp",
        "*.tiff",
        "*.tif",
        "*.heic",
        "*.heif",
        "*.avif",
        "*.raw",
        "*.icns",
        # binaries, archives, documents, media
        "*.exe",
        "*.dll",
        "*.so",
        "*.dylib",
        "*.app",
        "*.deb",
        "*.rpm",
        "*.msi",
        "*.jar",
        "*.war",
        "*.a",
        "*.lib",
        "*.rlib",
        "*.pdf",
        "*.doc",
        "*.docx",
        "*.xls",
        "*.xlsx",
        "*.ppt",
        "*.pptx",
        "*.zip",
        "*.tar",
        "*.gz",
        "*.7z",
        "*.rar",
        "*.bin",
        "*.dat",
        "*.db",
        "*.sqlite",
        "*.mp4",
        "*.mp3",
    }
)


def default_output_filename(now: datetime | None = None) -> str:
    """Return ``cfc_output_<timestamp>.txt`` for ``now`` (default: current time)."""
    return (now or datetime.now()).strftime(OUTPUT_FILENAME_FORMAT)


def is_default_output_filename(name: str) -> bool:
    return bool(DEFAULT_OUTPUT_FILENAME_RE.match(name))


@dataclass(frozen=True)
class AppConfig:
    """User-facing settings; replaced wholesale on every change."""

    ignore_patterns: frozenset[str] = DEFAULT_IGNORE_PATTERNS
    tree_ignore_patterns: frozenset[str] = frozenset()
    last_directory: Path | None = None
    output_directory: Path | None = None
    output_filename: str = field(default_factory=default_output_filename)
    case_sensitive_search: bool = False
    include_tree_by_default: bool = True
    use_relative_paths: bool = True
    remove_empty_directories: bool = False

    def with_updates(self, **changes: object) -> AppConfig:
        return replace(self, **changes)


def _coerce_patterns(value: object, default: frozenset[str]) -> frozenset[str]:
    if not isinstance(value, list):
        return default
    return frozenset(item for item in value if isinstance(item, str) and item.strip())


def _coerce_bool(value: object, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _coerce_path(value: object) -> Path | None:
    if not isinstance(value, str) or not value.strip():
        return None
    return Path(value)


def config_from_dict(data: dict[str, object]) -> AppConfig:
    """Build a config from decoded JSON; missing or invalid keys take defaults."""
    defaults = AppConfig()
    filename = data.get("output_filename")
    return AppConfig(
        ignore_patterns=_coerce_patterns(data.get("ignore_patterns"), defaults.ignore_patterns),
        tree_ignore_patterns=_coerce_patterns(
            data.get("tree_ignore_patterns"), defaults.tree_ignore_patterns
        ),
        last_directory=_coerce_path(data.get("last_directory")),
        output_directory=_coerce_path(data.get("output_directory")),
        output_filename=(
            filename.strip()
            if isinstance(filename, str) and filename.strip()
            else defaults.output_filename
        ),
        case_sensitive_search=_coerce_bool(
            data.get("case_sensitive_search"), defaults.case_sensitive_search
        ),
        include_tree_by_default=_coerce_bool(
            data.get("include_tree_by_default"), defaults.include_tree_by_default
        ),
        use_relative_paths=_coerce_bool(data.get("use_relative_paths"), defaults.use_relative_paths),
        remove_empty_directories=_coerce_bool(
            data.get("remove_empty_directories"), defaults.remove_empty_directories
        ),
    )


def config_to_dict(config: AppConfig) -> dict[str, object]:
    data = asdict(config)
    data["ignore_patterns"] = sorted(config.ignore_patterns)
    data["tree_ignore_patterns"] = sorted(config.tree_ignore_patterns)
    data["last_directory"] = str(config.last_directory) if config.last_directory else None
    data["output_directory"] = str(config.output_directory) if config.output_directory else None
    return data


def _dump(config: AppConfig) -> str:
    return json.dumps(config_to_dict(config), indent=2) + "\n"


class ConfigStore:
    """JSON config file at ``path`` (defaults to the per-user config dir)."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or DEFAULT_CONFIG_PATH

    def load(self) -> AppConfig:
        """Return the persisted config, or defaults when missing/unreadable."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return AppConfig()
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", self.path, exc)
            return AppConfig()
        if not isinstance(data, dict):
            logger.warning("Ignoring config %s: top level is not an object", self.path)
            return AppConfig()
        return config_from_dict(data)

    def save(self, config: AppConfig) -> None:
        """Persist ``config``; write failures are logged and otherwise ignored."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(_dump(config), encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not save config to %s: %s", self.path, exc)

    def import_from(self, path: Path) -> AppConfig:
        """Load a config exported elsewhere; raises ``CfcError`` if unusable."""
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CfcError(f"Cannot import config from {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise CfcError(f"Cannot import config from {path}: not a JSON object")
        logger.info("Imported config from %s", path)
        return config_from_dict(data)

    def export_to(self, config: AppConfig, path: Path) -> None:
        """Write ``config`` to ``path``; raises ``CfcError`` on failure."""
        try:
            path.write_text(_dump(config), encoding="utf-8")
        except OSError as exc:
            raise CfcError(f"Cannot export config to {path}: {exc}") from exc
        logger.info("Exported config to %s", path)


__all__ = [
    "APP_NAME",
    "AppConfig",
    "ConfigStore",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_IGNORE_PATTERNS",
    "config_from_dict",
    "config_to_dict",
    "default_output_filename",
    "is_default_output_filename",
]
