"""Command-line front door for cfconcat.

Scans a directory, applies name/extension/content filters, selects every
visible file, and writes the concatenated artifact to a file or stdout.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .log import configure_logging
from .runtime.capabilities import ArgumentDirectoryPicker, FileOutputSink
from .runtime.config import AppConfig, ConfigStore
from .runtime.coordinator import ScanCoordinator
from .runtime.sessions import SESSION_CONTENT_SEARCH, SESSION_GENERATION, SESSION_SCAN, STATUS_COMPLETED
from .runtime.state import AppState
from .tree_model.projection import SELECTION_FULL, SELECTION_PARTIAL, ViewNode

SELECTION_MARKERS = {SELECTION_FULL: "[x]", SELECTION_PARTIAL: "[-]"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cfconcat",
        description="Concatenate the files of a directory into one text artifact.",
    )
    parser.add_argument("path", nargs="?", default=None, help="Directory to scan. Defaults to current directory.")
    parser.add_argument("--name", default="", help="Keep files whose name contains this text.")
    parser.add_argument("--ext", default="", help="Keep files with this extension ('no extension' for none).")
    parser.add_argument("--content", default="", help="Keep text files whose content contains this text.")
    parser.add_argument(
        "--ignore",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Additional ignore pattern (repeatable).",
    )
    parser.add_argument("--no-tree", action="store_true", help="Omit the directory tree block.")
    parser.add_argument("--absolute-paths", action="store_true", help="Print absolute file paths in headers.")
    parser.add_argument("--remove-empty", action="store_true", help="Hide directories without files.")
    parser.add_argument("--case-sensitive", action="store_true", help="Match --name and --content case-sensitively.")
    parser.add_argument("--output", "-o", type=Path, default=None, help="Write the artifact here instead of stdout.")
    parser.add_argument("--list", action="store_true", help="Print the visible tree instead of generating output.")
    parser.add_argument("--no-config", action="store_true", help="Ignore the persisted configuration.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output to stderr.")
    return parser


def render_listing(nodes: list[ViewNode], depth: int = 0) -> list[str]:
    """Return one indented line per visible node with its selection marker."""
    lines: list[str] = []
    for node in nodes:
        marker = SELECTION_MARKERS.get(node.selection_state, "[ ]")
        suffix = "/" if node.is_dir else ""
        lines.append(f"{'  ' * depth}{marker} {node.name}{suffix}")
        lines.extend(render_listing(list(node.children), depth + 1))
    return lines


def _require_completed(coordinator: ScanCoordinator, kind: str) -> None:
    if coordinator.session_status(kind) != STATUS_COMPLETED:
        raise SystemExit(coordinator.state.status_message)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments, run one headless scan/filter/generate pass."""
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)

    store = None if args.no_config else ConfigStore()
    config = store.load() if store is not None else AppConfig()
    config = config.with_updates(
        ignore_patterns=config.ignore_patterns | frozenset(args.ignore),
        include_tree_by_default=config.include_tree_by_default and not args.no_tree,
        use_relative_paths=config.use_relative_paths and not args.absolute_paths,
        remove_empty_directories=config.remove_empty_directories or args.remove_empty,
        case_sensitive_search=config.case_sensitive_search or args.case_sensitive,
    )

    coordinator = ScanCoordinator(
        AppState(config=config),
        picker=ArgumentDirectoryPicker(args.path),
    )
    coordinator.select_directory()
    coordinator.wait_idle()
    _require_completed(coordinator, SESSION_SCAN)

    content_session = coordinator.update_filters(args.name, args.ext, args.content)
    if content_session is not None:
        coordinator.wait_idle()
        _require_completed(coordinator, SESSION_CONTENT_SEARCH)

    coordinator.select_all()
    if args.list:
        for line in render_listing(coordinator.view()):
            print(line)
        return

    if coordinator.start_generation() is None:
        raise SystemExit(coordinator.state.status_message)
    coordinator.wait_idle()
    _require_completed(coordinator, SESSION_GENERATION)

    artifact = coordinator.state.last_artifact
    assert artifact is not None
    if args.output is not None:
        written = FileOutputSink().write(artifact.text, args.output)
        print(f"{coordinator.state.status_message} Saved to {written}.", file=sys.stderr)
    else:
        sys.stdout.write(artifact.text)


if __name__ == "__main__":
    main()
