"""End-to-end coordinator flows over a real temporary directory tree."""

from __future__ import annotations

import tempfile
import threading
import unittest
from datetime import datetime
from pathlib import Path
from unittest import mock

import cfconcat.runtime.coordinator as coordinator_module
from cfconcat.runtime.capabilities import MemoryOutputSink, ScriptedDirectoryPicker
from cfconcat.runtime.config import AppConfig, ConfigStore
from cfconcat.runtime.coordinator import ScanCoordinator
from cfconcat.runtime.sessions import (
    SESSION_CONTENT_SEARCH,
    SESSION_GENERATION,
    SESSION_SCAN,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_IDLE,
)
from cfconcat.runtime.state import AppState
from cfconcat.tree_model.projection import SELECTION_FULL, SELECTION_PARTIAL, iter_nodes

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5)
WAIT_SECONDS = 5.0


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _make_project(base: Path, name: str = "proj") -> Path:
    root = base / name
    _write(root / "README.md", "hello world\n")
    _write(root / "src" / "a.rs", "fn main() { needle(); }\n")
    _write(root / "src" / "b.rs", "fn other() {}\n")
    _write(root / "src" / "core" / "x.rs", "// Needle here\n")
    _write(root / "build" / "out.txt", "needle\n")
    (root / "docs").mkdir()
    return root


def _blocking_scan(entered: threading.Event, release: threading.Event, only_root: Path | None = None):
    real_scan = coordinator_module.scan_directory

    def scan(root, ignore_matcher=None, **kwargs):
        if only_root is not None and root != only_root:
            return real_scan(root, ignore_matcher, **kwargs)

        def classify(path: Path, size: int | None) -> bool:
            entered.set()
            release.wait(WAIT_SECONDS)
            return False

        return real_scan(root, ignore_matcher, classify=classify, **kwargs)

    return scan


class CoordinatorFlowTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name).resolve()
        self.root = _make_project(self.base)
        self.sink = MemoryOutputSink()
        self.store = ConfigStore(self.base / "config" / "config.json")
        self.coordinator = ScanCoordinator(
            AppState(config=AppConfig(ignore_patterns=frozenset({"build"}))),
            config_store=self.store,
            picker=ScriptedDirectoryPicker([self.root]),
            output_sink=self.sink,
            now=lambda: FIXED_NOW,
        )

    def tearDown(self) -> None:
        self.coordinator.clear_directory()
        self.coordinator.wait_idle(WAIT_SECONDS)
        self._tmp.cleanup()

    def _scan(self) -> None:
        self.assertIsNotNone(self.coordinator.select_directory())
        self.assertTrue(self.coordinator.wait_idle(WAIT_SECONDS))
        self.assertEqual(self.coordinator.session_status(SESSION_SCAN), STATUS_COMPLETED)

    def _visible(self) -> set[str]:
        state = self.coordinator.state
        return {entry.path.relative_to(self.root).as_posix() for entry in state.filtered}

    def test_scan_commits_inventory_and_status(self) -> None:
        self.assertEqual(self.coordinator.session_status(SESSION_SCAN), STATUS_IDLE)

        self._scan()

        state = self.coordinator.state
        self.assertEqual(state.root, self.root)
        self.assertTrue(state.fully_scanned)
        self.assertEqual(
            self._visible(),
            {"README.md", "docs", "src", "src/a.rs", "src/b.rs", "src/core", "src/core/x.rs"},
        )
        self.assertEqual(state.status_message, "Scan complete. Found 7 visible items.")
        self.assertEqual([node.name for node in self.coordinator.view()], ["docs", "src", "README.md"])

    def test_scan_saves_last_directory(self) -> None:
        self._scan()
        self.assertEqual(self.store.load().last_directory, self.root)

    def test_cancelled_scan_leaves_previous_state(self) -> None:
        self._scan()
        before_inventory = list(self.coordinator.state.inventory)
        before_filtered = list(self.coordinator.state.filtered)
        entered = threading.Event()
        release = threading.Event()

        with mock.patch.object(coordinator_module, "scan_directory", _blocking_scan(entered, release)):
            self.coordinator.rescan()
            self.assertTrue(entered.wait(WAIT_SECONDS))
            self.assertTrue(self.coordinator.cancel_scan())
            release.set()
            self.assertTrue(self.coordinator.wait_idle(WAIT_SECONDS))

        state = self.coordinator.state
        self.assertEqual(state.inventory, before_inventory)
        self.assertEqual(state.filtered, before_filtered)
        self.assertEqual(self.coordinator.session_status(SESSION_SCAN), STATUS_CANCELLED)
        self.assertEqual(state.status_message, "Scan cancelled.")

    def test_superseded_scan_never_commits(self) -> None:
        other = _make_project(self.base, "other")
        entered = threading.Event()
        release = threading.Event()

        with mock.patch.object(
            coordinator_module,
            "scan_directory",
            _blocking_scan(entered, release, only_root=self.root),
        ):
            first = self.coordinator.start_scan(self.root)
            self.assertTrue(entered.wait(WAIT_SECONDS))
            self.coordinator.start_scan(other)
            self.assertTrue(self.coordinator.wait_idle(WAIT_SECONDS))
            release.set()
            first.worker.join(WAIT_SECONDS)

        self.assertEqual(first.status, STATUS_CANCELLED)
        self.assertEqual(self.coordinator.state.root, other)
        self.assertTrue(self.coordinator.state.status_message.startswith("Scan complete."))

    def test_malformed_ignore_pattern_does_not_break_scan_or_config(self) -> None:
        config = self.coordinator.state.config
        self.coordinator.update_config(config.with_updates(ignore_patterns=frozenset({"build", "q[z-a]x"})))

        self._scan()
        self.assertEqual(len(self._visible()), 7)

        config = self.coordinator.state.config
        self.coordinator.update_config(
            config.with_updates(ignore_patterns=config.ignore_patterns | {"*.md", "r[z-a]y"})
        )

        self.assertNotIn("README.md", self._visible())
        self.assertIn("r[z-a]y", self.store.load().ignore_patterns)

    def test_superseded_content_search_never_commits(self) -> None:
        self._scan()
        entered = threading.Event()
        release = threading.Event()
        real_search = coordinator_module.search_content

        def search(entries, query, case_sensitive=False, **kwargs):
            if query == "needle":
                entered.set()
                release.wait(WAIT_SECONDS)
            return real_search(entries, query, case_sensitive, **kwargs)

        with mock.patch.object(coordinator_module, "search_content", search):
            first = self.coordinator.update_filters(content_query="needle")
            self.assertTrue(entered.wait(WAIT_SECONDS))
            self.coordinator.update_filters(content_query="fn other")
            self.assertTrue(self.coordinator.wait_idle(WAIT_SECONDS))
            release.set()
            first.worker.join(WAIT_SECONDS)

        state = self.coordinator.state
        self.assertEqual(first.status, STATUS_CANCELLED)
        self.assertEqual(state.content_matches, {self.root / "src/b.rs"})
        self.assertEqual(self._visible(), {"src", "src/b.rs"})
        self.assertEqual(state.status_message, "Found 1 files containing 'fn other'.")

    def test_cancelled_generation_writes_nothing(self) -> None:
        self._scan()
        self.coordinator.select_all()
        entered = threading.Event()
        release = threading.Event()
        real_generate = coordinator_module.generate_concatenation

        def generate(*args, **kwargs):
            entered.set()
            release.wait(WAIT_SECONDS)
            return real_generate(*args, **kwargs)

        with mock.patch.object(coordinator_module, "generate_concatenation", generate):
            self.assertIsNotNone(self.coordinator.start_generation())
            self.assertTrue(entered.wait(WAIT_SECONDS))
            self.assertTrue(self.coordinator.cancel_generation())
            release.set()
            self.assertTrue(self.coordinator.wait_idle(WAIT_SECONDS))

        state = self.coordinator.state
        self.assertEqual(self.coordinator.session_status(SESSION_GENERATION), STATUS_CANCELLED)
        self.assertIsNone(state.last_artifact)
        self.assertIsNone(state.last_output_path)
        self.assertEqual(self.sink.writes, {})
        self.assertEqual(state.status_message, "Generation cancelled.")

    def test_missing_root_reports_failure(self) -> None:
        self.coordinator.start_scan(self.base / "missing")
        self.assertTrue(self.coordinator.wait_idle(WAIT_SECONDS))

        self.assertEqual(self.coordinator.session_status(SESSION_SCAN), STATUS_FAILED)
        self.assertTrue(self.coordinator.state.status_message.startswith("Scan failed:"))
        self.assertIsNone(self.coordinator.state.root)

    def test_declined_picker_starts_nothing(self) -> None:
        coordinator = ScanCoordinator(AppState(), picker=ScriptedDirectoryPicker([None]))
        self.assertIsNone(coordinator.select_directory())
        self.assertEqual(coordinator.session_status(SESSION_SCAN), STATUS_IDLE)
        self.assertEqual(coordinator.view(), [])

    def test_content_search_filters_and_expands(self) -> None:
        self._scan()

        session = self.coordinator.update_filters(content_query="needle")
        self.assertIsNotNone(session)
        self.assertTrue(self.coordinator.wait_idle(WAIT_SECONDS))

        state = self.coordinator.state
        self.assertEqual(self.coordinator.session_status(SESSION_CONTENT_SEARCH), STATUS_COMPLETED)
        self.assertEqual(state.content_matches, {self.root / "src/a.rs", self.root / "src/core/x.rs"})
        self.assertEqual(self._visible(), {"src", "src/a.rs", "src/core", "src/core/x.rs"})
        self.assertEqual(state.expanded, {self.root / "src", self.root / "src/core"})
        self.assertEqual(state.status_message, "Found 2 files containing 'needle'.")

    def test_content_search_without_matches_hides_everything(self) -> None:
        self._scan()

        self.coordinator.update_filters(content_query="absent-token")
        self.assertTrue(self.coordinator.wait_idle(WAIT_SECONDS))
        self.assertEqual(self.coordinator.state.filtered, [])

        self.assertIsNone(self.coordinator.update_filters(content_query="   "))
        self.assertEqual(len(self.coordinator.state.filtered), 7)

    def test_name_filter_and_tri_state_view(self) -> None:
        self._scan()
        self.assertIsNone(self.coordinator.update_filters(extension_query="rs"))
        self.assertTrue(self.coordinator.toggle_selection(self.root / "src/a.rs"))

        nodes = {node.path: node for node in iter_nodes(self.coordinator.view())}

        self.assertNotIn(self.root / "README.md", nodes)
        self.assertEqual(nodes[self.root / "src"].selection_state, SELECTION_PARTIAL)
        self.coordinator.toggle_directory_selection(self.root / "src")
        nodes = {node.path: node for node in iter_nodes(self.coordinator.view())}
        self.assertEqual(nodes[self.root / "src"].selection_state, SELECTION_FULL)

    def test_generation_writes_artifact(self) -> None:
        self._scan()
        self.coordinator.toggle_selection(self.root / "src/a.rs")
        self.coordinator.toggle_selection(self.root / "README.md")

        self.assertIsNotNone(self.coordinator.start_generation())
        self.assertTrue(self.coordinator.wait_idle(WAIT_SECONDS))

        state = self.coordinator.state
        destination = self.root / "cfc_output_20240102_030405.txt"
        self.assertEqual(self.coordinator.session_status(SESSION_GENERATION), STATUS_COMPLETED)
        self.assertEqual(state.last_output_path, destination)
        self.assertEqual(state.config.output_filename, "cfc_output_20240102_030405.txt")
        artifact = self.sink.writes[destination]
        self.assertEqual(artifact, state.last_artifact.text)
        self.assertEqual(state.last_artifact.file_count, 2)
        self.assertLess(artifact.index("proj/README.md"), artifact.index("proj/src/a.rs"))
        self.assertIn("fn main() { needle(); }\n", artifact)
        self.assertNotIn("out.txt", artifact)
        self.assertTrue(state.status_message.startswith("Generated 2 files"))
        self.assertTrue(state.status_message.endswith(f"Saved to {destination}."))

        result = self.coordinator.poll()
        self.assertIsNotNone(result.progress)
        self.assertEqual(result.progress.total_size, state.last_artifact.total_size)
        self.assertIn(SESSION_GENERATION, {event.kind for event in result.events})

    def test_generation_without_selection(self) -> None:
        self.assertIsNone(self.coordinator.start_generation())
        self.assertEqual(self.coordinator.state.status_message, "No directory selected.")

        self._scan()
        self.assertIsNone(self.coordinator.start_generation())
        self.assertEqual(self.coordinator.state.status_message, "No files selected.")
        self.assertEqual(self.coordinator.session_status(SESSION_GENERATION), STATUS_IDLE)

    def test_config_updates_reconcile_view(self) -> None:
        self._scan()
        self.coordinator.select_all()
        config = self.coordinator.state.config

        self.coordinator.update_config(config.with_updates(ignore_patterns=config.ignore_patterns | {"*.md"}))
        self.assertNotIn("README.md", self._visible())
        self.assertNotIn(self.root / "README.md", self.coordinator.state.selected)
        self.assertFalse(self.coordinator.state.patterns_need_rescan)

        self.coordinator.update_config(self.coordinator.state.config.with_updates(ignore_patterns=frozenset()))
        self.assertTrue(self.coordinator.state.patterns_need_rescan)
        self.assertEqual(self.store.load().ignore_patterns, frozenset())

    def test_add_ignore_path_uses_relative_directory_pattern(self) -> None:
        self._scan()

        pattern = self.coordinator.add_ignore_path(self.root / "src")

        self.assertEqual(pattern, "src/")
        self.assertEqual(self._visible(), {"README.md", "docs"})
        self.assertIsNone(self.coordinator.add_ignore_path(self.base / "elsewhere"))

    def test_rescan_preserves_selection_and_expansion(self) -> None:
        self._scan()
        self.coordinator.toggle_selection(self.root / "src/b.rs")
        self.coordinator.toggle_expansion(self.root / "src")

        self.coordinator.rescan()
        self.assertTrue(self.coordinator.wait_idle(WAIT_SECONDS))

        state = self.coordinator.state
        self.assertEqual(state.selected, {self.root / "src/b.rs"})
        self.assertEqual(state.expanded, {self.root / "src"})

    def test_clear_directory_resets_state(self) -> None:
        self._scan()
        self.coordinator.select_all()

        self.coordinator.clear_directory()

        state = self.coordinator.state
        self.assertIsNone(state.root)
        self.assertEqual(state.inventory, [])
        self.assertEqual(state.selected, set())
        self.assertEqual(state.status_message, "Ready.")
        self.assertEqual(self.coordinator.view(), [])

    def test_poll_reports_scan_completion(self) -> None:
        self._scan()

        result = self.coordinator.poll()

        self.assertTrue(result.changed)
        scan_events = [event for event in result.events if event.kind == SESSION_SCAN]
        self.assertEqual(len(scan_events), 1)
        self.assertEqual(scan_events[0].status, STATUS_COMPLETED)
        self.assertFalse(self.coordinator.poll().changed)


if __name__ == "__main__":
    unittest.main()
