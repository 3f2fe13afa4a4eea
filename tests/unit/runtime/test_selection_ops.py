"""Selection, expansion, and refilter operations over AppState."""

from __future__ import annotations

import unittest
from pathlib import Path

from cfconcat.inventory.types import Entry
from cfconcat.runtime import selection
from cfconcat.runtime.config import AppConfig
from cfconcat.runtime.state import AppState

ROOT = Path("/project")


def d(relative: str) -> Entry:
    path = ROOT / relative
    return Entry(path=path, is_dir=True, parent=path.parent)


def f(relative: str) -> Entry:
    path = ROOT / relative
    return Entry(path=path, is_dir=False, size=1, parent=path.parent)


def _state(**kwargs) -> AppState:
    inventory = [d("src"), d("src/core"), f("src/core/x.rs"), f("src/a.rs"), f("src/b.rs"), f("README.md")]
    state = AppState(config=AppConfig(ignore_patterns=frozenset()), root=ROOT, inventory=inventory, **kwargs)
    state.loaded_dirs = {entry.path for entry in inventory if entry.is_dir}
    state.fully_scanned = True
    selection.apply_filters(state)
    return state


class ApplyFiltersTests(unittest.TestCase):
    def test_added_ignore_pattern_prunes_selection(self) -> None:
        state = _state()
        selection.select_all(state)
        state.config = state.config.with_updates(ignore_patterns=frozenset({"*.md"}))

        selection.apply_filters(state)

        self.assertNotIn(ROOT / "README.md", state.selected)
        self.assertIn(ROOT / "src/a.rs", state.selected)

    def test_without_root_everything_is_cleared(self) -> None:
        state = AppState(inventory=[f("a.txt")], selected={ROOT / "a.txt"})
        selection.apply_filters(state)
        self.assertEqual(state.filtered, [])
        self.assertEqual(state.selected, set())

    def test_auto_expand_for_matches(self) -> None:
        state = _state()
        state.name_query = "x.rs"
        selection.apply_filters(state)

        selection.auto_expand_for_matches(state)

        self.assertEqual(state.expanded, {ROOT / "src", ROOT / "src/core"})


class SelectionCommandTests(unittest.TestCase):
    def test_toggle_selection_only_accepts_visible_files(self) -> None:
        state = _state()

        self.assertTrue(selection.toggle_selection(state, ROOT / "src/a.rs"))
        self.assertFalse(selection.toggle_selection(state, ROOT / "src"))
        self.assertFalse(selection.toggle_selection(state, ROOT / "nope.txt"))
        self.assertEqual(state.selected, {ROOT / "src/a.rs"})
        self.assertFalse(selection.toggle_selection(state, ROOT / "src/a.rs"))
        self.assertEqual(state.selected, set())

    def test_toggle_directory_selection_cycles(self) -> None:
        state = _state()
        src_files = {ROOT / "src/core/x.rs", ROOT / "src/a.rs", ROOT / "src/b.rs"}

        state.selected = {ROOT / "src/a.rs"}
        selection.toggle_directory_selection(state, ROOT / "src")
        self.assertEqual(state.selected, src_files)

        selection.toggle_directory_selection(state, ROOT / "src")
        self.assertEqual(state.selected, set())

        state.selected = {ROOT / "README.md"}
        selection.toggle_directory_selection(state, ROOT / "src")
        self.assertEqual(state.selected, src_files | {ROOT / "README.md"})

    def test_select_and_deselect_all(self) -> None:
        state = _state()
        selection.select_all(state)
        self.assertEqual(len(state.selected), 4)
        selection.deselect_all(state)
        self.assertEqual(state.selected, set())

    def test_expansion_commands(self) -> None:
        state = _state()
        self.assertTrue(selection.toggle_expansion(state, ROOT / "src"))
        self.assertFalse(selection.toggle_expansion(state, ROOT / "src"))
        selection.expand_all(state)
        self.assertEqual(state.expanded, {ROOT / "src", ROOT / "src/core"})
        selection.collapse_all(state)
        self.assertEqual(state.expanded, set())

    def test_selected_files_are_sorted_by_path(self) -> None:
        state = _state()
        state.selected = {ROOT / "src/b.rs", ROOT / "README.md", ROOT / "src/a.rs"}
        self.assertEqual(
            selection.selected_in_path_order(state),
            [ROOT / "README.md", ROOT / "src/a.rs", ROOT / "src/b.rs"],
        )

    def test_relative_ignore_pattern(self) -> None:
        state = _state()
        self.assertEqual(selection.relative_ignore_pattern(state, ROOT / "src/core"), "src/core/")
        self.assertEqual(selection.relative_ignore_pattern(state, ROOT / "src/a.rs"), "src/a.rs")
        self.assertIsNone(selection.relative_ignore_pattern(state, Path("/elsewhere/a.rs")))
        self.assertIsNone(selection.relative_ignore_pattern(state, ROOT))


if __name__ == "__main__":
    unittest.main()
