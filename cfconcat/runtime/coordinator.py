"""Session coordinator for scans, content searches, and artifact generation.

Background workers read their inputs under the state lock, run without it, and
take it once more to commit. Commits from superseded or cancelled sessions are
discarded. The foreground drains progress and completion queues through
``poll`` on its own cadence.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from queue import Empty, Queue

from ..errors import OperationCancelled, ScanRootError
from ..ignore import cached_ignore_matcher
from ..inventory.classify import MAX_FILE_SIZE
from ..inventory.scanner import scan_directory
from ..inventory.types import Entry, ScanProgress, ScanResult
from ..output.concat import GenerationResult, generate_concatenation
from ..search.content import search_content
from ..tree_model.filtering import base_inventory
from ..tree_model.projection import ViewNode, project_tree
from . import selection
from .capabilities import ArgumentDirectoryPicker, DirectoryPicker, OutputSink
from .config import AppConfig, ConfigStore, default_output_filename, is_default_output_filename
from .sessions import (
    SESSION_CONTENT_SEARCH,
    SESSION_GENERATION,
    SESSION_KINDS,
    SESSION_SCAN,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_FAILED,
    Session,
    SessionSlots,
)
from .state import AppState

logger = logging.getLogger(__name__)

SCAN_CANCELLED_MESSAGE = "Scan cancelled."
CONTENT_SEARCH_CANCELLED_MESSAGE = "Content search cancelled."
GENERATION_CANCELLED_MESSAGE = "Generation cancelled."


@dataclass(frozen=True)
class SessionEvent:
    """Completion notice for one session, delivered through ``poll``."""

    kind: str
    generation: int
    status: str
    message: str = ""


@dataclass(frozen=True)
class PollResult:
    progress: ScanProgress | None = None
    events: tuple[SessionEvent, ...] = ()

    @property
    def changed(self) -> bool:
        return self.progress is not None or bool(self.events)


@dataclass(frozen=True)
class _GenerationRequest:
    selected: tuple[Path, ...]
    root: Path
    config: AppConfig
    tree_entries: tuple[Entry, ...]
    inventory: tuple[Entry, ...]


class ScanCoordinator:
    """Own ``AppState`` and run at most one session per operation kind."""

    def __init__(
        self,
        state: AppState | None = None,
        *,
        config_store: ConfigStore | None = None,
        picker: DirectoryPicker | None = None,
        output_sink: OutputSink | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = config_store
        if state is None:
            state = AppState(config=config_store.load() if config_store is not None else AppConfig())
        self.state = state
        self._picker = picker or ArgumentDirectoryPicker()
        self._sink = output_sink
        self._now = now or datetime.now
        self._lock = threading.Lock()
        self._sessions = SessionSlots()
        self._progress: Queue[tuple[str, int, ScanProgress]] = Queue()
        self._completions: Queue[SessionEvent] = Queue()

    # worker plumbing
    def _spawn(self, session: Session, target: Callable[..., None], *args: object) -> None:
        worker = threading.Thread(
            target=target,
            args=args,
            name=f"cfconcat-{session.kind.replace('_', '-')}",
            daemon=True,
        )
        session.worker = worker
        worker.start()

    def _publish_progress(self, session: Session, progress: ScanProgress) -> None:
        self._progress.put((session.kind, session.generation, progress))

    def _end_locked(self, session: Session, status: str, message: str) -> None:
        session.status = status
        session.message = message
        if self._sessions.current(session.kind) is session:
            self.state.status_message = message
        self._completions.put(SessionEvent(session.kind, session.generation, status, message))

    def _end(self, session: Session, status: str, message: str) -> None:
        with self._lock:
            self._end_locked(session, status, message)

    def _discard_locked(self, session: Session, message: str) -> None:
        logger.debug("Discarding stale %s session %d", session.kind, session.generation)
        self._end_locked(session, STATUS_CANCELLED, message)

    def _save_config(self, config: AppConfig | None) -> None:
        if self._store is not None and config is not None:
            self._store.save(config)

    # scan slot
    def start_scan(self, path: Path, preserve_view: bool = False) -> Session:
        """Start scanning ``path``, superseding any running scan."""
        with self._lock:
            session = self._sessions.begin(SESSION_SCAN)
            patterns = frozenset(self.state.config.ignore_patterns)
            self.state.status_message = "Scanning..."
            self._spawn(session, self._run_scan, session, Path(path), patterns, preserve_view)
        logger.info("Scan %d started for %s", session.generation, path)
        return session

    def _run_scan(
        self,
        session: Session,
        path: Path,
        patterns: frozenset[str],
        preserve_view: bool,
    ) -> None:
        try:
            root = path.expanduser().resolve()
            result = scan_directory(
                root,
                cached_ignore_matcher(patterns, root),
                should_cancel=session.cancel_event.is_set,
                on_progress=lambda progress: self._publish_progress(session, progress),
            )
        except OperationCancelled:
            logger.info("Scan %d cancelled", session.generation)
            self._end(session, STATUS_CANCELLED, SCAN_CANCELLED_MESSAGE)
            return
        except ScanRootError as exc:
            logger.warning("Scan %d failed: %s", session.generation, exc)
            self._end(session, STATUS_FAILED, f"Scan failed: {exc}")
            return
        except Exception as exc:
            logger.exception("Scan %d failed unexpectedly", session.generation)
            self._end(session, STATUS_FAILED, f"Scan failed: {exc}")
            return

        config_to_save = None
        with self._lock:
            if not self._sessions.is_current(session):
                self._discard_locked(session, SCAN_CANCELLED_MESSAGE)
                return
            config_to_save = self._commit_scan_locked(root, result, preserve_view)
            message = f"Scan complete. Found {len(self.state.filtered)} visible items."
            if result.large_files_skipped:
                message += (
                    f" {result.large_files_skipped} large files skipped"
                    f" (over {MAX_FILE_SIZE // (1024 * 1024)} MiB)."
                )
            self._end_locked(session, STATUS_COMPLETED, message)
            if preserve_view and self.state.content_query.strip():
                self._begin_content_search_locked()
        logger.info("Scan %d complete: %d entries", session.generation, len(result.entries))
        self._save_config(config_to_save)

    def _commit_scan_locked(self, root: Path, result: ScanResult, preserve_view: bool) -> AppConfig | None:
        state = self.state
        new_root = state.root != root
        state.root = root
        state.inventory = list(result.entries)
        state.loaded_dirs = {entry.path for entry in result.entries if entry.is_dir}
        state.fully_scanned = True
        state.large_files = result.large_files
        state.patterns_need_rescan = False
        if new_root or not preserve_view:
            state.reset_view()
        selection.apply_filters(state)
        selection.auto_expand_for_matches(state)
        if state.config.last_directory == root:
            return None
        state.config = state.config.with_updates(last_directory=root)
        return state.config

    def rescan(self) -> Session | None:
        """Rescan the current root keeping selection, expansion and queries."""
        with self._lock:
            root = self.state.root
        if root is None:
            return None
        return self.start_scan(root, preserve_view=True)

    def cancel_scan(self) -> bool:
        with self._lock:
            return self._sessions.cancel(SESSION_SCAN) is not None

    def select_directory(self) -> Session | None:
        """Ask the picker for a directory and scan it; ``None`` if declined."""
        path = self._picker.pick_directory()
        if path is None:
            return None
        return self.start_scan(path)

    def clear_directory(self) -> None:
        with self._lock:
            self._sessions.cancel_all()
            self.state.clear_directory()

    # content-search slot and filters
    def update_filters(
        self,
        name_query: str | None = None,
        extension_query: str | None = None,
        content_query: str | None = None,
    ) -> Session | None:
        """Apply new queries; returns the content-search session if one started.

        A changed non-blank content query starts a background search and the
        view is refiltered when it commits. Other changes refilter now.
        """
        with self._lock:
            state = self.state
            if name_query is not None:
                state.name_query = name_query
            if extension_query is not None:
                state.extension_query = extension_query
            if content_query is not None and content_query != state.content_query:
                state.content_query = content_query
                if content_query.strip():
                    return self._begin_content_search_locked()
                self._sessions.cancel(SESSION_CONTENT_SEARCH)
                state.content_matches = set()
            selection.apply_filters(state)
            selection.auto_expand_for_matches(state)
            return None

    def _begin_content_search_locked(self) -> Session:
        state = self.state
        session = self._sessions.begin(SESSION_CONTENT_SEARCH)
        entries: tuple[Entry, ...] = ()
        if state.root is not None:
            entries = tuple(base_inventory(state.inventory, selection.ignore_matcher(state), state.root))
        query = state.content_query
        state.status_message = f"Searching file contents for {query!r}..."
        self._spawn(
            session,
            self._run_content_search,
            session,
            entries,
            query,
            state.config.case_sensitive_search,
        )
        return session

    def _run_content_search(
        self,
        session: Session,
        entries: tuple[Entry, ...],
        query: str,
        case_sensitive: bool,
    ) -> None:
        try:
            matches = search_content(
                entries,
                query,
                case_sensitive,
                should_cancel=session.cancel_event.is_set,
            )
        except OperationCancelled:
            self._end(session, STATUS_CANCELLED, CONTENT_SEARCH_CANCELLED_MESSAGE)
            return
        except Exception as exc:
            logger.exception("Content search %d failed unexpectedly", session.generation)
            self._end(session, STATUS_FAILED, f"Content search failed: {exc}")
            return

        with self._lock:
            if not self._sessions.is_current(session) or self.state.content_query != query:
                self._discard_locked(session, CONTENT_SEARCH_CANCELLED_MESSAGE)
                return
            state = self.state
            state.content_matches = matches
            selection.apply_filters(state)
            selection.auto_expand_for_matches(state)
            self._end_locked(
                session,
                STATUS_COMPLETED,
                f"Found {len(matches)} files containing {query!r}.",
            )

    # generation slot
    def start_generation(self) -> Session | None:
        """Generate the artifact for the current selection in the background."""
        config_to_save = None
        with self._lock:
            state = self.state
            if state.root is None:
                state.status_message = "No directory selected."
                return None
            selected = selection.selected_in_path_order(state)
            if not selected:
                state.status_message = "No files selected."
                return None
            config = state.config
            if is_default_output_filename(config.output_filename):
                config = config.with_updates(output_filename=default_output_filename(self._now()))
                state.config = config
                config_to_save = config
            request = _GenerationRequest(
                selected=tuple(selected),
                root=state.root,
                config=config,
                tree_entries=tuple(base_inventory(state.inventory, selection.ignore_matcher(state), state.root)),
                inventory=tuple(state.inventory),
            )
            session = self._sessions.begin(SESSION_GENERATION)
            state.status_message = f"Generating output for {len(selected)} files..."
            self._spawn(session, self._run_generation, session, request)
        self._save_config(config_to_save)
        return session

    def _run_generation(self, session: Session, request: _GenerationRequest) -> None:
        config = request.config
        try:
            result = generate_concatenation(
                request.selected,
                request.root,
                include_tree=config.include_tree_by_default,
                use_relative_paths=config.use_relative_paths,
                tree_entries=request.tree_entries,
                tree_ignore_patterns=config.tree_ignore_patterns,
                inventory=request.inventory,
                should_cancel=session.cancel_event.is_set,
                now=self._now,
            )
            output_path = None
            if self._sink is not None and not session.cancelled:
                destination = (config.output_directory or request.root) / config.output_filename
                output_path = self._sink.write(result.text, destination)
        except OperationCancelled:
            self._end(session, STATUS_CANCELLED, GENERATION_CANCELLED_MESSAGE)
            return
        except Exception as exc:
            logger.exception("Generation %d failed", session.generation)
            self._end(session, STATUS_FAILED, f"Generation failed: {exc}")
            return

        with self._lock:
            if not self._sessions.is_current(session):
                self._discard_locked(session, GENERATION_CANCELLED_MESSAGE)
                return
            self._commit_generation_locked(session, result, output_path)

    def _commit_generation_locked(
        self,
        session: Session,
        result: GenerationResult,
        output_path: Path | None,
    ) -> None:
        self.state.last_artifact = result
        self.state.last_output_path = output_path
        message = (
            f"Generated {result.file_count} files"
            f" ({result.total_size} bytes, {result.total_lines} lines)."
        )
        if output_path is not None:
            message += f" Saved to {output_path}."
        self._publish_progress(
            session,
            ScanProgress(
                processed=result.file_count,
                total=result.file_count,
                status=message,
                total_size=result.total_size,
                total_lines=result.total_lines,
            ),
        )
        self._end_locked(session, STATUS_COMPLETED, message)

    def cancel_generation(self) -> bool:
        with self._lock:
            return self._sessions.cancel(SESSION_GENERATION) is not None

    # selection and expansion
    def toggle_selection(self, path: Path) -> bool:
        with self._lock:
            return selection.toggle_selection(self.state, path)

    def toggle_directory_selection(self, directory: Path) -> None:
        with self._lock:
            selection.toggle_directory_selection(self.state, directory)

    def select_all(self) -> None:
        with self._lock:
            selection.select_all(self.state)

    def deselect_all(self) -> None:
        with self._lock:
            selection.deselect_all(self.state)

    def toggle_expansion(self, directory: Path) -> bool:
        with self._lock:
            return selection.toggle_expansion(self.state, directory)

    def expand_all(self) -> None:
        with self._lock:
            selection.expand_all(self.state)

    def collapse_all(self) -> None:
        with self._lock:
            selection.collapse_all(self.state)

    def set_previewed(self, path: Path | None) -> None:
        with self._lock:
            self.state.previewed = path

    # configuration
    def update_config(self, new_config: AppConfig) -> None:
        """Replace the config and reconcile the visible inventory.

        Added ignore patterns are applied in memory. Removed ones can only
        reveal entries a rescan has not seen yet, so they flag
        ``patterns_need_rescan`` instead.
        """
        with self._lock:
            state = self.state
            old = state.config
            state.config = new_config
            added = new_config.ignore_patterns - old.ignore_patterns
            removed = old.ignore_patterns - new_config.ignore_patterns
            if removed:
                state.patterns_need_rescan = True
            case_changed = old.case_sensitive_search != new_config.case_sensitive_search
            if added or case_changed or old.remove_empty_directories != new_config.remove_empty_directories:
                selection.apply_filters(state)
            if case_changed and state.content_query.strip():
                self._begin_content_search_locked()
        self._save_config(new_config)

    def add_ignore_path(self, path: Path) -> str | None:
        """Ignore ``path`` by its root-relative pattern and return the pattern."""
        with self._lock:
            pattern = selection.relative_ignore_pattern(self.state, path)
            config = self.state.config
        if pattern is None:
            return None
        self.update_config(config.with_updates(ignore_patterns=config.ignore_patterns | {pattern}))
        return pattern

    # foreground
    def poll(self, timeout_seconds: float = 0.0) -> PollResult:
        """Drain completions and progress; keep only the newest current progress."""
        events: list[SessionEvent] = []
        if timeout_seconds > 0:
            try:
                events.append(self._completions.get(timeout=timeout_seconds))
            except Empty:
                pass
        while True:
            try:
                events.append(self._completions.get_nowait())
            except Empty:
                break

        updates: list[tuple[str, int, ScanProgress]] = []
        while True:
            try:
                updates.append(self._progress.get_nowait())
            except Empty:
                break

        latest: ScanProgress | None = None
        with self._lock:
            for kind, generation, progress in updates:
                current = self._sessions.current(kind)
                if current is None or current.generation != generation:
                    continue
                latest = progress
                if kind == SESSION_SCAN and not current.finished:
                    self.state.status_message = progress.status
            if latest is not None:
                self.state.progress = latest
        return PollResult(progress=latest, events=tuple(events))

    def view(self) -> list[ViewNode]:
        with self._lock:
            state = self.state
            if state.root is None:
                return []
            return project_tree(
                state.filtered,
                state.root,
                selected=set(state.selected),
                expanded=set(state.expanded),
                content_matches=set(state.content_matches),
                name_query=state.name_query,
                extension_query=state.extension_query,
                case_sensitive=state.config.case_sensitive_search,
                previewed=state.previewed,
                loaded_dirs=set(state.loaded_dirs),
            )

    def session_status(self, kind: str) -> str:
        with self._lock:
            return self._sessions.status(kind)

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until every current session worker has exited; ``False`` on timeout."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                current = [self._sessions.current(kind) for kind in SESSION_KINDS]
                workers = [
                    session.worker
                    for session in current
                    if session is not None and session.worker is not None and session.worker.is_alive()
                ]
            if not workers:
                return True
            for worker in workers:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                worker.join(remaining)
                if worker.is_alive():
                    return False


__all__ = [
    "PollResult",
    "ScanCoordinator",
    "SessionEvent",
]
