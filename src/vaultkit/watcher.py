"""File watcher that rebuilds the index when notes change.

Any change to a markdown file triggers a full rebuild once the vault has been
quiet for the debounce window; there are no partial index updates.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import NOTE_SUFFIX, WATCH_DEBOUNCE_SECONDS

if TYPE_CHECKING:
    from .store import VaultStore

logger = logging.getLogger(__name__)


def _is_note(path: str | bytes | None) -> bool:
    if not path:
        return False
    if isinstance(path, bytes):
        path = path.decode("utf-8", "replace")
    return path.endswith(NOTE_SUFFIX)


class DebouncedHandler(FileSystemEventHandler):
    """File system event handler with debouncing."""

    def __init__(
        self,
        callback: Callable[[set[Path]], None],
        debounce_seconds: float = WATCH_DEBOUNCE_SECONDS,
    ):
        """Initialize the debounced handler.

        Args:
            callback: Function to call with changed files after debounce.
            debounce_seconds: Debounce window in seconds.
        """
        super().__init__()
        self._callback = callback
        self._debounce_seconds = debounce_seconds
        self._pending_files: set[Path] = set()
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    def _schedule_callback(self) -> None:
        """(Re)start the debounce timer. Caller holds the lock."""
        if self._timer is not None:
            self._timer.cancel()
        self._timer = threading.Timer(self._debounce_seconds, self._fire)
        self._timer.daemon = True
        self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            files = self._pending_files
            self._pending_files = set()
            self._timer = None
        if files:
            self._callback(files)

    def _add(self, *paths: str | bytes | None) -> None:
        notes = [p for p in paths if _is_note(p)]
        if not notes:
            return
        with self._lock:
            for p in notes:
                self._pending_files.add(Path(p.decode() if isinstance(p, bytes) else p))
            self._schedule_callback()

    def cancel(self) -> None:
        """Drop pending changes without firing."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending_files.clear()

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._add(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._add(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._add(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._add(event.src_path, getattr(event, "dest_path", None))


class VaultWatcher:
    """Watch the vault directory and rebuild the store after changes."""

    def __init__(
        self,
        store: "VaultStore",
        debounce_seconds: float = WATCH_DEBOUNCE_SECONDS,
    ):
        self._store = store
        self._debounce_seconds = debounce_seconds
        self._observer: Observer | None = None
        self._handler: DebouncedHandler | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def _on_files_changed(self, files: set[Path]) -> None:
        logger.info("%d note(s) changed, rebuilding index", len(files))
        try:
            self._store.rebuild()
        except OSError as e:
            # Keep serving the previous snapshot
            logger.error("Rebuild failed: %s", e)

    def start(self) -> None:
        """Start watching for file changes."""
        if self._running:
            return

        root = self._store.root
        if not root.is_dir():
            logger.warning("Vault root does not exist: %s", root)
            return

        self._handler = DebouncedHandler(
            callback=self._on_files_changed,
            debounce_seconds=self._debounce_seconds,
        )
        self._observer = Observer()
        self._observer.schedule(self._handler, str(root), recursive=True)
        self._observer.start()
        self._running = True
        logger.info("Started watching: %s", root)

    def stop(self) -> None:
        """Stop watching for file changes."""
        if not self._running or self._observer is None:
            return

        if self._handler is not None:
            self._handler.cancel()
        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None
        self._handler = None
        self._running = False
        logger.info("Stopped file watcher")
