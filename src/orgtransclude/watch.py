"""Watch mode: invalidate cached transclusions when their sources change."""

import asyncio
import signal
import sys
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .core.cache import TransclusionCache

log = structlog.get_logger()


class DebounceHandler(FileSystemEventHandler):
    """File system event handler with debouncing."""

    def __init__(
        self,
        on_batch: Callable[[set[Path], set[Path]], None],
        debounce_ms: int = 150,
        suffix: str = ".org",
    ):
        super().__init__()
        self.on_batch = on_batch
        self.debounce_ms = debounce_ms
        self.suffix = suffix

        self.modified: set[Path] = set()
        self.deleted: set[Path] = set()
        self.last_event_time = 0.0
        self._lock = threading.Lock()

    def _should_skip(self, path: Path) -> bool:
        name = path.name

        # Hidden, backup, swap and lock files
        if name.startswith(".") or name.startswith(".#"):
            return True
        if name.endswith("~") or name.endswith(".swp"):
            return True

        return not name.endswith(self.suffix)

    def _record(self, event: FileSystemEvent, bucket: set[Path]) -> None:
        if event.is_directory:
            return
        path = Path(str(event.src_path))
        if self._should_skip(path):
            return
        with self._lock:
            bucket.add(path.resolve())
            self.last_event_time = time.time()

    def on_created(self, event: FileSystemEvent) -> None:
        self._record(event, self.modified)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._record(event, self.modified)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._record(event, self.deleted)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._record(event, self.deleted)

    def check_and_flush(self) -> None:
        """Flush once the debounce period has elapsed since the last event."""
        if not (self.modified or self.deleted):
            return
        elapsed = (time.time() - self.last_event_time) * 1000
        if elapsed >= self.debounce_ms:
            self.flush()

    def flush(self) -> None:
        with self._lock:
            if not (self.modified or self.deleted):
                return
            modified = set(self.modified)
            deleted = set(self.deleted)
            self.modified.clear()
            self.deleted.clear()

        if self.on_batch:
            self.on_batch(modified, deleted)


def invalidate_paths(cache: TransclusionCache, paths: set[Path]) -> set[str]:
    """Invalidate every cached transclusion loaded from one of ``paths``."""
    invalidated: set[str] = set()
    for path in paths:
        for source_id in cache.source_ids_for(str(path)):
            cache.invalidate(source_id)
            invalidated.add(source_id)
    if invalidated:
        log.info("source_changed", source_ids=sorted(invalidated))
    return invalidated


def apply_changes(cache: TransclusionCache, modified: set[Path], deleted: set[Path]) -> bool:
    """
    Invalidate sources touched by a batch of file events.

    Returns True when the document should be rendered again. Failed
    transclusions are never cached, so a created file or an added heading
    can fix one without invalidating anything; every non-empty batch counts.
    """
    changed = modified | deleted
    invalidate_paths(cache, changed)
    return bool(changed)


def watch_document(session: Any, debounce_ms: int = 150, quiet: bool = False) -> int:
    """
    Render a document, then re-render it whenever it or a transcluded
    source changes.

    Args:
        session: DocumentSession of the document to watch
        debounce_ms: Debounce window in milliseconds
        quiet: Only print renders, no status lines

    Returns:
        Exit code
    """
    doc_path = session.source.path
    if not doc_path.exists():
        print(f"Error: File not found: {doc_path}", file=sys.stderr)
        return 1

    root = session.runtime.config.source.root.resolve()
    dirty = True
    running = True

    def handle_batch(modified: set[Path], deleted: set[Path]) -> None:
        nonlocal dirty
        if apply_changes(session.cache, modified, deleted):
            dirty = True

    def signal_handler(signum: int, frame: Any) -> None:
        nonlocal running
        running = False
        if not quiet:
            print("\nShutting down...", file=sys.stderr, flush=True)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    handler = DebounceHandler(handle_batch, debounce_ms, suffix=doc_path.suffix or ".org")
    observer = Observer()
    watched = {root, doc_path.parent}
    for directory in watched:
        if directory.is_dir():
            observer.schedule(handler, str(directory), recursive=directory == root)

    if not quiet:
        print(f"Watching {doc_path} (debounce: {debounce_ms}ms)", file=sys.stderr, flush=True)
        print("Press Ctrl+C to stop", file=sys.stderr, flush=True)

    observer.start()

    try:
        while running:
            if dirty:
                dirty = False
                print(asyncio.run(session.render()), flush=True)
            time.sleep(0.1)
            handler.check_and_flush()
    finally:
        handler.flush()
        observer.stop()
        observer.join()
        session.close()

    if not quiet:
        print("Watch stopped", file=sys.stderr, flush=True)

    return 0
