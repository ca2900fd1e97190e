"""
File watcher host: turns on-disk edits into document-changed events.

watchdog delivers events on its observer thread. Each relevant event is
handed to the event loop, where a per-file timer coalesces bursts (editors
often truncate, write and rename in quick succession) before the change is
forwarded to the analysis service as a new document version.
"""

import asyncio
import hashlib
import logging
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from clean_code.config import EngineConfig, get_config
from clean_code.core.exceptions import UnsupportedLanguageError
from clean_code.core.models import LANGUAGE_BY_SUFFIX, DocumentSnapshot
from clean_code.services.analysis_service import AnalysisService

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[Path], Awaitable[None]]


class DebouncedFileWatcher(FileSystemEventHandler):
    """
    watchdog handler that forwards settled source-file changes to a coroutine.

    - Only files whose suffix is in ``patterns`` are considered
    - A rewrite with identical bytes is not a change (sha256 of the content)
    - Each file has its own debounce timer; a new event restarts it
    - Editor "atomic saves" (write a temp file, rename over the original)
      surface as a change to the destination path
    """

    def __init__(
        self,
        watch_path: Path,
        callback: ChangeCallback,
        patterns: Optional[Set[str]] = None,
        debounce_ms: int = 100,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """
        Args:
            watch_path: Directory being watched
            callback: Coroutine function awaited with each settled path
            patterns: Suffixes to watch, e.g. {".ts", ".js"} (default: all supported)
            debounce_ms: Quiet period per file before the change is delivered
            loop: Loop that runs the callback; set by FileWatcherService.start() if None
        """
        super().__init__()

        self.watch_path = Path(watch_path).resolve()
        self.callback = callback
        self.patterns = {p.lower() for p in (patterns or LANGUAGE_BY_SUFFIX)}
        self.debounce_ms = debounce_ms
        self.loop = loop

        self._timers: Dict[Path, asyncio.TimerHandle] = {}
        self._digests: Dict[Path, str] = {}
        self._deliveries: Set[asyncio.Task] = set()

        self.stats = {
            "started_at": datetime.now(UTC),
            "events_seen": 0,
            "events_filtered": 0,
            "changes_queued": 0,
            "changes_coalesced": 0,
            "changes_delivered": 0,
            "delivery_errors": 0,
            "last_event_at": None,
        }

    # -- observer thread -------------------------------------------------

    def on_modified(self, event: FileSystemEvent):
        path = self._accept(event)
        if path is not None and self._content_changed(path):
            self._hand_off(path)

    def on_created(self, event: FileSystemEvent):
        self.on_modified(event)

    def on_deleted(self, event: FileSystemEvent):
        path = self._accept(event)
        if path is None:
            return
        self._digests.pop(path, None)
        self._hand_off(path)

    def on_moved(self, event: FileSystemEvent):
        # Renaming a source file away from its path looks like a delete
        self.on_deleted(event)

        dest = getattr(event, "dest_path", None)
        if dest:
            dest_path = Path(dest)
            if self._matches(dest_path) and self._content_changed(dest_path):
                self._hand_off(dest_path)

    def _accept(self, event: FileSystemEvent) -> Optional[Path]:
        """Record the event; return its path if it concerns a watched source file."""
        self.stats["events_seen"] += 1
        self.stats["last_event_at"] = datetime.now(UTC)

        path = Path(event.src_path)
        if event.is_directory or not self._matches(path):
            self.stats["events_filtered"] += 1
            return None
        return path

    def _matches(self, path: Path) -> bool:
        return path.suffix.lower() in self.patterns

    def _content_changed(self, path: Path) -> bool:
        try:
            digest = hashlib.sha256(path.read_bytes()).hexdigest()
        except OSError as e:
            # Vanished between the event and the read; the delete event follows
            logger.debug(f"Could not read {path}: {e}")
            self.stats["events_filtered"] += 1
            return False

        if self._digests.get(path) == digest:
            self.stats["events_filtered"] += 1
            return False
        self._digests[path] = digest
        return True

    def _hand_off(self, path: Path):
        if self.loop is None or self.loop.is_closed():
            logger.error(f"No event loop to deliver change of {path}")
            return
        self.loop.call_soon_threadsafe(self.queue_change, path)

    # -- event loop thread -----------------------------------------------

    def queue_change(self, path: Path):
        """Start (or restart) the debounce timer of one file. Loop thread only."""
        loop = asyncio.get_running_loop()

        previous = self._timers.pop(path, None)
        if previous is not None:
            previous.cancel()
            self.stats["changes_coalesced"] += 1

        self.stats["changes_queued"] += 1
        self._timers[path] = loop.call_later(self.debounce_ms / 1000.0, self._deliver, path)

    def _deliver(self, path: Path):
        self._timers.pop(path, None)
        task = asyncio.get_running_loop().create_task(self._run_callback(path))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)

    async def _run_callback(self, path: Path):
        self.stats["changes_delivered"] += 1
        try:
            await self.callback(path)
        except Exception as e:
            self.stats["delivery_errors"] += 1
            logger.error(f"Handling change of {path} failed: {e}", exc_info=True)

    @property
    def pending_count(self) -> int:
        return len(self._timers)

    def cancel_pending(self):
        """Drop every change still waiting for its debounce timer."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get watcher statistics."""
        stats = dict(self.stats)
        stats["started_at"] = stats["started_at"].isoformat()
        if stats["last_event_at"] is not None:
            stats["last_event_at"] = stats["last_event_at"].isoformat()
        stats.update(
            watch_path=str(self.watch_path),
            patterns=sorted(self.patterns),
            debounce_ms=self.debounce_ms,
            pending=self.pending_count,
            files_tracked=len(self._digests),
        )
        return stats


class FileWatcherService:
    """
    Watches a directory tree and feeds changed files to an AnalysisService.

    Every path gets its own version counter, so each change produces a
    snapshot the parser cache has never seen. Deleting a file closes its
    document, which clears its diagnostics.
    """

    def __init__(
        self,
        watch_path: Path,
        service: AnalysisService,
        config: Optional[EngineConfig] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        debounce_ms: int = 100,
    ):
        """
        Args:
            watch_path: Directory to watch recursively
            service: Receives document-changed and document-closed events
            config: Engine configuration. If None, uses global config.
            loop: Event loop for deliveries; defaults to the loop running start()
            debounce_ms: Per-file quiet period for file system events
        """
        self.config = config or get_config()
        self.watch_path = Path(watch_path).resolve()
        self.service = service
        self.versions: Dict[Path, int] = {}

        watched_suffixes = {
            suffix for suffix, language_id in LANGUAGE_BY_SUFFIX.items()
            if language_id in self.config.supported_languages
        }
        self.event_handler = DebouncedFileWatcher(
            watch_path=self.watch_path,
            callback=self.handle_change,
            patterns=watched_suffixes,
            debounce_ms=debounce_ms,
            loop=loop,
        )

        self.observer = Observer()
        self.observer.schedule(self.event_handler, str(self.watch_path), recursive=True)
        self.is_running = False

    def next_version(self, path: Path) -> int:
        version = self.versions.get(path, 0) + 1
        self.versions[path] = version
        return version

    async def handle_change(self, path: Path) -> None:
        """Forward a settled change (or deletion) of one file to the service."""
        if not path.exists():
            self.versions.pop(path, None)
            self.service.close_document(
                DocumentSnapshot(
                    uri=path.resolve().as_uri(),
                    version=0,
                    text="",
                    language_id=LANGUAGE_BY_SUFFIX.get(path.suffix.lower(), "typescript"),
                )
            )
            logger.debug(f"Closed document for deleted file {path}")
            return

        try:
            document = DocumentSnapshot.from_path(path, self.next_version(path))
        except (UnsupportedLanguageError, OSError) as e:
            logger.warning(f"Skipping {path}: {e}")
            return

        self.service.on_document_changed(document)

    def start(self):
        """Start the observer thread. Must be called from the event loop."""
        if self.is_running:
            logger.warning(f"Already watching {self.watch_path}")
            return

        if self.event_handler.loop is None:
            self.event_handler.loop = asyncio.get_running_loop()

        self.observer.start()
        self.is_running = True
        logger.info(f"Watching {self.watch_path} for source changes")

    def stop(self):
        """Stop the observer thread and drop undelivered changes."""
        if not self.is_running:
            return

        self.observer.stop()
        self.observer.join()
        self.event_handler.cancel_pending()
        self.is_running = False
        logger.info(f"Stopped watching {self.watch_path}")

    async def start_async(self):
        """Watch until the surrounding task is cancelled."""
        self.start()
        try:
            while self.is_running:
                await asyncio.sleep(1)
        except asyncio.CancelledError:
            self.stop()
            raise
