"""Time-windowed batching of diagnostic updates."""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from clean_code.core.models import CodeIssue, DocumentSnapshot

logger = logging.getLogger(__name__)


class DiagnosticSink(Protocol):
    """Host-side store of the diagnostics currently visible to the user."""

    def get(self, uri: str) -> List[CodeIssue]:
        ...

    def set(self, uri: str, issues: List[CodeIssue]) -> None:
        ...

    def delete(self, uri: str) -> None:
        ...

    def clear(self) -> None:
        ...


class InMemoryDiagnosticCollection:
    """Diagnostic sink that keeps everything in memory and records each visible update."""

    def __init__(self):
        self._diagnostics: Dict[str, List[CodeIssue]] = {}
        self.updates: List[Tuple[str, List[CodeIssue]]] = []

    def get(self, uri: str) -> List[CodeIssue]:
        return list(self._diagnostics.get(uri, []))

    def set(self, uri: str, issues: List[CodeIssue]) -> None:
        self._diagnostics[uri] = list(issues)
        self.updates.append((uri, list(issues)))

    def delete(self, uri: str) -> None:
        self._diagnostics.pop(uri, None)

    def clear(self) -> None:
        self._diagnostics.clear()

    def uris(self) -> List[str]:
        return list(self._diagnostics)

    def __len__(self) -> int:
        return len(self._diagnostics)


def same_issues(current: Sequence[CodeIssue], new: Sequence[CodeIssue]) -> bool:
    """Whether two issue lists render identically (message, severity, type and range)."""
    if len(current) != len(new):
        return False
    return all(a.same_diagnostic(b) for a, b in zip(current, new))


class DiagnosticBatcher:
    """
    Coalesces diagnostic publishes into one visible update per batch window.

    Features:
    - Last write wins per document within a window
    - A single timer per window, armed by the first publish
    - Updates identical to what is already visible are skipped

    Must be used from the event loop thread.
    """

    def __init__(self, sink: DiagnosticSink, batch_interval_ms: int = 250):
        """
        Initialize the batcher.

        Args:
            sink: Where flushed diagnostics are written
            batch_interval_ms: Length of the batch window
        """
        if batch_interval_ms < 0:
            raise ValueError(f"batch_interval_ms must be >= 0, got {batch_interval_ms}")

        self.sink = sink
        self.batch_interval_ms = batch_interval_ms
        self._pending: Dict[str, List[CodeIssue]] = {}
        self._timer: Optional[asyncio.TimerHandle] = None

        self.stats = {
            "publishes_received": 0,
            "batches_flushed": 0,
            "updates_published": 0,
            "updates_suppressed": 0,
        }

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def publish(self, document: DocumentSnapshot, issues: Sequence[CodeIssue]) -> None:
        """
        Queue the issue list for a document, replacing anything queued earlier.

        Called without a running event loop the update is flushed immediately.
        """
        self._pending[document.uri] = list(issues)
        self.stats["publishes_received"] += 1

        if self._timer is not None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.flush()
            return

        self._timer = loop.call_later(self.batch_interval_ms / 1000.0, self.flush)

    def flush(self) -> None:
        """Write every pending update that differs from what is visible, then reset."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        pending, self._pending = self._pending, {}
        if not pending:
            return

        self.stats["batches_flushed"] += 1
        for uri, issues in pending.items():
            if same_issues(self.sink.get(uri), issues):
                self.stats["updates_suppressed"] += 1
                continue

            self.sink.set(uri, issues)
            self.stats["updates_published"] += 1
            logger.debug(f"Published {len(issues)} diagnostics for {uri}")

    def clear_diagnostics(self, document: DocumentSnapshot) -> None:
        """Drop pending and visible diagnostics for one document."""
        self._pending.pop(document.uri, None)
        self.sink.delete(document.uri)

    def clear_all(self) -> None:
        """Drop every pending and visible diagnostic and disarm the timer."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending.clear()
        self.sink.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get batcher statistics."""
        stats = self.stats.copy()
        stats["pending_documents"] = len(self._pending)
        return stats
