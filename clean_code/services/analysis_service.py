"""Analysis Service - wires the incremental pipeline together for a host.

Responsibilities:
- Own one parser adapter, result cache, batcher, scheduler and analyzer set
- Debounce document-changed events per document
- Run immediate analyses for batch hosts such as the CLI
- Clear diagnostics when documents close
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from clean_code.analysis import Analyzer, create_analyzers
from clean_code.config import EngineConfig, get_config
from clean_code.core.models import CodeIssue, DocumentSnapshot
from clean_code.engine.diagnostic_batcher import (
    DiagnosticBatcher,
    DiagnosticSink,
    InMemoryDiagnosticCollection,
)
from clean_code.engine.result_cache import ResultCache
from clean_code.engine.scheduler import AnalysisScheduler
from clean_code.parsing.ast_manager import ASTManager

logger = logging.getLogger(__name__)


class AnalysisService:
    """
    Entry point hosts use to request analysis and read diagnostics.

    Engine objects are created here and owned by the service instance; there
    are no module-level singletons, so several services can coexist (e.g. in
    tests).
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        sink: Optional[DiagnosticSink] = None,
        analyzers: Optional[List[Analyzer]] = None,
    ):
        """
        Initialize the Analysis Service.

        Args:
            config: Engine configuration. If None, uses global config.
            sink: Where visible diagnostics are stored. Defaults to an in-memory collection.
            analyzers: Analyzers to run. Defaults to the full built-in set.
        """
        self.config = config or get_config()
        self.sink = sink if sink is not None else InMemoryDiagnosticCollection()

        self.ast_manager = ASTManager(self.config)
        self.cache = ResultCache(self.config.scheduling.cache_max_entries)
        self.batcher = DiagnosticBatcher(self.sink, self.config.scheduling.batch_interval_ms)
        self.scheduler = AnalysisScheduler(self.ast_manager, self.cache, self.batcher, self.config)
        self.analyzers = analyzers if analyzers is not None else create_analyzers(self.config)

        # uri -> task still inside its debounce window
        self._debounce_tasks: Dict[str, asyncio.Task] = {}
        self._tasks: Set[asyncio.Task] = set()

        self.stats = {
            "changes_received": 0,
            "changes_debounced": 0,
            "analyses_requested": 0,
        }

        logger.info(
            f"Analysis service initialized with analyzers: "
            f"{', '.join(a.id for a in self.analyzers)}"
        )

    def on_document_changed(self, document: DocumentSnapshot) -> asyncio.Task:
        """
        Schedule analysis of a changed document after the debounce window.

        A newer change to the same document restarts the window. Must be
        called from a running event loop.
        """
        self.stats["changes_received"] += 1

        pending = self._debounce_tasks.pop(document.uri, None)
        if pending is not None and not pending.done():
            pending.cancel()
            self.stats["changes_debounced"] += 1

        task = asyncio.create_task(self._debounced_analysis(document))
        self._debounce_tasks[document.uri] = task
        self._track(task)
        return task

    async def _debounced_analysis(self, document: DocumentSnapshot) -> None:
        await asyncio.sleep(self.config.scheduling.change_debounce_ms / 1000.0)

        # Past this point newer changes supersede the run through its token
        if self._debounce_tasks.get(document.uri) is asyncio.current_task():
            del self._debounce_tasks[document.uri]

        await self._run(document)

    async def analyze_now(self, document: DocumentSnapshot, flush: bool = False) -> List[CodeIssue]:
        """
        Analyze a document immediately.

        Args:
            document: Snapshot to analyze
            flush: Write the result to the sink now instead of waiting for the batch window

        Returns:
            The diagnostics visible for the document after the run
        """
        await self._run(document)
        if flush:
            self.batcher.flush()
        return self.get_diagnostics(document)

    async def _run(self, document: DocumentSnapshot) -> None:
        self.stats["analyses_requested"] += 1
        await self.scheduler.schedule_analysis(document, self.analyzers)

    def get_diagnostics(self, document: DocumentSnapshot) -> List[CodeIssue]:
        """Diagnostics currently visible for a document."""
        return self.sink.get(document.uri)

    def close_document(self, document: DocumentSnapshot) -> None:
        """Forget a closed document: cancel its work and clear its diagnostics."""
        self.cancel(document)
        self.scheduler.forget_document(document)
        self.batcher.clear_diagnostics(document)
        self.ast_manager.clear_ast(document)

    def cancel(self, document: Optional[DocumentSnapshot] = None) -> None:
        """
        Cancel pending and in-flight analysis.

        Args:
            document: Only cancel work for this document; cancel everything if None
        """
        if document is None:
            uris = list(self._debounce_tasks)
        else:
            uris = [document.uri]

        for uri in uris:
            task = self._debounce_tasks.pop(uri, None)
            if task is not None and not task.done():
                task.cancel()

        self.scheduler.cancel_current_analysis(document)

    async def wait_idle(self) -> None:
        """Wait for every scheduled analysis to finish, then flush pending diagnostics."""
        while self._tasks:
            results = await asyncio.gather(*list(self._tasks), return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(f"Background analysis failed: {result}", exc_info=result)
        self.batcher.flush()

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics for the whole pipeline."""
        return {
            "service": self.stats.copy(),
            "scheduler": self.scheduler.get_stats(),
            "cache": self.cache.get_stats(),
            "batcher": self.batcher.get_stats(),
            "ast_cache_size": self.ast_manager.cached_count,
        }

    async def shutdown(self) -> None:
        """Cancel outstanding work and drop all diagnostics."""
        self.cancel()
        await self.wait_idle()
        self.batcher.clear_all()
        logger.info("Analysis service shut down")
