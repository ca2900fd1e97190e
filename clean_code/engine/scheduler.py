"""
Priority-tiered analysis scheduler.

Each call to ``schedule_analysis`` is one *run*. A run mints a token and
records it as the current token for its document, which silences any run
still in flight for that document. Analyzers execute tier by tier
(High, Medium, Low). Every non-empty tier first sleeps its configured delay
(High: 0 ms, which still yields once) so the event loop can deliver newer
edits, and after every tier the run publishes the cumulative issue list to
the diagnostic batcher. Empty tiers are skipped along with their delay.

Run state machine:
    IDLE -> TOKEN_MINTED -> TIER_HIGH -> TIER_MEDIUM -> TIER_LOW -> PUBLISHED
A run whose token goes stale at any check ends in CANCELLED instead. Both end
states are terminal; a finished run releases its token.
"""

import asyncio
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from tree_sitter import Tree

from clean_code.analysis.base import Analyzer
from clean_code.config import EngineConfig, get_config
from clean_code.core.exceptions import AnalyzerError
from clean_code.core.models import AnalyzerPriority, Block, CodeIssue, DocumentSnapshot
from clean_code.engine.block_partitioner import divide_into_blocks
from clean_code.engine.diagnostic_batcher import DiagnosticBatcher
from clean_code.engine.result_cache import ResultCache
from clean_code.log_utils import get_logger
from clean_code.parsing.ast_manager import ASTManager

logger = get_logger(__name__)


class RunState(str, Enum):
    """Lifecycle of one analysis run."""

    IDLE = "idle"
    TOKEN_MINTED = "token_minted"
    TIER_HIGH = "tier_high"
    TIER_MEDIUM = "tier_medium"
    TIER_LOW = "tier_low"
    PUBLISHED = "published"
    CANCELLED = "cancelled"


_TIER_STATES = {
    AnalyzerPriority.HIGH: RunState.TIER_HIGH,
    AnalyzerPriority.MEDIUM: RunState.TIER_MEDIUM,
    AnalyzerPriority.LOW: RunState.TIER_LOW,
}


class _RunCancelled(Exception):
    """Internal signal: the run's token is no longer current."""


class AnalysisScheduler:
    """
    Runs analyzers against a document in priority tiers.

    All state is touched from the event loop thread only. Cancellation is
    cooperative: the token is compared after every tier delay, before every
    analyzer and between blocks. A stale run may finish computing (and warm
    the cache) but never publishes.
    """

    def __init__(
        self,
        ast_manager: ASTManager,
        cache: ResultCache,
        batcher: DiagnosticBatcher,
        config: Optional[EngineConfig] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            ast_manager: Parser adapter shared by all runs
            cache: Per-block result cache shared by all runs
            batcher: Destination of per-tier publishes
            config: Engine configuration. If None, uses global config.
        """
        self.ast_manager = ast_manager
        self.cache = cache
        self.batcher = batcher
        self.config = config or get_config()

        # uri -> token of the run in flight for that document
        self._current_tokens: Dict[str, str] = {}
        self._run_states: Dict[str, RunState] = {}
        self._last_uri: Optional[str] = None

        self.stats = {
            "runs_started": 0,
            "runs_completed": 0,
            "runs_cancelled": 0,
            "analyzer_failures": 0,
            "blocks_analyzed": 0,
            "blocks_from_cache": 0,
        }

    @property
    def current_token(self) -> Optional[str]:
        """Token of the run in flight for the most recently scheduled document, if any."""
        if self._last_uri is None:
            return None
        return self._current_tokens.get(self._last_uri)

    @property
    def last_run_state(self) -> RunState:
        """State of the most recently started run."""
        if self._last_uri is None:
            return RunState.IDLE
        return self._run_states.get(self._last_uri, RunState.IDLE)

    def run_state(self, uri: str) -> RunState:
        """State of the newest run for one document."""
        return self._run_states.get(uri, RunState.IDLE)

    def is_current(self, uri: str, token: str) -> bool:
        return self._current_tokens.get(uri) == token

    def cancel_current_analysis(self, document: Optional[DocumentSnapshot] = None) -> None:
        """
        Invalidate in-flight runs.

        Args:
            document: Only cancel the run for this document; cancel every run if None
        """
        uris = [document.uri] if document is not None else list(self._current_tokens)
        for uri in uris:
            # Only runs still in flight hold a token; finished runs stay PUBLISHED
            if self._current_tokens.pop(uri, None) is not None:
                self._run_states[uri] = RunState.CANCELLED
                logger.debug(f"Cancelled analysis of {uri}")

    def forget_document(self, document: DocumentSnapshot) -> None:
        """Cancel any run for a closed document and drop its run state."""
        self.cancel_current_analysis(document)
        self._run_states.pop(document.uri, None)
        if self._last_uri == document.uri:
            self._last_uri = None

    async def schedule_analysis(
        self,
        document: DocumentSnapshot,
        analyzers: Sequence[Analyzer],
    ) -> None:
        """
        Analyze a document with the given analyzers, publishing after each tier.

        Args:
            document: Snapshot to analyze
            analyzers: Analyzers in configuration order; disabled ones are skipped
        """
        token = uuid.uuid4().hex
        uri = document.uri
        self._current_tokens[uri] = token
        self._last_uri = uri
        self._run_states[uri] = RunState.TOKEN_MINTED
        self.stats["runs_started"] += 1

        tiers: Dict[AnalyzerPriority, List[Analyzer]] = {p: [] for p in AnalyzerPriority}
        for analyzer in analyzers:
            if analyzer.is_enabled():
                tiers[analyzer.priority].append(analyzer)

        ast = self.ast_manager.get_ast(document)
        blocks: Optional[List[Block]] = None
        all_issues: List[CodeIssue] = []

        logger.debug_ctx(
            "Analysis run started",
            uri=uri,
            version=document.version,
            token=token[:8],
            analyzers=[a.id for a in analyzers if a.is_enabled()],
        )

        try:
            for priority in AnalyzerPriority:
                tier = tiers[priority]
                if not tier:
                    continue

                # Even a zero delay yields, so a newer request already queued
                # on the loop supersedes this run before anything is published
                await asyncio.sleep(self.config.tier_delay_seconds(priority))
                self._check_token(uri, token)
                self._run_states[uri] = _TIER_STATES[priority]

                for analyzer in tier:
                    self._check_token(uri, token)

                    if analyzer.supports_block_analysis:
                        if blocks is None:
                            blocks = divide_into_blocks(document, self.config.scheduling.block_size)
                        all_issues.extend(
                            self._analyze_blocks(document, analyzer, blocks, uri, token)
                        )
                    else:
                        all_issues.extend(self._analyze_document(document, analyzer, ast))

                self._check_token(uri, token)
                self.batcher.publish(document, list(all_issues))

        except _RunCancelled:
            self.stats["runs_cancelled"] += 1
            if uri not in self._current_tokens:
                self._run_states[uri] = RunState.CANCELLED
            logger.debug(f"Analysis run {token[:8]} for {uri} superseded, dropping results")
            return

        if self._current_tokens.get(uri) == token:
            del self._current_tokens[uri]
        self._run_states[uri] = RunState.PUBLISHED
        self.stats["runs_completed"] += 1
        logger.debug_ctx(
            "Analysis run finished",
            uri=uri,
            token=token[:8],
            issues=len(all_issues),
        )

    def _check_token(self, uri: str, token: str) -> None:
        if not self.is_current(uri, token):
            raise _RunCancelled()

    def _analyze_document(
        self,
        document: DocumentSnapshot,
        analyzer: Analyzer,
        ast: Optional[Tree],
    ) -> List[CodeIssue]:
        try:
            return list(analyzer.analyze(document, ast))
        except Exception as e:
            self._report_failure(document, AnalyzerError(analyzer.id, e))
            return []

    def _analyze_blocks(
        self,
        document: DocumentSnapshot,
        analyzer: Analyzer,
        blocks: List[Block],
        uri: str,
        token: str,
    ) -> List[CodeIssue]:
        """Block-mode analysis: serve cache hits, recompute and store misses."""
        issues: List[CodeIssue] = []
        cached_results = self.cache.get_cached_results(document, analyzer.id, blocks)

        for block, cached in zip(blocks, cached_results):
            self._check_token(uri, token)

            if cached is not None:
                self.stats["blocks_from_cache"] += 1
                issues.extend(cached)
                continue

            try:
                block_ast = None
                if analyzer.requires_ast:
                    block_ast = self.ast_manager.parse_text(block.content, document.language_id)
                local_issues = analyzer.analyze(document, block_ast, block)
                block_issues = [issue.shifted(block.start_line) for issue in local_issues]
            except Exception as e:
                # Failed blocks are not cached so the next pass retries them
                self._report_failure(document, AnalyzerError(analyzer.id, e, str(block)))
                continue

            self.stats["blocks_analyzed"] += 1
            self.cache.store_results(document, analyzer.id, block, block_issues)
            issues.extend(block_issues)

        return issues

    def _report_failure(self, document: DocumentSnapshot, error: AnalyzerError) -> None:
        self.stats["analyzer_failures"] += 1
        logger.warning_ctx(
            str(error).splitlines()[0],
            uri=document.uri,
            analyzer=error.analyzer_id,
            block=error.block_range,
            exc_info=error.cause,
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get scheduler statistics."""
        stats = self.stats.copy()
        stats["runs_in_flight"] = len(self._current_tokens)
        stats["last_run_state"] = self.last_run_state.value
        return stats
