"""Tests for the priority-tiered analysis scheduler."""

import asyncio
from typing import List, Optional

import pytest

from clean_code.analysis.base import Analyzer
from clean_code.core.models import AnalyzerPriority, CodeIssue, IssueType, Range
from clean_code.engine.result_cache import ResultCache
from clean_code.engine.scheduler import AnalysisScheduler, RunState


class RecordingBatcher:
    """Stands in for the diagnostic batcher and records every publish."""

    def __init__(self):
        self.published = []

    def publish(self, document, issues):
        loop = asyncio.get_running_loop()
        self.published.append((loop.time(), document.version, list(issues)))


class StubAnalyzer(Analyzer):
    """Analyzer that reports one issue per call at a fixed local line."""

    requires_ast = False

    def __init__(self, analyzer_id: str, priority: AnalyzerPriority, config,
                 block: bool = False, line: int = 0, fail: bool = False, enabled: bool = True):
        super().__init__(config)
        self.id = analyzer_id
        self.name = analyzer_id
        self.priority = priority
        self.supports_block_analysis = block
        self.line = line
        self.fail = fail
        self.enabled = enabled
        self.calls: List[Optional[str]] = []

    def analyze(self, document, ast=None, block=None):
        self.calls.append(block.content if block else None)
        if self.fail:
            raise RuntimeError(f"{self.id} exploded")
        return [CodeIssue(
            type=IssueType.NAMING,
            message=f"{self.id} v{document.version}",
            range=Range.from_coords(self.line, 0, self.line, 1),
        )]

    def is_enabled(self):
        return self.enabled


SOURCE = (
    "function alpha() {\n  one();\n  two();\n}\n"
    "function beta() {\n  three();\n  four();\n}\n"
)


@pytest.fixture
def batcher():
    return RecordingBatcher()


def _messages(issues):
    return [issue.message for issue in issues]


class TestTierOrdering:
    """Tiers run High, Medium, Low and publishes are cumulative."""

    @pytest.mark.asyncio
    async def test_cumulative_publish(self, ast_manager, batcher, make_document, config_factory):
        config = config_factory(tier_delays_ms=[0, 20, 300])
        scheduler = AnalysisScheduler(ast_manager, ResultCache(), batcher, config)
        high = StubAnalyzer("high", AnalyzerPriority.HIGH, config)
        low = StubAnalyzer("low", AnalyzerPriority.LOW, config, line=1)

        loop = asyncio.get_running_loop()
        started = loop.time()
        await scheduler.schedule_analysis(make_document(SOURCE), [low, high])

        assert [_messages(issues) for _, _, issues in batcher.published] == [
            ["high v1"],
            ["high v1", "low v1"],
        ]
        first_publish, second_publish = batcher.published[0][0], batcher.published[1][0]
        assert first_publish - started < 0.3
        assert second_publish - started >= 0.29
        assert scheduler.last_run_state == RunState.PUBLISHED

    @pytest.mark.asyncio
    async def test_later_tier_waits_even_when_high_is_empty(
        self, ast_manager, batcher, make_document, config_factory
    ):
        """A Low-only run still waits the Low delay, and only that delay."""
        config = config_factory(tier_delays_ms=[0, 400, 100])
        scheduler = AnalysisScheduler(ast_manager, ResultCache(), batcher, config)
        low = StubAnalyzer("low", AnalyzerPriority.LOW, config)

        loop = asyncio.get_running_loop()
        started = loop.time()
        await scheduler.schedule_analysis(make_document(SOURCE), [low])

        assert len(batcher.published) == 1
        waited = batcher.published[0][0] - started
        assert 0.09 <= waited < 0.35

    @pytest.mark.asyncio
    async def test_configuration_order_within_tier(self, scheduler, batcher, config, make_document):
        first = StubAnalyzer("first", AnalyzerPriority.HIGH, config)
        second = StubAnalyzer("second", AnalyzerPriority.HIGH, config)

        await scheduler.schedule_analysis(make_document(SOURCE), [first, second])
        assert _messages(batcher.published[-1][2]) == ["first v1", "second v1"]

    @pytest.mark.asyncio
    async def test_disabled_analyzers_are_skipped(self, scheduler, batcher, config, make_document):
        disabled = StubAnalyzer("off", AnalyzerPriority.HIGH, config, enabled=False)
        enabled = StubAnalyzer("on", AnalyzerPriority.MEDIUM, config)

        await scheduler.schedule_analysis(make_document(SOURCE), [disabled, enabled])

        assert disabled.calls == []
        assert _messages(batcher.published[-1][2]) == ["on v1"]

    @pytest.mark.asyncio
    async def test_no_analyzers_publishes_nothing(self, scheduler, batcher, make_document):
        await scheduler.schedule_analysis(make_document(SOURCE), [])
        assert batcher.published == []
        assert scheduler.last_run_state == RunState.PUBLISHED


class TestCancellation:
    """Superseded and cancelled runs never publish."""

    @pytest.mark.asyncio
    async def test_new_run_silences_previous(self, scheduler, batcher, config, make_document):
        analyzers = [
            StubAnalyzer("high", AnalyzerPriority.HIGH, config),
            StubAnalyzer("low", AnalyzerPriority.LOW, config),
        ]

        first = asyncio.create_task(scheduler.schedule_analysis(make_document(SOURCE, version=1), analyzers))
        second = asyncio.create_task(scheduler.schedule_analysis(make_document(SOURCE, version=2), analyzers))
        await asyncio.gather(first, second)

        assert batcher.published
        assert {version for _, version, _ in batcher.published} == {2}
        assert scheduler.stats["runs_cancelled"] == 1
        assert scheduler.stats["runs_completed"] == 1

    @pytest.mark.asyncio
    async def test_cancel_during_tier_delay(self, ast_manager, batcher, make_document, config_factory):
        config = config_factory(tier_delays_ms=[0, 200, 200])
        scheduler = AnalysisScheduler(ast_manager, ResultCache(), batcher, config)
        high = StubAnalyzer("high", AnalyzerPriority.HIGH, config)
        low = StubAnalyzer("low", AnalyzerPriority.LOW, config)

        task = asyncio.create_task(scheduler.schedule_analysis(make_document(SOURCE), [high, low]))
        await asyncio.sleep(0.05)
        scheduler.cancel_current_analysis()
        await task

        assert len(batcher.published) == 1
        assert low.calls == []
        assert scheduler.last_run_state == RunState.CANCELLED
        assert scheduler.current_token is None

    @pytest.mark.asyncio
    async def test_runs_for_other_documents_are_independent(self, scheduler, batcher, config, make_document):
        analyzers = [StubAnalyzer("high", AnalyzerPriority.HIGH, config)]
        a = make_document(SOURCE, uri="file:///a.ts")
        b = make_document(SOURCE, uri="file:///b.ts")

        await asyncio.gather(
            scheduler.schedule_analysis(a, analyzers),
            scheduler.schedule_analysis(b, analyzers),
        )

        assert len(batcher.published) == 2
        assert scheduler.stats["runs_cancelled"] == 0

    @pytest.mark.asyncio
    async def test_token_minted_per_run(self, scheduler, config, make_document):
        seen_tokens = []

        class TokenRecordingAnalyzer(StubAnalyzer):
            def analyze(self, document, ast=None, block=None):
                seen_tokens.append(scheduler.current_token)
                return super().analyze(document, ast, block)

        analyzers = [TokenRecordingAnalyzer("high", AnalyzerPriority.HIGH, config)]
        await scheduler.schedule_analysis(make_document(SOURCE), analyzers)
        await scheduler.schedule_analysis(make_document(SOURCE, version=2), analyzers)

        assert None not in seen_tokens
        assert len(set(seen_tokens)) == 2
        assert scheduler.current_token is None

    @pytest.mark.asyncio
    async def test_cancel_after_completion_keeps_published(self, scheduler, config, make_document):
        analyzers = [StubAnalyzer("high", AnalyzerPriority.HIGH, config)]
        a = make_document(SOURCE, uri="file:///a.ts")
        await scheduler.schedule_analysis(a, analyzers)
        assert scheduler.run_state(a.uri) == RunState.PUBLISHED

        scheduler.cancel_current_analysis()
        scheduler.cancel_current_analysis(a)

        assert scheduler.run_state(a.uri) == RunState.PUBLISHED
        assert scheduler.get_stats()["runs_in_flight"] == 0
        assert scheduler.stats["runs_cancelled"] == 0

    @pytest.mark.asyncio
    async def test_finished_runs_release_tokens(self, scheduler, config, make_document):
        analyzers = [StubAnalyzer("high", AnalyzerPriority.HIGH, config)]
        for name in ("a", "b", "c"):
            await scheduler.schedule_analysis(make_document(SOURCE, uri=f"file:///{name}.ts"), analyzers)

        assert scheduler.get_stats()["runs_in_flight"] == 0

    @pytest.mark.asyncio
    async def test_forget_document(self, scheduler, config, make_document):
        document = make_document(SOURCE)
        await scheduler.schedule_analysis(document, [StubAnalyzer("high", AnalyzerPriority.HIGH, config)])

        scheduler.forget_document(document)

        assert scheduler.run_state(document.uri) == RunState.IDLE
        assert scheduler.last_run_state == RunState.IDLE


class TestFaultIsolation:
    """One failing analyzer does not affect the others."""

    @pytest.mark.asyncio
    async def test_failing_analyzer(self, scheduler, batcher, config, make_document, caplog):
        broken = StubAnalyzer("broken", AnalyzerPriority.HIGH, config, block=True, fail=True)
        healthy = StubAnalyzer("healthy", AnalyzerPriority.HIGH, config)
        later = StubAnalyzer("later", AnalyzerPriority.LOW, config)

        with caplog.at_level("WARNING"):
            await scheduler.schedule_analysis(make_document(SOURCE), [broken, healthy, later])

        assert _messages(batcher.published[-1][2]) == ["healthy v1", "later v1"]
        assert scheduler.stats["analyzer_failures"] == len(broken.calls)
        assert "Analyzer 'broken' failed" in caplog.text

    @pytest.mark.asyncio
    async def test_failed_blocks_are_not_cached(self, scheduler, cache, config, make_document):
        broken = StubAnalyzer("broken", AnalyzerPriority.HIGH, config, block=True, fail=True)
        await scheduler.schedule_analysis(make_document(SOURCE), [broken])
        assert len(cache) == 0


class TestBlockMode:
    """Block-capable analyzers go through the result cache."""

    @pytest.mark.asyncio
    async def test_positions_are_translated(self, scheduler, batcher, config, make_document):
        analyzer = StubAnalyzer("blocks", AnalyzerPriority.HIGH, config, block=True, line=1)
        await scheduler.schedule_analysis(make_document(SOURCE), [analyzer])

        lines = [issue.range.start.line for issue in batcher.published[-1][2]]
        # Blocks: alpha (0-3), beta (4-7) and the trailing empty line (8)
        assert lines == [1, 5, 9]

    @pytest.mark.asyncio
    async def test_unchanged_blocks_come_from_cache(self, scheduler, batcher, config, make_document):
        analyzer = StubAnalyzer("blocks", AnalyzerPriority.HIGH, config, block=True)
        await scheduler.schedule_analysis(make_document(SOURCE), [analyzer])
        calls_after_first_run = len(analyzer.calls)

        await scheduler.schedule_analysis(make_document(SOURCE, version=2), [analyzer])

        assert len(analyzer.calls) == calls_after_first_run
        assert scheduler.stats["blocks_from_cache"] == calls_after_first_run
        assert [i.range.start.line for i in batcher.published[-1][2]] == [0, 4, 8]

    @pytest.mark.asyncio
    async def test_moved_block_is_reanchored(self, scheduler, batcher, config, make_document):
        analyzer = StubAnalyzer("blocks", AnalyzerPriority.HIGH, config, block=True)
        await scheduler.schedule_analysis(make_document(SOURCE), [analyzer])
        analyzer.calls.clear()

        edited = "const header = 1;\nconst other = 2;\n" + SOURCE
        await scheduler.schedule_analysis(make_document(edited, version=2), [analyzer])

        beta_block = "function beta() {\n  three();\n  four();\n}\n"
        assert beta_block not in analyzer.calls
        assert 6 in [i.range.start.line for i in batcher.published[-1][2]]


def test_stats_shape(scheduler):
    stats = scheduler.get_stats()
    assert stats["runs_started"] == 0
    assert stats["last_run_state"] == "idle"
