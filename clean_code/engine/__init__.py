"""Incremental analysis pipeline: partitioning, caching, scheduling and batching."""

from clean_code.engine.block_partitioner import divide_into_blocks
from clean_code.engine.diagnostic_batcher import (
    DiagnosticBatcher,
    DiagnosticSink,
    InMemoryDiagnosticCollection,
)
from clean_code.engine.result_cache import ResultCache
from clean_code.engine.scheduler import AnalysisScheduler, RunState

__all__ = [
    "divide_into_blocks",
    "DiagnosticBatcher",
    "DiagnosticSink",
    "InMemoryDiagnosticCollection",
    "ResultCache",
    "AnalysisScheduler",
    "RunState",
]
