"""Test configuration and shared fixtures."""

import os
from typing import Callable

import pytest

from clean_code.config import EngineConfig, set_config
from clean_code.core.models import DocumentSnapshot
from clean_code.engine.diagnostic_batcher import DiagnosticBatcher, InMemoryDiagnosticCollection
from clean_code.engine.result_cache import ResultCache
from clean_code.engine.scheduler import AnalysisScheduler
from clean_code.parsing.ast_manager import ASTManager


def make_config(**scheduling) -> EngineConfig:
    """Engine config with short timings so async tests stay fast."""
    settings = {
        "tier_delays_ms": [0, 20, 40],
        "batch_interval_ms": 10,
        "change_debounce_ms": 10,
    }
    settings.update(scheduling)
    return EngineConfig(scheduling=settings)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keep tests independent of the user's environment and config file."""
    for name in list(os.environ):
        if name.upper().startswith("CLEAN_CODE_"):
            monkeypatch.delenv(name, raising=False)

    config = make_config()
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def config(isolated_config) -> EngineConfig:
    return isolated_config


@pytest.fixture
def make_document() -> Callable[..., DocumentSnapshot]:
    """Factory for in-memory TypeScript documents."""

    def _make(text: str, uri: str = "file:///workspace/sample.ts", version: int = 1,
              language_id: str = "typescript") -> DocumentSnapshot:
        return DocumentSnapshot(uri=uri, version=version, text=text, language_id=language_id)

    return _make


@pytest.fixture
def ast_manager(config) -> ASTManager:
    return ASTManager(config)


@pytest.fixture
def parse(ast_manager):
    """Parse TypeScript source into a tree."""

    def _parse(source: str, language_id: str = "typescript"):
        return ast_manager.parse_text(source, language_id)

    return _parse


@pytest.fixture
def sink() -> InMemoryDiagnosticCollection:
    return InMemoryDiagnosticCollection()


@pytest.fixture
def batcher(sink, config) -> DiagnosticBatcher:
    return DiagnosticBatcher(sink, config.scheduling.batch_interval_ms)


@pytest.fixture
def cache() -> ResultCache:
    return ResultCache(max_size=100)


@pytest.fixture
def scheduler(ast_manager, cache, batcher, config) -> AnalysisScheduler:
    return AnalysisScheduler(ast_manager, cache, batcher, config)


@pytest.fixture
def config_factory() -> Callable[..., EngineConfig]:
    """Build configs with custom scheduling settings."""
    return make_config
