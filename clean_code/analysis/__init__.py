"""Rule-checking analyzers and their registry."""

from typing import List, Optional

from clean_code.analysis.anti_pattern_analyzer import AntiPatternAnalyzer
from clean_code.analysis.base import Analyzer
from clean_code.analysis.complexity_analyzer import ComplexityAnalyzer
from clean_code.analysis.duplicate_block_detector import DuplicateBlockDetector
from clean_code.analysis.duplicate_code_analyzer import DuplicateCodeAnalyzer
from clean_code.analysis.naming_analyzer import NamingAnalyzer
from clean_code.analysis.solid_principles_analyzer import SolidPrinciplesAnalyzer
from clean_code.config import EngineConfig, get_config

ANALYZER_CLASSES = (
    NamingAnalyzer,
    ComplexityAnalyzer,
    DuplicateCodeAnalyzer,
    SolidPrinciplesAnalyzer,
    AntiPatternAnalyzer,
)


def create_analyzers(config: Optional[EngineConfig] = None) -> List[Analyzer]:
    """
    Build one instance of every analyzer.

    Disabled analyzers are still returned; the scheduler asks each one
    ``is_enabled()`` on every run so toggles take effect without a restart.
    """
    config = config or get_config()
    return [analyzer_cls(config) for analyzer_cls in ANALYZER_CLASSES]


__all__ = [
    "Analyzer",
    "AntiPatternAnalyzer",
    "ComplexityAnalyzer",
    "DuplicateBlockDetector",
    "DuplicateCodeAnalyzer",
    "NamingAnalyzer",
    "SolidPrinciplesAnalyzer",
    "ANALYZER_CLASSES",
    "create_analyzers",
]
