"""Abstract base class for rule-checking analyzers."""

from abc import ABC, abstractmethod
from typing import List, Optional

from tree_sitter import Node, Tree

from clean_code.config import EngineConfig, get_config
from clean_code.core.models import (
    AnalyzerPriority,
    Block,
    CodeIssue,
    DocumentSnapshot,
    Range,
)


class Analyzer(ABC):
    """
    Interface every rule-checker implements.

    The scheduler depends only on this interface. Analyzers are synchronous so
    that one priority tier runs to completion without yielding.
    """

    id: str = ""
    name: str = ""
    description: str = ""
    priority: AnalyzerPriority = AnalyzerPriority.MEDIUM
    supports_block_analysis: bool = False
    # Text-only analyzers set this to False so block mode skips the per-block parse
    requires_ast: bool = True

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize analyzer.

        Args:
            config: Engine configuration. If None, uses global config.
        """
        self.config = config or get_config()

    @abstractmethod
    def analyze(
        self,
        document: DocumentSnapshot,
        ast: Optional[Tree] = None,
        block: Optional[Block] = None,
    ) -> List[CodeIssue]:
        """
        Analyze a document, or one block of it.

        Args:
            document: The document being analyzed
            ast: Pre-parsed tree of the document, or of the block in block mode
            block: When given, analyze only ``block.content``

        Returns:
            Issues in document coordinates, or in block-relative coordinates
            (line 0 is ``block.start_line``) when ``block`` is given.
        """
        pass

    @abstractmethod
    def is_enabled(self) -> bool:
        """Whether configuration currently enables this analyzer."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, priority={self.priority.name})"


def source_lines(document: DocumentSnapshot, block: Optional[Block]) -> List[str]:
    """Lines the analyzer is looking at: the block's text, or the whole document."""
    if block is None:
        return document.lines
    lines = block.content.split("\n")
    if block.content.endswith("\n"):
        lines.pop()
    return lines


def node_range(start: Node, end: Optional[Node] = None) -> Range:
    """Range spanning from the start of ``start`` to the end of ``end`` (or ``start``)."""
    end = end or start
    return Range.from_coords(
        start.start_point[0], start.start_point[1], end.end_point[0], end.end_point[1]
    )
