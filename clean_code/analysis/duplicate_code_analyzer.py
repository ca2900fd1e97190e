"""Duplicate code analyzer: reports every occurrence of a repeated block."""

from typing import List, Optional

from tree_sitter import Tree

from clean_code.analysis.base import Analyzer, source_lines
from clean_code.analysis.duplicate_block_detector import DuplicateBlockDetector
from clean_code.analysis.ignore_comments import is_issue_ignored
from clean_code.config import EngineConfig
from clean_code.core.models import (
    AnalyzerPriority,
    Block,
    CodeIssue,
    DocumentSnapshot,
    IssueSeverity,
    IssueType,
    Range,
)


class DuplicateCodeAnalyzer(Analyzer):
    """Identifies duplicate code blocks that could be refactored."""

    id = "duplicate-code"
    name = "Duplicate Code Analyzer"
    description = "Identifies duplicate code blocks that could be refactored"
    priority = AnalyzerPriority.MEDIUM
    supports_block_analysis = True
    requires_ast = False

    SUGGESTIONS = [
        "Extract the duplicated code into a reusable function",
        "Apply DRY (Don't Repeat Yourself) principle",
        "Consider using design patterns to eliminate duplication",
    ]

    def __init__(self, config: Optional[EngineConfig] = None):
        super().__init__(config)
        self.detector = DuplicateBlockDetector(
            min_block_size=self.config.thresholds.min_duplicate_block_size
        )

    def analyze(
        self,
        document: DocumentSnapshot,
        ast: Optional[Tree] = None,
        block: Optional[Block] = None,
    ) -> List[CodeIssue]:
        lines = source_lines(document, block)
        groups = self.detector.find_duplicates(block.content if block else document)
        check_ignores = self.config.analyzers.enable_ignore_comments

        issues: List[CodeIssue] = []
        for group in groups:
            for span in group.blocks:
                if check_ignores and is_issue_ignored(lines, span.start_line, IssueType.DUPLICATE_CODE):
                    continue

                issues.append(
                    CodeIssue(
                        type=IssueType.DUPLICATE_CODE,
                        message=f"This code block is duplicated {len(group.blocks)} times in this file.",
                        range=Range.from_coords(
                            span.start_line, 0, span.end_line, len(lines[span.end_line])
                        ),
                        severity=IssueSeverity.WARNING,
                        suggestions=list(self.SUGGESTIONS),
                    )
                )

        return issues

    def is_enabled(self) -> bool:
        return self.config.analyzers.duplicate_code
