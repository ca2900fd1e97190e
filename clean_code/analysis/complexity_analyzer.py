"""
Complexity analyzer for functions and methods.

Cyclomatic complexity is counted as decision points + 1:
- if statements and ternaries
- loops (for, for-in/of, while, do-while)
- switch cases and catch clauses
- logical operators (&&, ||)

Nested functions contribute to the complexity of every enclosing function.
"""

from typing import List, Optional

from tree_sitter import Node, Tree

from clean_code.analysis.base import Analyzer, node_range
from clean_code.analysis.ignore_comments import is_issue_ignored
from clean_code.analysis.syntax import FUNCTION_NODE_TYPES, function_name
from clean_code.core.models import (
    AnalyzerPriority,
    Block,
    CodeIssue,
    DocumentSnapshot,
    IssueSeverity,
    IssueType,
)
from clean_code.parsing.ast_manager import node_text, walk

DECISION_NODE_TYPES = frozenset({
    "if_statement",
    "for_statement",
    "for_in_statement",
    "while_statement",
    "do_statement",
    "switch_case",
    "catch_clause",
    "ternary_expression",
})

LOGICAL_OPERATORS = frozenset({"&&", "||"})


def calculate_complexity(node: Node) -> int:
    """Cyclomatic complexity of the subtree rooted at ``node``."""
    complexity = 1

    for child in walk(node):
        if child.type in DECISION_NODE_TYPES:
            complexity += 1
        elif child.type == "binary_expression":
            operator = child.child_by_field_name("operator")
            if operator is not None and node_text(operator) in LOGICAL_OPERATORS:
                complexity += 1

    return complexity


class ComplexityAnalyzer(Analyzer):
    """Analyzes the cyclomatic complexity of functions and methods."""

    id = "complexity"
    name = "Complexity Analyzer"
    description = "Analyzes the cyclomatic complexity of functions and methods"
    priority = AnalyzerPriority.HIGH
    supports_block_analysis = False

    def analyze(
        self,
        document: DocumentSnapshot,
        ast: Optional[Tree] = None,
        block: Optional[Block] = None,
    ) -> List[CodeIssue]:
        if ast is None:
            return []

        max_complexity = self.config.thresholds.max_complexity
        check_ignores = self.config.analyzers.enable_ignore_comments
        issues: List[CodeIssue] = []

        for node in walk(ast.root_node):
            if node.type not in FUNCTION_NODE_TYPES:
                continue

            complexity = calculate_complexity(node)
            if complexity <= max_complexity:
                continue

            if check_ignores and is_issue_ignored(document.lines, node.start_point[0], IssueType.COMPLEXITY):
                continue

            name = function_name(node)
            issues.append(CodeIssue(
                type=IssueType.COMPLEXITY,
                message=(
                    f'Function "{name}" has a complexity of {complexity}, '
                    f"which exceeds the maximum of {max_complexity}"
                ),
                range=node_range(node),
                severity=IssueSeverity.WARNING,
                suggestions=[
                    "Break down the function into smaller, more focused functions",
                    "Refactor complex conditional logic into separate helper functions",
                    "Consider using strategy pattern or command pattern for complex logic",
                ],
                documentation="https://en.wikipedia.org/wiki/Cyclomatic_complexity",
            ))

        return issues

    def is_enabled(self) -> bool:
        return self.config.analyzers.complexity
