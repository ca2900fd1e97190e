"""
Naming analyzer for clean code conventions.

Checks declared identifiers for:
- Minimum and maximum length
- PascalCase classes and interfaces
- camelCase functions, methods, variables, parameters and properties
- UPPER_SNAKE_CASE constants
"""

import re
from enum import Enum
from typing import List, Optional, Tuple

from tree_sitter import Node, Tree

from clean_code.analysis.base import Analyzer, node_range, source_lines
from clean_code.analysis.ignore_comments import is_issue_ignored
from clean_code.analysis.syntax import CLASS_NODE_TYPES, FIELD_NODE_TYPES, parameter_names
from clean_code.config import EngineConfig
from clean_code.core.models import (
    AnalyzerPriority,
    Block,
    CodeIssue,
    DocumentSnapshot,
    IssueSeverity,
    IssueType,
)
from clean_code.parsing.ast_manager import node_text, walk


class NamingKind(str, Enum):
    """Kinds of declared identifiers."""

    CLASS = "Class"
    INTERFACE = "Interface"
    FUNCTION = "Function"
    METHOD = "Method"
    VARIABLE = "Variable"
    PARAMETER = "Parameter"
    PROPERTY = "Property"
    CONSTANT = "Constant"


PASCAL_CASE = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
CAMEL_CASE = re.compile(r"^[a-z][a-zA-Z0-9]*$")
UPPER_SNAKE_CASE = re.compile(r"^[A-Z][A-Z0-9_]*$")

CONVENTIONS = {
    NamingKind.CLASS: ("PascalCase", PASCAL_CASE),
    NamingKind.INTERFACE: ("PascalCase", PASCAL_CASE),
    NamingKind.FUNCTION: ("camelCase", CAMEL_CASE),
    NamingKind.METHOD: ("camelCase", CAMEL_CASE),
    NamingKind.VARIABLE: ("camelCase", CAMEL_CASE),
    NamingKind.PARAMETER: ("camelCase", CAMEL_CASE),
    NamingKind.PROPERTY: ("camelCase", CAMEL_CASE),
    NamingKind.CONSTANT: ("UPPER_SNAKE_CASE", UPPER_SNAKE_CASE),
}

# Conventional short names (loop counters, coordinates, ids)
SHORT_NAME_EXCEPTIONS = frozenset({"i", "j", "k", "x", "y", "z", "id", "to", "on", "at"})

_FUNCTION_VALUES = frozenset({"arrow_function", "function_expression", "function"})


def _words(name: str) -> List[str]:
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", name)
    return [word for word in re.split(r"[^a-zA-Z0-9]+", spaced) if word]


def to_pascal_case(name: str) -> str:
    return "".join(word[0].upper() + word[1:].lower() for word in _words(name))


def to_camel_case(name: str) -> str:
    pascal = to_pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


def to_upper_snake_case(name: str) -> str:
    return "_".join(word.upper() for word in _words(name))


class NamingAnalyzer(Analyzer):
    """Analyzes variable, function, and class names for clean code principles."""

    id = "naming"
    name = "Naming Analyzer"
    description = "Analyzes variable, function, and class names for clean code principles"
    priority = AnalyzerPriority.HIGH
    supports_block_analysis = True

    def __init__(self, config: Optional[EngineConfig] = None):
        super().__init__(config)
        self.min_length = self.config.thresholds.min_name_length
        self.max_length = self.config.thresholds.max_name_length

    def analyze(
        self,
        document: DocumentSnapshot,
        ast: Optional[Tree] = None,
        block: Optional[Block] = None,
    ) -> List[CodeIssue]:
        if ast is None:
            return []

        lines = source_lines(document, block)
        check_ignores = self.config.analyzers.enable_ignore_comments
        issues: List[CodeIssue] = []

        for name_node, kind in self.find_identifiers(ast.root_node):
            name = node_text(name_node)
            if not name:
                continue
            if check_ignores and is_issue_ignored(lines, name_node.start_point[0], IssueType.NAMING):
                continue
            issues.extend(self._check_name(name_node, name, kind))

        return issues

    def _check_name(self, node: Node, name: str, kind: NamingKind) -> List[CodeIssue]:
        issues = []
        range_ = node_range(node)

        if len(name) < self.min_length and name not in SHORT_NAME_EXCEPTIONS:
            issues.append(CodeIssue(
                type=IssueType.NAMING,
                message=(
                    f'{kind.value} name "{name}" is too short ({len(name)}). '
                    f"Names should be at least {self.min_length} characters."
                ),
                range=range_,
                severity=IssueSeverity.WARNING,
                suggestions=[
                    "Use descriptive names that convey meaning and intent",
                    "Avoid single letter names except for simple loop counters",
                ],
            ))

        if len(name) > self.max_length:
            issues.append(CodeIssue(
                type=IssueType.NAMING,
                message=(
                    f'{kind.value} name "{name}" is too long ({len(name)}). '
                    f"Names should be no more than {self.max_length} characters."
                ),
                range=range_,
                severity=IssueSeverity.INFORMATION,
                suggestions=[
                    "Use shorter but still descriptive names",
                    "Break down complex entities into smaller parts",
                ],
            ))

        convention, pattern = CONVENTIONS[kind]
        if not pattern.match(name):
            issues.append(CodeIssue(
                type=IssueType.NAMING,
                message=f'{kind.value} name "{name}" does not follow the {convention} naming convention.',
                range=range_,
                severity=IssueSeverity.INFORMATION,
                suggestions=[
                    f"Use {convention} for {kind.value} names",
                    f'Example: "{self._example_for(kind, name)}"',
                ],
            ))

        return issues

    @staticmethod
    def _example_for(kind: NamingKind, name: str) -> str:
        if kind in (NamingKind.CLASS, NamingKind.INTERFACE):
            return to_pascal_case(name)
        if kind == NamingKind.CONSTANT:
            return to_upper_snake_case(name)
        return to_camel_case(name)

    def find_identifiers(self, root: Node) -> List[Tuple[Node, NamingKind]]:
        """Declared identifiers and their kinds, in source order."""
        found: List[Tuple[Node, NamingKind]] = []

        for node in walk(root):
            node_type = node.type

            if node_type == "variable_declarator":
                name_node = node.child_by_field_name("name")
                if name_node is not None and name_node.type == "identifier":
                    found.append((name_node, self._declarator_kind(node)))

            elif node_type in ("function_declaration", "generator_function_declaration"):
                name_node = node.child_by_field_name("name")
                if name_node is not None:
                    found.append((name_node, NamingKind.FUNCTION))

            elif node_type in CLASS_NODE_TYPES:
                name_node = node.child_by_field_name("name")
                if name_node is not None:
                    found.append((name_node, NamingKind.CLASS))

            elif node_type == "interface_declaration":
                name_node = node.child_by_field_name("name")
                if name_node is not None:
                    found.append((name_node, NamingKind.INTERFACE))

            elif node_type == "method_definition":
                name_node = node.child_by_field_name("name")
                if name_node is not None and name_node.type == "property_identifier":
                    found.append((name_node, NamingKind.METHOD))

            elif node_type in FIELD_NODE_TYPES:
                name_node = node.child_by_field_name("name") or node.child_by_field_name("property")
                if name_node is not None and name_node.type == "property_identifier":
                    found.append((name_node, NamingKind.PROPERTY))

            elif node_type == "formal_parameters":
                found.extend((param, NamingKind.PARAMETER) for param in parameter_names(node))

        return found

    @staticmethod
    def _declarator_kind(declarator: Node) -> NamingKind:
        value = declarator.child_by_field_name("value")
        if value is not None and value.type in _FUNCTION_VALUES:
            return NamingKind.FUNCTION

        declaration = declarator.parent
        if declaration is not None and declaration.type == "lexical_declaration":
            kind_node = declaration.child_by_field_name("kind")
            if kind_node is not None and node_text(kind_node) == "const":
                return NamingKind.CONSTANT

        return NamingKind.VARIABLE

    def is_enabled(self) -> bool:
        return self.config.analyzers.naming
