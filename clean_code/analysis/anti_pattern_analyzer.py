"""
Anti-pattern analyzer.

Per-node checks: God objects, feature envy, long parameter lists and
primitive obsession. Whole-document checks: shotgun surgery (the same string
literal spread over several functions) and data clumps (the same group of
parameter names shared by several functions).
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tree_sitter import Node, Tree

from clean_code.analysis.base import Analyzer, node_range
from clean_code.analysis.ignore_comments import is_issue_ignored
from clean_code.analysis.syntax import (
    CLASS_NODE_TYPES,
    FIELD_NODE_TYPES,
    FUNCTION_NODE_TYPES,
    annotated_type,
    class_members,
    function_name,
    is_accessor,
    parameter_count,
    parameter_names,
    typed_parameters,
)
from clean_code.core.models import (
    AnalyzerPriority,
    Block,
    CodeIssue,
    DocumentSnapshot,
    IssueSeverity,
    IssueType,
    Range,
)
from clean_code.parsing.ast_manager import node_text, walk

_PARAMETERIZED_TYPES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "method_definition",
})

# Name fragments that usually stand for a domain concept, with the value type to suggest
DOMAIN_CONCEPTS = [
    (re.compile(r"email", re.I), "Email"),
    (re.compile(r"phone", re.I), "PhoneNumber"),
    (re.compile(r"address", re.I), "Address"),
    (re.compile(r"money|price|amount|cost", re.I), "Money"),
    (re.compile(r"date|time", re.I), "DateTime"),
    (re.compile(r"name", re.I), "PersonName"),
    (re.compile(r"currency", re.I), "Currency"),
    (re.compile(r"percent|percentage", re.I), "Percentage"),
    (re.compile(r"url|uri", re.I), "URL"),
    (re.compile(r"coordinate|location|position", re.I), "Coordinate"),
]

PRIMITIVE_TYPE_NAMES = frozenset({"string", "number", "boolean"})

# Shorter literals ("id", "GET") are too common to mean anything
MIN_TRACKED_LITERAL_LENGTH = 6


@dataclass
class _LiteralUses:
    nodes: List[Node] = field(default_factory=list)
    functions: Dict[str, int] = field(default_factory=dict)


@dataclass
class _ParameterGroup:
    first_function: Node
    functions: List[str] = field(default_factory=list)


class AntiPatternAnalyzer(Analyzer):
    """Analyzes code for common anti-patterns and code smells."""

    id = "anti-pattern"
    name = "Anti-Pattern Analyzer"
    description = "Analyzes code for common anti-patterns and code smells"
    priority = AnalyzerPriority.LOW
    supports_block_analysis = False

    def analyze(
        self,
        document: DocumentSnapshot,
        ast: Optional[Tree] = None,
        block: Optional[Block] = None,
    ) -> List[CodeIssue]:
        if ast is None:
            return []

        issues: List[CodeIssue] = []
        literals: Dict[str, _LiteralUses] = {}
        parameter_groups: Dict[str, _ParameterGroup] = {}

        for node in walk(ast.root_node):
            if node.type in CLASS_NODE_TYPES:
                issues.extend(self._check_god_object(node))
                issues.extend(self._check_feature_envy(node))
            elif node.type in _PARAMETERIZED_TYPES:
                issues.extend(self._check_long_parameter_list(node))
                issues.extend(self._check_primitive_parameters(node))
                self._collect_parameter_groups(node, parameter_groups)
            elif node.type == "variable_declarator":
                issues.extend(self._check_primitive_variable(node))
            elif node.type == "string":
                self._collect_literal(node, literals)

        issues.extend(self._check_shotgun_surgery(literals))
        issues.extend(self._check_data_clumps(parameter_groups))

        if self.config.analyzers.enable_ignore_comments:
            issues = [
                issue for issue in issues
                if not is_issue_ignored(document.lines, issue.range.start.line, IssueType.ANTI_PATTERN)
            ]
        return issues

    def _check_god_object(self, class_node: Node) -> List[CodeIssue]:
        name_node = class_node.child_by_field_name("name")
        if name_node is None:
            return []

        thresholds = self.config.thresholds
        class_name = node_text(name_node)
        issues = []

        lines_of_code = class_node.end_point[0] - class_node.start_point[0] + 1
        if lines_of_code > thresholds.max_class_size:
            issues.append(CodeIssue(
                type=IssueType.ANTI_PATTERN,
                message=(
                    f'God Object: Class "{class_name}" has {lines_of_code} lines, '
                    "which is a sign it may have too many responsibilities."
                ),
                range=node_range(class_node, name_node),
                severity=IssueSeverity.WARNING,
                suggestions=[
                    "Break down the class into smaller, more focused classes",
                    "Apply the Single Responsibility Principle",
                    "Consider using composition over inheritance",
                    "Extract related methods into separate service classes",
                ],
            ))

        properties = [
            member for member in class_members(class_node)
            if member.type in FIELD_NODE_TYPES
            or (member.type == "method_definition" and is_accessor(member))
        ]
        if len(properties) > thresholds.max_class_properties:
            issues.append(CodeIssue(
                type=IssueType.ANTI_PATTERN,
                message=(
                    f'God Object: Class "{class_name}" has {len(properties)} properties, '
                    "which is a sign of potential data clump or god object."
                ),
                range=node_range(class_node, name_node),
                severity=IssueSeverity.WARNING,
                suggestions=[
                    "Group related properties into new classes",
                    "Consider if some properties can be moved to other classes",
                    "Use composition to break down the class structure",
                ],
            ))

        return issues

    def _check_feature_envy(self, class_node: Node) -> List[CodeIssue]:
        """Methods that reach into one other object more than into ``this``."""
        if class_node.child_by_field_name("name") is None:
            return []

        threshold = self.config.thresholds.feature_envy_threshold
        issues = []

        for method in class_members(class_node):
            body = method.child_by_field_name("body")
            if method.type != "method_definition" or body is None:
                continue

            own_accesses = 0
            foreign_accesses: Dict[str, int] = {}
            for node in walk(body):
                if node.type != "member_expression":
                    continue
                target = node.child_by_field_name("object")
                if target is None:
                    continue
                if target.type == "this":
                    own_accesses += 1
                elif target.type == "identifier":
                    name = node_text(target)
                    foreign_accesses[name] = foreign_accesses.get(name, 0) + 1

            for object_name, count in foreign_accesses.items():
                if count > threshold and count > own_accesses:
                    method_name = function_name(method)
                    issues.append(CodeIssue(
                        type=IssueType.ANTI_PATTERN,
                        message=(
                            f'Feature Envy: Method "{method_name}" accesses properties of '
                            f'"{object_name}" {count} times, but only uses its own class '
                            f"properties {own_accesses} times."
                        ),
                        range=node_range(method, method.child_by_field_name("name")),
                        severity=IssueSeverity.INFORMATION,
                        suggestions=[
                            f'Consider moving this method to class "{object_name}"',
                            "Extract a new class that groups the related functionality",
                            "Use delegation instead of direct property access",
                        ],
                    ))
                    break

        return issues

    def _check_long_parameter_list(self, function_node: Node) -> List[CodeIssue]:
        max_parameters = self.config.thresholds.max_parameter_count
        count = parameter_count(function_node.child_by_field_name("parameters"))
        if count <= max_parameters:
            return []

        name_node = function_node.child_by_field_name("name")
        return [CodeIssue(
            type=IssueType.ANTI_PATTERN,
            message=(
                f'Long Parameter List: Function "{function_name(function_node)}" has {count} '
                f"parameters, which exceeds the recommended maximum of {max_parameters}."
            ),
            range=node_range(function_node, name_node),
            severity=IssueSeverity.INFORMATION,
            suggestions=[
                "Group related parameters into objects",
                "Create a Parameter Object class",
                "Consider if some parameters can be set via class properties instead",
                "Use the Builder pattern for complex object creation",
            ],
        )]

    def _check_primitive_variable(self, declarator: Node) -> List[CodeIssue]:
        name_node = declarator.child_by_field_name("name")
        if name_node is None or name_node.type != "identifier":
            return []
        declared = annotated_type(declarator.child_by_field_name("type"))
        if not _is_primitive(declared):
            return []
        return _primitive_obsession(name_node, node_range(declarator, name_node), "Variable")

    def _check_primitive_parameters(self, function_node: Node) -> List[CodeIssue]:
        issues = []
        for name_node, declared in typed_parameters(function_node.child_by_field_name("parameters")):
            if not _is_primitive(declared):
                continue
            # Typed and defaulted parameters wrap the identifier in their own node
            param_node = name_node if name_node.parent.type == "formal_parameters" else name_node.parent
            issues.extend(
                _primitive_obsession(name_node, node_range(param_node, name_node), "Parameter")
            )
        return issues

    def _collect_literal(self, string_node: Node, literals: Dict[str, _LiteralUses]) -> None:
        text = node_text(string_node)[1:-1]
        if len(text) < MIN_TRACKED_LITERAL_LENGTH:
            return

        uses = literals.setdefault(text, _LiteralUses())
        uses.nodes.append(string_node)

        enclosing = string_node.parent
        while enclosing is not None and enclosing.type not in FUNCTION_NODE_TYPES:
            enclosing = enclosing.parent
        if enclosing is not None:
            name = function_name(enclosing)
            uses.functions[name] = uses.functions.get(name, 0) + 1

    def _check_shotgun_surgery(self, literals: Dict[str, _LiteralUses]) -> List[CodeIssue]:
        min_occurrences = self.config.thresholds.min_string_literal_occurrences
        issues = []

        for text, uses in literals.items():
            if len(uses.nodes) < min_occurrences or len(uses.functions) < 2:
                continue

            preview = text[:20] + "..." if len(text) > 20 else text
            issues.append(CodeIssue(
                type=IssueType.ANTI_PATTERN,
                message=(
                    f'Shotgun Surgery: String literal "{preview}" appears {len(uses.nodes)} '
                    f"times in {len(uses.functions)} different functions "
                    f"({', '.join(uses.functions)})."
                ),
                range=node_range(uses.nodes[0]),
                severity=IssueSeverity.INFORMATION,
                suggestions=[
                    "Extract the string into a named constant",
                    "Consider if this represents a concept that should be modeled as a class",
                    "Use an enum if the string represents one of several options",
                    "Create a configuration class or settings file for these values",
                ],
            ))

        return issues

    def _collect_parameter_groups(
        self,
        function_node: Node,
        groups: Dict[str, _ParameterGroup],
    ) -> None:
        """Record every run of ``min_data_clump_size`` alphabetically adjacent parameter names."""
        size = self.config.thresholds.min_data_clump_size
        params = function_node.child_by_field_name("parameters")
        if parameter_count(params) < size:
            return

        names = sorted(node_text(name) for name in parameter_names(params))
        for start in range(len(names) - size + 1):
            key = ", ".join(names[start:start + size])
            group = groups.setdefault(key, _ParameterGroup(first_function=function_node))
            group.functions.append(function_name(function_node))

    def _check_data_clumps(self, groups: Dict[str, _ParameterGroup]) -> List[CodeIssue]:
        issues = []
        for key, group in groups.items():
            if len(set(group.functions)) < 2:
                continue

            first = group.first_function
            issues.append(CodeIssue(
                type=IssueType.ANTI_PATTERN,
                message=(
                    f"Data Clump: Parameters ({key}) appear together in multiple methods: "
                    f"{', '.join(group.functions)}."
                ),
                range=node_range(first, first.child_by_field_name("name")),
                severity=IssueSeverity.INFORMATION,
                suggestions=[
                    "Create a class to encapsulate these parameters",
                    "Use a Parameter Object pattern",
                    "This group of data might represent a concept in your domain model",
                ],
            ))
        return issues

    def is_enabled(self) -> bool:
        return self.config.analyzers.anti_pattern


def _is_primitive(declared: Optional[Node]) -> bool:
    """Untyped declarations count as primitive."""
    if declared is None:
        return True
    if declared.type in ("predefined_type", "type_identifier"):
        return node_text(declared).lower() in PRIMITIVE_TYPE_NAMES
    return False


def _primitive_obsession(name_node: Node, issue_range: Range, kind: str) -> List[CodeIssue]:
    name = node_text(name_node)
    for pattern, value_type in DOMAIN_CONCEPTS:
        if pattern.search(name):
            return [CodeIssue(
                type=IssueType.ANTI_PATTERN,
                message=(
                    f'Primitive Obsession: {kind} "{name}" appears to represent a domain '
                    "concept but uses a primitive type."
                ),
                range=issue_range,
                severity=IssueSeverity.INFORMATION,
                suggestions=[
                    f'Consider creating a "{value_type}" class to encapsulate this concept',
                    "Use value objects to represent domain concepts",
                    "Domain primitives enhance type safety and business logic encapsulation",
                ],
            )]
    return []
