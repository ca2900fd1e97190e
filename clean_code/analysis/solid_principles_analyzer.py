"""
SOLID principles analyzer.

Single responsibility: classes with many methods, and long methods.
Open/closed: large switch statements and long if/else-if chains.
Interface segregation: interfaces declaring many methods.
Dependency inversion: constructors that instantiate their collaborators.
"""

from typing import List, Optional

from tree_sitter import Node, Tree

from clean_code.analysis.base import Analyzer, node_range
from clean_code.analysis.syntax import CLASS_NODE_TYPES, class_members, function_name
from clean_code.core.models import (
    AnalyzerPriority,
    Block,
    CodeIssue,
    DocumentSnapshot,
    IssueSeverity,
    IssueType,
)
from clean_code.parsing.ast_manager import node_text, walk


class SolidPrinciplesAnalyzer(Analyzer):
    """Looks for structural hints of SOLID principle violations."""

    id = "solid-principles"
    name = "SOLID Principles Analyzer"
    description = "Detects classes, branches and interfaces that hint at SOLID violations"
    priority = AnalyzerPriority.LOW
    supports_block_analysis = True

    def analyze(
        self,
        document: DocumentSnapshot,
        ast: Optional[Tree] = None,
        block: Optional[Block] = None,
    ) -> List[CodeIssue]:
        if ast is None:
            return []

        issues: List[CodeIssue] = []
        for node in walk(ast.root_node):
            if node.type in CLASS_NODE_TYPES:
                issues.extend(self._check_single_responsibility(node))
                issues.extend(self._check_dependency_inversion(node))
            elif node.type == "switch_statement":
                issues.extend(self._check_open_closed(node))
            elif node.type == "if_statement":
                issues.extend(self._check_if_else_chain(node))
            elif node.type == "interface_declaration":
                issues.extend(self._check_interface_segregation(node))

        return issues

    def _check_single_responsibility(self, class_node: Node) -> List[CodeIssue]:
        thresholds = self.config.thresholds
        name_node = class_node.child_by_field_name("name")
        if name_node is None:
            return []

        issues = []
        methods = [m for m in class_members(class_node) if m.type == "method_definition"]

        if len(methods) > thresholds.max_class_methods:
            issues.append(CodeIssue(
                type=IssueType.SOLID_VIOLATION,
                message=(
                    f'Class "{node_text(name_node)}" has {len(methods)} methods, '
                    "which may violate the Single Responsibility Principle."
                ),
                range=node_range(class_node, name_node),
                severity=IssueSeverity.WARNING,
                suggestions=[
                    "Split the class into smaller classes with a single responsibility",
                    "Extract groups of related methods into collaborating classes",
                ],
                documentation="https://en.wikipedia.org/wiki/Single-responsibility_principle",
            ))

        for method in methods:
            line_count = method.end_point[0] - method.start_point[0] + 1
            if line_count > thresholds.max_method_lines:
                method_name = method.child_by_field_name("name") or method
                issues.append(CodeIssue(
                    type=IssueType.SOLID_VIOLATION,
                    message=(
                        f'Method "{function_name(method)}" has {line_count} lines, '
                        "which suggests it does more than one thing."
                    ),
                    range=node_range(method, method_name),
                    severity=IssueSeverity.INFORMATION,
                    suggestions=[
                        "Extract parts of the method into well-named helper methods",
                        "Keep each method focused on a single task",
                    ],
                    documentation="https://en.wikipedia.org/wiki/Single-responsibility_principle",
                ))

        return issues

    def _check_open_closed(self, switch_node: Node) -> List[CodeIssue]:
        body = switch_node.child_by_field_name("body")
        if body is None:
            return []

        clauses = [c for c in body.named_children if c.type in ("switch_case", "switch_default")]
        max_clauses = self.config.thresholds.max_case_clauses
        if len(clauses) <= max_clauses:
            return []

        value = switch_node.child_by_field_name("value")
        return [CodeIssue(
            type=IssueType.SOLID_VIOLATION,
            message=(
                f"Switch statement has {len(clauses)} cases, "
                "which may violate the Open/Closed Principle."
            ),
            range=node_range(switch_node, value),
            severity=IssueSeverity.WARNING,
            suggestions=[
                "Consider using polymorphism instead of switch statements",
                "Apply the Strategy pattern to handle different behaviors",
                "Use a map of functions instead of a switch statement",
            ],
            documentation="https://en.wikipedia.org/wiki/Open%E2%80%93closed_principle",
        )]

    def _check_if_else_chain(self, if_node: Node) -> List[CodeIssue]:
        # else-if links are reported once, on the head of their chain
        parent = if_node.parent
        if parent is not None and parent.type == "else_clause":
            return []

        count = 1
        current = if_node
        while True:
            alternative = _else_branch(current)
            if alternative is None:
                break
            count += 1
            if alternative.type != "if_statement":
                break
            current = alternative

        if count <= self.config.thresholds.max_case_clauses:
            return []

        condition = if_node.child_by_field_name("condition")
        return [CodeIssue(
            type=IssueType.SOLID_VIOLATION,
            message=(
                f"If-else chain has {count} conditions, "
                "which may violate the Open/Closed Principle."
            ),
            range=node_range(if_node, condition),
            severity=IssueSeverity.WARNING,
            suggestions=[
                "Consider using polymorphism instead of type checking",
                "Apply the Strategy pattern to handle different behaviors",
                "Use a map of functions instead of if-else chains",
            ],
            documentation="https://en.wikipedia.org/wiki/Open%E2%80%93closed_principle",
        )]

    def _check_interface_segregation(self, interface_node: Node) -> List[CodeIssue]:
        name_node = interface_node.child_by_field_name("name")
        body = interface_node.child_by_field_name("body")
        if name_node is None or body is None:
            return []

        methods = [m for m in body.named_children if m.type == "method_signature"]
        max_methods = self.config.thresholds.max_interface_methods
        if len(methods) <= max_methods:
            return []

        return [CodeIssue(
            type=IssueType.SOLID_VIOLATION,
            message=(
                f'Interface "{node_text(name_node)}" has {len(methods)} methods, '
                "which may violate the Interface Segregation Principle."
            ),
            range=node_range(interface_node, name_node),
            severity=IssueSeverity.WARNING,
            suggestions=[
                "Break down the interface into smaller, more focused interfaces",
                "Group related methods into separate interfaces",
                "Clients should not be forced to depend on methods they do not use",
            ],
            documentation="https://en.wikipedia.org/wiki/Interface_segregation_principle",
        )]

    def _check_dependency_inversion(self, class_node: Node) -> List[CodeIssue]:
        name_node = class_node.child_by_field_name("name")
        if name_node is None:
            return []

        issues = []
        for member in class_members(class_node):
            if member.type != "method_definition" or function_name(member) != "constructor":
                continue
            body = member.child_by_field_name("body")
            if body is None:
                continue

            for node in walk(body):
                if node.type != "new_expression":
                    continue
                issues.append(CodeIssue(
                    type=IssueType.SOLID_VIOLATION,
                    message=(
                        f'Class "{node_text(name_node)}" directly instantiates '
                        f'"{_instantiated_type(node)}" in its constructor, which may '
                        "violate the Dependency Inversion Principle."
                    ),
                    range=node_range(node),
                    severity=IssueSeverity.INFORMATION,
                    suggestions=[
                        "Use dependency injection instead of direct instantiation",
                        "Depend on abstractions (interfaces) rather than concrete implementations",
                        "Consider using a factory or IoC container to create instances",
                    ],
                    documentation="https://en.wikipedia.org/wiki/Dependency_inversion_principle",
                ))

        return issues

    def is_enabled(self) -> bool:
        return self.config.analyzers.solid_principles


def _else_branch(if_node: Node) -> Optional[Node]:
    """Statement following ``else`` in an if statement, if there is one."""
    clause = if_node.child_by_field_name("alternative")
    if clause is None:
        return None
    statements = [child for child in clause.named_children if child.type != "comment"]
    return statements[0] if statements else None


def _instantiated_type(new_node: Node) -> str:
    constructor = new_node.child_by_field_name("constructor")
    if constructor is None:
        return "unknown type"
    if constructor.type == "identifier":
        return node_text(constructor)
    if constructor.type == "member_expression":
        return node_text(constructor.child_by_field_name("property"))
    return "unknown type"
