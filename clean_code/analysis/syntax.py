"""Helpers for reading TypeScript/JavaScript tree-sitter nodes."""

from typing import List, Optional, Tuple

from tree_sitter import Node

from clean_code.parsing.ast_manager import node_text

FUNCTION_NODE_TYPES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "method_definition",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
})

CLASS_NODE_TYPES = frozenset({"class_declaration", "abstract_class_declaration", "class"})

FIELD_NODE_TYPES = frozenset({"public_field_definition", "field_definition"})


def function_name(node: Node) -> str:
    """Best-effort name of a function-like node."""
    name_node = node.child_by_field_name("name")
    if name_node is not None:
        return node_text(name_node)

    parent = node.parent
    if parent is not None:
        if parent.type == "variable_declarator":
            return node_text(parent.child_by_field_name("name"))
        if parent.type == "pair":
            return node_text(parent.child_by_field_name("key"))
        if parent.type == "assignment_expression":
            return node_text(parent.child_by_field_name("left"))

    return "anonymous function"


def typed_parameters(params: Optional[Node]) -> List[Tuple[Node, Optional[Node]]]:
    """
    (identifier, declared type) pairs of a formal parameter list.

    The type is the node inside the ``: T`` annotation, or None when the
    parameter is untyped. Destructured parameters are skipped.
    """
    if params is None:
        return []

    pairs: List[Tuple[Node, Optional[Node]]] = []
    for child in params.named_children:
        target = child
        annotation = None
        if child.type in ("required_parameter", "optional_parameter"):
            target = child.child_by_field_name("pattern")
            annotation = child.child_by_field_name("type")
        elif child.type == "assignment_pattern":
            target = child.child_by_field_name("left")

        if target is not None and target.type == "identifier":
            pairs.append((target, annotated_type(annotation)))
    return pairs


def parameter_names(params: Optional[Node]) -> List[Node]:
    """Identifier nodes of a formal parameter list (destructured parameters are skipped)."""
    return [name for name, _ in typed_parameters(params)]


def annotated_type(annotation: Optional[Node]) -> Optional[Node]:
    if annotation is None:
        return None
    types = [child for child in annotation.named_children if child.type != "comment"]
    return types[0] if types else None


def parameter_count(params: Optional[Node]) -> int:
    """Number of declared parameters, destructured ones included."""
    if params is None:
        return 0
    return sum(1 for child in params.named_children if child.type != "comment")


def is_accessor(method: Node) -> bool:
    """True for ``get x()`` / ``set x(v)`` method definitions."""
    return any(child.type in ("get", "set") for child in method.children)


def class_members(class_node: Node) -> List[Node]:
    body = class_node.child_by_field_name("body")
    return list(body.named_children) if body is not None else []
