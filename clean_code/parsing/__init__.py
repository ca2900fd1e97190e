"""Syntax tree construction and caching."""

from clean_code.parsing.ast_manager import ASTManager, node_text, walk

__all__ = ["ASTManager", "node_text", "walk"]
