"""
Parser adapter: builds and caches tree-sitter syntax trees for documents.

Trees are cached per (URI, version) so every analyzer in one analysis pass
shares a single parse, and a changed document never sees a stale tree.
tree-sitter is error tolerant: malformed source still yields a best-effort
tree containing ERROR nodes, so a parse problem only ever means fewer issues.
"""

import importlib
import logging
from typing import Dict, Iterator, Optional

from tree_sitter import Language, Node, Parser, Tree

from clean_code.config import EngineConfig, get_config
from clean_code.core.models import DocumentSnapshot

logger = logging.getLogger(__name__)


class ASTManager:
    """Creates and caches syntax trees for documents."""

    # language_id -> (module name, language function name)
    LANGUAGE_MODULES = {
        "typescript": ("tree_sitter_typescript", "language_typescript"),
        "typescriptreact": ("tree_sitter_typescript", "language_tsx"),
        "javascript": ("tree_sitter_javascript", "language"),
        "javascriptreact": ("tree_sitter_javascript", "language"),
    }

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize parsers for the configured languages.

        Args:
            config: Engine configuration. If None, uses global config.
        """
        if config is None:
            config = get_config()

        self.config = config
        self.parsers: Dict[str, Parser] = {}
        self._ast_cache: Dict[str, Tree] = {}
        # uri -> cache key of the version currently cached
        self._latest_key_by_uri: Dict[str, str] = {}

        for language_id in config.supported_languages:
            if language_id not in self.LANGUAGE_MODULES:
                logger.warning(f"No grammar registered for language '{language_id}', skipping")
                continue

            module_name, func_name = self.LANGUAGE_MODULES[language_id]
            lang_module = importlib.import_module(module_name)
            language = Language(getattr(lang_module, func_name)())
            self.parsers[language_id] = Parser(language)
            logger.debug(f"Initialized {language_id} parser")

    def supports(self, language_id: str) -> bool:
        return language_id in self.parsers

    def get_ast(self, document: DocumentSnapshot, force_refresh: bool = False) -> Optional[Tree]:
        """
        Get or create the syntax tree for a document.

        Args:
            document: Document snapshot to parse
            force_refresh: Re-parse even when a tree for this version is cached

        Returns:
            The tree, or None when the language is unsupported or parsing failed
        """
        key = document.cache_key

        if not force_refresh and key in self._ast_cache:
            return self._ast_cache[key]

        tree = self.parse_text(document.text, document.language_id)
        if tree is None:
            return None

        # Only the newest version of each document is kept
        previous_key = self._latest_key_by_uri.get(document.uri)
        if previous_key is not None and previous_key != key:
            self._ast_cache.pop(previous_key, None)

        self._ast_cache[key] = tree
        self._latest_key_by_uri[document.uri] = key
        return tree

    def parse_text(self, text: str, language_id: str) -> Optional[Tree]:
        """Parse arbitrary text without caching (used for block-mode analysis)."""
        parser = self.parsers.get(language_id)
        if parser is None:
            return None

        try:
            return parser.parse(text.encode("utf-8"))
        except (ValueError, TypeError) as e:
            logger.warning(f"Failed to parse {language_id} source: {e}")
            return None

    def clear_ast(self, document: Optional[DocumentSnapshot] = None) -> None:
        """Clear cached trees for one document (all versions) or for every document."""
        if document is None:
            self._ast_cache.clear()
            self._latest_key_by_uri.clear()
            return

        key = self._latest_key_by_uri.pop(document.uri, None)
        if key is not None:
            self._ast_cache.pop(key, None)

    @property
    def cached_count(self) -> int:
        return len(self._ast_cache)


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal of the named nodes of a syntax tree."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        # Anonymous tokens ("function", "class", "{") share names with real node types
        stack.extend(reversed(current.named_children))


def node_text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")
