"""Content-addressed LRU cache of per-block analyzer results."""

import hashlib
import logging
import time
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Sequence

from clean_code.core.models import Block, CacheEntry, CodeIssue, DocumentSnapshot

logger = logging.getLogger(__name__)


class ResultCache:
    """
    Caches analyzer issues keyed by (analyzer id, hash of block content).

    Keys carry no position, so a block whose text survives an edit elsewhere in
    the file (or a cut/paste) still hits. Issues are stored relative to the
    block's first line and re-anchored to the block's current position on read.

    Features:
    - MD5 content addressing
    - Pure LRU eviction (reads and writes both refresh recency)
    - Cache statistics tracking

    All access happens on the event loop thread, so no locking is needed.
    A block whose text changed but whose new text hashes like an old block
    would be served stale issues; with MD5 this is treated as impossible in
    practice and is not guarded against.
    """

    def __init__(self, max_size: int = 100):
        """
        Initialize result cache.

        Args:
            max_size: Maximum number of entries before LRU eviction

        Raises:
            ValueError: If max_size is less than 1
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")

        self.max_size = max_size
        # Most recently used at the end
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

        # Statistics
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    @staticmethod
    def _hash_content(content: str) -> str:
        return hashlib.md5(content.encode("utf-8")).hexdigest()

    def _compute_key(self, analyzer_id: str, content: str) -> str:
        return f"{analyzer_id}_{self._hash_content(content)}"

    def get_cached_results(
        self,
        document: DocumentSnapshot,
        analyzer_id: str,
        blocks: Sequence[Block],
    ) -> List[Optional[List[CodeIssue]]]:
        """
        Look up cached issues for each block.

        Args:
            document: The document being analyzed
            analyzer_id: ID of the analyzer
            blocks: Blocks to look up, in document order

        Returns:
            One entry per block: issues re-anchored to the block's current
            start line, or None when the block must be analyzed
        """
        results: List[Optional[List[CodeIssue]]] = []

        for block in blocks:
            key = self._compute_key(analyzer_id, block.content)
            entry = self._entries.get(key)

            if entry is None:
                self.misses += 1
                results.append(None)
                continue

            self.hits += 1
            entry.hits += 1
            self._entries.move_to_end(key)
            results.append([issue.shifted(block.start_line) for issue in entry.issues])

        logger.debug(
            f"Cache lookup for {analyzer_id} on {document.uri}: "
            f"{sum(r is not None for r in results)}/{len(blocks)} blocks hit"
        )
        return results

    def store_results(
        self,
        document: DocumentSnapshot,
        analyzer_id: str,
        block: Block,
        issues: Sequence[CodeIssue],
    ) -> None:
        """
        Store issues found in a block.

        Args:
            document: The document that was analyzed
            analyzer_id: ID of the analyzer
            block: The analyzed block
            issues: Issues in document-absolute coordinates
        """
        key = self._compute_key(analyzer_id, block.content)

        self._entries[key] = CacheEntry(
            issues=[issue.shifted(-block.start_line) for issue in issues],
            timestamp=time.time(),
            start_line=block.start_line,
            end_line=block.end_line,
        )
        self._entries.move_to_end(key)

        self._enforce_limit()

    def _enforce_limit(self) -> None:
        """Evict least recently used entries until the cache fits."""
        while len(self._entries) > self.max_size:
            evicted_key, _ = self._entries.popitem(last=False)
            self.evictions += 1
            logger.debug(f"Evicted cache entry {evicted_key}")

    def clear_cache(self, analyzer_id: Optional[str] = None) -> None:
        """
        Clear cached results.

        Args:
            analyzer_id: Only clear this analyzer's entries; clear everything if None
        """
        if analyzer_id is None:
            self._entries.clear()
            logger.info("Result cache cleared")
            return

        prefix = f"{analyzer_id}_"
        stale = [key for key in self._entries if key.startswith(prefix)]
        for key in stale:
            del self._entries[key]
        logger.info(f"Cleared {len(stale)} cache entries for analyzer {analyzer_id}")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        lookups = self.hits + self.misses
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": self.hits / lookups if lookups else 0.0,
        }
