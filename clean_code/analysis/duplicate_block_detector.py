"""
Duplicate block detection using rolling line hashes.

This module finds repeated multi-line sequences inside a single document
(or a single block of one). It supports:
- Per-line polynomial hashing of trimmed lines
- Rolling window hashes, O(1) per extra line as a window grows
- Verification of hash candidates against the actual trimmed text
- Filtering of trivial blocks (closing-brace runs and similar boilerplate)
- Overlap resolution that always prefers the largest duplicate

Complexity:
    - Time: O(N²) windows for N lines, each hashed in O(1)
    - Space: O(N²) hash map entries in the worst case
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, Set, Union

from clean_code.core.models import DocumentSnapshot, DuplicateGroup, LineSpan

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_PUNCTUATION = re.compile(r"[{}\[\]();,.\"']")


def _to_int32(value: int) -> int:
    """Wrap an integer to signed 32-bit two's complement."""
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def line_hash(text: str) -> int:
    """Polynomial string hash (h * 31 + c) wrapped to 32 bits."""
    h = 0
    for char in text:
        h = _to_int32((h << 5) - h + ord(char))
    return h


def combine_hashes(current: int, new: int, position: int) -> int:
    """Fold a line hash into the initial window hash."""
    return _to_int32(current * 37 + new + position)


def extend_rolling_hash(current: int, new: int, position: int) -> int:
    """Extend a window hash by one more line."""
    return _to_int32(current * 7 + new + position)


def is_block_too_simple(content: str) -> bool:
    """
    Check whether a block is too trivial to report.

    A block is trivial when it has fewer than 20 non-whitespace characters, or
    when less than half of those are anything other than brackets and
    punctuation.
    """
    compact = _WHITESPACE.sub("", content)
    if len(compact) < 20:
        return True

    meaningful = len(_PUNCTUATION.sub("", compact))
    return meaningful / len(compact) < 0.5


class DuplicateBlockDetector:
    """
    Finds repeated line sequences within one document.

    Example:
        ```python
        detector = DuplicateBlockDetector(min_block_size=5)
        for group in detector.find_duplicates(document):
            print([(b.start_line, b.end_line) for b in group.blocks])
        ```
    """

    def __init__(self, min_block_size: int = 5):
        """
        Initialize duplicate block detector.

        Args:
            min_block_size: Minimum number of lines a duplicate must span

        Raises:
            ValueError: If min_block_size is less than 2
        """
        if min_block_size < 2:
            raise ValueError(f"min_block_size must be >= 2, got {min_block_size}")

        self.min_block_size = min_block_size

    def find_duplicates(
        self,
        source: Union[DocumentSnapshot, str],
        min_block_size: Optional[int] = None,
    ) -> List[DuplicateGroup]:
        """
        Find duplicated line sequences.

        Args:
            source: A document snapshot, or the text of a single block
            min_block_size: Override the detector's default minimum size

        Returns:
            Verified, non-overlapping duplicate groups, largest blocks first.
            Line numbers are relative to the start of ``source``.
        """
        min_size = min_block_size if min_block_size is not None else self.min_block_size
        if min_size < 2:
            raise ValueError(f"min_block_size must be >= 2, got {min_size}")

        trimmed = [line.strip() for line in self._lines_of(source)]
        line_count = len(trimmed)

        # Need room for at least two non-overlapping copies
        if line_count < min_size * 2:
            return []

        candidates = self._collect_candidates(trimmed, min_size)
        verified = self._verify_candidates(candidates, trimmed)
        result = self._resolve_overlaps(verified)

        logger.debug(
            f"Duplicate scan of {line_count} lines: {len(candidates)} candidates, "
            f"{len(verified)} verified, {len(result)} reported"
        )
        return result

    @staticmethod
    def _lines_of(source: Union[DocumentSnapshot, str]) -> List[str]:
        if isinstance(source, DocumentSnapshot):
            return source.lines
        lines = source.split("\n")
        # Block text ends with a newline that does not start another line
        if source.endswith("\n"):
            lines.pop()
        return [line[:-1] if line.endswith("\r") else line for line in lines]

    def _collect_candidates(self, trimmed: Sequence[str], min_size: int) -> List[List[LineSpan]]:
        """Group every window of at least ``min_size`` lines by rolling hash."""
        line_count = len(trimmed)
        line_hashes = [line_hash(line) for line in trimmed]

        # Only the first window per hash is kept; later ones live in their group
        first_by_hash: Dict[int, LineSpan] = {}
        group_by_hash: Dict[int, List[LineSpan]] = {}
        candidates: List[List[LineSpan]] = []

        def record(block_hash: int, span: LineSpan) -> None:
            first = first_by_hash.get(block_hash)
            if first is None:
                first_by_hash[block_hash] = span
                return

            group = group_by_hash.get(block_hash)
            if group is None:
                # Second occurrence opens a candidate group
                group = [first, span]
                group_by_hash[block_hash] = group
                candidates.append(group)
            else:
                group.append(span)

        for start in range(line_count - min_size + 1):
            block_hash = 0
            for offset in range(min_size):
                block_hash = combine_hashes(block_hash, line_hashes[start + offset], offset)
            record(block_hash, LineSpan(start, start + min_size - 1))

            size = min_size + 1
            while start + size <= line_count:
                block_hash = extend_rolling_hash(block_hash, line_hashes[start + size - 1], size - 1)
                record(block_hash, LineSpan(start, start + size - 1))
                size += 1

        return candidates

    def _verify_candidates(
        self, candidates: List[List[LineSpan]], trimmed: Sequence[str]
    ) -> List[DuplicateGroup]:
        """Drop hash collisions and trivial content."""

        def text_of(span: LineSpan) -> str:
            return "".join(line + "\n" for line in trimmed[span.start_line:span.end_line + 1])

        by_content: Dict[str, DuplicateGroup] = {}
        for members in candidates:
            # One hash bucket may mix several texts when hashes collide
            by_text: Dict[str, List[LineSpan]] = {}
            for span in members:
                by_text.setdefault(text_of(span), []).append(span)

            for text, matching in by_text.items():
                if len(matching) < 2 or text in by_content:
                    continue
                if is_block_too_simple(text):
                    continue
                by_content[text] = DuplicateGroup(blocks=matching, content=text)

        return list(by_content.values())

    @staticmethod
    def _resolve_overlaps(groups: List[DuplicateGroup]) -> List[DuplicateGroup]:
        """Keep the largest duplicates; smaller ones may not reuse claimed lines."""
        claimed: Set[int] = set()
        result: List[DuplicateGroup] = []

        # sorted() is stable, so equal sizes keep discovery order
        for group in sorted(groups, key=lambda g: g.block_size, reverse=True):
            kept: List[LineSpan] = []
            pending: Set[int] = set()
            for span in group.blocks:
                covered = range(span.start_line, span.end_line + 1)
                if any(line in claimed or line in pending for line in covered):
                    continue
                pending.update(covered)
                kept.append(span)

            # A dropped group releases the lines it tentatively claimed
            if len(kept) >= 2:
                claimed |= pending
                result.append(DuplicateGroup(blocks=kept, content=group.content))

        return result
