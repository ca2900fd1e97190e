"""
Block partitioning for granular, content-addressed caching.

A document is split along brace-delimited top-level groups (functions,
classes, object literals). Lines outside those groups become "gap" blocks so
that the result is always an exact partition of the document's lines. When no
natural group exists the document is cut into fixed-size windows instead.

Braces inside strings or comments are counted like any other brace. That can
mis-place boundaries, which costs cache hits but never correctness: results
are always recomputed from the block's actual text.
"""

import logging
from typing import List, Tuple

from clean_code.core.models import Block, DocumentSnapshot

logger = logging.getLogger(__name__)

# Natural blocks shorter than this are treated as noise
MIN_NATURAL_BLOCK_LINES = 4


def divide_into_blocks(document: DocumentSnapshot, preferred_size: int = 50) -> List[Block]:
    """
    Divide a document into blocks covering every line exactly once.

    Args:
        document: Document to divide
        preferred_size: Lines per block when falling back to fixed windows

    Returns:
        Blocks in document order
    """
    if preferred_size < 1:
        raise ValueError(f"preferred_size must be >= 1, got {preferred_size}")

    lines = document.lines
    natural = _find_natural_spans(lines)

    if not natural:
        blocks = [
            _make_block(lines, start, min(start + preferred_size, len(lines)) - 1)
            for start in range(0, len(lines), preferred_size)
        ]
        logger.debug(f"{document.uri}: no natural blocks, {len(blocks)} fixed windows")
        return blocks

    blocks: List[Block] = []
    last_end = -1
    for start, end in natural:
        if start > last_end + 1:
            blocks.append(_make_block(lines, last_end + 1, start - 1))
        blocks.append(_make_block(lines, start, end))
        last_end = end

    if last_end < len(lines) - 1:
        blocks.append(_make_block(lines, last_end + 1, len(lines) - 1))

    logger.debug(
        f"{document.uri}: {len(natural)} natural blocks, {len(blocks) - len(natural)} gap blocks"
    )
    return blocks


def _find_natural_spans(lines: List[str]) -> List[Tuple[int, int]]:
    """Inclusive (start, end) line spans of top-level brace groups."""
    spans: List[Tuple[int, int]] = []
    depth = 0
    block_start = 0
    last_end = -1

    for i, line in enumerate(lines):
        for char in line:
            if char == "{":
                if depth == 0:
                    # Pull in the declaration header, but never the previous block's last line
                    block_start = max(last_end + 1, i - 1)
                depth += 1
            elif char == "}":
                if depth == 0:
                    # Stray closing brace
                    continue
                depth -= 1
                if depth == 0:
                    if i - block_start + 1 >= MIN_NATURAL_BLOCK_LINES:
                        spans.append((block_start, i))
                        last_end = i

    return spans


def _make_block(lines: List[str], start_line: int, end_line: int) -> Block:
    content = "".join(line + "\n" for line in lines[start_line:end_line + 1])
    return Block(start_line=start_line, end_line=end_line, content=content)
