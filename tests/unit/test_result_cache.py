"""Tests for the content-addressed result cache."""

import pytest

from clean_code.core.models import Block, CodeIssue, IssueType, Range
from clean_code.engine.result_cache import ResultCache


def _block(start: int, content: str) -> Block:
    lines = content.count("\n")
    return Block(start_line=start, end_line=start + max(lines, 1) - 1, content=content)


def _issue(line: int) -> CodeIssue:
    return CodeIssue(type=IssueType.NAMING, message="short name", range=Range.from_coords(line, 6, line, 7))


CONTENT = "function f() {\n  const a = 1;\n}\n"


class TestContentAddressing:
    """Cache keys depend on analyzer and content, never on position."""

    def test_miss_then_hit(self, cache, make_document):
        doc = make_document(CONTENT)
        block = _block(0, CONTENT)

        assert cache.get_cached_results(doc, "naming", [block]) == [None]
        cache.store_results(doc, "naming", block, [_issue(1)])
        cached = cache.get_cached_results(doc, "naming", [block])

        assert cached[0] is not None
        assert cached[0][0].range.start.line == 1
        assert cache.hits == 1 and cache.misses == 1

    def test_hit_after_block_moves(self, cache, make_document):
        """A block pushed down by an edit above it still hits, at its new position."""
        doc = make_document(CONTENT)
        cache.store_results(doc, "naming", _block(0, CONTENT), [_issue(1)])

        moved = _block(20, CONTENT)
        cached = cache.get_cached_results(doc, "naming", [moved])
        assert cached[0][0].range.start.line == 21

    def test_hit_across_documents(self, cache, make_document):
        first = make_document(CONTENT, uri="file:///a.ts")
        second = make_document(CONTENT, uri="file:///b.ts")
        cache.store_results(first, "naming", _block(0, CONTENT), [])

        assert cache.get_cached_results(second, "naming", [_block(0, CONTENT)]) == [[]]

    def test_keys_are_per_analyzer(self, cache, make_document):
        doc = make_document(CONTENT)
        cache.store_results(doc, "naming", _block(0, CONTENT), [_issue(1)])
        assert cache.get_cached_results(doc, "complexity", [_block(0, CONTENT)]) == [None]

    def test_changed_content_misses(self, cache, make_document):
        doc = make_document(CONTENT)
        cache.store_results(doc, "naming", _block(0, CONTENT), [])

        edited = CONTENT.replace("a = 1", "a = 2")
        assert cache.get_cached_results(doc, "naming", [_block(0, edited)]) == [None]

    def test_results_follow_block_order(self, cache, make_document):
        doc = make_document(CONTENT)
        other = "class Box {\n}\n"
        cache.store_results(doc, "naming", _block(5, other), [])

        results = cache.get_cached_results(doc, "naming", [_block(0, CONTENT), _block(5, other)])
        assert results == [None, []]


class TestEviction:
    """Tests for LRU eviction."""

    def test_capacity_is_enforced(self, make_document):
        cache = ResultCache(max_size=3)
        doc = make_document("")
        for i in range(5):
            cache.store_results(doc, "naming", _block(0, f"line {i}\n"), [])

        assert len(cache) == 3
        assert cache.evictions == 2

    def test_least_recently_used_is_evicted(self, make_document):
        cache = ResultCache(max_size=2)
        doc = make_document("")
        first, second, third = (_block(0, f"content {i}\n") for i in range(3))

        cache.store_results(doc, "naming", first, [])
        cache.store_results(doc, "naming", second, [])
        # Reading refreshes recency
        cache.get_cached_results(doc, "naming", [first])
        cache.store_results(doc, "naming", third, [])

        assert cache.get_cached_results(doc, "naming", [first, second, third]) == [[], None, []]

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            ResultCache(max_size=0)


class TestClearAndStats:
    """Tests for clearing and statistics."""

    def test_clear_one_analyzer(self, cache, make_document):
        doc = make_document(CONTENT)
        cache.store_results(doc, "naming", _block(0, CONTENT), [])
        cache.store_results(doc, "duplicate-code", _block(0, CONTENT), [])

        cache.clear_cache("naming")

        assert len(cache) == 1
        assert cache.get_cached_results(doc, "duplicate-code", [_block(0, CONTENT)]) == [[]]

    def test_clear_everything(self, cache, make_document):
        doc = make_document(CONTENT)
        cache.store_results(doc, "naming", _block(0, CONTENT), [])
        cache.clear_cache()
        assert len(cache) == 0

    def test_stats(self, cache, make_document):
        doc = make_document(CONTENT)
        block = _block(0, CONTENT)
        cache.get_cached_results(doc, "naming", [block])
        cache.store_results(doc, "naming", block, [])
        cache.get_cached_results(doc, "naming", [block])

        stats = cache.get_stats()
        assert stats["size"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5
