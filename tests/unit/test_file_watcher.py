"""Tests for the file watcher host adapter."""

import asyncio
from pathlib import Path
from types import SimpleNamespace

import pytest

from clean_code.host.file_watcher import DebouncedFileWatcher, FileWatcherService


class RecordingService:
    """Stands in for AnalysisService and records what the watcher forwards."""

    def __init__(self):
        self.changed = []
        self.closed = []

    def on_document_changed(self, document):
        self.changed.append(document)

    def close_document(self, document):
        self.closed.append(document)


async def _ignore(path):
    pass


def _event(path: Path, is_directory: bool = False, dest: Path = None):
    return SimpleNamespace(
        src_path=str(path),
        dest_path=str(dest) if dest else "",
        is_directory=is_directory,
    )


@pytest.fixture
def recording_watcher(tmp_path):
    """Watcher whose thread hand-off is captured instead of scheduled."""
    watcher = DebouncedFileWatcher(tmp_path, _ignore)
    handed_off = []
    watcher._hand_off = handed_off.append
    return watcher, handed_off


class TestDebouncing:
    """Tests for per-file coalescing on the event loop."""

    @pytest.mark.asyncio
    async def test_burst_is_delivered_once(self, tmp_path):
        delivered = []

        async def callback(path):
            delivered.append(path)

        watcher = DebouncedFileWatcher(tmp_path, callback, debounce_ms=10)
        target = tmp_path / "app.ts"
        for _ in range(3):
            watcher.queue_change(target)
        assert watcher.pending_count == 1

        await asyncio.sleep(0.05)

        assert delivered == [target]
        stats = watcher.get_stats()
        assert stats["changes_queued"] == 3
        assert stats["changes_coalesced"] == 2
        assert stats["changes_delivered"] == 1

    @pytest.mark.asyncio
    async def test_files_are_debounced_independently(self, tmp_path):
        delivered = []

        async def callback(path):
            delivered.append(path.name)

        watcher = DebouncedFileWatcher(tmp_path, callback, debounce_ms=10)
        watcher.queue_change(tmp_path / "a.ts")
        watcher.queue_change(tmp_path / "b.ts")
        await asyncio.sleep(0.05)

        assert sorted(delivered) == ["a.ts", "b.ts"]

    @pytest.mark.asyncio
    async def test_callback_errors_are_contained(self, tmp_path):
        delivered = []

        async def callback(path):
            if path.name == "a.ts":
                raise RuntimeError("boom")
            delivered.append(path)

        watcher = DebouncedFileWatcher(tmp_path, callback, debounce_ms=10)
        watcher.queue_change(tmp_path / "a.ts")
        watcher.queue_change(tmp_path / "b.ts")
        await asyncio.sleep(0.05)

        assert delivered == [tmp_path / "b.ts"]
        assert watcher.get_stats()["delivery_errors"] == 1

    @pytest.mark.asyncio
    async def test_cancel_pending(self, tmp_path):
        delivered = []

        async def callback(path):
            delivered.append(path)

        watcher = DebouncedFileWatcher(tmp_path, callback, debounce_ms=10)
        watcher.queue_change(tmp_path / "a.ts")
        watcher.cancel_pending()
        await asyncio.sleep(0.03)

        assert delivered == []
        assert watcher.pending_count == 0


class TestEventFiltering:
    """Tests for observer-thread event handling."""

    def test_unsupported_and_directory_events_filtered(self, tmp_path, recording_watcher):
        watcher, handed_off = recording_watcher
        (tmp_path / "notes.md").write_text("# notes")

        watcher.on_modified(_event(tmp_path / "notes.md"))
        watcher.on_modified(_event(tmp_path, is_directory=True))

        stats = watcher.get_stats()
        assert stats["events_seen"] == 2
        assert stats["events_filtered"] == 2
        assert handed_off == []

    def test_unchanged_content_is_filtered(self, tmp_path, recording_watcher):
        watcher, handed_off = recording_watcher
        target = tmp_path / "app.ts"
        target.write_text("let a = 1;\n")

        watcher.on_modified(_event(target))
        watcher.on_modified(_event(target))
        target.write_text("let a = 2;\n")
        watcher.on_modified(_event(target))

        assert handed_off == [target, target]
        assert watcher.get_stats()["files_tracked"] == 1

    def test_deleted_file_is_forwarded(self, tmp_path, recording_watcher):
        watcher, handed_off = recording_watcher
        watcher.on_deleted(_event(tmp_path / "gone.js"))
        assert handed_off == [tmp_path / "gone.js"]

    def test_atomic_save_rename(self, tmp_path, recording_watcher):
        watcher, handed_off = recording_watcher
        target = tmp_path / "app.ts"
        target.write_text("let a = 1;\n")

        watcher.on_moved(_event(tmp_path / "app.ts.tmp", dest=target))

        assert handed_off == [target]

    def test_patterns_filter(self, tmp_path):
        watcher = DebouncedFileWatcher(tmp_path, _ignore, patterns={".ts"})
        assert watcher._matches(Path("a.ts"))
        assert watcher._matches(Path("A.TS"))
        assert not watcher._matches(Path("a.js"))

    def test_no_loop_drops_change(self, tmp_path):
        watcher = DebouncedFileWatcher(tmp_path, _ignore)
        target = tmp_path / "app.ts"
        target.write_text("let a = 1;\n")

        watcher.on_modified(_event(target))
        assert watcher.pending_count == 0


class TestFileWatcherService:
    """Tests for turning file changes into document events."""

    @pytest.mark.asyncio
    async def test_versions_increase_per_file(self, tmp_path, config):
        service = RecordingService()
        watcher = FileWatcherService(tmp_path, service, config)
        target = tmp_path / "app.ts"
        target.write_text("let a = 1;\n")

        await watcher.handle_change(target)
        await watcher.handle_change(target)

        assert [doc.version for doc in service.changed] == [1, 2]
        assert service.changed[0].language_id == "typescript"
        assert service.changed[0].uri == target.resolve().as_uri()

    @pytest.mark.asyncio
    async def test_deleted_file_closes_document(self, tmp_path, config):
        service = RecordingService()
        watcher = FileWatcherService(tmp_path, service, config)
        target = tmp_path / "app.js"
        target.write_text("var a = 1;\n")
        await watcher.handle_change(target)

        target.unlink()
        await watcher.handle_change(target)

        assert len(service.closed) == 1
        assert service.closed[0].uri == service.changed[0].uri
        assert target not in watcher.versions

    def test_patterns_follow_supported_languages(self, tmp_path, config):
        config = config.model_copy(update={"supported_languages": ["javascript"]})
        watcher = FileWatcherService(tmp_path, RecordingService(), config)

        assert ".js" in watcher.event_handler.patterns
        assert ".ts" not in watcher.event_handler.patterns

    @pytest.mark.asyncio
    async def test_start_and_stop(self, tmp_path, config):
        watcher = FileWatcherService(tmp_path, RecordingService(), config)
        watcher.start()
        assert watcher.is_running
        assert watcher.event_handler.loop is asyncio.get_running_loop()

        watcher.stop()
        assert not watcher.is_running
