"""Host integrations that feed document changes into the analysis service."""

from clean_code.host.file_watcher import DebouncedFileWatcher, FileWatcherService

__all__ = ["DebouncedFileWatcher", "FileWatcherService"]
