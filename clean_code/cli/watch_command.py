"""Watch command for CLI - re-analyzes files as they change."""

import asyncio
import logging
from pathlib import Path
from typing import List

from rich.console import Console
from rich.markup import escape

from clean_code.cli.analyze_command import collect_files
from clean_code.config import EngineConfig
from clean_code.core.models import CodeIssue, DocumentSnapshot
from clean_code.engine.diagnostic_batcher import InMemoryDiagnosticCollection
from clean_code.host.file_watcher import FileWatcherService
from clean_code.services.analysis_service import AnalysisService

logger = logging.getLogger(__name__)


class ConsoleDiagnosticCollection(InMemoryDiagnosticCollection):
    """Diagnostic sink that prints every visible update to the console."""

    def __init__(self, console: Console):
        super().__init__()
        self.console = console

    def set(self, uri: str, issues: List[CodeIssue]) -> None:
        super().set(uri, issues)
        self.console.rule(f"{escape(uri)} ({len(issues)} issues)")
        for issue in sorted(issues, key=lambda i: i.range.start.line):
            self.console.print(
                f"  {issue.range.start.line + 1:>5}  {issue.severity.name.lower():<11} "
                f"{issue.type.value:<16} {escape(issue.message)}"
            )


class WatchCommand:
    """Command to watch a directory and re-analyze changed files."""

    def __init__(self, config: EngineConfig, console: Console = None):
        """Initialize watch command."""
        self.config = config
        self.console = console or Console()

    async def run(self, args) -> int:
        """
        Run the watch command.

        Args:
            args: Parsed command-line arguments
        """
        path = Path(args.path).resolve()

        if not path.exists():
            logger.error(f"Path does not exist: {path}")
            return 1

        if not path.is_dir():
            logger.error(f"Path must be a directory: {path}")
            return 1

        service = AnalysisService(self.config, sink=ConsoleDiagnosticCollection(self.console))
        watcher = FileWatcherService(path, service, self.config)

        files = collect_files([path])
        self.console.print(f"Analyzing {len(files)} files in {path}...")
        await asyncio.gather(*(
            service.analyze_now(DocumentSnapshot.from_path(file_path, watcher.next_version(file_path)))
            for file_path in files
        ))
        await service.wait_idle()

        self.console.print(f"\nWatching {path} for changes. Press Ctrl+C to stop.\n")
        try:
            await watcher.start_async()
        except asyncio.CancelledError:
            self.console.print("\nStopping file watcher...")
        finally:
            watcher.stop()
            await service.shutdown()

        return 0
