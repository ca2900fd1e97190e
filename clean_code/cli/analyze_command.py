"""Analyze command for CLI - analyzes files once and prints diagnostics."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from clean_code.config import EngineConfig
from clean_code.core.exceptions import UnsupportedLanguageError, ValidationError
from clean_code.core.models import LANGUAGE_BY_SUFFIX, CodeIssue, DocumentSnapshot, IssueSeverity
from clean_code.services.analysis_service import AnalysisService

logger = logging.getLogger(__name__)

IGNORED_DIRS = {".git", "node_modules", "dist", "build", "out", "coverage", ".next"}

SEVERITY_STYLES = {
    IssueSeverity.ERROR: "bold red",
    IssueSeverity.WARNING: "yellow",
    IssueSeverity.INFORMATION: "cyan",
    IssueSeverity.HINT: "dim",
}


def collect_files(paths: Iterable[Path]) -> List[Path]:
    """
    Expand the given paths into the supported source files they contain.

    Directories are searched recursively, skipping dependency and build
    output folders. Explicitly named files must have a supported suffix.
    """
    files: List[Path] = []
    for path in paths:
        path = Path(path)
        if not path.exists():
            raise ValidationError(f"Path does not exist: {path}")

        if path.is_file():
            if path.suffix.lower() not in LANGUAGE_BY_SUFFIX:
                raise UnsupportedLanguageError(str(path), path.suffix)
            files.append(path)
            continue

        for candidate in sorted(path.rglob("*")):
            if any(part in IGNORED_DIRS for part in candidate.relative_to(path).parts):
                continue
            if candidate.is_file() and candidate.suffix.lower() in LANGUAGE_BY_SUFFIX:
                files.append(candidate)

    return files


class AnalyzeCommand:
    """Command to analyze files once and report their diagnostics."""

    def __init__(self, config: EngineConfig, console: Console = None):
        """Initialize analyze command."""
        self.config = config
        self.console = console or Console()

    async def analyze_files(self, files: List[Path]) -> Dict[Path, List[CodeIssue]]:
        """Analyze every file concurrently on one service; results keep the order of ``files``."""
        service = AnalysisService(self.config)
        documents = [DocumentSnapshot.from_path(file_path) for file_path in files]

        # Run tokens are per document, so concurrent runs never supersede each other
        issue_lists = await asyncio.gather(
            *(service.analyze_now(document, flush=True) for document in documents)
        )

        logger.debug(f"Pipeline stats: {service.get_stats()}")
        return dict(zip(files, issue_lists))

    async def run(self, args) -> int:
        """
        Run the analyze command.

        Args:
            args: Parsed command-line arguments

        Returns:
            Process exit code: 1 if any Error-severity issue was found, else 0
        """
        files = collect_files(args.paths)
        if not files:
            self.console.print("No supported source files found.")
            return 0

        results = await self.analyze_files(files)

        if getattr(args, "format", "table") == "json":
            self.print_json(results)
        else:
            self.print_table(results)

        has_errors = any(
            issue.severity == IssueSeverity.ERROR
            for issues in results.values()
            for issue in issues
        )
        return 1 if has_errors else 0

    def print_json(self, results: Dict[Path, List[CodeIssue]]) -> None:
        payload = {
            str(path): [issue.model_dump(mode="json") for issue in issues]
            for path, issues in results.items()
        }
        self.console.print_json(json.dumps(payload))

    def print_table(self, results: Dict[Path, List[CodeIssue]]) -> None:
        rows: List[Tuple[Path, CodeIssue]] = [
            (path, issue)
            for path, issues in results.items()
            for issue in sorted(issues, key=lambda i: (i.range.start.line, i.range.start.character))
        ]

        if not rows:
            self.console.print(f"[green]No issues found in {len(results)} files.[/green]")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("File")
        table.add_column("Line", justify="right")
        table.add_column("Severity")
        table.add_column("Type")
        table.add_column("Message")

        for path, issue in rows:
            style = SEVERITY_STYLES[issue.severity]
            table.add_row(
                escape(str(path)),
                str(issue.range.start.line + 1),
                f"[{style}]{issue.severity.name.lower()}[/{style}]",
                issue.type.value,
                escape(issue.message),
            )

        self.console.print(table)
        self.console.print(f"\n{len(rows)} issues in {len(results)} files.")
