"""CLI commands for the Clean Code engine."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pydantic import ValidationError as SettingsValidationError

from clean_code.cli.analyze_command import AnalyzeCommand
from clean_code.cli.watch_command import WatchCommand
from clean_code.config import EngineConfig, get_config
from clean_code.core.exceptions import CleanCodeError, ConfigurationError
from clean_code.log_utils import configure_logging


def setup_logging(level: str = "WARNING", json_logs: bool = False):
    """Configure logging for CLI."""
    configure_logging(use_json=json_logs, level=getattr(logging, level.upper()))


def load_config() -> EngineConfig:
    """Load configuration, turning validation failures into an actionable error."""
    try:
        return get_config()
    except SettingsValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            "Check CLEAN_CODE_* environment variables and ~/.clean-code/config.json",
        ) from e


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="clean-code",
        description="Clean Code engine - structural quality checks for TypeScript and JavaScript",
        epilog="""
Commands:
    analyze            Analyze files once and print diagnostics
    watch              Watch a directory and re-analyze files as they change

For detailed help on any command: clean-code <command> --help
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set logging level (default: WARNING)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON lines on stderr",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze files once and print diagnostics",
        epilog="""
Examples:
  # Analyze a single file
  clean-code analyze src/app.ts

  # Analyze every supported file under a directory
  clean-code analyze src/

  # Machine-readable output
  clean-code analyze src/ --format json
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    analyze_parser.add_argument(
        "paths",
        type=Path,
        nargs="+",
        help="Files or directories to analyze",
    )
    analyze_parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )

    watch_parser = subparsers.add_parser(
        "watch",
        help="Watch a directory and re-analyze files as they change",
        epilog="""
Examples:
  # Watch current directory
  clean-code watch .

  # Press Ctrl+C to stop watching
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    watch_parser.add_argument(
        "path",
        type=Path,
        help="Directory to watch",
    )

    return parser


async def main_async(args) -> int:
    """Async main function to handle commands."""
    if args.command == "analyze":
        cmd = AnalyzeCommand(load_config())
        return await cmd.run(args)
    elif args.command == "watch":
        cmd = WatchCommand(load_config())
        return await cmd.run(args)
    else:
        print("No command specified. Use --help for usage information.")
        return 1


def main(argv=None):
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.json_logs)

    try:
        exit_code = asyncio.run(main_async(args))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(0)
    except CleanCodeError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:
        logging.error(f"Command failed: {e}", exc_info=True)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
