"""Command-line interface for Ralph."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from ralph_cli import __version__
from ralph_cli import commands
from ralph_cli.prd import CATEGORIES

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)

EPILOG = """
PRD subcommands:
  prd add                   Add a new PRD entry (interactive)
  prd list                  List all PRD entries
  prd status                Show PRD completion status
  prd toggle <n> [<n> ...]  Toggle passes status for entries
  prd toggle --all          Toggle all PRD entries
  prd clean                 Remove all passing entries

Examples:
  ralph init                      # Initialize ralph for your project
  ralph once                      # Run a single iteration
  ralph run 5                     # Run up to 5 iterations
  ralph run 3 --category feature  # Only work on feature entries
  ralph prd status                # Show completion summary
  ralph prompt --raw              # Print the prompt template

Files (created by 'ralph init'):
  .ralph/config.json   Project configuration
  .ralph/prompt.md     Prompt template
  .ralph/prd.json      Product requirements document
  .ralph/progress.txt  Progress tracking file
"""


class RalphArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def setup_logging(verbose: bool) -> None:
    """
    Configure logging for CLI.

    Args:
        verbose: If True, enable DEBUG level logging. Otherwise, WARNING level.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def build_parser() -> RalphArgumentParser:
    parser = RalphArgumentParser(
        prog="ralph",
        description="ralph - AI-driven development automation CLI",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-C", "--dir",
        type=Path,
        default=None,
        help="Run as if ralph was started in this directory",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("init", help="Initialize ralph in the project directory")
    subparsers.add_parser("once", help="Run a single automation iteration")
    subparsers.add_parser("help", help="Show this help message")

    run_parser = subparsers.add_parser("run", help="Run n automation iterations")
    run_parser.add_argument(
        "iterations",
        nargs="?",
        help="Maximum number of iterations (positive integer)",
    )
    run_parser.add_argument(
        "--category", "-c",
        default=None,
        help=f"Only work on entries of this category ({', '.join(CATEGORIES)})",
    )

    prd_parser = subparsers.add_parser("prd", help="Manage PRD entries")
    prd_subparsers = prd_parser.add_subparsers(dest="prd_command", help="PRD subcommand")
    prd_subparsers.add_parser("add", help="Add a new PRD entry (interactive)")
    prd_subparsers.add_parser("list", help="List all PRD entries")
    prd_subparsers.add_parser("status", help="Show PRD completion status")
    toggle_parser = prd_subparsers.add_parser("toggle", help="Toggle passes status for entries")
    toggle_parser.add_argument(
        "indices",
        nargs="*",
        help="Entry numbers (1-based)",
    )
    toggle_parser.add_argument(
        "--all", "-a",
        action="store_true",
        help="Toggle every entry",
    )
    prd_subparsers.add_parser("clean", help="Remove all passing entries")

    prompt_parser = subparsers.add_parser("prompt", help="Print the prompt with variables resolved")
    prompt_parser.add_argument(
        "--raw",
        action="store_true",
        help="Print the raw template with $variables",
    )

    return parser


COMMAND_MAP = {
    "init": commands.init_command,
    "once": commands.once_command,
    "run": commands.run_command,
    "prompt": commands.prompt_command,
}

PRD_COMMAND_MAP = {
    "add": commands.prd_add_command,
    "list": commands.prd_list_command,
    "status": commands.prd_status_command,
    "toggle": commands.prd_toggle_command,
    "clean": commands.prd_clean_command,
}


def main(argv: Optional[List[str]] = None) -> NoReturn:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if not args.command or args.command == "help":
        parser.print_help()
        sys.exit(0)

    if args.command == "prd":
        handler = PRD_COMMAND_MAP.get(args.prd_command)
        if handler is None:
            err_console.print(
                "Usage: ralph prd <add|list|status|toggle|clean>\n"
                "Run 'ralph help' for usage information.",
                highlight=False,
            )
            sys.exit(1)
    else:
        handler = COMMAND_MAP[args.command]

    try:
        handler(args)
    except KeyboardInterrupt:
        err_console.print("\n\n[yellow]Execution interrupted by user[/yellow]")
        sys.exit(130)
    except EOFError:
        err_console.print("\n[red]Aborted.[/red] Input closed before the command finished.", highlight=False)
        sys.exit(1)
    except Exception as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        err_console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
