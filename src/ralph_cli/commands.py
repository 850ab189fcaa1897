"""Command handlers for Ralph CLI."""

import argparse
import sys
from typing import List, NoReturn, Optional

from rich.console import Console
from rich.markup import escape

from ralph_cli.config import ProjectConfig, RalphProject
from ralph_cli.loop import RalphLoop
from ralph_cli.prd import CATEGORIES, PrdEntry, PrdStore, summarize
from ralph_cli.prompts import prompt_confirm, prompt_input, prompt_select
from ralph_cli.templates import (
    DEFAULT_PRD,
    DEFAULT_PROGRESS,
    LANGUAGES,
    generate_prompt,
    prompt_variables,
    resolve_prompt_variables,
)

console = Console()
err_console = Console(stderr=True)

BAR_WIDTH = 30


def usage_error(*lines: str) -> NoReturn:
    """Print usage lines to stderr and exit with status 1."""
    for line in lines:
        err_console.print(escape(line), highlight=False)
    sys.exit(1)


def parse_positive_int(value: Optional[str]) -> Optional[int]:
    """Parse a strictly positive decimal integer, or return None."""
    if value is None:
        return None
    value = value.strip()
    if not (value.isascii() and value.isdigit()):
        return None
    number = int(value)
    return number if number >= 1 else None


def parse_entry_index(value: str) -> Optional[int]:
    """Parse an optionally negative decimal integer written in ASCII digits."""
    digits = value[1:] if value.startswith("-") else value
    if not (digits.isascii() and digits.isdigit()):
        return None
    return int(value)


def get_project(args: argparse.Namespace) -> RalphProject:
    return RalphProject.discover(getattr(args, "dir", None))


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def init_command(args: argparse.Namespace) -> None:
    """Initialize Ralph in the project directory."""
    project = get_project(args)

    console.print(f"Initializing ralph in {escape(str(project.project_dir))}...\n")

    if project.config_path.exists():
        if not prompt_confirm(".ralph/config.json already exists. Overwrite?"):
            console.print("Aborted.")
            return

    keys = list(LANGUAGES.keys())
    labels = [f"{LANGUAGES[k].name} - {LANGUAGES[k].description}" for k in keys]
    key = keys[prompt_select("Select your project language/runtime:", labels)]
    language = LANGUAGES[key]

    check_command = language.check_command
    test_command = language.test_command
    if key == "none":
        check_command = prompt_input("\nEnter your type/build check command: ") or check_command
        test_command = prompt_input("Enter your test command: ") or test_command

    project.ralph_dir.mkdir(parents=True, exist_ok=True)

    config = ProjectConfig(
        language=key,
        check_command=check_command,
        test_command=test_command,
        image_name=project.default_image_name(),
    )
    config.save(project.config_path)
    console.print("\nCreated .ralph/config.json")

    project.prompt_path.write_text(generate_prompt(check_command, test_command) + "\n", encoding="utf-8")
    console.print("Created .ralph/prompt.md")

    for path, content in ((project.prd_path, DEFAULT_PRD), (project.progress_path, DEFAULT_PROGRESS)):
        if path.exists():
            console.print(f"Skipped .ralph/{path.name} (already exists)")
        else:
            path.write_text(content, encoding="utf-8")
            console.print(f"Created .ralph/{path.name}")

    console.print("\n[green]Ralph initialized successfully![/green]")
    console.print("\nNext steps:")
    console.print("  1. Add requirements with 'ralph prd add' or edit .ralph/prd.json")
    console.print("  2. Run 'ralph once' to start the first iteration")
    console.print("  3. Or run 'ralph run 5' for 5 automated iterations")


def once_command(args: argparse.Namespace) -> None:
    """Run a single interactive iteration."""
    loop = RalphLoop(get_project(args), console=console, err_console=err_console)
    loop.once()


def run_command(args: argparse.Namespace) -> None:
    """Run the Ralph loop for n iterations."""
    iterations = parse_positive_int(args.iterations)
    if iterations is None:
        usage_error(
            "Usage: ralph run <iterations> [--category <category>]",
            "  <iterations> must be a positive integer",
        )

    category = args.category
    if category is not None and category not in CATEGORIES:
        usage_error(
            f"Invalid category: {category}",
            f"  Valid categories: {', '.join(CATEGORIES)}",
        )

    loop = RalphLoop(get_project(args), console=console, err_console=err_console)
    loop.run(iterations, category=category)


def prd_add_command(args: argparse.Namespace) -> None:
    """Add a PRD entry interactively."""
    store = PrdStore(get_project(args).prd_path)
    # Fail before asking anything if the store is missing.
    store.load()

    console.print("Add new PRD entry")
    category = CATEGORIES[prompt_select("Select category:", CATEGORIES)]
    description = prompt_input("\nDescription: ")
    if not description:
        usage_error("Description is required.")

    console.print("\nEnter verification steps (empty line to finish):")
    steps: List[str] = []
    while True:
        step = prompt_input(f"  Step {len(steps) + 1}: ")
        if not step:
            break
        steps.append(step)

    number = store.add(PrdEntry(category=category, description=description, steps=steps))
    console.print(f'\nAdded entry #{number}: "{escape(description)}"')


def prd_list_command(args: argparse.Namespace) -> None:
    """List all PRD entries."""
    entries = PrdStore(get_project(args).prd_path).load()

    if not entries:
        console.print("No PRD entries found.")
        return

    console.print("\nPRD Entries:\n")
    for i, entry in enumerate(entries, 1):
        status = "[green]\\[PASS][/green]" if entry.passes else "[yellow]\\[    ][/yellow]"
        console.print(f"  {i}. {status} {escape(f'[{entry.category}]')} {escape(entry.description)}")
        for j, step in enumerate(entry.steps, 1):
            console.print(f"       {j}. {escape(step)}")
        console.print()


def prd_status_command(args: argparse.Namespace) -> None:
    """Show PRD completion status."""
    entries = PrdStore(get_project(args).prd_path).load()

    if not entries:
        console.print("No PRD entries found.")
        return

    summary = summarize(entries)
    console.print(f"\nPRD Status: {summary.passing}/{summary.total} passing ({summary.percentage}%)\n")

    filled = summary.bar_cells(BAR_WIDTH)
    console.print(f"  \\[[green]{'█' * filled}[/green]{'░' * (BAR_WIDTH - filled)}]\n")

    console.print("  By category:")
    for category, stats in summary.by_category.items():
        console.print(f"    {escape(category)}: {stats.passing}/{stats.total}")

    if summary.complete:
        console.print("\n  [green]✓ All requirements complete![/green]")
    else:
        console.print(f"\n  Remaining ({len(summary.remaining)}):")
        for entry in summary.remaining:
            console.print(f"    - {escape(f'[{entry.category}]')} {escape(entry.description)}")


def prd_toggle_command(args: argparse.Namespace) -> None:
    """Toggle passes for one or more entries, or all of them."""
    store = PrdStore(get_project(args).prd_path)

    if args.all:
        entries = store.toggle_all()
        console.print(f"Toggled {_plural(len(entries), 'entry', 'entries')}")
        return

    if not args.indices:
        usage_error("Usage: ralph prd toggle <number> [<number> ...] | --all")

    indices = []
    for raw in args.indices:
        index = parse_entry_index(raw)
        if index is None:
            usage_error(
                f"Invalid entry number: {raw}",
                "Usage: ralph prd toggle <number> [<number> ...] | --all",
            )
        indices.append(index)

    for index, entry in store.toggle(indices):
        status_text = "PASSING" if entry.passes else "NOT PASSING"
        console.print(f'Entry #{index} "{escape(entry.description)}" is now {status_text}')


def prd_clean_command(args: argparse.Namespace) -> None:
    """Remove all passing entries."""
    removed, remaining = PrdStore(get_project(args).prd_path).clean()

    if removed == 0:
        console.print("No passing entries to clean.")
        return

    console.print(
        f"Removed {_plural(removed, 'passing entry', 'passing entries')}. "
        f"{_plural(remaining, 'entry', 'entries')} remaining."
    )


def prompt_command(args: argparse.Namespace) -> None:
    """Print the prompt template, resolved or raw."""
    project = get_project(args)
    config = project.load_config()
    template = project.load_prompt()

    if args.raw:
        sys.stdout.write(template)
        return

    values = prompt_variables(config.language, config.check_command, config.test_command)
    sys.stdout.write(resolve_prompt_variables(template, values))
