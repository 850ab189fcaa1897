"""Interactive line prompts used by init and prd add."""

from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape

console = Console()


def prompt_input(message: str) -> str:
    """Read one line and strip surrounding whitespace."""
    return console.input(escape(message)).strip()


def prompt_select(message: str, options: Sequence[str]) -> int:
    """Show a numbered menu and return the 0-based index of the choice.

    Keeps asking until a number in range is entered.
    """
    console.print(f"\n{escape(message)}")
    for i, option in enumerate(options, 1):
        console.print(f"  {i}. {escape(option)}")

    while True:
        answer = console.input("\nEnter number: ").strip()
        choice: Optional[int] = int(answer) if answer.isascii() and answer.isdigit() else None
        if choice is not None and 1 <= choice <= len(options):
            return choice - 1
        console.print("Invalid selection.")


def prompt_confirm(message: str) -> bool:
    while True:
        answer = console.input(f"{escape(message)} (y/n): ").strip().lower()
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        console.print("Please enter y or n.")
