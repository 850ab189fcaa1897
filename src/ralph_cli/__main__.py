"""Allow ``python -m ralph_cli``."""

from ralph_cli.cli import main

main()
