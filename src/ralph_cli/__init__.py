"""Ralph - run an AI coding assistant in a loop against a PRD."""

from ralph_cli.config import ProjectConfig, RalphError, RalphProject
from ralph_cli.loop import RalphLoop, RunResult
from ralph_cli.prd import PrdEntry, PrdStore, filter_incomplete
from ralph_cli.sandbox import is_sandboxed

__version__ = "0.1.0"

__all__ = [
    "PrdEntry",
    "PrdStore",
    "ProjectConfig",
    "RalphError",
    "RalphLoop",
    "RalphProject",
    "RunResult",
    "filter_incomplete",
    "is_sandboxed",
]
