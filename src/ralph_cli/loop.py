"""Ralph execution loop.

Each iteration re-reads .ralph/prd.json, writes the entries that still need
work to a temp file and hands that file to the assistant. The loop stops when
nothing is left, when the assistant prints the completion sentinel, or when
the requested number of iterations has run.
"""

import asyncio
import codecs
import logging
import os
import subprocess
import sys
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from ralph_cli.config import RalphError, RalphProject
from ralph_cli.prd import PrdEntry, PrdStore, dump_entries, filter_incomplete
from ralph_cli.sandbox import is_sandboxed
from ralph_cli.templates import COMPLETION_SENTINEL

logger = logging.getLogger(__name__)

DEFAULT_ASSISTANT = "claude"
ASSISTANT_ENV_VAR = "RALPH_ASSISTANT"
PERMISSION_MODE = "acceptEdits"
NOTIFY_COMMAND = ["tt", "notify", "Ralph: PRD Complete!"]
READ_CHUNK_SIZE = 4096

STOP_ALL_PASSING = "all_passing"
STOP_SENTINEL = "sentinel"
STOP_EXHAUSTED = "exhausted"


class AssistantLaunchError(RalphError):
    """Raised when the assistant executable cannot be started."""

    pass


@dataclass
class IterationResult:
    """Exit code and captured stdout of one assistant invocation."""

    exit_code: int
    output: str

    @property
    def complete(self) -> bool:
        # Plain substring match: a sentinel quoted inside prose also counts.
        return COMPLETION_SENTINEL in self.output


@dataclass
class RunResult:
    invocations: int
    stop_reason: str


def assistant_executable() -> str:
    return os.environ.get(ASSISTANT_ENV_VAR) or DEFAULT_ASSISTANT


def build_instruction(prd_path: Path, progress_path: Path, prompt: str) -> str:
    return f"@{prd_path} @{progress_path} {prompt}"


def notify_advisory() -> None:
    """Advisory side effect: start a desktop notification and never wait for it.

    Failures are discarded; the run result does not depend on it.
    """
    try:
        subprocess.Popen(
            NOTIFY_COMMAND,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        logger.debug("Notification skipped: %s", e)


def write_transient_prd(entries: Sequence[PrdEntry], directory: Optional[Path] = None) -> Path:
    """Write entries to a new, uniquely named temp file.

    The file is created exclusively; a name that already exists is redrawn.
    """
    base = directory or Path(tempfile.gettempdir())
    while True:
        path = base / f"ralph-prd-{time.time_ns()}.json"
        try:
            dump_entries(path, entries, mode="x")
        except FileExistsError:
            logger.debug("Transient file %s exists, retrying", path)
            continue
        return path


def remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except OSError as e:
        logger.debug("Could not remove %s: %s", path, e)


async def _tee(stream: asyncio.StreamReader, sink: TextIO, chunks: List[str]) -> None:
    """Copy ``stream`` to ``sink`` as it arrives and keep a copy in ``chunks``."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        data = await stream.read(READ_CHUNK_SIZE)
        text = decoder.decode(data, final=not data)
        if text:
            sink.write(text)
            sink.flush()
            chunks.append(text)
        if not data:
            break


class AssistantInvoker:
    """Spawns the assistant CLI.

    ``claude --permission-mode acceptEdits [--dangerously-skip-permissions] -p <instruction>``
    """

    def __init__(self, executable: str = DEFAULT_ASSISTANT, sandboxed: bool = False) -> None:
        self.executable = executable
        self.sandboxed = sandboxed

    def build_command(self, instruction: str) -> List[str]:
        cmd = [self.executable, "--permission-mode", PERMISSION_MODE]
        if self.sandboxed:
            cmd.append("--dangerously-skip-permissions")
        cmd.extend(["-p", instruction])
        return cmd

    async def invoke(self, instruction: str) -> IterationResult:
        """Run the assistant with stdout mirrored to ours and captured.

        stdin and stderr are inherited.

        Raises:
            AssistantLaunchError: If the process cannot be started
        """
        cmd = self.build_command(instruction)
        logger.debug("Spawning %s", cmd[:-1])
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise AssistantLaunchError(f"Failed to start {self.executable}: {e}") from e

        assert proc.stdout is not None, "stdout should be piped"
        chunks: List[str] = []
        pump = asyncio.create_task(_tee(proc.stdout, sys.stdout, chunks))
        exit_code = await proc.wait()
        await pump
        return IterationResult(exit_code=exit_code, output="".join(chunks))

    def invoke_interactive(self, instruction: str) -> int:
        """Run the assistant with all stdio inherited and return its exit code."""
        cmd = self.build_command(instruction)
        logger.debug("Spawning %s", cmd[:-1])
        try:
            return subprocess.run(cmd).returncode
        except OSError as e:
            raise AssistantLaunchError(f"Failed to start {self.executable}: {e}") from e


class RalphLoop:
    """Main Ralph execution loop."""

    def __init__(
        self,
        project: RalphProject,
        invoker: Optional[AssistantInvoker] = None,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ) -> None:
        """Initialize Ralph loop.

        Args:
            project: Resolved project paths
            invoker: Assistant invoker; by default one is built per run with
                the sandbox probe deciding the permission flag
            console: Console for progress messages
            err_console: Console for warnings
        """
        self.project = project
        self.invoker = invoker
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)
        self.store = PrdStore(project.prd_path)

    def _make_invoker(self) -> AssistantInvoker:
        if self.invoker is not None:
            return self.invoker
        sandboxed = is_sandboxed()
        logger.debug("Sandboxed: %s", sandboxed)
        return AssistantInvoker(executable=assistant_executable(), sandboxed=sandboxed)

    def run(self, iterations: int, category: Optional[str] = None) -> RunResult:
        """Run up to ``iterations`` assistant invocations.

        Args:
            iterations: Maximum number of invocations (positive)
            category: Only hand over entries of this category

        Raises:
            ProjectNotInitializedError: If a required .ralph/ file is missing
            AssistantLaunchError: If the assistant cannot be started
        """
        if iterations < 1:
            raise ValueError("iterations must be a positive integer")
        self.project.check_files_exist()
        prompt = self.project.load_prompt()
        invoker = self._make_invoker()
        return asyncio.run(self._run(invoker, prompt, iterations, category))

    async def _run(
        self,
        invoker: AssistantInvoker,
        prompt: str,
        iterations: int,
        category: Optional[str],
    ) -> RunResult:
        scope = f" (category: {escape(category)})" if category else ""
        self.console.print(f"Starting {iterations} ralph iteration(s){scope}...\n")

        invocations = 0
        stop_reason = STOP_EXHAUSTED

        for i in range(1, iterations + 1):
            remaining = filter_incomplete(self.store.load(), category)
            if not remaining:
                self._announce_nothing_left(category)
                stop_reason = STOP_ALL_PASSING
                break

            self.console.print(Panel(
                f"[bold magenta]Iteration {i} of {iterations}[/bold magenta]\n"
                f"[dim]Remaining: {len(remaining)} entries[/dim]",
                border_style="magenta",
            ))

            transient = write_transient_prd(remaining)
            logger.debug("Wrote %d entries to %s", len(remaining), transient)
            try:
                instruction = build_instruction(transient, self.project.progress_path, prompt)
                invocations += 1
                result = await invoker.invoke(instruction)
            finally:
                remove_quietly(transient)

            if result.exit_code != 0:
                self.err_console.print(f"\n[yellow]Claude exited with code {result.exit_code}[/yellow]")
                self.console.print("Continuing to next iteration...")

            if result.complete:
                self.console.print(Panel(
                    "[bold green]PRD COMPLETE - All features implemented![/bold green]",
                    border_style="green",
                ))
                notify_advisory()
                stop_reason = STOP_SENTINEL
                break

        self.console.print("\nRalph run finished.")
        logger.debug("Run stopped after %d invocation(s): %s", invocations, stop_reason)
        return RunResult(invocations=invocations, stop_reason=stop_reason)

    def _announce_nothing_left(self, category: Optional[str]) -> None:
        if category:
            message = f"All '{escape(category)}' PRD entries pass. Nothing left to do."
        else:
            message = "All PRD entries pass. Nothing left to do."
        self.console.print(f"\n[bold green]{message}[/bold green]")

    def once(self) -> int:
        """Run a single interactive iteration against the full prd.json.

        Returns:
            Exit code of the assistant
        """
        self.project.check_files_exist()
        prompt = self.project.load_prompt()
        invoker = self._make_invoker()

        self.console.print("Starting single ralph iteration...\n")
        instruction = build_instruction(self.project.prd_path, self.project.progress_path, prompt)
        exit_code = invoker.invoke_interactive(instruction)
        if exit_code != 0:
            self.err_console.print(f"\n[yellow]Claude exited with code {exit_code}[/yellow]")
        return exit_code
