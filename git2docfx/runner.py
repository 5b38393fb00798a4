"""DocFx process management.

Spawns the documentation generator as a child process, streams its output
line by line, and reports completion as a structured outcome. Arguments are
always passed as a discrete list; no shell is involved.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Callable

from .errors import GeneratorError
from .progress import ProgressReporter
from .utils import write_diagnostic

# asyncio's default 64 KiB line limit is too small for some generator logs.
_STREAM_LIMIT = 1024 * 1024


class GeneratorCommand(str, Enum):
    BUILD = "build"
    SERVE = "serve"


@dataclass(frozen=True)
class GeneratorInvocation:
    """One run of the documentation generator against a configuration file."""

    command: GeneratorCommand
    config_file: Path
    port: int | None = None

    @property
    def working_directory(self) -> Path:
        """Directory containing the configuration file, never the workspace root."""
        return self.config_file.parent

    def arguments(self) -> list[str]:
        """Command-line arguments, excluding the executable itself.

        build: ``build <config-file-name>``
        serve: ``--serve <config-absolute-path> [--port N]``
        """
        if self.command is GeneratorCommand.BUILD:
            return ["build", self.config_file.name]

        args = ["--serve", str(self.config_file)]
        if self.port is not None:
            args += ["--port", str(self.port)]
        return args


def build_invocation(
    workspace: Path,
    config_path: str,
    command: GeneratorCommand,
    port: int | None = None,
) -> GeneratorInvocation:
    """Locate *config_path* inside the resolved *workspace*."""
    relative = PurePosixPath(config_path.replace("\\", "/"))
    return GeneratorInvocation(
        command=command,
        config_file=Path(workspace, *relative.parts),
        port=port,
    )


@dataclass
class ProcessOutcome:
    """Structured result of a finished child process."""

    exit_code: int
    command: str
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def raise_for_status(self) -> None:
        """Raise ``GeneratorError`` unless the process exited with code 0."""
        if not self.success:
            raise GeneratorError(
                f"DocFx {self.command} command failed with exit code {self.exit_code}",
                exit_code=self.exit_code,
                command=self.command,
            )


async def _pump(stream: asyncio.StreamReader, sink: Callable[[str], None]) -> None:
    """Forward *stream* to *sink* one decoded line at a time until EOF."""
    while True:
        line = await stream.readline()
        if not line:
            break
        sink(line.decode("utf-8", errors="replace").rstrip("\r\n"))


class ProcessRunner:
    """Runs an external executable and supervises it until it exits.

    Standard error is always streamed to *on_stderr* so diagnostics survive
    silent runs. Standard output is streamed to the reporter only when not
    silent. Cancelling the awaiting task sends the child a termination
    request, waits ``terminate_timeout`` seconds, then kills it.
    """

    def __init__(
        self,
        terminate_timeout: float = 10.0,
        on_stderr: Callable[[str], None] = write_diagnostic,
    ):
        self.terminate_timeout = terminate_timeout
        self.on_stderr = on_stderr

    async def run(
        self,
        executable: str,
        arguments: list[str],
        cwd: str | Path,
        reporter: ProgressReporter,
        silent: bool = False,
        name: str | None = None,
    ) -> ProcessOutcome:
        """Execute *executable* with *arguments* in *cwd*.

        Args:
            executable: Program name or path.
            arguments: Discrete argument list.
            cwd: Working directory for the child.
            reporter: Receives standard output lines when not silent.
            silent: Suppress standard output streaming.
            name: Label used in the outcome (default: first argument).

        Returns:
            ProcessOutcome with the exit code and duration.

        Raises:
            GeneratorError: If the executable cannot be started.
        """
        label = name or (arguments[0] if arguments else executable)
        start_time = time.monotonic()

        # create_subprocess_exec reports a missing cwd as FileNotFoundError too.
        if not Path(cwd).is_dir():
            raise GeneratorError(f"Working directory not found: '{cwd}'", command=label)

        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *arguments,
                cwd=str(cwd),
                stdout=asyncio.subprocess.DEVNULL if silent else asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=_STREAM_LIMIT,
            )
        except FileNotFoundError:
            raise GeneratorError(
                f"Executable not found: '{executable}'. "
                "Ensure DocFx is installed and in PATH.",
                command=label,
            )
        except PermissionError:
            raise GeneratorError(
                f"Permission denied executing: '{executable}'. Check file permissions.",
                command=label,
            )

        pumps = [_pump(process.stderr, self.on_stderr)]
        if not silent:
            pumps.append(_pump(process.stdout, reporter.output))

        try:
            await asyncio.gather(*pumps)
            exit_code = await process.wait()
        except asyncio.CancelledError:
            await self._terminate(process)
            raise

        return ProcessOutcome(
            exit_code=exit_code,
            command=label,
            duration_seconds=time.monotonic() - start_time,
        )

    async def run_invocation(
        self,
        executable: str,
        invocation: GeneratorInvocation,
        reporter: ProgressReporter,
        silent: bool = False,
    ) -> ProcessOutcome:
        """Run the generator for a prepared ``GeneratorInvocation``."""
        return await self.run(
            executable,
            invocation.arguments(),
            invocation.working_directory,
            reporter,
            silent=silent,
            name=invocation.command.value,
        )

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """Ask the child to stop, escalating to kill after the grace period."""
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=self.terminate_timeout)
        except asyncio.TimeoutError:
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()
