"""Lifecycle controller for a single git2docfx invocation.

Sequences one run of the pipeline::

    Idle -> Resolving -> Materializing -> Invoking -> Cleaning -> Done

Serve mode adds an ``Interrupted`` branch out of ``Invoking``: an external
cancellation (SIGINT/SIGTERM or a caller-owned token) races the generator
process, and whichever finishes first decides the terminal path. The
workspace cleanup decision is a one-shot action, so it runs at most once
whatever order those events arrive in.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from rich.markup import escape

from .config import Config
from .errors import CleanupError, ConfigurationError, Git2DocFxError
from .fetcher import FetcherFactory, GitSparseFetcher
from .materialize import MaterializationResult, materialize
from .progress import ProgressReporter, create_reporter
from .runner import (
    GeneratorCommand,
    GeneratorInvocation,
    ProcessOutcome,
    ProcessRunner,
    build_invocation,
)
from .utils import format_duration, print_warning, wait_for_site
from .workspace import Workspace, WorkspaceCleanup, resolve_workspace

# ---------------------------------------------------------------------------
# Request / result types
# ---------------------------------------------------------------------------


class Mode(str, Enum):
    BUILD = "build"
    SERVE = "serve"


class InvocationRequest(BaseModel):
    """Everything that determines one run. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    mode: Mode
    repo_url: str = Field(min_length=1)
    config_path: str = Field(min_length=1)
    branch: str | None = None
    output: Path | None = None
    silent: bool = False
    keep_temp: bool = False
    port: int | None = Field(default=None, ge=1, le=65535)

    @field_validator("config_path")
    @classmethod
    def _relative_config_path(cls, value: str) -> str:
        normalized = PurePosixPath(value.replace("\\", "/"))
        if normalized.is_absolute() or (len(value) > 1 and value[1] == ":"):
            raise ValueError("must be relative to the repository root")
        if ".." in normalized.parts:
            raise ValueError("must not leave the repository")
        return value

    @model_validator(mode="after")
    def _mode_specific_options(self) -> "InvocationRequest":
        if self.mode is Mode.SERVE and self.keep_temp:
            raise ValueError("keep_temp only applies to build")
        if self.mode is Mode.BUILD and self.port is not None:
            raise ValueError("port only applies to serve")
        return self

    @classmethod
    def create(cls, **kwargs) -> "InvocationRequest":
        """Validate *kwargs*, reporting problems as a ``ConfigurationError``."""
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'request'}: {err['msg']}"
                for err in exc.errors()
            )
            raise ConfigurationError(f"Invalid invocation: {problems}") from exc


class LifecycleState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    MATERIALIZING = "materializing"
    INVOKING = "invoking"
    INTERRUPTED = "interrupted"
    CLEANING = "cleaning"
    DONE = "done"


@dataclass
class InvocationResult:
    """Terminal status of one invocation."""

    mode: Mode
    success: bool = False
    workspace: Workspace | None = None
    materialization: MaterializationResult | None = None
    outcome: ProcessOutcome | None = None
    error: Git2DocFxError | None = None
    interrupted: bool = False

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class CancellationToken:
    """One-shot cancellation flag that can be awaited.

    ``cancel`` may be called any number of times, from signal handlers or
    other tasks; only the first call counts.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._lock = threading.Lock()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        """Request cancellation. Returns ``True`` for the first request only."""
        with self._lock:
            if self._cancelled:
                return False
            self._cancelled = True
        self._event.set()
        return True

    async def wait(self) -> None:
        await self._event.wait()


def install_interrupt_handlers(
    token: CancellationToken,
    loop: asyncio.AbstractEventLoop | None = None,
) -> Callable[[], None]:
    """Route SIGINT/SIGTERM to *token*. Returns a function that undoes it."""
    loop = loop or asyncio.get_running_loop()
    signals = [signal.SIGINT]
    if hasattr(signal, "SIGTERM"):
        signals.append(signal.SIGTERM)

    previous = {sig: signal.getsignal(sig) for sig in signals}

    try:
        for sig in signals:
            loop.add_signal_handler(sig, token.cancel)
    except NotImplementedError:
        # Windows event loops have no add_signal_handler.
        def _handler(signum, frame):
            loop.call_soon_threadsafe(token.cancel)

        for sig in signals:
            signal.signal(sig, _handler)

        def _restore() -> None:
            for sig, handler in previous.items():
                if handler is not None:
                    signal.signal(sig, handler)

        return _restore

    def _remove() -> None:
        # remove_signal_handler resets SIGINT to default_int_handler, not to
        # whatever asyncio.run had installed.
        for sig in signals:
            loop.remove_signal_handler(sig)
            if previous[sig] is not None:
                signal.signal(sig, previous[sig])

    return _remove


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class LifecycleController:
    """Drives resolution, materialization, generator invocation and cleanup.

    Attributes:
        config: Runtime configuration.
        fetcher_factory: Builds the repository-fetch collaborator.
        runner: Supervises the generator child process.
        state: Current ``LifecycleState`` of the most recent run.
    """

    def __init__(
        self,
        config: Config | None = None,
        fetcher_factory: FetcherFactory = GitSparseFetcher,
        runner: ProcessRunner | None = None,
        reporter_factory: Callable[[bool], ProgressReporter] = create_reporter,
    ) -> None:
        self.config = config or Config()
        self.fetcher_factory = fetcher_factory
        self.runner = runner or ProcessRunner(terminate_timeout=self.config.terminate_timeout)
        self.reporter_factory = reporter_factory
        self.state = LifecycleState.IDLE
        self.history: list[LifecycleState] = []

    def _transition(self, state: LifecycleState) -> None:
        self.state = state
        self.history.append(state)

    async def run(
        self,
        request: InvocationRequest,
        cancel_token: CancellationToken | None = None,
    ) -> InvocationResult:
        """Execute *request* and return its terminal status.

        Failures are captured on the result rather than raised. When
        *cancel_token* is ``None`` serve mode installs its own SIGINT/SIGTERM
        handlers for the duration of the generator run.
        """
        self.state = LifecycleState.IDLE
        self.history = [LifecycleState.IDLE]
        reporter = self.reporter_factory(request.silent)
        result = InvocationResult(mode=request.mode)

        try:
            await self._execute(request, reporter, result, cancel_token)
        except Git2DocFxError as exc:
            result.error = exc
            result.success = False

        self._transition(LifecycleState.DONE)
        return result

    async def _execute(
        self,
        request: InvocationRequest,
        reporter: ProgressReporter,
        result: InvocationResult,
        cancel_token: CancellationToken | None,
    ) -> None:
        self._transition(LifecycleState.RESOLVING)
        workspace = resolve_workspace(request.repo_url, request.output, self.config)
        result.workspace = workspace
        cleanup = WorkspaceCleanup(workspace, keep=request.keep_temp, reporter=reporter)

        try:
            self._transition(LifecycleState.MATERIALIZING)
            result.materialization = await materialize(
                workspace.path,
                request.repo_url,
                request.config_path,
                request.branch,
                reporter,
                config=self.config,
                fetcher_factory=self.fetcher_factory,
            )

            command = GeneratorCommand(request.mode.value)
            invocation = build_invocation(
                workspace.path, request.config_path, command, port=request.port
            )
            reporter.emit(
                f"[cyan]Running DocFx {command.value} in:[/cyan] "
                f"{escape(str(invocation.working_directory))}"
            )

            self._transition(LifecycleState.INVOKING)
            if request.mode is Mode.SERVE:
                outcome = await self._serve(invocation, request, reporter, cleanup, cancel_token)
                if outcome is None:
                    result.interrupted = True
                    result.success = True
                    return
            else:
                outcome = await self.runner.run_invocation(
                    self.config.generator_binary, invocation, reporter, silent=request.silent
                )

            result.outcome = outcome
            outcome.raise_for_status()
            reporter.emit(
                f"[green]DocFx {command.value} finished in "
                f"{format_duration(outcome.duration_seconds)}[/green]"
            )
        except BaseException:
            # Also reached on task cancellation (Ctrl+C under asyncio.run).
            self._cleanup_after_failure(cleanup)
            raise

        self._transition(LifecycleState.CLEANING)
        cleanup()
        result.success = True

    async def _serve(
        self,
        invocation: GeneratorInvocation,
        request: InvocationRequest,
        reporter: ProgressReporter,
        cleanup: WorkspaceCleanup,
        cancel_token: CancellationToken | None,
    ) -> ProcessOutcome | None:
        """Race the serve process against cancellation.

        Returns the process outcome on normal termination, or ``None`` after
        an interruption has stopped the process and cleaned up.
        """
        token = cancel_token or CancellationToken()
        remove_handlers = install_interrupt_handlers(token) if cancel_token is None else None

        readiness: asyncio.Task | None = None
        if not request.silent:
            readiness = asyncio.create_task(
                self._announce_when_ready(self.config.serve_url(request.port), reporter)
            )

        run_task = asyncio.create_task(
            self.runner.run_invocation(
                self.config.generator_binary, invocation, reporter, silent=request.silent
            )
        )
        cancel_wait = asyncio.create_task(token.wait())

        try:
            try:
                done, _ = await asyncio.wait(
                    {run_task, cancel_wait}, return_when=asyncio.FIRST_COMPLETED
                )
            except asyncio.CancelledError:
                run_task.cancel()
                with contextlib.suppress(asyncio.CancelledError, Git2DocFxError):
                    await run_task
                raise

            # A terminal Ctrl+C also reaches the generator, which may exit
            # non-zero in the same window; the interruption takes precedence.
            if run_task in done and not token.cancelled:
                return run_task.result()

            self._transition(LifecycleState.INTERRUPTED)
            reporter.emit("[yellow]Interrupted, stopping DocFx serve...[/yellow]")
            run_task.cancel()
            with contextlib.suppress(asyncio.CancelledError, Git2DocFxError):
                await run_task
            cleanup(swallow_errors=True)
            return None
        finally:
            if remove_handlers is not None:
                remove_handlers()
            cancel_wait.cancel()
            if readiness is not None:
                readiness.cancel()

    async def _announce_when_ready(self, url: str, reporter: ProgressReporter) -> None:
        if await wait_for_site(url, timeout=self.config.serve_ready_timeout):
            reporter.emit(f"[bold green]Documentation site available at[/bold green] {url}")

    def _cleanup_after_failure(self, cleanup: WorkspaceCleanup) -> None:
        """Remove an ephemeral workspace left by a failed step without masking the failure."""
        self._transition(LifecycleState.CLEANING)
        try:
            cleanup()
        except CleanupError as exc:
            print_warning(f"Could not clean up workspace: {exc}")
