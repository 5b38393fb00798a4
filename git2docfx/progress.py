"""Progress reporting sinks.

A reporter is chosen once per invocation from the ``--silent`` flag and
threaded through every component that produces progress text. Components
never decide verbosity on their own.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from rich.console import Console

from .utils import console as default_console


@runtime_checkable
class ProgressReporter(Protocol):
    """Anything that can receive progress messages."""

    def emit(self, message: str) -> None:
        """Report a progress message (Rich markup allowed)."""
        ...

    def output(self, line: str) -> None:
        """Relay one raw line of generator standard output."""
        ...


class ConsoleProgressReporter:
    """Writes progress to standard output through a Rich console."""

    def __init__(self, console: Console | None = None):
        self.console = console or default_console

    def emit(self, message: str) -> None:
        self.console.print(message)

    def output(self, line: str) -> None:
        self.console.out(line, highlight=False)


class SilentProgressReporter:
    """Discards every message."""

    def emit(self, message: str) -> None:
        pass

    def output(self, line: str) -> None:
        pass


def create_reporter(silent: bool, console: Console | None = None) -> ProgressReporter:
    """Pick the reporter variant for an invocation."""
    if silent:
        return SilentProgressReporter()
    return ConsoleProgressReporter(console)
