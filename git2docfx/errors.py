"""Error taxonomy shared by every stage of an invocation.

Each failure carries an ``ErrorKind`` so the top-level dispatcher can report
where the pipeline stopped. Every kind maps to exit code 1.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class ErrorKind(str, Enum):
    """Stage at which an invocation failed."""

    CONFIGURATION = "configuration"
    MATERIALIZATION = "materialization"
    GENERATOR = "generator"
    CLEANUP = "cleanup"


class Git2DocFxError(Exception):
    """Base class for all failures surfaced to the user."""

    kind: ErrorKind = ErrorKind.CONFIGURATION

    def __init__(self, message: str, kind: ErrorKind | None = None):
        if kind is not None:
            self.kind = kind
        super().__init__(message)

    @property
    def exit_code(self) -> int:
        return 1


class ConfigurationError(Git2DocFxError):
    """Raised for malformed user input such as an unparseable repository URL."""

    kind = ErrorKind.CONFIGURATION


class MaterializationError(Git2DocFxError):
    """Raised when the working copy cannot be fetched."""

    kind = ErrorKind.MATERIALIZATION

    def __init__(self, message: str, command: str = "", stderr: str = ""):
        self.command = command
        self.stderr = stderr
        super().__init__(message)


class GeneratorError(Git2DocFxError):
    """Raised when the documentation generator cannot start or exits non-zero."""

    kind = ErrorKind.GENERATOR

    def __init__(self, message: str, exit_code: int | None = None, command: str = ""):
        self.generator_exit_code = exit_code
        self.command = command
        super().__init__(message)


class CleanupError(Git2DocFxError):
    """Raised when an ephemeral workspace cannot be removed."""

    kind = ErrorKind.CLEANUP

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)
