"""git2docfx -- run DocFx build and serve operations on Git repositories.

Materializes the part of a remote repository a DocFx configuration needs,
drives the ``docfx`` executable against it, and removes the temporary
working copy afterwards.

Key classes:
    LifecycleController  - Per-invocation state machine (build / serve)
    InvocationRequest    - Validated, immutable description of one run
    ProcessRunner        - Generator child-process supervision
    GitSparseFetcher     - Default repository-fetch collaborator
"""

__version__ = "0.1.0"

from .config import Config
from .errors import (
    CleanupError,
    ConfigurationError,
    ErrorKind,
    GeneratorError,
    Git2DocFxError,
    MaterializationError,
)
from .fetcher import FetchResult, GitSparseFetcher, RepositoryFetcher
from .lifecycle import (
    CancellationToken,
    InvocationRequest,
    InvocationResult,
    LifecycleController,
    LifecycleState,
    Mode,
)
from .materialize import MaterializationResult, materialize
from .progress import ConsoleProgressReporter, ProgressReporter, SilentProgressReporter
from .runner import GeneratorCommand, GeneratorInvocation, ProcessOutcome, ProcessRunner
from .workspace import Workspace, resolve_workspace

__all__ = [
    "__version__",
    # Configuration
    "Config",
    # Errors
    "ErrorKind",
    "Git2DocFxError",
    "ConfigurationError",
    "MaterializationError",
    "GeneratorError",
    "CleanupError",
    # Fetching
    "RepositoryFetcher",
    "FetchResult",
    "GitSparseFetcher",
    "MaterializationResult",
    "materialize",
    # Process running
    "GeneratorCommand",
    "GeneratorInvocation",
    "ProcessOutcome",
    "ProcessRunner",
    # Progress
    "ProgressReporter",
    "ConsoleProgressReporter",
    "SilentProgressReporter",
    # Workspace
    "Workspace",
    "resolve_workspace",
    # Lifecycle
    "CancellationToken",
    "InvocationRequest",
    "InvocationResult",
    "LifecycleController",
    "LifecycleState",
    "Mode",
]
