"""Workspace resolution and removal.

A workspace is the local directory that receives the materialized subset
of the remote repository. User-specified workspaces are never deleted;
ephemeral ones are created under the temp root with a collision-resistant
name and removed once, when the invocation finishes.
"""

from __future__ import annotations

import re
import shutil
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlsplit

from rich.markup import escape

from .config import Config
from .errors import CleanupError, ConfigurationError
from .progress import ProgressReporter

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*$")


@dataclass(frozen=True)
class Workspace:
    """Resolved location of the working copy."""

    path: Path
    ephemeral: bool


def repository_base_name(repo_url: str) -> str:
    """Derive a directory-safe base name from a repository URL.

    Uses the final path segment with its extension stripped, so
    ``https://example.com/org/my-repo.git/`` yields ``my-repo``.

    Raises:
        ConfigurationError: If *repo_url* is not a well-formed absolute URI.
    """
    try:
        parts = urlsplit(repo_url.strip())
    except ValueError as exc:
        raise ConfigurationError(f"Invalid repository URL '{repo_url}': {exc}") from exc

    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        raise ConfigurationError(f"Invalid repository URL '{repo_url}': missing scheme")
    if parts.scheme.lower() != "file" and not parts.netloc:
        raise ConfigurationError(f"Invalid repository URL '{repo_url}': missing host")
    if parts.scheme.lower() == "file" and not parts.path:
        raise ConfigurationError(f"Invalid repository URL '{repo_url}': missing path")

    segment = PurePosixPath(unquote(parts.path).rstrip("/")).name
    if "." in segment:
        segment = segment.rsplit(".", 1)[0]

    name = re.sub(r"[^A-Za-z0-9._-]", "-", segment).strip("-")
    return name or "repo"


def resolve_workspace(repo_url: str, output: str | Path | None, config: Config) -> Workspace:
    """Decide where the working copy lives.

    An explicit *output* is made absolute and marked non-ephemeral; it is not
    checked for existence. Otherwise a fresh path
    ``<temp_root>/<prefix>_<repo>_<hex>`` is generated and marked ephemeral.
    The repository URL is validated in both cases.
    """
    base_name = repository_base_name(repo_url)

    if output:
        return Workspace(path=Path(output).expanduser().resolve(), ephemeral=False)

    dir_name = f"{config.workspace_prefix}_{base_name}_{uuid.uuid4().hex}"
    return Workspace(path=config.temp_path.resolve() / dir_name, ephemeral=True)


def remove_workspace(path: Path, ignore_errors: bool = False) -> bool:
    """Recursively delete *path*.

    Returns ``False`` when there was nothing to delete.

    Raises:
        CleanupError: If deletion fails and *ignore_errors* is false.
    """
    try:
        if not path.exists():
            return False
        shutil.rmtree(path, ignore_errors=ignore_errors)
    except OSError as exc:
        if ignore_errors:
            return False
        raise CleanupError(f"Failed to remove workspace {path}: {exc}", path=path) from exc
    return True


class WorkspaceCleanup:
    """One-shot cleanup decision for a workspace.

    The first call decides and acts; later calls, including ones racing in
    from a signal handler, are no-ops.
    """

    def __init__(self, workspace: Workspace, keep: bool, reporter: ProgressReporter):
        self.workspace = workspace
        self.keep = keep
        self.reporter = reporter
        self._lock = threading.Lock()
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    @property
    def should_delete(self) -> bool:
        return self.workspace.ephemeral and not self.keep

    def __call__(self, swallow_errors: bool = False) -> bool:
        """Run the cleanup decision. Returns ``True`` only for the winning call."""
        with self._lock:
            if self._done:
                return False
            self._done = True

        if not self.should_delete:
            self.reporter.emit(
                f"[dim]Repository files kept at:[/dim] {escape(str(self.workspace.path))}"
            )
            return True

        self.reporter.emit("[yellow]Cleaning up temporary files...[/yellow]")
        remove_workspace(self.workspace.path, ignore_errors=swallow_errors)
        return True
