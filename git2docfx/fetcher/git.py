"""Git-backed repository fetcher.

Materializes only the directory that holds the DocFx configuration by
combining a blobless shallow clone with a cone-mode sparse checkout.
Everything goes through the ``git`` executable; no protocol work happens
here.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
from pathlib import Path, PurePosixPath
from typing import Optional

from rich.markup import escape

from ..config import Config
from ..errors import MaterializationError
from ..progress import ProgressReporter
from .base import FetchResult


async def _run_git(
    *args: str,
    git_binary: str = "git",
    cwd: str | Path | None = None,
    timeout: float = 600.0,
) -> tuple[str, str]:
    """Run a git command asynchronously and return (stdout, stderr).

    Raises MaterializationError if git is missing, times out, or exits
    with a non-zero code.
    """
    cmd = [git_binary] + list(args)
    cmd_str = " ".join(cmd)

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
        )
    except FileNotFoundError:
        raise MaterializationError(
            f"Git executable not found: '{git_binary}'. Ensure git is installed and in PATH.",
            command=cmd_str,
        )

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise MaterializationError(
            f"Git command timed out after {timeout}s: {cmd_str}",
            command=cmd_str,
        )
    except asyncio.CancelledError:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()
        raise

    stdout = stdout_bytes.decode("utf-8", errors="replace").strip()
    stderr = stderr_bytes.decode("utf-8", errors="replace").strip()

    if process.returncode != 0:
        raise MaterializationError(
            f"Git command failed (exit {process.returncode}): {cmd_str}\n{stderr}",
            command=cmd_str,
            stderr=stderr,
        )

    return stdout, stderr


def _in_cone(path: str, cone: PurePosixPath) -> bool:
    """Whether *path* is materialized by a cone-mode sparse checkout of *cone*.

    Files at the repository root are always part of the cone.
    """
    if "/" not in path:
        return True
    if str(cone) == ".":
        return False
    return path.startswith(cone.as_posix() + "/")


class GitSparseFetcher:
    """Fetches the configuration directory of a repository into a workspace."""

    def __init__(
        self,
        workspace: str | Path,
        reporter: ProgressReporter,
        config: Config | None = None,
    ):
        self.workspace = Path(workspace)
        self.reporter = reporter
        self.config = config or Config()

    async def _git(self, *args: str, cwd: Path | None = None) -> tuple[str, str]:
        return await _run_git(
            *args,
            git_binary=self.config.git_binary,
            cwd=cwd,
            timeout=self.config.git_timeout,
        )

    async def clone_and_parse(
        self,
        repo_url: str,
        config_path: str,
        branch: Optional[str] = None,
    ) -> FetchResult:
        """Clone *repo_url* sparsely so that *config_path* and its directory exist.

        Args:
            repo_url: Remote repository URL.
            config_path: Repository-relative path of the DocFx configuration.
            branch: Branch to check out (default: remote HEAD).

        Returns:
            FetchResult listing the tracked files inside the sparse cone.

        Raises:
            MaterializationError: If any git step fails or the configuration
                file is missing from the checkout.
        """
        config_rel = PurePosixPath(config_path.replace("\\", "/"))
        cone = config_rel.parent

        clone_args = ["clone", "--filter=blob:none", "--depth", "1", "--sparse"]
        if branch:
            clone_args += ["--branch", branch]
        clone_args += ["--", repo_url, str(self.workspace)]

        self.reporter.emit(f"[cyan]Fetching[/cyan] {escape(repo_url)}...")
        await self._git(*clone_args)

        if str(cone) != ".":
            self.reporter.emit(f"[cyan]Sparse checkout of[/cyan] {escape(cone.as_posix())}")
            await self._git(
                "-c", "core.sparseCheckoutCone=true",
                "sparse-checkout", "set", cone.as_posix(),
                cwd=self.workspace,
            )

        stdout, _ = await self._git("ls-tree", "-r", "-z", "--name-only", "HEAD", cwd=self.workspace)
        files = [entry for entry in stdout.split("\0") if entry and _in_cone(entry, cone)]

        if not (self.workspace / config_rel).is_file():
            raise MaterializationError(
                f"DocFx configuration '{config_path}' not found in repository {repo_url}"
            )

        return FetchResult(files=files)

    def checked_out_files(self) -> list[str]:
        """List files present in the workspace, excluding git metadata."""
        if not self.workspace.is_dir():
            return []

        found: list[str] = []
        for root, dirs, filenames in os.walk(self.workspace):
            dirs[:] = [d for d in dirs if d != ".git"]
            for name in filenames:
                rel = Path(root, name).relative_to(self.workspace)
                found.append(rel.as_posix())
        return sorted(found)
