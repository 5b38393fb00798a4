"""Materialization of the working copy.

Hands the workspace over to the repository-fetch collaborator and reports
what it fetched. Errors from the collaborator propagate unchanged and
nothing is retried here.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.markup import escape

from .config import Config
from .fetcher import FetcherFactory, GitSparseFetcher
from .progress import ProgressReporter


@dataclass(frozen=True)
class MaterializationResult:
    """Summary counts produced once per invocation."""

    total_files: int
    checked_out_files: int


async def materialize(
    workspace: Path,
    repo_url: str,
    config_path: str,
    branch: Optional[str],
    reporter: ProgressReporter,
    config: Config | None = None,
    fetcher_factory: FetcherFactory = GitSparseFetcher,
) -> MaterializationResult:
    """Populate *workspace* with the files *config_path* needs.

    Args:
        workspace: Absolute path of the working copy.
        repo_url: Remote repository URL.
        config_path: Repository-relative DocFx configuration path.
        branch: Optional branch name; ``None`` means the remote HEAD.
        reporter: Progress sink (silent or console).
        config: Runtime configuration passed on to the collaborator.
        fetcher_factory: Builds the collaborator for this workspace.

    Returns:
        MaterializationResult with the known and checked-out file counts.
    """
    config = config or Config()

    reporter.emit(f"[cyan]Cloning repository:[/cyan] {escape(repo_url)}")
    reporter.emit(f"[cyan]DocFx config:[/cyan] {escape(config_path)}")
    reporter.emit(f"[cyan]Output directory:[/cyan] {escape(str(workspace))}")
    if branch:
        reporter.emit(f"[cyan]Branch:[/cyan] {escape(branch)}")
    reporter.emit("")

    fetcher = fetcher_factory(workspace, reporter, config)
    fetched = await fetcher.clone_and_parse(repo_url, config_path, branch)

    result = MaterializationResult(
        total_files=len(fetched.files),
        checked_out_files=len(fetcher.checked_out_files()),
    )

    reporter.emit("[green]Successfully cloned and parsed DocFx project[/green]")
    reporter.emit(f"Total files: {result.total_files}")
    reporter.emit(f"Checked out files: {result.checked_out_files}")
    reporter.emit("")

    return result
