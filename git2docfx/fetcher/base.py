"""Contract for the repository-fetch collaborator.

The collaborator populates a workspace with the files a documentation
configuration needs. It is treated as an opaque service: the rest of the
pipeline only calls ``clone_and_parse`` once and then asks which files
ended up on disk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Protocol

from ..config import Config
from ..progress import ProgressReporter


@dataclass
class FetchResult:
    """Files the configuration is known to need, as repository-relative paths."""

    files: list[str] = field(default_factory=list)


class RepositoryFetcher(Protocol):
    async def clone_and_parse(
        self,
        repo_url: str,
        config_path: str,
        branch: Optional[str] = None,
    ) -> FetchResult:
        ...

    def checked_out_files(self) -> list[str]:
        ...


FetcherFactory = Callable[[Path, ProgressReporter, Config], RepositoryFetcher]
