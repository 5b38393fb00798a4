"""Shared pytest fixtures for the git2docfx test suite.

Provides reusable fixtures for:
- Mock subprocess helpers
- A real local git repository holding a DocFx project
- An in-memory repository-fetch collaborator
- A scripted stand-in for the ``docfx`` executable
- Recording progress reporters
"""

from __future__ import annotations

import subprocess
import sys
import textwrap
from pathlib import Path
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from git2docfx.config import Config
from git2docfx.fetcher import FetchResult


# ---------------------------------------------------------------------------
# Subprocess mocks
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


# ---------------------------------------------------------------------------
# Git repository
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Temporary git repository containing a nested DocFx project.

    Layout::

        README.md
        docs/docfx.json
        docs/index.md
        docs/articles/intro.md
        src/app.cs
    """
    repo_dir = tmp_path / "origin-repo"
    repo_dir.mkdir()

    def git(*args: str) -> None:
        subprocess.run(["git", *args], cwd=repo_dir, check=True, capture_output=True)

    git("init")
    git("config", "user.email", "test@git2docfx.local")
    git("config", "user.name", "git2docfx Test")
    git("config", "commit.gpgsign", "false")
    git("config", "uploadpack.allowFilter", "true")

    (repo_dir / "README.md").write_text("# Test Project\n", encoding="utf-8")
    (repo_dir / "docs" / "articles").mkdir(parents=True)
    (repo_dir / "docs" / "docfx.json").write_text('{"build": {}}\n', encoding="utf-8")
    (repo_dir / "docs" / "index.md").write_text("# Home\n", encoding="utf-8")
    (repo_dir / "docs" / "articles" / "intro.md").write_text("# Intro\n", encoding="utf-8")
    (repo_dir / "src").mkdir()
    (repo_dir / "src" / "app.cs").write_text("class App {}\n", encoding="utf-8")

    git("add", ".")
    git("commit", "-m", "Initial commit")
    yield repo_dir


# ---------------------------------------------------------------------------
# Fetch collaborator
# ---------------------------------------------------------------------------

class FakeFetcher:
    """In-memory fetch collaborator that writes the configuration file."""

    def __init__(
        self,
        workspace: Path,
        reporter: Any,
        config: Config,
        files: list[str],
        error: Exception | None,
        calls: list[dict[str, Any]],
    ):
        self.workspace = Path(workspace)
        self.reporter = reporter
        self.config = config
        self.files = files
        self.error = error
        self.calls = calls

    async def clone_and_parse(
        self, repo_url: str, config_path: str, branch: Optional[str] = None
    ) -> FetchResult:
        self.calls.append(
            {
                "workspace": self.workspace,
                "repo_url": repo_url,
                "config_path": config_path,
                "branch": branch,
            }
        )
        self.workspace.mkdir(parents=True, exist_ok=True)
        if self.error is not None:
            raise self.error
        target = self.workspace / config_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("{}\n", encoding="utf-8")
        return FetchResult(files=list(self.files))

    def checked_out_files(self) -> list[str]:
        return [
            p.relative_to(self.workspace).as_posix()
            for p in self.workspace.rglob("*")
            if p.is_file()
        ]


@pytest.fixture
def fake_fetcher_factory() -> Callable[..., Any]:
    """Build a fetcher factory compatible with ``LifecycleController``.

    Usage:
        factory = fake_fetcher_factory(files=["docfx.json"], error=None)
        controller = LifecycleController(config, fetcher_factory=factory)
        ...
        factory.calls  # list of clone_and_parse arguments
    """
    def build(files: list[str] | None = None, error: Exception | None = None):
        calls: list[dict[str, Any]] = []

        def factory(workspace: Path, reporter: Any, config: Config) -> FakeFetcher:
            return FakeFetcher(workspace, reporter, config, files or [], error, calls)

        factory.calls = calls  # type: ignore[attr-defined]
        return factory

    return build


# ---------------------------------------------------------------------------
# Stand-in generator executable
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_docfx(tmp_path: Path) -> Callable[..., str]:
    """Write an executable script that mimics the ``docfx`` command line.

    The script records its arguments and working directory to
    ``<tmp_path>/docfx-calls.txt``, prints one line to stdout and one to
    stderr, then exits with *exit_code*. With ``serve_forever=True`` the
    ``--serve`` form blocks until terminated.

    Returns the script path, usable as ``Config.generator_binary``.
    """
    if sys.platform == "win32":
        pytest.skip("scripted generator requires a POSIX shebang")

    def build(exit_code: int = 0, serve_forever: bool = False) -> str:
        script = tmp_path / f"docfx-{exit_code}-{int(serve_forever)}"
        log_file = tmp_path / "docfx-calls.txt"
        script.write_text(
            textwrap.dedent(
                f"""\
                #!{sys.executable}
                import os
                import sys
                import time

                with open({str(log_file)!r}, "a", encoding="utf-8") as fh:
                    fh.write(os.getcwd() + "|" + "|".join(sys.argv[1:]) + "\\n")

                print("docfx: processing", flush=True)
                print("docfx: warning [sample]", file=sys.stderr, flush=True)
                if {serve_forever!r} and "--serve" in sys.argv:
                    while True:
                        time.sleep(0.1)
                sys.exit({exit_code})
                """
            ),
            encoding="utf-8",
        )
        script.chmod(0o755)
        return str(script)

    return build


@pytest.fixture
def docfx_calls(tmp_path: Path) -> Callable[[], list[tuple[str, list[str]]]]:
    """Read back the ``(cwd, args)`` pairs recorded by ``fake_docfx``."""
    def read() -> list[tuple[str, list[str]]]:
        log_file = tmp_path / "docfx-calls.txt"
        if not log_file.exists():
            return []
        calls = []
        for line in log_file.read_text(encoding="utf-8").splitlines():
            cwd, *args = line.split("|")
            calls.append((cwd, args))
        return calls

    return read


# ---------------------------------------------------------------------------
# Progress reporting
# ---------------------------------------------------------------------------

class RecordingReporter:
    """Progress reporter that keeps every message for assertions."""

    def __init__(self) -> None:
        self.messages: list[str] = []
        self.lines: list[str] = []

    def emit(self, message: str) -> None:
        self.messages.append(message)

    def output(self, line: str) -> None:
        self.lines.append(line)

    @property
    def text(self) -> str:
        return "\n".join(self.messages)


@pytest.fixture
def recording_reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Config whose ephemeral workspaces land under a per-test temp root."""
    temp_root = tmp_path / "temp-root"
    temp_root.mkdir()
    return Config(temp_root=temp_root, terminate_timeout=5.0, serve_ready_timeout=0)
