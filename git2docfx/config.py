"""git2docfx configuration.

Centralised, typed configuration for a single invocation. Settings use
Pydantic v2 models so they can be validated at construction time and
loaded from a JSON file or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigurationError


class Config(BaseModel):
    """Global git2docfx configuration.

    Holds the external executables, the temporary-workspace naming scheme and
    the process supervision timeouts. Instances are created once by the CLI
    entry point and passed to the ``LifecycleController``.
    """

    generator_binary: str = Field(default="docfx", description="DocFx executable name or path")
    git_binary: str = Field(default="git", description="Git executable name or path")
    temp_root: Path | None = Field(
        default=None, description="Parent of ephemeral workspaces (default: system temp dir)"
    )
    workspace_prefix: str = Field(default="git2docfx", min_length=1)
    git_timeout: float = Field(default=600.0, ge=1, description="Per git command timeout in seconds")
    terminate_timeout: float = Field(
        default=10.0, ge=0, description="Grace period after a termination request before kill"
    )
    serve_host: str = Field(default="localhost")
    default_serve_port: int = Field(default=8080, ge=1, le=65535)
    serve_ready_timeout: float = Field(default=120.0, ge=0)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def temp_path(self) -> Path:
        """Directory under which ephemeral workspaces are created."""
        return Path(self.temp_root) if self.temp_root else Path(tempfile.gettempdir())

    def serve_url(self, port: int | None = None) -> str:
        """URL the generator's development server listens on."""
        return f"http://{self.serve_host}:{port or self.default_serve_port}/"

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load configuration from a JSON file (the CLI's ``--config``).

        Keys are ``Config`` field names; omitted keys keep their defaults.

        Raises:
            ConfigurationError: If the file cannot be read or does not validate.
        """
        try:
            raw = Path(path).read_text(encoding="utf-8")
            return cls.model_validate_json(raw)
        except (OSError, ValidationError) as exc:
            raise ConfigurationError(f"Cannot load configuration file {path}: {exc}") from exc

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            GIT2DOCFX_DOCFX, GIT2DOCFX_GIT, GIT2DOCFX_TEMP_DIR,
            GIT2DOCFX_WORKSPACE_PREFIX, GIT2DOCFX_GIT_TIMEOUT,
            GIT2DOCFX_TERMINATE_TIMEOUT, GIT2DOCFX_SERVE_HOST,
            GIT2DOCFX_SERVE_READY_TIMEOUT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("GIT2DOCFX_DOCFX"):
            kwargs["generator_binary"] = os.environ["GIT2DOCFX_DOCFX"]
        if os.environ.get("GIT2DOCFX_GIT"):
            kwargs["git_binary"] = os.environ["GIT2DOCFX_GIT"]
        if os.environ.get("GIT2DOCFX_TEMP_DIR"):
            kwargs["temp_root"] = Path(os.environ["GIT2DOCFX_TEMP_DIR"])
        if os.environ.get("GIT2DOCFX_WORKSPACE_PREFIX"):
            kwargs["workspace_prefix"] = os.environ["GIT2DOCFX_WORKSPACE_PREFIX"]
        if os.environ.get("GIT2DOCFX_GIT_TIMEOUT"):
            kwargs["git_timeout"] = float(os.environ["GIT2DOCFX_GIT_TIMEOUT"])
        if os.environ.get("GIT2DOCFX_TERMINATE_TIMEOUT"):
            kwargs["terminate_timeout"] = float(os.environ["GIT2DOCFX_TERMINATE_TIMEOUT"])
        if os.environ.get("GIT2DOCFX_SERVE_HOST"):
            kwargs["serve_host"] = os.environ["GIT2DOCFX_SERVE_HOST"]
        if os.environ.get("GIT2DOCFX_SERVE_READY_TIMEOUT"):
            kwargs["serve_ready_timeout"] = float(os.environ["GIT2DOCFX_SERVE_READY_TIMEOUT"])

        return cls(**kwargs)
