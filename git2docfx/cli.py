"""Command-line entry point.

Usage::

    git2docfx build https://github.com/org/repo.git docs/docfx.json --output ./out
    git2docfx serve https://github.com/org/repo.git docfx.json --port 9000
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from . import __version__
from .config import Config
from .errors import Git2DocFxError
from .lifecycle import InvocationRequest, LifecycleController
from .utils import print_error


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("repo_url", metavar="repo-url", help="The git repository URL")
    parser.add_argument(
        "config_path",
        metavar="docfx-path",
        help="Path to docfx.json within the repository",
    )
    parser.add_argument("--branch", default=None, help="Branch to clone (default: remote HEAD)")
    parser.add_argument(
        "--output", default=None, help="Output directory for cloned repository"
    )
    parser.add_argument("--silent", action="store_true", help="Suppress progress output")
    parser.add_argument(
        "--config",
        default=None,
        metavar="FILE",
        help="JSON settings file (default: GIT2DOCFX_* environment variables)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git2docfx",
        description="Run DocFx build and serve operations on Git repositories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  git2docfx build https://github.com/org/repo.git docs/docfx.json\n"
            "  git2docfx build https://github.com/org/repo.git docfx.json --output ./out\n"
            "  git2docfx serve https://github.com/org/repo.git docfx.json --port 9000\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="mode", required=True)

    build = subparsers.add_parser("build", help="Clone a Git repository and run DocFx build")
    _add_common_arguments(build)
    build.add_argument(
        "--keep-temp", action="store_true", help="Keep temporary files after build"
    )

    serve = subparsers.add_parser("serve", help="Clone a Git repository and run DocFx serve")
    _add_common_arguments(serve)
    serve.add_argument("--port", type=int, default=None, help="Port for the DocFx serve command")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``git2docfx`` and ``python -m git2docfx``."""
    args = build_parser().parse_args(argv)

    try:
        request = InvocationRequest.create(
            mode=args.mode,
            repo_url=args.repo_url,
            config_path=args.config_path,
            branch=args.branch or None,
            output=args.output or None,
            silent=args.silent,
            keep_temp=getattr(args, "keep_temp", False),
            port=getattr(args, "port", None),
        )
        config = Config.load(args.config) if args.config else Config.from_env()
        controller = LifecycleController(config)
        result = asyncio.run(controller.run(request))
    except Git2DocFxError as exc:
        print_error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        print_error(str(exc) or exc.__class__.__name__)
        sys.exit(1)

    if result.error is not None:
        print_error(str(result.error))
    sys.exit(result.exit_code)
