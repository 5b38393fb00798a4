"""Shared utility functions for git2docfx.

Provides the Rich consoles used for progress and diagnostics, duration
formatting, and HTTP readiness polling for the served documentation site.
"""

from __future__ import annotations

import asyncio
import time

import httpx
from rich.console import Console
from rich.markup import escape

console = Console()
err_console = Console(stderr=True)

# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_error(message: str) -> None:
    """Print the single ``Error: <message>`` line to stderr."""
    err_console.print(f"[bold red]Error:[/bold red] {escape(message)}")


def print_warning(message: str) -> None:
    """Print a yellow warning message to stderr."""
    err_console.print(f"[bold yellow]{escape(message)}[/bold yellow]")


def write_diagnostic(line: str) -> None:
    """Echo one raw line of child-process stderr, without markup."""
    err_console.out(line, highlight=False)


# ---------------------------------------------------------------------------
# Readiness polling
# ---------------------------------------------------------------------------


async def wait_for_site(
    url: str,
    timeout: float = 120,
    interval: float = 1,
) -> bool:
    """Poll *url* until it answers with any non-5xx status or timeout.

    Used to tell the user when the generator's development server is
    actually accepting requests.

    Args:
        url: Fully-qualified URL (e.g. ``http://localhost:8080/``).
        timeout: Maximum seconds to wait.
        interval: Seconds between probes.

    Returns:
        ``True`` if the site answered within the timeout window,
        ``False`` otherwise.
    """
    deadline = time.monotonic() + timeout

    async with httpx.AsyncClient(timeout=httpx.Timeout(5.0, connect=3.0)) as client:
        while time.monotonic() < deadline:
            try:
                response = await client.get(url)
                if response.status_code < 500:
                    return True
            except httpx.HTTPError:
                pass

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            await asyncio.sleep(min(interval, remaining))

    return False
