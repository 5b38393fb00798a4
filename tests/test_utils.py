"""Unit tests for utility functions (git2docfx.utils).

Tests cover:
- format_duration
- print_error / print_warning / write_diagnostic (stderr output)
- wait_for_site (mock httpx)
"""

from __future__ import annotations

import io
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from rich.console import Console

from git2docfx import utils
from git2docfx.utils import format_duration, print_error, wait_for_site, write_diagnostic


@pytest.fixture
def captured_err_console(monkeypatch) -> io.StringIO:
    buffer = io.StringIO()
    monkeypatch.setattr(utils, "err_console", Console(file=buffer, force_terminal=False, width=200))
    return buffer


class TestFormatDuration:
    @pytest.mark.unit
    def test_seconds(self):
        assert format_duration(3.7) == "3.7s"

    @pytest.mark.unit
    def test_minutes(self):
        assert format_duration(65.2) == "1m 5s"

    @pytest.mark.unit
    def test_hours(self):
        assert format_duration(3661.0) == "1h 1m 1s"

    @pytest.mark.unit
    def test_negative(self):
        assert format_duration(-1) == "0.0s"


class TestStderrOutput:
    @pytest.mark.unit
    def test_print_error_single_line(self, captured_err_console):
        print_error("DocFx build command failed with exit code 3")
        assert captured_err_console.getvalue() == (
            "Error: DocFx build command failed with exit code 3\n"
        )

    @pytest.mark.unit
    def test_print_error_escapes_markup(self, captured_err_console):
        print_error("bad [red]value[/red]")
        assert captured_err_console.getvalue() == "Error: bad [red]value[/red]\n"

    @pytest.mark.unit
    def test_write_diagnostic_verbatim(self, captured_err_console):
        write_diagnostic("[Error] something [bold]")
        assert captured_err_console.getvalue() == "[Error] something [bold]\n"


def _mock_client(get: AsyncMock) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.get = get
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


class TestWaitForSite:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_immediate_success(self):
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_client = _mock_client(AsyncMock(return_value=mock_response))

        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await wait_for_site("http://localhost:8080/", timeout=5, interval=0.01)

        assert result is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_not_found_counts_as_ready(self):
        mock_response = MagicMock()
        mock_response.status_code = 404
        mock_client = _mock_client(AsyncMock(return_value=mock_response))

        with patch("httpx.AsyncClient", return_value=mock_client):
            assert await wait_for_site("http://localhost:8080/", timeout=5) is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout_returns_false(self):
        mock_client = _mock_client(AsyncMock(side_effect=httpx.ConnectError("refused")))

        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await wait_for_site("http://localhost:8080/", timeout=0.3, interval=0.05)

        assert result is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_eventual_success(self):
        call_count = 0

        async def get_side_effect(url):
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise httpx.ConnectError("not ready")
            mock_resp = MagicMock()
            mock_resp.status_code = 200
            return mock_resp

        mock_client = _mock_client(AsyncMock(side_effect=get_side_effect))

        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await wait_for_site("http://localhost:8080/", timeout=10, interval=0.01)

        assert result is True
        assert call_count == 3
