"""Tests for the click CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from wp_mcp_gateway.cli import main, truncate


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    for name in ("WORDPRESS_TOKEN", "WORDPRESS_USERNAME", "WORDPRESS_APP_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WORDPRESS_BASE_URL", "https://blog.example.com")
    monkeypatch.setenv("WORDPRESS_TOKEN", "tok")
    return monkeypatch


class TestToolsCommand:
    """Tests for `wp-mcp-gateway tools`."""

    def test_json_output(self, env: pytest.MonkeyPatch) -> None:
        result = CliRunner().invoke(main, ["tools", "--format", "json"])

        assert result.exit_code == 0, result.output
        tools = json.loads(result.output)
        assert len(tools) == 17
        assert tools[0]["name"] == "listPosts"

    def test_table_output(self, env: pytest.MonkeyPatch) -> None:
        result = CliRunner().invoke(main, ["tools"])

        assert result.exit_code == 0, result.output
        assert "updateYoastSeo" in result.output
        assert "Total: 17 tool(s)" in result.output

    def test_missing_configuration(self, env: pytest.MonkeyPatch) -> None:
        env.delenv("WORDPRESS_BASE_URL")

        result = CliRunner().invoke(main, ["tools"])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestMainOptions:
    """Tests for top-level option validation."""

    def test_port_requires_http(self, env: pytest.MonkeyPatch) -> None:
        result = CliRunner().invoke(main, ["--port", "8080"])

        assert result.exit_code == 2
        assert "--http" in result.output

    def test_invalid_log_level(self, env: pytest.MonkeyPatch) -> None:
        result = CliRunner().invoke(main, ["--log-level", "chatty", "tools"])

        assert result.exit_code == 2


class TestTruncate:
    """Tests for truncate."""

    def test_short_and_long(self) -> None:
        assert truncate(None) == ""
        assert truncate("short") == "short"
        assert truncate("x" * 60, 10) == "xxxxxxx..."
