"""Tests for bulk_release.cli."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from bulk_release.cli import cli
from bulk_release.config import Flags
from bulk_release.state import RunState


class TestRun:
    @patch("bulk_release.cli.run", new_callable=AsyncMock)
    def test_passes_flags_and_env(self, mock_run: AsyncMock, tmp_path: Path) -> None:
        mock_run.return_value = RunState()
        result = CliRunner().invoke(
            cli,
            [
                "run",
                "--cwd", str(tmp_path),
                "--env", "NPM_TOKEN=abc=def",
                "--dry-run",
                "--concurrency", "3",
                "--report", str(tmp_path / "report.json"),
            ],
        )

        assert result.exit_code == 0, result.output
        mock_run.assert_awaited_once_with(
            cwd=str(tmp_path),
            env={"NPM_TOKEN": "abc=def"},
            flags=Flags(dry_run=True, concurrency=3, debug=False, report=str(tmp_path / "report.json")),
        )

    @patch("bulk_release.cli.run", new_callable=AsyncMock)
    def test_failure_exits_nonzero(self, mock_run: AsyncMock, tmp_path: Path) -> None:
        mock_run.side_effect = RuntimeError("nope")
        result = CliRunner().invoke(cli, ["run", "--cwd", str(tmp_path)])

        assert result.exit_code == 1
        assert "RuntimeError: nope" in result.output

    def test_bad_env_item(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli, ["run", "--cwd", str(tmp_path), "--env", "NOVALUE"])
        assert result.exit_code == 2
        assert "KEY=VALUE" in result.output

    def test_concurrency_must_be_positive(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli, ["run", "--cwd", str(tmp_path), "--concurrency", "0"])
        assert result.exit_code == 2


class TestTag:
    def test_parse(self) -> None:
        result = CliRunner().invoke(cli, ["tag", "parse", "2023.5.10-scope.pkg.1.2.3-f0"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["name"] == "@scope/pkg"
        assert data["version"] == "1.2.3"
        assert data["format"] == "f0"

    def test_parse_rejects_garbage(self) -> None:
        result = CliRunner().invoke(cli, ["tag", "parse", "nope"])
        assert result.exit_code == 1
        assert "Not a release tag" in result.output

    def test_format(self) -> None:
        result = CliRunner().invoke(cli, ["tag", "format", "@scope/pkg", "1.2.3", "--date", "2023-05-10"])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "2023.5.10-scope.pkg.1.2.3-f0"

    def test_format_invalid_version(self) -> None:
        result = CliRunner().invoke(cli, ["tag", "format", "pkg", "latest"])
        assert result.exit_code == 1
