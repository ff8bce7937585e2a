"""Tests for the administrative CLI."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from malratings.cli import cli
from malratings.core.models import CatalogEntry

CATALOG = [
    CatalogEntry.model_validate(
        {
            "node": {
                "id": 16498,
                "title": "Shingeki no Kyojin",
                "alternative_titles": {"en": "Attack on Titan"},
            },
            "list_status": {"status": "completed", "score": 9},
        }
    ),
    CatalogEntry.model_validate(
        {
            "node": {"id": 5114, "title": "Fullmetal Alchemist: Brotherhood"},
            "list_status": {"status": "completed", "score": 10},
        }
    ),
]


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _invoke(runner: CliRunner, config_dir: Path, *args: str):
    return runner.invoke(cli, ["--config-dir", str(config_dir), *args])


def test_config_set_and_get(runner: CliRunner, tmp_path: Path) -> None:
    result = _invoke(runner, tmp_path, "config", "set", "shoko.enabled", "true")
    assert result.exit_code == 0
    assert "Set shoko.enabled = true" in result.output

    result = _invoke(runner, tmp_path, "config", "get", "shoko.enabled")
    assert result.exit_code == 0
    assert "shoko.enabled = True" in result.output


def test_config_set_invalid_value(runner: CliRunner, tmp_path: Path) -> None:
    result = _invoke(runner, tmp_path, "config", "set", "refresh_interval_hours", "0")
    assert result.exit_code == 1
    assert "Invalid value" in result.output


def test_config_where_and_show(runner: CliRunner, tmp_path: Path) -> None:
    result = _invoke(runner, tmp_path, "config", "where")
    assert result.output.strip() == str(tmp_path / "config.toml")

    result = _invoke(runner, tmp_path, "config", "show")
    assert "MAL token configured: False" in result.output


def test_test_command_requires_token(runner: CliRunner, tmp_path: Path) -> None:
    result = _invoke(runner, tmp_path, "test")
    assert result.exit_code == 1
    assert "not configured" in result.output


def test_rate_command(runner: CliRunner, tmp_path: Path) -> None:
    _invoke(runner, tmp_path, "config", "set", "mal.access_token", "token")
    items_file = tmp_path / "items.json"
    items_file.write_text(
        json.dumps(
            [
                {"name": "Attack on Titan (2013)"},
                {"name": "Season 2", "kind": "season", "series_name": "Fullmetal Alchemist: Brotherhood"},
                {"name": "Something Else"},
            ]
        ),
        encoding="utf-8",
    )

    with patch(
        "malratings.providers.mal.MALApiClient.fetch_rated_catalog",
        new=AsyncMock(return_value=CATALOG),
    ):
        result = _invoke(runner, tmp_path, "rate", str(items_file))

    assert result.exit_code == 0, result.output
    assert "✓ Attack on Titan (2013) -> 9.0 (matched)" in result.output
    assert "✓ Season 2 -> 10.0 (matched)" in result.output
    assert "- Something Else (unmatched)" in result.output
    assert "2 of 3 item(s) would be rated" in result.output


def test_match_command_shows_suggestions(runner: CliRunner, tmp_path: Path) -> None:
    _invoke(runner, tmp_path, "config", "set", "mal.access_token", "token")

    with patch(
        "malratings.providers.mal.MALApiClient.fetch_rated_catalog",
        new=AsyncMock(return_value=CATALOG),
    ):
        result = _invoke(runner, tmp_path, "match", "Fullmetal Alchemist")

    assert result.exit_code == 0, result.output
    assert "No match for Fullmetal Alchemist" in result.output
    assert "Fullmetal Alchemist: Brotherhood (MAL 5114" in result.output
    assert "Rating: unchanged" in result.output
