"""Tests for the medialib CLI commands.

This test suite covers:
- scan: indexing a directory into a database, JSON summaries and path errors
- query: type masks, key constraints, JSON output and argument validation
- keys and version output
"""

import json
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from medialib.cli.commands import ExitCode, app, build_query, main
from medialib.models.keys import MetadataKey
from medialib.models.query import ConstraintKind
from medialib.models.types import MediaType

runner = CliRunner()


@pytest.fixture
def media_root(tmp_path: Path) -> Path:
    root = tmp_path / "media"
    root.mkdir()
    for name in ("Show.Name.S01E02.mkv", "The Matrix (1999).mkv"):
        (root / name).write_bytes(b"not really video")
    (root / "notes.txt").write_text("ignored")
    return root


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "index.db"


@pytest.fixture
def scanned(media_root: Path, db_path: Path) -> Path:
    result = runner.invoke(app, ["scan", str(media_root), "--db", str(db_path), "--json"])
    assert result.exit_code == ExitCode.SUCCESS, result.output
    return db_path


class TestScanCommand:
    """Tests for the scan command."""

    def test_scan_json_summary(self, media_root: Path, db_path: Path) -> None:
        result = runner.invoke(
            app, ["scan", str(media_root), "--db", str(db_path), "--json"]
        )
        assert result.exit_code == ExitCode.SUCCESS, result.output
        summary = json.loads(result.stdout)
        assert summary["added"] == 2
        assert summary["errors"] == 0
        assert summary["path"] == str(media_root)
        assert db_path.exists()

    def test_scan_table_output(self, media_root: Path, db_path: Path) -> None:
        result = runner.invoke(app, ["scan", str(media_root), "--db", str(db_path)])
        assert result.exit_code == ExitCode.SUCCESS, result.output
        assert "Added: 2" in result.output

    def test_scan_missing_path(self, tmp_path: Path, db_path: Path) -> None:
        result = runner.invoke(
            app, ["scan", str(tmp_path / "missing"), "--db", str(db_path)]
        )
        assert result.exit_code == ExitCode.ERROR
        assert "Path does not exist" in result.output


class TestQueryCommand:
    """Tests for the query command."""

    def test_query_by_type(self, scanned: Path) -> None:
        result = runner.invoke(
            app, ["query", "--db", str(scanned), "--type", "tvshow", "--json"]
        )
        assert result.exit_code == ExitCode.SUCCESS, result.output
        payload = json.loads(result.stdout)
        assert len(payload) == 1
        assert payload[0]["kind"] == "file"
        assert payload[0]["filename"].endswith("Show.Name.S01E02.mkv")

    def test_query_by_key(self, scanned: Path) -> None:
        result = runner.invoke(
            app,
            ["query", "--db", str(scanned), "--where", "title=The Matrix", "--json"],
        )
        assert result.exit_code == ExitCode.SUCCESS, result.output
        payload = json.loads(result.stdout)
        assert len(payload) == 1
        assert payload[0]["id"].endswith("The Matrix (1999).mkv")

    def test_query_by_year(self, scanned: Path) -> None:
        result = runner.invoke(
            app, ["query", "--db", str(scanned), "--year", "year=1999", "--json"]
        )
        assert result.exit_code == ExitCode.SUCCESS, result.output
        assert len(json.loads(result.stdout)) == 1

    def test_query_pagination(self, scanned: Path) -> None:
        result = runner.invoke(
            app, ["query", "--db", str(scanned), "--offset", "10", "--json"]
        )
        assert result.exit_code == ExitCode.SUCCESS, result.output
        assert json.loads(result.stdout) == []

    def test_query_table(self, scanned: Path) -> None:
        result = runner.invoke(app, ["query", "--db", str(scanned), "--type", "movie"])
        assert result.exit_code == ExitCode.SUCCESS, result.output
        assert "Total: 1" in result.output

    def test_malformed_query_warns(self, scanned: Path) -> None:
        result = runner.invoke(
            app, ["query", "--db", str(scanned), "--type", "tvepisode", "--json"]
        )
        assert result.exit_code == ExitCode.SUCCESS
        assert "require TVSHOW" in result.output

    def test_unknown_key(self, db_path: Path) -> None:
        result = runner.invoke(app, ["query", "--db", str(db_path), "--where", "bogus=1"])
        assert result.exit_code == ExitCode.ERROR
        assert "Unknown metadata key" in result.output

    def test_unknown_type(self, db_path: Path) -> None:
        result = runner.invoke(app, ["query", "--db", str(db_path), "--type", "opera"])
        assert result.exit_code == ExitCode.ERROR
        assert "Unknown media type" in result.output


class TestBuildQuery:
    """Tests for translating CLI filters into a MediaQuery."""

    def test_values_coerced_by_kind(self) -> None:
        query = build_query(
            "music|album",
            where=["artist=Someone", "track=3", "compilation=yes"],
            year=["year=2001"],
            limit=5,
        )
        assert query.type == MediaType.MUSIC | MediaType.ALBUM
        assert [(c.kind, c.key, c.value) for c in query.constraints] == [
            (ConstraintKind.STRING, MetadataKey.ARTIST, "Someone"),
            (ConstraintKind.UINT, MetadataKey.TRACK, 3),
            (ConstraintKind.BOOL, MetadataKey.COMPILATION, True),
            (ConstraintKind.YEAR, MetadataKey.YEAR, 2001),
        ]
        assert query.limit == 5

    @pytest.mark.parametrize(
        "where", ["track=three", "compilation=maybe", "no-equals-sign"]
    )
    def test_bad_values(self, where: str) -> None:
        with pytest.raises(typer.BadParameter):
            build_query(where=[where])


def test_keys_command() -> None:
    result = runner.invoke(app, ["keys"])
    assert result.exit_code == ExitCode.SUCCESS
    assert "METADATA_KEY_TITLE" in result.output
    assert "titx" in result.output


def test_version_command() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == ExitCode.SUCCESS
    assert "medialib version" in result.output


def test_main_runs_the_app(monkeypatch, capsys) -> None:
    monkeypatch.setattr("sys.argv", ["medialib", "version"])
    with pytest.raises(SystemExit) as exc_info:
        main()
    assert exc_info.value.code == ExitCode.SUCCESS
    assert "medialib version" in capsys.readouterr().out
