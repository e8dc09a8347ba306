"""Tests for CLI commands."""

from __future__ import annotations

from pathlib import Path

import orjson
import pytest
from typer.testing import CliRunner

from libdupes.cli.app import app
from libdupes.io.entries_io import read_entries, write_entries
from libdupes.models.entry import LibraryEntry

runner = CliRunner()


@pytest.fixture
def library_file(tmp_path: Path, library: list[LibraryEntry]) -> Path:
    path = tmp_path / "library.json"
    path.write_bytes(orjson.dumps({"entries": [e.to_dict() for e in library]}))
    return path


class TestCLI:
    def test_help(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "duplicate" in result.output.lower()

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "libdupes" in result.output

    def test_detect_help(self) -> None:
        result = runner.invoke(app, ["detect", "--help"])
        assert result.exit_code == 0
        assert "--alternative-titles" in result.output

    def test_normalize(self) -> None:
        result = runner.invoke(app, ["normalize", "Café  [Digital]", "ONE PIECE!"])
        assert result.exit_code == 0
        assert "'cafe'" in result.output
        assert "'one piece'" in result.output

    @pytest.mark.timeout(120)
    def test_detect_command(self, library_file: Path, tmp_path: Path) -> None:
        output = tmp_path / "groups.json"
        result = runner.invoke(
            app,
            [
                "detect",
                str(library_file),
                "--alternative-titles",
                "--trackers",
                "--workers",
                "2",
                "-o",
                str(output),
            ],
        )
        assert result.exit_code == 0, result.output
        assert "One Piece" in result.output
        assert orjson.loads(output.read_bytes()) == {"One Piece": [1, 2], "Berserk": [3, 4]}

    @pytest.mark.timeout(120)
    def test_detect_jsonl_title_only(self, tmp_path: Path, library: list[LibraryEntry]) -> None:
        path = tmp_path / "library.jsonl"
        write_entries(path, library)
        output = tmp_path / "groups.json"
        result = runner.invoke(app, ["detect", str(path), "--workers", "2", "-o", str(output)])
        assert result.exit_code == 0, result.output
        assert orjson.loads(output.read_bytes()) == {"One Piece": [1, 2]}

    def test_detect_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["detect", str(tmp_path / "nonexistent.json")])
        assert result.exit_code == 1

    def test_detect_no_entries(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.json"
        path.write_text("[]")
        result = runner.invoke(app, ["detect", str(path)])
        assert result.exit_code == 1
        assert "No entries" in result.output

    def test_detect_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{oops")
        result = runner.invoke(app, ["detect", str(path)])
        assert result.exit_code == 1


class TestConvert:
    def test_catalog_to_jsonl(
        self, library_file: Path, tmp_path: Path, library: list[LibraryEntry]
    ) -> None:
        output = tmp_path / "library.jsonl"
        result = runner.invoke(app, ["convert", str(library_file), "-o", str(output)])
        assert result.exit_code == 0, result.output
        assert "7 entries" in result.output
        lines = output.read_bytes().splitlines()
        assert len(lines) == len(library)
        assert read_entries(output) == library

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(
            app, ["convert", str(tmp_path / "nope.json"), "-o", str(tmp_path / "out.jsonl")]
        )
        assert result.exit_code == 1
        assert not (tmp_path / "out.jsonl").exists()

    def test_no_entries(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.json"
        path.write_text('{"data": {"mangas": {"nodes": []}}}')
        result = runner.invoke(app, ["convert", str(path), "-o", str(tmp_path / "out.jsonl")])
        assert result.exit_code == 1
