"""Tests for the CLI."""

import csv
import json
import zipfile

import pytest
from typer.testing import CliRunner

from src.content_importer.cli import app

runner = CliRunner()


@pytest.fixture
def pages_csv(tmp_path):
    """A small batch that imports cleanly under a seeded /Home."""
    path = tmp_path / "pages.csv"
    path.write_text(
        "name,docTypeAlias,parent,bulkUploadLegacyId,bulkUploadLegacyParentId,tags|stringArray\n"
        "Team,contentPage,,2,1,\n"
        "About,contentPage,/Home,1,,a;b\n"
    )
    return path


@pytest.fixture
def cyclic_csv(tmp_path):
    path = tmp_path / "cyclic.csv"
    path.write_text(
        "name,docTypeAlias,bulkUploadLegacyId,bulkUploadLegacyParentId\n"
        "A,page,1,2\n"
        "B,page,2,1\n"
        "C,page,3,\n"
    )
    return path


class TestResolversCommand:
    def test_lists_resolvers(self):
        result = runner.invoke(app, ["resolvers"])
        assert result.exit_code == 0
        assert "Resolvers" in result.output
        assert "deferred" in result.output


class TestPlanCommand:
    """Test the plan command."""

    def test_plan_prints_creation_order(self, pages_csv):
        result = runner.invoke(app, ["plan", str(pages_csv), "--seed", "/Home"])

        assert result.exit_code == 0
        assert "Creation Order" in result.output
        assert result.output.index("About") < result.output.index("Team")

    def test_plan_with_excluded_rows_exits_1(self, cyclic_csv):
        result = runner.invoke(app, ["plan", str(cyclic_csv)])

        assert result.exit_code == 1
        assert "Excluded" in result.output

    def test_plan_missing_file(self, tmp_path):
        result = runner.invoke(app, ["plan", str(tmp_path / "absent.csv")])
        assert result.exit_code != 0

    def test_plan_bad_config(self, pages_csv, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("pipeline:\n  unknown_option: 1\n")

        result = runner.invoke(app, ["plan", str(pages_csv), "--config", str(config)])

        assert result.exit_code == 1
        assert "Planning failed" in result.output


class TestSimulateCommand:
    """Test the simulate command."""

    def test_successful_run_writes_report(self, pages_csv, tmp_path):
        report = tmp_path / "out" / "report.json"

        result = runner.invoke(
            app,
            ["simulate", str(pages_csv), "--seed", "/Home", "--report", str(report)],
        )

        assert result.exit_code == 0
        assert "Import Summary" in result.output
        data = json.loads(report.read_text())
        assert data["status"] == "completed"
        assert data["created"] == 2

    def test_failed_rows_are_exported(self, pages_csv, tmp_path):
        failed = tmp_path / "failed.csv"

        # Without the seed, /Home does not exist
        result = runner.invoke(app, ["simulate", str(pages_csv), "--failed-rows", str(failed)])

        assert result.exit_code == 1
        assert "Failed Items" in result.output
        lines = failed.read_text().splitlines()
        assert lines[0].endswith(",importError")
        assert len(lines) == 3

    def test_excluded_rows_fail_the_command(self, cyclic_csv):
        result = runner.invoke(app, ["simulate", str(cyclic_csv)])
        assert result.exit_code == 1


class TestMediaCommand:
    """Test the media command."""

    @pytest.fixture
    def media_zip(self, tmp_path):
        path = tmp_path / "upload.zip"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr(
                "media.csv",
                "fileName,name,parent,altText\n"
                "hero.jpg,Hero,/Images/Blog/,A mountain\n"
                "absent.jpg,Gone,/Images/,\n",
            )
            archive.writestr("images/hero.jpg", b"jpeg-bytes")
        return path

    def test_results_file_lists_every_row(self, media_zip, tmp_path):
        results = tmp_path / "out" / "results.csv"

        result = runner.invoke(app, ["media", str(media_zip), "--results", str(results)])

        assert result.exit_code == 1
        assert "Media Import" in result.output
        with open(results, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert [row["bulkUploadSuccess"] for row in rows] == ["true", "false"]
        assert rows[0]["bulkUploadMediaToken"].startswith("umb://media/")
        assert rows[0]["altText"] == "A mountain"
        assert "is not in the archive" in rows[1]["importError"]

    def test_clean_upload_exits_0(self, tmp_path):
        csv_path = tmp_path / "media.csv"
        song = tmp_path / "song.mp3"
        song.write_bytes(b"mp3-bytes")
        csv_path.write_text(f"mediaSource,parent\n{song},/Audio\n")

        result = runner.invoke(app, ["media", str(csv_path)])

        assert result.exit_code == 0
        assert "Media Import" in result.output


class TestVersionCommand:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output
