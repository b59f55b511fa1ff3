"""Integration tests for a complete ZIP upload.

These tests exercise the full workflow:
- Reading a ZIP archive with two CSV files and media entries
- Media preprocessing shared by columns and block lists
- Legacy hierarchy across files, with a cycle that gets excluded
- Deferred content pickers
- JSON report and failed-row export
"""

import csv
import json
import zipfile

import pytest

from src.content_importer.core.reader import load_batch
from src.content_importer.execution.pipeline import ImportPipeline
from src.content_importer.observability.reporter import FAILURE_COLUMN, ReportGenerator
from src.content_importer.repository.memory import InMemoryRepository

SECTIONS_CSV = (
    "name,docTypeAlias,parent,bulkUploadLegacyId,bulkUploadShouldPublish\n"
    "Blog,section,/Home,S1,true\n"
    "Archive,section,,AR,\n"
)

ARTICLES_CSV = (
    "name,docTypeAlias,bulkUploadLegacyId,bulkUploadLegacyParentId,"
    "hero|zipFileToMedia:/Images,body|multiBlockList:/Images,related|legacyContentPicker,"
    "tags|stringArray\n"
    "Second post,article,A2,S1,media/hero.jpg,,A1,news\n"
    "First post,article,A1,S1,media/hero.jpg,image::media/hero.jpg|Hero;;richtext::Hi,,\n"
    "Cyclic,article,LB,LC,,,,\n"
    "Cyclic too,article,LC,LB,,,,\n"
    "Missing media,article,A3,S1,media/absent.jpg,,,\n"
)


@pytest.fixture
def upload(tmp_path):
    """Build a ZIP upload with two CSV files and one image."""
    path = tmp_path / "upload.zip"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("1-sections.csv", SECTIONS_CSV)
        archive.writestr("2-articles.csv", ARTICLES_CSV)
        archive.writestr("media/hero.jpg", b"\xff\xd8jpeg")
    return path


@pytest.fixture
def repository() -> InMemoryRepository:
    repository = InMemoryRepository()
    repository.add_content("Home", "homePage")
    return repository


@pytest.fixture
def result(upload, repository):
    pipeline = ImportPipeline(repository, media_store=repository)
    return pipeline.run_batch(load_batch(upload))


def by_name(result):
    return {r.name: r for r in result.ordered_results}


class TestFullImportWorkflow:
    """Test a ZIP upload end to end."""

    def test_items_are_created_parent_first(self, result, repository):
        names = [r.name for r in result.ordered_results]

        assert names.index("Blog") < names.index("First post") < names.index("Second post")
        assert {r.name for r in result.ordered_results if not r.success} == set()
        assert {f.item.name for f in result.hierarchy_failures} == {"Cyclic", "Cyclic too"}

        blog = repository.get(by_name(result)["Blog"].created_guid)
        home = repository.find_parent("/Home")
        assert blog.parent_guid == home.guid
        assert blog.published
        for name in ("First post", "Second post", "Missing media"):
            assert repository.get(by_name(result)[name].created_guid).parent_guid == blog.guid

    def test_media_is_created_once_and_shared(self, result, repository):
        assert len(repository.media) == 1
        media_guid = next(iter(repository.media))
        assert repository.media[media_guid].properties == {"folder": "/Images"}

        first = repository.get(by_name(result)["First post"].created_guid)
        second = repository.get(by_name(result)["Second post"].created_guid)
        assert first.properties["hero"] == second.properties["hero"]
        assert first.properties["hero"] == f"umb://media/{media_guid.hex}"

        body = json.loads(first.properties["body"])
        assert len(body["contentData"]) == 2
        assert body["contentData"][0]["image"][0]["mediaKey"] == str(media_guid)

    def test_deferred_picker_points_at_sibling(self, result, repository):
        first = by_name(result)["First post"]
        second = repository.get(by_name(result)["Second post"].created_guid)
        assert second.properties["related"] == f"umb://document/{first.created_guid.hex}"
        assert second.properties["tags"] == ["news"]

    def test_missing_media_is_a_warning(self, result, repository):
        item = by_name(result)["Missing media"]
        assert item.success
        assert "hero" not in repository.get(item.created_guid).properties
        assert item.warnings
        assert result.counts()["media_failed"] == 1

    def test_item_without_parent_is_created_at_root(self, result, repository):
        archive = by_name(result)["Archive"]
        assert archive.success
        assert repository.get(archive.created_guid).parent_guid is None

    def test_report_and_failed_rows(self, result, upload, tmp_path):
        generator = ReportGenerator()
        report = generator.generate_report(result, upload)

        assert report.status == "partial"
        assert report.created == 5
        assert report.hierarchy_excluded == 2
        assert report.files["2-articles.csv"]["excluded"] == 2
        assert report.files["1-sections.csv"]["created"] == 2

        path = tmp_path / "failed.csv"
        assert generator.write_failed_rows(result, path) == 2
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert {row["name"] for row in rows} == {"Cyclic", "Cyclic too"}
        assert all(row[FAILURE_COLUMN].startswith("Circular parent reference") for row in rows)

    def test_rerun_with_same_pipeline_creates_media_again(self, upload, repository):
        pipeline = ImportPipeline(repository, media_store=repository)
        pipeline.run_batch(load_batch(upload))
        pipeline.run_batch(load_batch(upload))

        assert len(repository.media) == 2
