"""Tests for run artifacts and identifier files."""
import json

import pytest

from asset_migrator.models import AssetDescriptor, TransferOutcome
from asset_migrator.orchestrator.models import RunSummary
from asset_migrator.services.artifacts import (
    FAILED_ASSETS_FILE,
    SKIPPED_ASSETS_FILE,
    ArtifactWriter,
    load_public_ids,
)


def test_nothing_written_for_clean_run(tmp_path):
    asset = AssetDescriptor(public_id="a", format="jpg")
    summary = RunSummary().with_batch([TransferOutcome.migrated(asset, "cloudinary/a.jpg")]).finish()

    assert ArtifactWriter(tmp_path).write_run_summary(summary) == {}
    assert list(tmp_path.iterdir()) == []


def test_skipped_log_shape(tmp_path):
    asset = AssetDescriptor(public_id="a", format="jpg")
    summary = RunSummary().with_batch([TransferOutcome.skipped(asset, "cloudinary/a.jpg")]).finish()

    paths = ArtifactWriter(tmp_path / "nested").write_run_summary(summary)

    assert paths["skipped"].name == SKIPPED_ASSETS_FILE
    doc = json.loads(paths["skipped"].read_text(encoding="utf-8"))
    assert doc["summary"] == {"total": 1, "migrated": 0, "skipped": 1, "failed": 0, "aborted": False}
    assert doc["assets"] == [
        {"public_id": "a", "s3_key": "cloudinary/a.jpg", "reason": "already_exists"}
    ]
    assert "generated_at" in doc


class TestLoadPublicIds:
    def test_from_failed_log(self, tmp_path):
        path = tmp_path / FAILED_ASSETS_FILE
        path.write_text(json.dumps({
            "summary": {},
            "assets": [
                {"public_id": "x", "error": "timeout"},
                {"public_id": "y", "error": "403"},
                {"public_id": "x", "error": "timeout"},
            ],
        }), encoding="utf-8")

        assert load_public_ids(path) == ["x", "y"]

    def test_from_json_list(self, tmp_path):
        path = tmp_path / "ids.json"
        path.write_text(json.dumps(["a", {"public_id": "b"}]), encoding="utf-8")
        assert load_public_ids(path) == ["a", "b"]

    def test_from_text_file(self, tmp_path):
        path = tmp_path / "ids.txt"
        path.write_text("# retry list\nfolder/a\n\nfolder/b\n", encoding="utf-8")
        assert load_public_ids(path) == ["folder/a", "folder/b"]

    def test_unsupported_json(self, tmp_path):
        path = tmp_path / "ids.json"
        path.write_text("42", encoding="utf-8")
        with pytest.raises(ValueError, match="unsupported"):
            load_public_ids(path)
