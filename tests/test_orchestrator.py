"""Tests for the migration orchestrator."""
import asyncio
import json
from unittest.mock import Mock

import httpx
import pytest

from fakes import FakeCatalog, FakeFetcher, InMemoryStore, make_asset

from asset_migrator.models import (
    EnumerationFilters,
    MigrationConfig,
    OutcomeStatus,
    TransferPolicy,
)
from asset_migrator.orchestrator import MigrationOrchestrator, TransferWorker
from asset_migrator.services.artifacts import ArtifactWriter, load_public_ids
from asset_migrator.services.catalog import CloudinaryCatalogClient


def _catalog():
    return FakeCatalog([
        [make_asset("a"), make_asset("b", fmt="png", size=8)],
        [make_asset("folder/c", fmt="", size=2)],
    ])


def _orchestrator(catalog, store, fetcher, tmp_path, **config):
    config.setdefault("page_size", 2)
    config.setdefault("concurrency", 2)
    return MigrationOrchestrator(
        catalog,
        store,
        MigrationConfig(**config),
        fetcher=fetcher,
        artifacts=ArtifactWriter(tmp_path / "logs"),
    )


class TestTransferWorker:
    @pytest.mark.asyncio
    async def test_migrates_with_metadata(self, fetcher):
        store = InMemoryStore()
        worker = TransferWorker(store, fetcher)
        asset = make_asset("shoe", fmt="png", size=3, context={"alt": "Red"})

        outcome = await worker.transfer(asset, TransferPolicy())

        assert outcome.status == OutcomeStatus.MIGRATED
        assert outcome.target_key == "cloudinary/shoe.png"
        assert store.objects["cloudinary/shoe.png"].size == 3
        assert store.objects["cloudinary/shoe.png"].content_type == "image/png"
        assert store.metadata["cloudinary/shoe.png"]["context-alt"] == "Red"

    @pytest.mark.asyncio
    async def test_skips_existing(self, fetcher):
        store = InMemoryStore({"cloudinary/a.jpg": 4})
        outcome = await TransferWorker(store, fetcher).transfer(make_asset("a"), TransferPolicy())

        assert outcome.status == OutcomeStatus.SKIPPED
        assert outcome.reason == "already_exists"
        assert store.put_calls == []
        assert fetcher.staged_paths == []

    @pytest.mark.asyncio
    async def test_fetch_failure_is_outcome(self, staging_dir):
        fetcher = FakeFetcher(staging_dir, failing_ids={"a"})
        outcome = await TransferWorker(InMemoryStore(), fetcher).transfer(make_asset("a"), TransferPolicy())

        assert outcome.status == OutcomeStatus.FAILED
        assert "404" in outcome.error

    @pytest.mark.asyncio
    async def test_write_failure_cleans_staging(self, fetcher, staging_dir):
        store = InMemoryStore(fail_keys={"cloudinary/a.jpg"})
        outcome = await TransferWorker(store, fetcher).transfer(make_asset("a"), TransferPolicy())

        assert outcome.status == OutcomeStatus.FAILED
        assert "AccessDenied" in outcome.error
        assert list(staging_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_unexpected_error_is_outcome(self, fetcher):
        store = InMemoryStore()

        async def broken_put(*args, **kwargs):
            raise KeyError()

        store.put_file = broken_put
        outcome = await TransferWorker(store, fetcher).transfer(make_asset("a"), TransferPolicy())

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error == "KeyError"


class TestMigrationOrchestrator:
    @pytest.mark.asyncio
    async def test_full_run(self, fetcher, staging_dir, tmp_path):
        store = InMemoryStore()
        async with _orchestrator(_catalog(), store, fetcher, tmp_path) as migrator:
            summary = await migrator.migrate()

        assert summary.total == 3
        assert summary.migrated == 3
        assert summary.is_consistent
        assert summary.batches == 2
        assert summary.finished_at is not None
        assert set(store.objects) == {
            "cloudinary/a.jpg",
            "cloudinary/b.png",
            "cloudinary/folder/c",
        }
        assert list(staging_dir.iterdir()) == []
        assert migrator.artifact_paths == {}

    @pytest.mark.asyncio
    async def test_second_run_skips_everything(self, fetcher, tmp_path):
        store = InMemoryStore()
        catalog = _catalog()

        async with _orchestrator(catalog, store, fetcher, tmp_path) as migrator:
            await migrator.migrate()
        puts_after_first = len(store.put_calls)

        async with _orchestrator(_catalog(), store, fetcher, tmp_path) as migrator:
            summary = await migrator.migrate()

        assert summary.migrated == 0
        assert summary.skipped == 3
        assert len(store.put_calls) == puts_after_first
        assert {o.reason for o in summary.skipped_assets} == {"already_exists"}

    @pytest.mark.asyncio
    async def test_force_overwrite_bypasses_probe(self, fetcher, tmp_path):
        store = InMemoryStore({"cloudinary/a.jpg": 4, "cloudinary/b.png": 8, "cloudinary/folder/c": 2})

        async with _orchestrator(_catalog(), store, fetcher, tmp_path) as migrator:
            summary = await migrator.migrate(policy=TransferPolicy(force_overwrite=True))

        assert summary.migrated == 3
        assert store.exists_calls == []

    @pytest.mark.asyncio
    async def test_failures_are_logged_and_reloadable(self, staging_dir, tmp_path):
        fetcher = FakeFetcher(staging_dir, failing_ids={"b"})
        store = InMemoryStore({"cloudinary/a.jpg": 4})

        async with _orchestrator(_catalog(), store, fetcher, tmp_path) as migrator:
            summary = await migrator.migrate()
            paths = migrator.artifact_paths

        assert (summary.migrated, summary.skipped, summary.failed) == (1, 1, 1)
        assert set(paths) == {"skipped", "failed"}

        failed_doc = json.loads(paths["failed"].read_text(encoding="utf-8"))
        assert failed_doc["summary"]["failed"] == 1
        assert failed_doc["assets"][0]["public_id"] == "b"
        assert failed_doc["assets"][0]["s3_key"] == "cloudinary/b.png"
        assert load_public_ids(paths["failed"]) == ["b"]

    @pytest.mark.asyncio
    async def test_retry_failed_ids(self, fetcher, tmp_path):
        catalog = _catalog()
        store = InMemoryStore()
        filters = EnumerationFilters(public_ids=("b", "folder/c"))

        async with _orchestrator(catalog, store, fetcher, tmp_path) as migrator:
            summary = await migrator.migrate(filters)

        assert summary.migrated == 2
        assert catalog.list_calls == []
        assert catalog.lookup_calls == [["b", "folder/c"]]

    @pytest.mark.asyncio
    async def test_catalog_failure_keeps_partial_summary(self, fetcher, tmp_path):
        catalog = FakeCatalog(
            [[make_asset("a"), make_asset("b")], [make_asset("c")]],
            fail_on_page=1,
        )
        store = InMemoryStore()
        on_error = Mock()

        async with _orchestrator(catalog, store, fetcher, tmp_path) as migrator:
            migrator.on_catalog_error(on_error)
            summary = await migrator.migrate()

        assert summary.aborted is True
        assert "500" in summary.abort_reason
        assert summary.total == 2
        assert summary.migrated == 2
        on_error.assert_called_once()

    @pytest.mark.asyncio
    async def test_events(self, fetcher, tmp_path):
        batch_starts = []
        progress = []
        outcomes = []
        finished = []

        async with _orchestrator(_catalog(), InMemoryStore(), fetcher, tmp_path) as migrator:
            migrator.on_batch_start(lambda batch, size: batch_starts.append((batch, size)))
            migrator.on_asset_complete(outcomes.append)
            migrator.on_batch_complete(progress.append)
            migrator.on_finish(finished.append)
            summary = await migrator.migrate()

        assert batch_starts == [(1, 2), (2, 1)]
        assert len(outcomes) == 3
        assert [p.total for p in progress] == [2, 3]
        assert progress[-1].migrated == 3
        assert finished == [summary]

    @pytest.mark.asyncio
    async def test_concurrency_bound_across_run(self, staging_dir, tmp_path):
        in_flight = 0
        peak = 0

        class SlowStore(InMemoryStore):
            async def put_file(self, key, path, metadata, content_type):
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                await super().put_file(key, path, metadata, content_type)

        catalog = FakeCatalog([[make_asset(f"img-{i}") for i in range(6)]])
        async with _orchestrator(
            catalog, SlowStore(), FakeFetcher(staging_dir), tmp_path, page_size=6, concurrency=2
        ) as migrator:
            summary = await migrator.migrate()

        assert summary.migrated == 6
        assert peak <= 2


class BrokenStore(InMemoryStore):
    async def __aenter__(self):
        raise ConnectionError("Failed to create S3 client: no credentials")

    async def __aexit__(self, *args):
        pass


class TestCollaboratorLifecycle:
    @pytest.mark.asyncio
    async def test_entered_collaborators_closed_when_store_fails(self, fetcher, tmp_path):
        catalog = CloudinaryCatalogClient(
            "demo", "key", "secret",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
        )

        with pytest.raises(ConnectionError):
            async with _orchestrator(catalog, BrokenStore(), fetcher, tmp_path):
                pass

        assert catalog._client is None

    @pytest.mark.asyncio
    async def test_collaborators_closed_on_exit(self, fetcher, tmp_path):
        catalog = CloudinaryCatalogClient(
            "demo", "key", "secret",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
        )

        async with _orchestrator(catalog, InMemoryStore(), fetcher, tmp_path):
            assert catalog._client is not None

        assert catalog._client is None
