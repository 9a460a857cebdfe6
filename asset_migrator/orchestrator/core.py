"""Core orchestrator - drives enumeration, scheduling and transfer."""
import logging
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Callable, Dict, Optional

from ..config import MigrationSettings
from ..errors import CatalogUnavailable
from ..models import (
    AssetDescriptor,
    EnumerationFilters,
    MigrationConfig,
    TransferOutcome,
    TransferPolicy,
)
from ..protocols import ICatalogClient, IObjectStore
from ..services.artifacts import ArtifactWriter
from ..services.catalog import CloudinaryCatalogClient
from ..services.fetcher import ContentFetcher
from ..services.storage import ObjectStoreService
from ..utils.events import BatchProgress, EventEmitter

from .enumerator import build_enumerator
from .models import RunSummary
from .parallel import BatchScheduler
from .transfer import TransferWorker

logger = logging.getLogger(__name__)


async def enter_collaborators(stack: AsyncExitStack, *collaborators) -> None:
    """Enter every collaborator that is an async context manager."""
    for collaborator in collaborators:
        if collaborator is not None and hasattr(collaborator, "__aenter__"):
            await stack.enter_async_context(collaborator)


def build_clients(settings: MigrationSettings):
    """Production catalog client and object store for the given settings."""
    catalog = CloudinaryCatalogClient(
        settings.cloud_name,
        settings.api_key,
        settings.api_secret,
        base_url=settings.catalog_api_url,
    )
    s3_kwargs = {
        "aws_access_key_id": settings.aws_access_key_id,
        "aws_secret_access_key": settings.aws_secret_access_key,
    }
    if settings.s3_endpoint_url:
        s3_kwargs["endpoint_url"] = settings.s3_endpoint_url
    store = ObjectStoreService(settings.bucket_name, region_name=settings.aws_region, **s3_kwargs)
    return catalog, store


class MigrationOrchestrator:
    """
    Orchestrates a migration run using injected services.

    Usage:
        catalog, store = build_clients(settings)
        async with MigrationOrchestrator(catalog, store, config) as migrator:
            migrator.on_batch_complete(lambda progress: print(progress))
            summary = await migrator.migrate(filters, TransferPolicy())
    """

    def __init__(
        self,
        catalog: ICatalogClient,
        store: IObjectStore,
        config: Optional[MigrationConfig] = None,
        fetcher: Optional[ContentFetcher] = None,
        artifacts: Optional[ArtifactWriter] = None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            catalog: Source catalog client
            store: Destination object store
            config: Engine tunables
            fetcher: Content downloader (built from config when omitted)
            artifacts: Artifact writer (log_dir from config when omitted)
        """
        self._catalog = catalog
        self._store = store
        self._config = config or MigrationConfig()
        self._fetcher = fetcher or ContentFetcher(timeout=self._config.fetch_timeout)
        self._artifacts = artifacts or ArtifactWriter(self._config.log_dir)
        self._events = EventEmitter()
        self._stack: Optional[AsyncExitStack] = None
        self._artifact_paths: Dict[str, Path] = {}

    @property
    def artifact_paths(self) -> Dict[str, Path]:
        """Artifacts written by the last run, keyed "skipped" / "failed"."""
        return dict(self._artifact_paths)

    async def __aenter__(self):
        async with AsyncExitStack() as stack:
            await enter_collaborators(stack, self._catalog, self._store, self._fetcher)
            self._stack = stack.pop_all()
        return self

    async def __aexit__(self, *args):
        if self._stack is not None:
            await self._stack.__aexit__(*args)
            self._stack = None

    # Event subscription methods
    def on_batch_start(self, callback: Callable[[int, int], None]):
        """Called before a batch runs. Receives (batch_number, batch_size)."""
        self._events.on("batch_start", callback)

    def on_asset_complete(self, callback: Callable[[TransferOutcome], None]):
        """Called when one asset resolves. Receives TransferOutcome."""
        self._events.on("asset_complete", callback)

    def on_batch_complete(self, callback: Callable[[BatchProgress], None]):
        """Called after each batch. Receives BatchProgress."""
        self._events.on("batch_complete", callback)

    def on_catalog_error(self, callback: Callable[[Exception], None]):
        """Called when enumeration fails. Receives the exception."""
        self._events.on("catalog_error", callback)

    def on_finish(self, callback: Callable[[RunSummary], None]):
        """Called once the run summary is final. Receives RunSummary."""
        self._events.on("finish", callback)

    async def migrate(
        self,
        filters: Optional[EnumerationFilters] = None,
        policy: Optional[TransferPolicy] = None,
    ) -> RunSummary:
        """
        Run a migration until the catalog is exhausted or unavailable.

        Per-asset failures never stop the run; a catalog failure ends
        pagination and the summary covers what was processed so far.
        """
        filters = filters or EnumerationFilters()
        policy = policy or TransferPolicy()
        summary = RunSummary()

        logger.info(
            "Starting migration: resource_type=%s delivery_type=%s batch_size=%d "
            "concurrency=%d skip_existing=%s force_overwrite=%s",
            filters.resource_type, filters.delivery_type, self._config.effective_page_size,
            self._config.concurrency, policy.skip_existing, policy.force_overwrite,
        )

        enumerator = build_enumerator(self._catalog, filters, page_size=self._config.effective_page_size)
        worker = TransferWorker(self._store, self._fetcher, self._config.key_namespace)
        scheduler = BatchScheduler(self._config.concurrency)

        async def transfer_one(asset: AssetDescriptor) -> TransferOutcome:
            outcome = await worker.transfer(asset, policy)
            await self._events.emit("asset_complete", outcome)
            return outcome

        aborted = False
        reason = None
        try:
            async for batch in enumerator.batches():
                await self._events.emit("batch_start", summary.batches + 1, len(batch))
                outcomes = await scheduler.run(batch, transfer_one)
                summary = summary.with_batch(outcomes)

                logger.info(
                    "Progress: %d migrated, %d skipped, %d failed, %d total processed",
                    summary.migrated, summary.skipped, summary.failed, summary.total,
                )
                await self._events.emit("batch_complete", BatchProgress(
                    batch=summary.batches,
                    batch_size=len(batch),
                    total=summary.total,
                    migrated=summary.migrated,
                    skipped=summary.skipped,
                    failed=summary.failed,
                ))
        except CatalogUnavailable as e:
            aborted = True
            reason = str(e)
            logger.error("Error fetching resources from catalog, stopping run: %s", e)
            await self._events.emit("catalog_error", e)

        summary = summary.finish(aborted=aborted, reason=reason)
        self._artifact_paths = self._artifacts.write_run_summary(summary)
        await self._events.emit("finish", summary)
        return summary
