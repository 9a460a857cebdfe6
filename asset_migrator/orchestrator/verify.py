"""Verification pass - compares the source catalog with the destination."""
import logging
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Callable, Optional

from ..errors import CatalogUnavailable, ExistenceCheckAmbiguous
from ..models import AssetDescriptor, EnumerationFilters, MigrationConfig, target_key
from ..protocols import ICatalogClient, IObjectStore
from ..services.artifacts import ArtifactWriter
from ..services.catalog import VERIFICATION_FIELDS
from ..utils.events import EventEmitter

from .core import enter_collaborators
from .enumerator import CursorEnumerator
from .models import VerificationRecord, VerificationReport
from .parallel import BatchScheduler

logger = logging.getLogger(__name__)


class MigrationVerifier:
    """
    Re-enumerates the source and checks every asset at the destination.

    Read-only with respect to both sides, and independent of how many
    migration runs populated the destination.
    """

    def __init__(
        self,
        catalog: ICatalogClient,
        store: IObjectStore,
        config: Optional[MigrationConfig] = None,
        artifacts: Optional[ArtifactWriter] = None,
    ):
        self._catalog = catalog
        self._store = store
        self._config = config or MigrationConfig()
        self._artifacts = artifacts or ArtifactWriter(self._config.log_dir)
        self._events = EventEmitter()
        self._stack: Optional[AsyncExitStack] = None
        self._report_path: Optional[Path] = None

    @property
    def report_path(self) -> Optional[Path]:
        """Report file written by the last verification, if any."""
        return self._report_path

    async def __aenter__(self):
        async with AsyncExitStack() as stack:
            await enter_collaborators(stack, self._catalog, self._store)
            self._stack = stack.pop_all()
        return self

    async def __aexit__(self, *args):
        if self._stack is not None:
            await self._stack.__aexit__(*args)
            self._stack = None

    def on_record(self, callback: Callable[[VerificationRecord], None]):
        """Called for every per-asset record. Receives VerificationRecord."""
        self._events.on("record", callback)

    def on_batch_complete(self, callback: Callable[[int, int], None]):
        """Called after each batch. Receives (records_so_far, batch_size)."""
        self._events.on("batch_complete", callback)

    async def verify_asset(self, asset: AssetDescriptor) -> VerificationRecord:
        key = target_key(asset, self._config.key_namespace)
        try:
            info = await self._store.head(key)
        except ExistenceCheckAmbiguous as e:
            logger.error("Error checking %s: %s", asset.public_id, e.cause)
            record = VerificationRecord.probe_error(asset, key, str(e.cause))
        else:
            if info is None:
                logger.info("Missing: %s", asset.filename)
                record = VerificationRecord.missing(asset, key)
            elif asset.bytes and info.size != asset.bytes:
                logger.warning(
                    "Size mismatch: %s (source: %s, destination: %s)",
                    asset.public_id, asset.bytes, info.size,
                )
                record = VerificationRecord.size_mismatch(asset, key, asset.bytes, info.size)
            else:
                record = VerificationRecord.verified(asset, key, info.size)

        await self._events.emit("record", record)
        return record

    async def verify(
        self,
        filters: Optional[EnumerationFilters] = None,
        sample_size: Optional[int] = None,
    ) -> VerificationReport:
        """
        Verify the destination against the catalog.

        Args:
            filters: Resource and delivery type to verify
            sample_size: Stop after this many assets (all when None)

        Returns:
            VerificationReport; persisted only when it has discrepancies
        """
        filters = filters or EnumerationFilters()
        enumerator = CursorEnumerator(
            self._catalog,
            filters,
            page_size=self._config.effective_page_size,
            fields=VERIFICATION_FIELDS,
            limit=sample_size,
        )
        scheduler = BatchScheduler(self._config.concurrency)

        logger.info(
            "Verifying migration: resource_type=%s delivery_type=%s sample_size=%s",
            filters.resource_type, filters.delivery_type, sample_size or "all",
        )

        records = []
        aborted = False
        reason = None
        try:
            async for batch in enumerator.batches():
                logger.info("Verifying %d resources...", len(batch))
                records.extend(await scheduler.run(batch, self.verify_asset))
                report = VerificationReport(tuple(records))
                logger.info(
                    "Progress: %d verified, %d missing, %d total checked",
                    report.verified, len(report.missing_assets), report.total_checked,
                )
                await self._events.emit("batch_complete", len(records), len(batch))
        except CatalogUnavailable as e:
            aborted = True
            reason = str(e)
            logger.error("Error fetching resources from catalog, stopping verification: %s", e)

        report = VerificationReport(tuple(records), aborted=aborted, abort_reason=reason)
        self._report_path = self._artifacts.write_verification_report(report)
        return report
