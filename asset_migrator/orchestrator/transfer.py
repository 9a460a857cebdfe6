"""Per-asset transfer pipeline."""
import logging

from ..errors import MigratorError
from ..models import AssetDescriptor, TransferOutcome, TransferPolicy, target_key, DEFAULT_KEY_NAMESPACE
from ..protocols import IObjectStore
from ..services.fetcher import ContentFetcher
from ..services.metadata_mapper import ObjectMetadataMapper, content_type_for

logger = logging.getLogger(__name__)


class TransferWorker:
    """
    Transfers one asset: existence check, fetch, persist, cleanup.

    Produces exactly one TransferOutcome per call and never raises for
    per-asset failures; retrying is left to a later run.
    """

    def __init__(
        self,
        store: IObjectStore,
        fetcher: ContentFetcher,
        key_namespace: str = DEFAULT_KEY_NAMESPACE,
    ):
        self._store = store
        self._fetcher = fetcher
        self._namespace = key_namespace

    async def transfer(self, asset: AssetDescriptor, policy: TransferPolicy) -> TransferOutcome:
        key = target_key(asset, self._namespace)

        if policy.checks_existence and await self._store.exists(key):
            logger.info("Skipping existing: %s", asset.filename)
            return TransferOutcome.skipped(asset, key, "already_exists")

        logger.debug("Migrating: %s -> %s", asset.filename, key)
        try:
            async with self._fetcher.staged(asset) as staged_path:
                await self._store.put_file(
                    key,
                    staged_path,
                    metadata=ObjectMetadataMapper.build(asset),
                    content_type=content_type_for(asset.format),
                )
        except MigratorError as e:
            logger.error("Failed to migrate %s: %s", asset.public_id, e)
            return TransferOutcome.failed(asset, key, str(e))
        except Exception as e:
            error_msg = str(e) or type(e).__name__
            logger.error("Failed to migrate %s: %s", asset.public_id, error_msg)
            return TransferOutcome.failed(asset, key, error_msg)

        logger.info("Migrated: %s", asset.filename)
        return TransferOutcome.migrated(asset, key)
