"""Source enumeration strategies."""
import logging
from typing import AsyncIterator, List, Optional, Sequence, Tuple

from ..models import AssetDescriptor, EnumerationFilters, MAX_IDS_PER_LOOKUP
from ..protocols import ICatalogClient
from ..services.catalog import MIGRATION_FIELDS, clamp_page_size

logger = logging.getLogger(__name__)


def chunked(items: Sequence[str], size: int) -> List[List[str]]:
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class CursorEnumerator:
    """
    Cursor-paginated scan of the catalog (full or filtered).

    ``batches()`` is a lazy, finite, non-restartable sequence of pages in
    cursor order. Stop iterating to cancel.
    """

    def __init__(
        self,
        catalog: ICatalogClient,
        filters: EnumerationFilters,
        page_size: int = 100,
        fields: Optional[str] = MIGRATION_FIELDS,
        limit: Optional[int] = None,
    ):
        self._catalog = catalog
        self._filters = filters
        self._page_size = clamp_page_size(page_size)
        self._fields = fields
        self._limit = limit
        self._consumed = False

    async def next_batch(
        self,
        cursor: Optional[str],
        page_size: Optional[int] = None,
    ) -> Tuple[List[AssetDescriptor], Optional[str]]:
        """Fetch one page. Raises CatalogUnavailable on upstream errors."""
        logger.info("Fetching resources from catalog (cursor: %s)...", cursor or "start")
        return await self._catalog.list_resources(
            self._filters,
            page_size or self._page_size,
            cursor=cursor,
            fields=self._fields,
        )

    async def batches(self) -> AsyncIterator[List[AssetDescriptor]]:
        if self._consumed:
            raise RuntimeError("enumerator already consumed")
        self._consumed = True

        cursor: Optional[str] = None
        produced = 0
        while True:
            page_size = self._page_size
            if self._limit is not None:
                remaining = self._limit - produced
                if remaining <= 0:
                    return
                page_size = min(page_size, remaining)

            assets, cursor = await self.next_batch(cursor, page_size)
            if self._limit is not None:
                assets = assets[: self._limit - produced]
            produced += len(assets)
            logger.info("Found %d resources in this batch", len(assets))
            yield assets

            if not cursor:
                return


class IdListEnumerator:
    """Direct lookups for an explicit identifier list, 100 ids per call."""

    def __init__(
        self,
        catalog: ICatalogClient,
        filters: EnumerationFilters,
        fields: Optional[str] = MIGRATION_FIELDS,
        chunk_size: int = MAX_IDS_PER_LOOKUP,
    ):
        self._catalog = catalog
        self._filters = filters
        self._fields = fields
        self._chunk_size = min(chunk_size, MAX_IDS_PER_LOOKUP)
        self._public_ids = list(dict.fromkeys(filters.public_ids))
        self._consumed = False

    @property
    def lookup_count(self) -> int:
        return len(chunked(self._public_ids, self._chunk_size))

    async def batches(self) -> AsyncIterator[List[AssetDescriptor]]:
        if self._consumed:
            raise RuntimeError("enumerator already consumed")
        self._consumed = True

        logger.info("Looking up %d specific assets...", len(self._public_ids))
        for chunk in chunked(self._public_ids, self._chunk_size):
            assets = await self._catalog.resources_by_ids(chunk, self._filters, fields=self._fields)
            found = {a.public_id for a in assets}
            not_found = [pid for pid in chunk if pid not in found]
            if not_found:
                logger.warning("%d requested ids not found in catalog: %s", len(not_found), ", ".join(not_found[:10]))
            logger.info("Found %d resources in batch", len(assets))
            yield assets


def build_enumerator(
    catalog: ICatalogClient,
    filters: EnumerationFilters,
    page_size: int = 100,
    fields: Optional[str] = MIGRATION_FIELDS,
    limit: Optional[int] = None,
):
    """Select the enumeration strategy for the given filters."""
    if filters.by_ids:
        return IdListEnumerator(catalog, filters, fields=fields)
    return CursorEnumerator(catalog, filters, page_size=page_size, fields=fields, limit=limit)
