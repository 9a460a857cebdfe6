"""HTTP adapter for the Cloudinary Admin API (source catalog)."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from ..errors import CatalogUnavailable
from ..models import AssetDescriptor, EnumerationFilters, MAX_IDS_PER_LOOKUP, MAX_PAGE_SIZE

logger = logging.getLogger(__name__)

MIGRATION_FIELDS = (
    "public_id,format,resource_type,type,bytes,width,height,"
    "created_at,folder,tags,context,secure_url,url"
)
VERIFICATION_FIELDS = "public_id,format,bytes,folder"
# Cloudinary answers 420 (and 429) when the Admin API rate limit is hit
RETRY_STATUS_CODES = frozenset({420, 429})


def clamp_page_size(page_size: int) -> int:
    return max(1, min(int(page_size), MAX_PAGE_SIZE))


class CloudinaryCatalogClient:
    """
    Catalog client over the Cloudinary Admin API.

    Implements ICatalogClient protocol.

    Usage:
        async with CloudinaryCatalogClient(cloud, key, secret) as catalog:
            assets, cursor = await catalog.list_resources(filters, 100)
    """

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        base_url: str = "https://api.cloudinary.com",
        timeout: int = 60,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._cloud_name = cloud_name
        self._auth = (api_key, api_secret)
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/v1_1/{self._cloud_name}",
            auth=self._auth,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def list_resources(
        self,
        filters: EnumerationFilters,
        page_size: int,
        cursor: Optional[str] = None,
        fields: Optional[str] = MIGRATION_FIELDS,
    ) -> Tuple[List[AssetDescriptor], Optional[str]]:
        """
        Fetch one page of resources.

        Args:
            filters: Resource/delivery type plus optional prefix and start date
            page_size: Requested page size (clamped to the API maximum)
            cursor: Cursor returned by the previous page, None for the first
            fields: Field selector

        Returns:
            (assets, next_cursor) - next_cursor is None on the last page

        Raises:
            CatalogUnavailable: when the API call fails
        """
        params: List[Tuple[str, Any]] = [("max_results", clamp_page_size(page_size))]
        if fields:
            params.append(("fields", fields))
        if cursor:
            params.append(("next_cursor", cursor))
        if filters.prefix:
            params.append(("prefix", filters.prefix))
        if filters.start_at:
            params.append(("start_at", filters.start_at))
        params.extend(self._include_flags(filters))

        payload = await self._get(self._resources_path(filters), params)
        assets = [AssetDescriptor.from_api(item) for item in payload.get("resources", [])]
        return assets, payload.get("next_cursor") or None

    async def resources_by_ids(
        self,
        public_ids: Sequence[str],
        filters: EnumerationFilters,
        fields: Optional[str] = MIGRATION_FIELDS,
    ) -> List[AssetDescriptor]:
        """Direct lookup of up to 100 public ids."""
        if len(public_ids) > MAX_IDS_PER_LOOKUP:
            raise ValueError(f"at most {MAX_IDS_PER_LOOKUP} ids per lookup, got {len(public_ids)}")
        if not public_ids:
            return []

        params: List[Tuple[str, Any]] = [("public_ids[]", pid) for pid in public_ids]
        params.append(("max_results", len(public_ids)))
        if fields:
            params.append(("fields", fields))
        params.extend(self._include_flags(filters))

        payload = await self._get(self._resources_path(filters), params)
        return [AssetDescriptor.from_api(item) for item in payload.get("resources", [])]

    @staticmethod
    def _resources_path(filters: EnumerationFilters) -> str:
        return f"/resources/{filters.resource_type}/{filters.delivery_type}"

    @staticmethod
    def _include_flags(filters: EnumerationFilters) -> List[Tuple[str, str]]:
        flags = []
        if filters.tags:
            flags.append(("tags", "true"))
        if filters.context:
            flags.append(("context", "true"))
        if filters.metadata:
            flags.append(("metadata", "true"))
        return flags

    async def _get(self, path: str, params: List[Tuple[str, Any]]) -> Dict[str, Any]:
        if not self._client:
            raise RuntimeError("CloudinaryCatalogClient not initialized. Use 'async with' context.")

        last_exception: Optional[Exception] = None

        for attempt in range(self._max_retries):
            try:
                response = await self._client.get(path, params=params)

                retryable = response.status_code >= 500 or response.status_code in RETRY_STATUS_CODES
                if retryable and attempt < self._max_retries - 1:
                    logger.debug(
                        "Catalog returned %s on %s, retrying (%d/%d)",
                        response.status_code, path, attempt + 1, self._max_retries,
                    )
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue

                if response.status_code >= 400:
                    raise CatalogUnavailable(
                        f"catalog error {response.status_code} on GET {path}: "
                        f"{self._error_detail(response)}"
                    )

                return response.json()
            except (httpx.RequestError, httpx.TimeoutException) as exc:
                last_exception = exc
                if attempt < self._max_retries - 1:
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue
            except ValueError as exc:
                raise CatalogUnavailable(f"invalid catalog response on GET {path}: {exc}") from exc

        raise CatalogUnavailable(
            f"catalog unreachable on GET {path} after {self._max_retries} attempts: {last_exception}"
        ) from last_exception

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            return body["error"].get("message", str(body))
        return str(body)
