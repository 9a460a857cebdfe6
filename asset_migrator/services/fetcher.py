"""Content download into scoped local staging files."""
from __future__ import annotations

import logging
import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import httpx

from ..errors import AssetFetchFailed
from ..models import AssetDescriptor

logger = logging.getLogger(__name__)


class ContentFetcher:
    """
    Downloads asset content over HTTP.

    Usage:
        async with ContentFetcher(timeout=30) as fetcher:
            async with fetcher.staged(asset) as path:
                ...  # path is removed when the block exits
    """

    def __init__(
        self,
        timeout: float = 30.0,
        staging_dir: Optional[Path] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._timeout = timeout
        self._staging_dir = Path(staging_dir) if staging_dir else None
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    @asynccontextmanager
    async def staged(self, asset: AssetDescriptor) -> AsyncIterator[Path]:
        """
        Download an asset to a temporary file and yield its path.

        Raises:
            AssetFetchFailed: missing delivery URL or download error
        """
        if not self._client:
            raise RuntimeError("ContentFetcher not initialized. Use 'async with' context.")

        url = asset.delivery_url
        if not url:
            raise AssetFetchFailed(f"No downloadable URL found for {asset.public_id}")

        suffix = f".{asset.format}" if asset.format else ""
        fd, name = tempfile.mkstemp(prefix="asset-", suffix=suffix, dir=self._staging_dir)
        path = Path(name)
        try:
            with os.fdopen(fd, "wb") as f:
                try:
                    async with self._client.stream("GET", url) as response:
                        response.raise_for_status()
                        async for chunk in response.aiter_bytes():
                            f.write(chunk)
                except httpx.HTTPError as exc:
                    raise AssetFetchFailed(
                        f"download failed for {asset.public_id}: {str(exc) or type(exc).__name__}"
                    ) from exc
            logger.debug("Staged %s at %s", asset.public_id, path)
            yield path
        finally:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
