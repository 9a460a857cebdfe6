"""
Storage Service - Single Responsibility: read and write the destination bucket.

Wraps an aioboto3 S3 client with the existence probe and object writes the
migration engine needs.
"""
import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Any

import aioboto3
from botocore.exceptions import ClientError

from ..errors import ExistenceCheckAmbiguous, StoreWriteFailed

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass(frozen=True)
class ObjectInfo:
    """Metadata returned by a destination probe."""
    size: int
    content_type: Optional[str] = None


def is_not_found(error: ClientError) -> bool:
    response = getattr(error, "response", None) or {}
    code = str(response.get("Error", {}).get("Code", ""))
    status = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in NOT_FOUND_CODES or status == 404


class ObjectStoreService:
    """
    Service for the destination object store (S3).

    Usage:
        async with ObjectStoreService("my-bucket", region_name="us-east-1") as store:
            if not await store.exists(key):
                await store.put_file(key, path, metadata, "image/png")
    """

    def __init__(
        self,
        bucket_name: str,
        region_name: str = "us-east-1",
        client: Any = None,
        **s3_kwargs,
    ):
        """
        Initialize storage service.

        Args:
            bucket_name: Destination bucket
            region_name: AWS region
            client: Pre-built async S3 client (tests, shared sessions)
            **s3_kwargs: Extra client kwargs (credentials, endpoint_url)
        """
        self.bucket_name = bucket_name
        self.region_name = region_name
        self.s3_kwargs = s3_kwargs
        self._s3_client = client
        self._owns_client = client is None
        self._session = None
        self._lock = asyncio.Lock()

    async def __aenter__(self):
        await self._get_s3_client()
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def _get_s3_client(self):
        """Get S3 client, creating if necessary."""
        async with self._lock:
            if self._s3_client is None:
                try:
                    self._session = aioboto3.Session()
                    self._s3_client = await self._session.client(
                        "s3", region_name=self.region_name, **self.s3_kwargs
                    ).__aenter__()
                except Exception as e:
                    msg = f"Failed to create S3 client: {e}"
                    raise ConnectionError(msg) from e
        return self._s3_client

    async def close(self) -> None:
        if self._s3_client is not None and self._owns_client:
            await self._s3_client.__aexit__(None, None, None)
            self._s3_client = None

    async def head(self, key: str) -> Optional[ObjectInfo]:
        """
        Metadata-only probe of a key.

        Returns:
            ObjectInfo when the object exists, None when it does not

        Raises:
            ExistenceCheckAmbiguous: for any failure other than not-found
        """
        s3 = await self._get_s3_client()
        try:
            response = await s3.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if is_not_found(e):
                return None
            raise ExistenceCheckAmbiguous(key, e) from e
        except Exception as e:
            raise ExistenceCheckAmbiguous(key, e) from e

        return ObjectInfo(
            size=int(response.get("ContentLength", 0)),
            content_type=response.get("ContentType"),
        )

    async def exists(self, key: str) -> bool:
        """
        Check if a key exists in the bucket.

        Ambiguous probes resolve to False, so the asset is transferred.
        """
        try:
            return await self.head(key) is not None
        except ExistenceCheckAmbiguous as e:
            logger.warning("Could not check if %s exists, assuming absent: %s", key, e.cause)
            return False

    async def put_file(
        self,
        key: str,
        path: Path,
        metadata: Dict[str, str],
        content_type: str,
    ) -> None:
        """
        Upload a local file under key.

        Uses the managed transfer, which streams from disk and switches to
        multipart for large objects.

        Raises:
            StoreWriteFailed: when the write is rejected
        """
        s3 = await self._get_s3_client()
        try:
            await s3.upload_file(
                str(path),
                self.bucket_name,
                key,
                ExtraArgs={"Metadata": metadata, "ContentType": content_type},
            )
        except Exception as e:
            raise StoreWriteFailed(f"failed to write {key}: {e}") from e
