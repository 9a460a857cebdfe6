"""
Protocols (Interfaces) for Dependency Inversion.

The engine depends on these small interfaces; the httpx catalog client and
the aioboto3 object store are the production implementations.
"""
from pathlib import Path
from typing import Optional, Dict, List, Tuple, Protocol, Sequence, runtime_checkable

from .models import AssetDescriptor, EnumerationFilters


@runtime_checkable
class ICatalogClient(Protocol):
    """Interface for the source asset catalog."""

    async def list_resources(
        self,
        filters: EnumerationFilters,
        page_size: int,
        cursor: Optional[str] = None,
        fields: Optional[str] = None,
    ) -> Tuple[List[AssetDescriptor], Optional[str]]:
        """Fetch one page of assets and the cursor for the next page."""
        ...

    async def resources_by_ids(
        self,
        public_ids: Sequence[str],
        filters: EnumerationFilters,
        fields: Optional[str] = None,
    ) -> List[AssetDescriptor]:
        """Look up specific assets by identifier."""
        ...


@runtime_checkable
class IObjectStore(Protocol):
    """Interface for the destination object store."""

    async def head(self, key: str):
        """Return object info or None when the key does not exist."""
        ...

    async def exists(self, key: str) -> bool:
        """Check whether a key exists."""
        ...

    async def put_file(
        self,
        key: str,
        path: Path,
        metadata: Dict[str, str],
        content_type: str,
    ) -> None:
        """Write a local file under key."""
        ...
