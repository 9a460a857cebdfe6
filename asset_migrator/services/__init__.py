"""Services for asset_migrator."""
from .artifacts import ArtifactWriter, load_public_ids
from .catalog import CloudinaryCatalogClient
from .fetcher import ContentFetcher
from .metadata_mapper import ObjectMetadataMapper, content_type_for
from .storage import ObjectInfo, ObjectStoreService

__all__ = [
    "ArtifactWriter",
    "load_public_ids",
    "CloudinaryCatalogClient",
    "ContentFetcher",
    "ObjectMetadataMapper",
    "content_type_for",
    "ObjectInfo",
    "ObjectStoreService",
]
