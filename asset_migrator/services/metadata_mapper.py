"""Object metadata mapping for destination writes."""
from __future__ import annotations

from typing import Dict, Mapping
from urllib.parse import quote, unquote

from ..models import AssetDescriptor


CONTEXT_PREFIX = "context-"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
# S3 user metadata travels as HTTP headers and must be printable ASCII;
# "%" and "," are escaped so values decode exactly and tag lists split cleanly
METADATA_SAFE_CHARS = "".join(chr(c) for c in range(0x20, 0x7F) if chr(c) not in "%,")

CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "pdf": "application/pdf",
}


def content_type_for(fmt: str) -> str:
    """MIME type for an asset format; unknown formats are generic binary."""
    return CONTENT_TYPES.get((fmt or "").lower(), DEFAULT_CONTENT_TYPE)


class ObjectMetadataMapper:
    """Converts asset descriptors to destination object metadata."""

    @staticmethod
    def encode_value(value) -> str:
        """Percent-encode a metadata value; printable ASCII without "%" or "," is unchanged."""
        return quote(str(value), safe=METADATA_SAFE_CHARS)

    @staticmethod
    def decode_value(value: str) -> str:
        return unquote(value)

    @classmethod
    def context_to_metadata(cls, context: Mapping[str, str]) -> Dict[str, str]:
        """Prefix each context key so it cannot collide with fixed metadata keys."""
        return {
            f"{CONTEXT_PREFIX}{cls.encode_value(key)}": cls.encode_value(value)
            for key, value in context.items()
        }

    @classmethod
    def context_from_metadata(cls, metadata: Mapping[str, str]) -> Dict[str, str]:
        """Recover the context mapping from prefixed metadata entries."""
        return {
            cls.decode_value(key[len(CONTEXT_PREFIX):]): cls.decode_value(value)
            for key, value in metadata.items()
            if key.startswith(CONTEXT_PREFIX)
        }

    @classmethod
    def build(cls, asset: AssetDescriptor) -> Dict[str, str]:
        """Metadata map attached to the migrated object."""
        metadata = {
            "original-public-id": cls.encode_value(asset.public_id),
            "resource-type": asset.resource_type,
        }
        if asset.created_at:
            metadata["cloudinary-created-at"] = str(asset.created_at)
        if asset.bytes:
            metadata["original-size"] = str(asset.bytes)
        if asset.width:
            metadata["width"] = str(asset.width)
        if asset.height:
            metadata["height"] = str(asset.height)
        if asset.tags:
            metadata["tags"] = ",".join(cls.encode_value(tag) for tag in sorted(asset.tags))

        metadata.update(cls.context_to_metadata(asset.context))
        return metadata
