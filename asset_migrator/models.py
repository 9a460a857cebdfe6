"""
Models for asset_migrator.

Immutable dataclasses describing source assets, transfer policy and
per-asset transfer outcomes.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, Tuple, FrozenSet


DEFAULT_KEY_NAMESPACE = "cloudinary/"
MAX_PAGE_SIZE = 500
MAX_IDS_PER_LOOKUP = 100


def _optional_int(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _flatten_context(context) -> Dict[str, str]:
    """Cloudinary nests user context under "custom"; flatten it."""
    if not context or not isinstance(context, dict):
        return {}
    custom = context.get("custom")
    if isinstance(custom, dict):
        context = custom
    return {str(k): str(v) for k, v in context.items()}


@dataclass(frozen=True)
class AssetDescriptor:
    """Immutable description of one asset in the source catalog."""
    public_id: str
    format: str = ""
    resource_type: str = "image"
    delivery_type: str = "upload"
    bytes: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    created_at: Optional[str] = None
    folder: Optional[str] = None
    tags: FrozenSet[str] = frozenset()
    context: Dict[str, str] = field(default_factory=dict, hash=False, compare=False)
    secure_url: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "AssetDescriptor":
        """Build a descriptor from a catalog API resource payload."""
        return cls(
            public_id=data["public_id"],
            format=data.get("format") or "",
            resource_type=data.get("resource_type") or "image",
            delivery_type=data.get("type") or "upload",
            bytes=_optional_int(data.get("bytes")),
            width=_optional_int(data.get("width")),
            height=_optional_int(data.get("height")),
            created_at=data.get("created_at"),
            folder=data.get("folder") or data.get("asset_folder") or None,
            tags=frozenset(data.get("tags") or ()),
            context=_flatten_context(data.get("context")),
            secure_url=data.get("secure_url"),
            url=data.get("url"),
        )

    @property
    def filename(self) -> str:
        return f"{self.public_id}.{self.format}" if self.format else self.public_id

    @property
    def delivery_url(self) -> Optional[str]:
        return self.secure_url or self.url

    def to_dict(self) -> Dict[str, Any]:
        return {
            "public_id": self.public_id,
            "format": self.format,
            "resource_type": self.resource_type,
            "type": self.delivery_type,
            "bytes": self.bytes,
            "created_at": self.created_at,
            "folder": self.folder,
        }


def target_key(asset: AssetDescriptor, namespace: str = DEFAULT_KEY_NAMESPACE) -> str:
    """
    Destination object key for an asset.

    Depends only on public_id and format, so re-runs and verification
    always address the same object.
    """
    return f"{namespace}{asset.filename}"


@dataclass(frozen=True)
class TransferPolicy:
    """Immutable skip/overwrite policy for a migration run."""
    skip_existing: bool = True
    force_overwrite: bool = False

    @property
    def checks_existence(self) -> bool:
        return self.skip_existing and not self.force_overwrite


class OutcomeStatus(Enum):
    """Transfer outcome status."""
    MIGRATED = "migrated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class TransferOutcome:
    """Immutable result of transferring one asset."""
    asset: AssetDescriptor
    status: OutcomeStatus
    target_key: str
    reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status != OutcomeStatus.FAILED

    @classmethod
    def migrated(cls, asset: AssetDescriptor, key: str):
        return cls(asset=asset, status=OutcomeStatus.MIGRATED, target_key=key)

    @classmethod
    def skipped(cls, asset: AssetDescriptor, key: str, reason: str = "already_exists"):
        return cls(asset=asset, status=OutcomeStatus.SKIPPED, target_key=key, reason=reason)

    @classmethod
    def failed(cls, asset: AssetDescriptor, key: str, error: str):
        return cls(asset=asset, status=OutcomeStatus.FAILED, target_key=key, error=error)

    def to_dict(self) -> Dict[str, Any]:
        data = {"public_id": self.asset.public_id, "s3_key": self.target_key}
        if self.reason:
            data["reason"] = self.reason
        if self.error:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class EnumerationFilters:
    """Immutable catalog selection for a run."""
    resource_type: str = "image"
    delivery_type: str = "upload"
    prefix: Optional[str] = None
    start_at: Optional[str] = None
    public_ids: Tuple[str, ...] = ()
    tags: bool = False
    context: bool = False
    metadata: bool = False

    @property
    def by_ids(self) -> bool:
        return len(self.public_ids) > 0


@dataclass(frozen=True)
class MigrationConfig:
    """Immutable engine tunables."""
    page_size: int = 100
    concurrency: int = 10
    key_namespace: str = DEFAULT_KEY_NAMESPACE
    fetch_timeout: float = 30.0
    log_dir: Optional[str] = None

    def __post_init__(self):
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")

    @property
    def effective_page_size(self) -> int:
        return min(self.page_size, MAX_PAGE_SIZE)
