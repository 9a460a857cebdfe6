"""Orchestrator data models."""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple, Iterable, Dict, Any

from ..models import AssetDescriptor, OutcomeStatus, TransferOutcome


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RunSummary:
    """
    Run-level aggregation of transfer outcomes.

    Built fresh per run and folded batch by batch with ``with_batch``;
    every step returns a new summary.
    """
    total: int = 0
    migrated: int = 0
    skipped: int = 0
    failed: int = 0
    skipped_assets: Tuple[TransferOutcome, ...] = ()
    failed_assets: Tuple[TransferOutcome, ...] = ()
    batches: int = 0
    started_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    aborted: bool = False
    abort_reason: Optional[str] = None

    def with_batch(self, outcomes: Iterable[TransferOutcome]) -> "RunSummary":
        outcomes = list(outcomes)
        migrated = sum(1 for o in outcomes if o.status == OutcomeStatus.MIGRATED)
        skipped = [o for o in outcomes if o.status == OutcomeStatus.SKIPPED]
        failed = [o for o in outcomes if o.status == OutcomeStatus.FAILED]
        return replace(
            self,
            total=self.total + len(outcomes),
            migrated=self.migrated + migrated,
            skipped=self.skipped + len(skipped),
            failed=self.failed + len(failed),
            skipped_assets=self.skipped_assets + tuple(skipped),
            failed_assets=self.failed_assets + tuple(failed),
            batches=self.batches + 1,
        )

    def finish(self, aborted: bool = False, reason: Optional[str] = None) -> "RunSummary":
        return replace(self, finished_at=utcnow(), aborted=aborted, abort_reason=reason)

    @property
    def is_consistent(self) -> bool:
        return self.migrated + self.skipped + self.failed == self.total

    def counts(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "migrated": self.migrated,
            "skipped": self.skipped,
            "failed": self.failed,
            "aborted": self.aborted,
        }


class VerificationStatus(Enum):
    """Per-asset verification result."""
    VERIFIED = "verified"
    MISSING = "missing"
    SIZE_MISMATCH = "size_mismatch"
    ERROR = "error"


@dataclass(frozen=True)
class VerificationRecord:
    """Comparison of one source asset against the destination."""
    asset: AssetDescriptor
    target_key: str
    status: VerificationStatus
    expected_size: Optional[int] = None
    actual_size: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def verified(cls, asset: AssetDescriptor, key: str, size: Optional[int] = None):
        return cls(asset, key, VerificationStatus.VERIFIED, asset.bytes, size)

    @classmethod
    def missing(cls, asset: AssetDescriptor, key: str):
        return cls(asset, key, VerificationStatus.MISSING, asset.bytes)

    @classmethod
    def size_mismatch(cls, asset: AssetDescriptor, key: str, expected: int, actual: int):
        return cls(asset, key, VerificationStatus.SIZE_MISMATCH, expected, actual)

    @classmethod
    def probe_error(cls, asset: AssetDescriptor, key: str, error: str):
        return cls(asset, key, VerificationStatus.ERROR, asset.bytes, error=error)


@dataclass(frozen=True)
class VerificationReport:
    """Aggregate verification result."""
    records: Tuple[VerificationRecord, ...] = ()
    generated_at: datetime = field(default_factory=utcnow)
    aborted: bool = False
    abort_reason: Optional[str] = None

    def _with_status(self, status: VerificationStatus) -> Tuple[VerificationRecord, ...]:
        return tuple(r for r in self.records if r.status == status)

    @property
    def verified(self) -> int:
        return len(self._with_status(VerificationStatus.VERIFIED))

    @property
    def missing_assets(self) -> Tuple[VerificationRecord, ...]:
        return self._with_status(VerificationStatus.MISSING)

    @property
    def size_mismatches(self) -> Tuple[VerificationRecord, ...]:
        return self._with_status(VerificationStatus.SIZE_MISMATCH)

    @property
    def errors(self) -> Tuple[VerificationRecord, ...]:
        return self._with_status(VerificationStatus.ERROR)

    @property
    def total_checked(self) -> int:
        return len(self.records) - len(self.errors)

    @property
    def success_rate(self) -> float:
        if self.total_checked == 0:
            return 0.0
        return round(self.verified / self.total_checked * 100, 2)

    @property
    def has_discrepancies(self) -> bool:
        return bool(self.missing_assets or self.size_mismatches)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": {
                "total_checked": self.total_checked,
                "verified": self.verified,
                "missing": len(self.missing_assets),
                "size_mismatches": len(self.size_mismatches),
                "errors": len(self.errors),
                "success_rate": self.success_rate,
                "aborted": self.aborted,
            },
            "missing_assets": [
                {
                    "public_id": r.asset.public_id,
                    "format": r.asset.format,
                    "expected_s3_key": r.target_key,
                }
                for r in self.missing_assets
            ],
            "size_mismatches": [
                {
                    "public_id": r.asset.public_id,
                    "cloudinary_size": r.expected_size,
                    "s3_size": r.actual_size,
                    "s3_key": r.target_key,
                }
                for r in self.size_mismatches
            ],
            "errors": [
                {"public_id": r.asset.public_id, "s3_key": r.target_key, "error": r.error}
                for r in self.errors
            ],
            "generated_at": self.generated_at.isoformat(),
        }
