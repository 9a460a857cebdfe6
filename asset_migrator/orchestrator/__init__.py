"""Orchestrator package - coordinates migration and verification runs."""
from .core import MigrationOrchestrator, build_clients
from .enumerator import CursorEnumerator, IdListEnumerator, build_enumerator
from .models import RunSummary, VerificationRecord, VerificationReport, VerificationStatus
from .parallel import BatchScheduler
from .transfer import TransferWorker
from .verify import MigrationVerifier

__all__ = [
    "MigrationOrchestrator",
    "MigrationVerifier",
    "build_clients",
    "CursorEnumerator",
    "IdListEnumerator",
    "build_enumerator",
    "BatchScheduler",
    "TransferWorker",
    "RunSummary",
    "VerificationRecord",
    "VerificationReport",
    "VerificationStatus",
]
