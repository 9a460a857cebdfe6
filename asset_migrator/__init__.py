"""
asset_migrator - copy media assets from Cloudinary to S3.

Follows the same layering throughout:
- Services wrap one external system each (catalog, object store, downloads)
- Orchestrator composes them (enumerate -> schedule -> transfer)
- Models are immutable dataclasses

Usage:
    from asset_migrator import MigrationOrchestrator, TransferPolicy, EnumerationFilters
    from asset_migrator.config import MigrationSettings
    from asset_migrator.orchestrator import build_clients

    settings = MigrationSettings.from_env()
    catalog, store = build_clients(settings)

    # Migrate everything not yet in the bucket
    async with MigrationOrchestrator(catalog, store, settings.engine_config()) as migrator:
        summary = await migrator.migrate(EnumerationFilters(), TransferPolicy())

    # Retry only the assets that failed last time
    ids = load_public_ids("failed-assets.json")
    summary = await migrator.migrate(EnumerationFilters(public_ids=tuple(ids)))

    # Verify the bucket against the catalog
    async with MigrationVerifier(catalog, store) as verifier:
        report = await verifier.verify(EnumerationFilters(resource_type="video"))
"""
from .errors import (
    AssetFetchFailed,
    CatalogUnavailable,
    ConfigError,
    ExistenceCheckAmbiguous,
    MigratorError,
    StoreWriteFailed,
)
from .models import (
    AssetDescriptor,
    EnumerationFilters,
    MigrationConfig,
    OutcomeStatus,
    TransferOutcome,
    TransferPolicy,
    target_key,
)
from .orchestrator import (
    MigrationOrchestrator,
    MigrationVerifier,
    RunSummary,
    VerificationReport,
)
from .services import load_public_ids

__version__ = "0.3.0"
__all__ = [
    # Main
    "MigrationOrchestrator",
    "MigrationVerifier",
    # Models
    "AssetDescriptor",
    "EnumerationFilters",
    "MigrationConfig",
    "OutcomeStatus",
    "TransferOutcome",
    "TransferPolicy",
    "RunSummary",
    "VerificationReport",
    "target_key",
    "load_public_ids",
    # Errors
    "MigratorError",
    "ConfigError",
    "CatalogUnavailable",
    "AssetFetchFailed",
    "StoreWriteFailed",
    "ExistenceCheckAmbiguous",
]
