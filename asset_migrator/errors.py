"""Exception hierarchy for the migration engine."""


class MigratorError(RuntimeError):
    """Base class for migration errors."""


class ConfigError(MigratorError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, message: str, missing=None):
        super().__init__(message)
        self.missing = list(missing or [])


class CatalogUnavailable(MigratorError):
    """Raised when the source catalog cannot be enumerated. Fatal to a run."""


class AssetFetchFailed(MigratorError):
    """Raised when an asset has no delivery URL or its download fails."""


class StoreWriteFailed(MigratorError):
    """Raised when the destination store rejects a write."""


class ExistenceCheckAmbiguous(MigratorError):
    """Raised when a destination probe fails for a reason other than not-found."""

    def __init__(self, key: str, cause: Exception):
        super().__init__(f"could not check {key}: {cause}")
        self.key = key
        self.cause = cause
