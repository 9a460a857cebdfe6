"""Environment configuration for the migrator."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigError
from .models import DEFAULT_KEY_NAMESPACE, MAX_PAGE_SIZE, MigrationConfig


DEFAULT_CATALOG_API_URL = "https://api.cloudinary.com"

REQUIRED_ENV_VARS = (
    "CLOUDINARY_CLOUD_NAME",
    "CLOUDINARY_API_KEY",
    "CLOUDINARY_API_SECRET",
    "AWS_REGION",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_S3_BUCKET_NAME",
)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def load_env_file(path: Path, override: bool = False) -> None:
    """Load KEY=VALUE lines into os.environ. Existing values win unless override."""
    if not path.exists():
        raise ConfigError(f"env file not found: {path}")
    if not path.is_file():
        raise ConfigError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class MigrationSettings:
    """Credentials and defaults read from the environment."""
    cloud_name: str
    api_key: str
    api_secret: str
    aws_region: str
    aws_access_key_id: str
    aws_secret_access_key: str
    bucket_name: str
    s3_endpoint_url: Optional[str] = None
    catalog_api_url: str = DEFAULT_CATALOG_API_URL
    page_size: int = 100
    concurrency: int = 10
    resource_type: str = "image"
    delivery_type: str = "upload"
    key_namespace: str = DEFAULT_KEY_NAMESPACE
    log_dir: Optional[str] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "MigrationSettings":
        """
        Build settings from environment variables.

        Raises:
            ConfigError: listing every missing required variable.
        """
        env = os.environ if env is None else env
        missing = [name for name in REQUIRED_ENV_VARS if not env.get(name)]
        if missing:
            raise ConfigError(
                "missing required environment variables: " + ", ".join(missing),
                missing=missing,
            )

        page_size = _int_setting(env, "MAX_RESULTS_PER_BATCH", 100)
        concurrency = _int_setting(env, "MIGRATION_CONCURRENCY", 10)
        if page_size < 1 or concurrency < 1:
            raise ConfigError("MAX_RESULTS_PER_BATCH and MIGRATION_CONCURRENCY must be positive")

        return cls(
            cloud_name=env["CLOUDINARY_CLOUD_NAME"],
            api_key=env["CLOUDINARY_API_KEY"],
            api_secret=env["CLOUDINARY_API_SECRET"],
            aws_region=env["AWS_REGION"],
            aws_access_key_id=env["AWS_ACCESS_KEY_ID"],
            aws_secret_access_key=env["AWS_SECRET_ACCESS_KEY"],
            bucket_name=env["AWS_S3_BUCKET_NAME"],
            s3_endpoint_url=env.get("AWS_S3_ENDPOINT_URL") or None,
            catalog_api_url=env.get("CLOUDINARY_API_BASE_URL") or DEFAULT_CATALOG_API_URL,
            page_size=min(page_size, MAX_PAGE_SIZE),
            concurrency=concurrency,
            resource_type=env.get("RESOURCE_TYPE") or "image",
            delivery_type=env.get("DELIVERY_TYPE") or "upload",
            key_namespace=env.get("TARGET_KEY_PREFIX", DEFAULT_KEY_NAMESPACE),
            log_dir=env.get("MIGRATOR_LOG_DIR") or None,
        )

    def engine_config(
        self,
        page_size: Optional[int] = None,
        concurrency: Optional[int] = None,
        log_dir: Optional[str] = None,
    ) -> MigrationConfig:
        """Engine config with CLI overrides applied on top of the environment."""
        return MigrationConfig(
            page_size=page_size or self.page_size,
            concurrency=concurrency or self.concurrency,
            key_namespace=self.key_namespace,
            log_dir=log_dir or self.log_dir,
        )
