"""Configuration management for skyplanner-backup."""

import json
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .exceptions import ConfigurationError
from .tables import CRITICAL_TABLES, EXCLUDED_TABLES, SANITIZE_RULES

MIN_PASSPHRASE_LENGTH = 32


def _parse_sanitize_rules(raw: Optional[str]) -> Dict[str, List[str]]:
    """Parse BACKUP_SANITIZE_RULES (JSON object of table -> [field])."""
    if not raw:
        return {table: list(fields) for table, fields in SANITIZE_RULES.items()}
    try:
        rules = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"BACKUP_SANITIZE_RULES is not valid JSON: {e}")
    if not isinstance(rules, dict) or not all(
        isinstance(fields, list) and all(isinstance(f, str) for f in fields)
        for fields in rules.values()
    ):
        raise ConfigurationError("BACKUP_SANITIZE_RULES must map table names to lists of field names")
    return rules


@dataclass(frozen=True)
class SourceStoreConfig:
    """Relational store (REST endpoint) configuration."""
    url: Optional[str] = None
    service_key: Optional[str] = field(default=None, repr=False)
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> 'SourceStoreConfig':
        """Create config from environment variables."""
        return cls(
            url=os.getenv("SUPABASE_URL"),
            service_key=os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
            timeout=float(os.getenv("SOURCE_STORE_TIMEOUT", "30.0")),
        )

    def __post_init__(self):
        """Validate configuration."""
        if not self.url or not self.service_key:
            raise ConfigurationError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY/SUPABASE_SERVICE_ROLE_KEY must be set"
            )
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")


@dataclass(frozen=True)
class ObjectStoreConfig:
    """S3-compatible object store configuration."""
    bucket: str = "backups"
    endpoint_url: Optional[str] = None
    region: str = "us-east-1"
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_env(cls) -> 'ObjectStoreConfig':
        """Create config from environment variables."""
        return cls(
            bucket=os.getenv("BACKUP_BUCKET", "backups"),
            endpoint_url=os.getenv("BACKUP_S3_ENDPOINT_URL") or None,
            region=os.getenv("BACKUP_S3_REGION", os.getenv("AWS_REGION", "us-east-1")),
            access_key_id=os.getenv("BACKUP_S3_ACCESS_KEY_ID") or os.getenv("AWS_ACCESS_KEY_ID"),
            secret_access_key=os.getenv("BACKUP_S3_SECRET_ACCESS_KEY") or os.getenv("AWS_SECRET_ACCESS_KEY"),
        )

    def __post_init__(self):
        """Validate configuration."""
        if not self.bucket:
            raise ConfigurationError("BACKUP_BUCKET must not be empty")
        if not self.access_key_id or not self.secret_access_key:
            raise ConfigurationError(
                "BACKUP_S3_ACCESS_KEY_ID and BACKUP_S3_SECRET_ACCESS_KEY must be set"
            )


@dataclass(frozen=True)
class PipelineConfig:
    """Extraction, retention and restore tuning."""
    page_size: int = 1000
    max_retries: int = 3
    retry_delay: float = 5.0  # seconds, multiplied by the attempt number
    max_backups: int = 90  # ~30 days at three runs per day
    restore_batch_size: int = 500
    tenant_column: str = "organization_id"
    order_column: str = "id"
    sanitize_rules: Dict[str, List[str]] = field(
        default_factory=lambda: {table: list(fields) for table, fields in SANITIZE_RULES.items()}
    )
    critical_tables: Tuple[str, ...] = CRITICAL_TABLES
    excluded_tables: frozenset = EXCLUDED_TABLES

    @classmethod
    def from_env(cls) -> 'PipelineConfig':
        """Create config from environment variables."""
        return cls(
            page_size=int(os.getenv("BACKUP_PAGE_SIZE", "1000")),
            max_retries=int(os.getenv("BACKUP_MAX_RETRIES", "3")),
            retry_delay=float(os.getenv("BACKUP_RETRY_DELAY", "5.0")),
            max_backups=int(os.getenv("BACKUP_MAX_COUNT", "90")),
            restore_batch_size=int(os.getenv("RESTORE_BATCH_SIZE", "500")),
            tenant_column=os.getenv("BACKUP_TENANT_COLUMN", "organization_id"),
            sanitize_rules=_parse_sanitize_rules(os.getenv("BACKUP_SANITIZE_RULES")),
        )

    def __post_init__(self):
        """Validate configuration."""
        if self.page_size <= 0:
            raise ConfigurationError(f"page_size must be positive, got {self.page_size}")
        if self.max_retries <= 0:
            raise ConfigurationError(f"max_retries must be positive, got {self.max_retries}")
        if self.retry_delay < 0:
            raise ConfigurationError(f"retry_delay must be non-negative, got {self.retry_delay}")
        if self.max_backups <= 0:
            raise ConfigurationError(f"max_backups must be positive, got {self.max_backups}")
        if self.restore_batch_size <= 0:
            raise ConfigurationError(f"restore_batch_size must be positive, got {self.restore_batch_size}")


@dataclass(frozen=True)
class BackupSettings:
    """Complete configuration for one backup or restore run."""
    source: SourceStoreConfig
    object_store: ObjectStoreConfig
    encryption_key: str = field(repr=False)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    @classmethod
    def from_env(cls) -> 'BackupSettings':
        """Create settings from environment variables.

        Raises:
            ConfigurationError: If a credential or the passphrase is missing or invalid
        """
        return cls(
            source=SourceStoreConfig.from_env(),
            object_store=ObjectStoreConfig.from_env(),
            encryption_key=os.getenv("BACKUP_ENCRYPTION_KEY", ""),
            pipeline=PipelineConfig.from_env(),
        )

    def __post_init__(self):
        """Validate configuration."""
        if not self.encryption_key or len(self.encryption_key) < MIN_PASSPHRASE_LENGTH:
            raise ConfigurationError(
                f"BACKUP_ENCRYPTION_KEY must be set (min {MIN_PASSPHRASE_LENGTH} characters)"
            )
