import hashlib
import logging
import os
import re
import sys
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger("skyplanner-backup")

BACKUP_PREFIX = "backup-"
ENCRYPTED_SUFFIX = ".enc"
LEGACY_SUFFIX = ".json"

_BACKUP_NAME_RE = re.compile(r"^backup-(\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2})(?:-\d+Z?)?\.enc$")


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach an app-managed stdout handler to the package logger."""
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers.clear()

    if os.getenv("DISABLE_APP_LOGGING", "false").lower() == "true":
        logger.propagate = True
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - [%(name)s] - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(handler)
    return logger


def compute_sha256(data: bytes) -> str:
    """Hex SHA-256 digest of a byte string."""
    return hashlib.sha256(data).hexdigest()


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2026-02-11T06:00:00.123Z."""
    moment = (moment or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def generate_backup_name(moment: Optional[datetime] = None) -> str:
    """Blob name for a new encrypted backup.

    Returns:
        Name in format: backup-YYYY-MM-DDTHH-MM-SS.enc
    """
    moment = (moment or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return f"{BACKUP_PREFIX}{moment.strftime('%Y-%m-%dT%H-%M-%S')}{ENCRYPTED_SUFFIX}"


def parse_backup_timestamp(name: str) -> Optional[datetime]:
    """Timestamp embedded in an encrypted backup name, or None if the name is not one."""
    match = _BACKUP_NAME_RE.match(name)
    if not match:
        return None
    return datetime.strptime(match.group(1), "%Y-%m-%dT%H-%M-%S").replace(tzinfo=timezone.utc)


def is_encrypted_backup(name: str) -> bool:
    return parse_backup_timestamp(name) is not None


def is_legacy_backup(name: str) -> bool:
    return name.startswith(BACKUP_PREFIX) and name.endswith(LEGACY_SUFFIX)


def format_size(size_bytes: int) -> str:
    if size_bytes >= 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.2f} MB"
    return f"{size_bytes / 1024:.1f} KB"
