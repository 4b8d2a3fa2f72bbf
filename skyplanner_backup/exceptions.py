"""Exception hierarchy for the backup pipeline."""

from typing import Optional


class BackupError(Exception):
    """Base exception for backup and restore errors."""

    stage = "backup"


class ConfigurationError(BackupError, ValueError):
    """Missing or invalid configuration, raised before any I/O."""

    stage = "configuration"


class StoreError(BackupError):
    """Error reported by the relational store or its transport."""

    stage = "source store"

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code


class ObjectStoreError(BackupError):
    stage = "object store"


class BackupNotFoundError(ObjectStoreError):
    def __init__(self, name: str):
        super().__init__(f"Backup not found: {name}")
        self.name = name


class CorruptBackupError(BackupError):
    """Blob failed authentication, decompression or parsing."""

    stage = "decryption"


class UnsupportedBackupVersionError(CorruptBackupError):
    stage = "document decoding"

    def __init__(self, version):
        super().__init__(f"Unsupported backup document version: {version!r}")
        self.version = version


class VerificationError(CorruptBackupError):
    stage = "verification"


class LocalVerificationError(VerificationError):
    """Freshly encrypted blob does not round-trip; nothing was uploaded."""

    stage = "local verification"


class UploadVerificationError(VerificationError):
    """Uploaded blob differs from what was encrypted; the stored copy is untrustworthy."""

    stage = "post-upload verification"

    def __init__(self, message: str, name: str):
        super().__init__(message)
        self.name = name


class UnknownTenantError(BackupError):
    stage = "tenant lookup"

    def __init__(self, tenant_id):
        super().__init__(f"Organization {tenant_id} does not exist")
        self.tenant_id = tenant_id


class BackupInProgressError(BackupError):
    """Another backup or restore run holds the manager."""

    stage = "run exclusivity"

    def __init__(self, message: str = "Another backup or restore run is already in progress"):
        super().__init__(message)
