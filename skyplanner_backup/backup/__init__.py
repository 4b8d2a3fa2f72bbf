"""Encrypted backup and tenant restore pipeline."""

from .crypto import BackupCipher, derive_key
from .document import build_document, decode_document, serialize_document
from .extractor import PaginatedExtractor
from .gateway import ObjectStoreGateway
from .manager import BackupManager
from .models import (
    BackupDocument,
    BackupListing,
    BackupReport,
    RestoreReport,
    RestoreState,
    TableRestoreOutcome,
    TableSnapshot,
)
from .restore import Restorer, select_tenant_rows
from .retention import RetentionManager
from .schema import RemoteCatalog, SchemaDiscovery, StaticList
from .verifier import IntegrityVerifier

__all__ = [
    "BackupCipher",
    "BackupDocument",
    "BackupListing",
    "BackupManager",
    "BackupReport",
    "IntegrityVerifier",
    "ObjectStoreGateway",
    "PaginatedExtractor",
    "RemoteCatalog",
    "RestoreReport",
    "RestoreState",
    "Restorer",
    "RetentionManager",
    "SchemaDiscovery",
    "StaticList",
    "TableRestoreOutcome",
    "TableSnapshot",
    "build_document",
    "decode_document",
    "derive_key",
    "select_tenant_rows",
    "serialize_document",
]
