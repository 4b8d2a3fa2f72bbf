"""Storage module with lazy loading support."""

from typing import TYPE_CHECKING

from .base import BaseObjectStore, BaseSourceStore, Row, StoredBlob
from .factory import create_object_store, create_source_store

if TYPE_CHECKING:
    from .postgrest import PostgrestSourceStore
    from .s3 import S3ObjectStore


def __getattr__(name):
    """Lazy import backends so aioboto3/httpx load only when used."""
    if name == "PostgrestSourceStore":
        from .postgrest import PostgrestSourceStore
        return PostgrestSourceStore
    elif name == "S3ObjectStore":
        from .s3 import S3ObjectStore
        return S3ObjectStore
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "BaseObjectStore",
    "BaseSourceStore",
    "Row",
    "StoredBlob",
    "create_object_store",
    "create_source_store",
    "PostgrestSourceStore",
    "S3ObjectStore",
]
