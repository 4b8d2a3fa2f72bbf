"""Construction of the production repositories from configuration."""

from .base import BaseObjectStore, BaseSourceStore
from ..config import ObjectStoreConfig, SourceStoreConfig


def create_source_store(config: SourceStoreConfig) -> BaseSourceStore:
    from .postgrest import PostgrestSourceStore
    return PostgrestSourceStore(config)


def create_object_store(config: ObjectStoreConfig) -> BaseObjectStore:
    from .s3 import S3ObjectStore
    return S3ObjectStore(config)
