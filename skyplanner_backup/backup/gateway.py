"""Object store access with the shared retry policy applied to every call."""

from typing import List, Optional

from .._storage.base import BaseObjectStore, StoredBlob
from ..exceptions import BackupNotFoundError
from ..retry import RetryPolicy


def _retryable(error: BaseException) -> bool:
    return not isinstance(error, BackupNotFoundError)


class ObjectStoreGateway:
    """Wraps a BaseObjectStore; uploads overwrite, so a retried upload is safe."""

    def __init__(self, store: BaseObjectStore, retry_policy: Optional[RetryPolicy] = None):
        self.store = store
        self.retry_policy = retry_policy or RetryPolicy()

    async def ensure_container_exists(self) -> None:
        await self.retry_policy.call(self.store.ensure_container_exists, label="Bucket creation")

    async def upload(self, name: str, data: bytes) -> None:
        await self.retry_policy.call(self.store.upload, name, data, label=f"Upload {name}")

    async def download(self, name: str) -> bytes:
        return await self.retry_policy.call(
            self.store.download, name, label=f"Download {name}", should_retry=_retryable
        )

    async def list(self) -> List[StoredBlob]:
        return await self.retry_policy.call(self.store.list, label="List backups")

    async def delete(self, name: str) -> None:
        await self.retry_policy.call(
            self.store.delete, name, label=f"Delete {name}", should_retry=_retryable
        )
