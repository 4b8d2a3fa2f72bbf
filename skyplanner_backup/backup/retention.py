"""Pruning of old and legacy backup blobs."""

from dataclasses import dataclass, field
from typing import List, Optional

from .gateway import ObjectStoreGateway
from .._utils import is_legacy_backup, logger, parse_backup_timestamp


@dataclass
class RetentionResult:
    kept: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    legacy_deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class RetentionManager:
    """Keep the newest ``max_count`` encrypted backups and remove unencrypted legacy ones.

    The only component that deletes blobs.
    """

    def __init__(self, gateway: ObjectStoreGateway, max_count: int):
        if max_count <= 0:
            raise ValueError(f"max_count must be positive, got {max_count}")
        self.gateway = gateway
        self.max_count = max_count

    async def prune(self, protect: Optional[str] = None) -> RetentionResult:
        """Delete blobs beyond the retention window.

        Args:
            protect: Blob name that must survive regardless of ordering (the current run's)
        """
        result = RetentionResult()
        names = [blob.name for blob in await self.gateway.list()]

        encrypted = sorted(
            (name for name in names if parse_backup_timestamp(name) is not None),
            key=lambda name: (parse_backup_timestamp(name), name),
            reverse=True,
        )
        result.kept = encrypted[:self.max_count]
        expired = [name for name in encrypted[self.max_count:] if name != protect]
        if protect in encrypted[self.max_count:]:
            result.kept.append(protect)

        if expired:
            logger.info(f"Deleting {len(expired)} old backup(s)")
        for name in expired:
            if await self._delete(name, result):
                result.deleted.append(name)

        legacy = sorted(name for name in names if is_legacy_backup(name))
        if legacy:
            logger.warning(f"Deleting {len(legacy)} unencrypted legacy backup(s)")
        for name in legacy:
            if await self._delete(name, result):
                result.legacy_deleted.append(name)

        return result

    async def _delete(self, name: str, result: RetentionResult) -> bool:
        try:
            await self.gateway.delete(name)
        except Exception as e:
            logger.warning(f"Could not delete {name}: {e}")
            result.failed.append(name)
            return False
        logger.info(f"Deleted: {name}")
        return True
