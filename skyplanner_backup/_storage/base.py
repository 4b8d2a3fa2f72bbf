"""Repository interfaces injected into the backup pipeline."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

Row = Dict[str, Any]


class StoredBlob(BaseModel):
    """One object in the backup container."""

    name: str
    size: Optional[int] = None


class BaseSourceStore(ABC):
    """Relational store holding the tenant data."""

    @abstractmethod
    async def list_tables(self) -> List[str]:
        """Current table catalog of the store."""

    @abstractmethod
    async def fetch_page(
        self,
        table: str,
        offset: int,
        limit: int,
        order_by: Optional[str] = None,
    ) -> List[Row]:
        """Rows ``[offset, offset + limit)`` of ``table``, ordered ascending by ``order_by`` when given."""

    @abstractmethod
    async def find_one(self, table: str, column: str, value: Any) -> Optional[Row]:
        """First row where ``column == value``, or None."""

    @abstractmethod
    async def delete_where(self, table: str, column: str, value: Any) -> None:
        """Delete every row where ``column == value``."""

    @abstractmethod
    async def insert_rows(self, table: str, rows: List[Row]) -> None:
        """Insert ``rows`` in a single request."""

    async def close(self) -> None:
        return None


class BaseObjectStore(ABC):
    """Named blob container for encrypted backups."""

    @abstractmethod
    async def ensure_container_exists(self) -> None:
        ...

    @abstractmethod
    async def upload(self, name: str, data: bytes) -> None:
        """Store ``data`` under ``name``, overwriting any existing object."""

    @abstractmethod
    async def download(self, name: str) -> bytes:
        """Contents of ``name``; raises BackupNotFoundError when absent."""

    @abstractmethod
    async def list(self) -> List[StoredBlob]:
        ...

    @abstractmethod
    async def delete(self, name: str) -> None:
        ...
