"""Discovery of the tables to back up."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .._storage.base import BaseSourceStore
from .._utils import logger
from ..tables import EXCLUDED_TABLES, KNOWN_TABLES


class SchemaSource(ABC):
    name: str = "schema"

    @abstractmethod
    async def list_tables(self) -> List[str]:
        ...


class RemoteCatalog(SchemaSource):
    """Table catalog as reported by the store itself."""

    name = "catalog"

    def __init__(self, store: BaseSourceStore):
        self.store = store

    async def list_tables(self) -> List[str]:
        return sorted(await self.store.list_tables())


class StaticList(SchemaSource):
    """Maintained allow-list, used when the catalog is unavailable."""

    name = "static"

    def __init__(self, tables: Iterable[str] = KNOWN_TABLES):
        self.tables = list(tables)

    async def list_tables(self) -> List[str]:
        return list(self.tables)


@dataclass
class DiscoveryResult:
    tables: List[str]
    source: str
    warning: Optional[str] = None


def _clean(tables: Iterable[str], excluded: Iterable[str]) -> List[str]:
    excluded = set(excluded)
    seen = set()
    result = []
    for table in tables:
        if not table or table in excluded or table in seen:
            continue
        seen.add(table)
        result.append(table)
    return result


class SchemaDiscovery:
    """Primary source with fallback; never fails the run."""

    def __init__(
        self,
        primary: SchemaSource,
        fallback: Optional[SchemaSource] = None,
        excluded: Iterable[str] = EXCLUDED_TABLES,
    ):
        self.primary = primary
        self.fallback = fallback or StaticList()
        self.excluded = frozenset(excluded)

    async def discover(self) -> DiscoveryResult:
        try:
            tables = _clean(await self.primary.list_tables(), self.excluded)
            if tables:
                return DiscoveryResult(tables=tables, source=self.primary.name)
            reason = "no tables returned"
        except Exception as e:
            reason = str(e) or type(e).__name__

        warning = f"Table discovery via {self.primary.name} failed ({reason}), using {self.fallback.name} table list"
        logger.warning(warning)
        tables = _clean(await self.fallback.list_tables(), self.excluded)
        return DiscoveryResult(tables=tables, source=self.fallback.name, warning=warning)
