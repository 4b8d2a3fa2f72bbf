"""Paginated, retried extraction of whole tables."""

import re
from typing import List, Optional

from .models import TableSnapshot
from .._storage.base import BaseSourceStore, Row
from .._utils import logger
from ..exceptions import StoreError
from ..retry import RetryPolicy

UNDEFINED_COLUMN_CODE = "42703"


def is_missing_column_error(error: BaseException, column: str) -> bool:
    """True when the store rejected a query because ``column`` does not exist."""
    if not isinstance(error, StoreError):
        return False
    if error.code == UNDEFINED_COLUMN_CODE:
        return True
    # PostgREST: column kunde_tags.id does not exist; Postgres: column "id" does not exist
    pattern = rf'\bcolumn\s+"?(?:[\w$]+\.)?"?{re.escape(column)}"?\s+does not exist'
    return re.search(pattern, error.message or "", re.IGNORECASE) is not None


class PaginatedExtractor:
    """Read every row of a table in fixed-size pages ordered by a stable key.

    Tables without the order column are read unordered, which is still complete
    and duplicate-free as long as the table does not change during the read.
    """

    def __init__(
        self,
        store: BaseSourceStore,
        page_size: int = 1000,
        retry_policy: Optional[RetryPolicy] = None,
        order_column: str = "id",
    ):
        self.store = store
        self.page_size = page_size
        self.retry_policy = retry_policy or RetryPolicy()
        self.order_column = order_column

    async def extract(self, table: str) -> List[Row]:
        """All rows of ``table``.

        Raises:
            Exception: The last page error once retries are exhausted
        """
        rows: List[Row] = []
        offset = 0
        ordered = True

        while True:
            try:
                page = await self._fetch(table, offset, ordered)
            except StoreError as e:
                if not (ordered and is_missing_column_error(e, self.order_column)):
                    raise
                logger.info(f"{table}: no '{self.order_column}' column, reading without ordering")
                ordered = False
                page = await self._fetch(table, offset, ordered)

            rows.extend(page)
            if len(page) < self.page_size:
                break
            offset += self.page_size

        return rows

    async def snapshot(self, table: str) -> TableSnapshot:
        """Extract ``table`` into a snapshot; failures become error snapshots."""
        try:
            return TableSnapshot.success(await self.extract(table))
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"{table}: extraction failed: {message}")
            return TableSnapshot.failure(message)

    async def _fetch(self, table: str, offset: int, ordered: bool) -> List[Row]:
        order_by = self.order_column if ordered else None
        return await self.retry_policy.call(
            self.store.fetch_page,
            table,
            offset,
            self.page_size,
            order_by,
            label=f"{table}@{offset}",
            should_retry=lambda e: not is_missing_column_error(e, self.order_column),
        )
