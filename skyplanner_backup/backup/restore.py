"""Tenant-scoped restore: row selection and destructive per-table replacement."""

from typing import Any, Callable, Dict, Iterable, List, Optional

from .models import BackupDocument, RestoreState, TableRestoreOutcome
from .._storage.base import BaseSourceStore, Row
from .._utils import logger
from ..tables import GLOBAL_TABLES, RESTORE_PRIORITY, TENANT_TABLES


def select_tenant_rows(
    document: BackupDocument,
    tenant_id: Any,
    table_filter: Optional[Iterable[str]] = None,
    tenant_column: str = "organization_id",
    tenant_tables: Iterable[str] = TENANT_TABLES,
    global_tables: Iterable[str] = GLOBAL_TABLES,
) -> Dict[str, List[Row]]:
    """Rows belonging to ``tenant_id``, per tenant-scoped table.

    Global tables and tables outside ``table_filter`` are dropped; tables left
    with no matching rows are omitted rather than returned empty.
    """
    tenant_tables = set(tenant_tables)
    global_tables = set(global_tables)
    wanted = set(table_filter) if table_filter is not None else None

    selection = {}
    for table, snapshot in document.tables.items():
        if table in global_tables or table not in tenant_tables:
            continue
        if wanted is not None and table not in wanted:
            continue
        if not snapshot.ok:
            continue

        rows = [row for row in snapshot.data if row.get(tenant_column) == tenant_id]
        if rows:
            selection[table] = rows

    return selection


def order_tables(tables: Iterable[str], priority: Iterable[str] = RESTORE_PRIORITY) -> List[str]:
    """Tables in priority order, unlisted ones afterwards alphabetically."""
    rank = {name: index for index, name in enumerate(priority)}
    return sorted(tables, key=lambda name: (rank.get(name, len(rank)), name))


class Restorer:
    """Replace a tenant's rows table by table.

    Each table moves pending -> deleting-existing -> inserting -> done, or to
    failed on any error. Tables are independent: a failure is recorded and the
    next table is processed; earlier tables are not rolled back.
    """

    def __init__(
        self,
        store: BaseSourceStore,
        tenant_column: str = "organization_id",
        batch_size: int = 500,
        priority: Iterable[str] = RESTORE_PRIORITY,
    ):
        self.store = store
        self.tenant_column = tenant_column
        self.batch_size = batch_size
        self.priority = tuple(priority)

    async def restore(
        self,
        tenant_id: Any,
        selection: Dict[str, List[Row]],
        on_table: Optional[Callable[[TableRestoreOutcome], None]] = None,
    ) -> List[TableRestoreOutcome]:
        outcomes = []
        for table in order_tables(selection, self.priority):
            outcome = await self.restore_table(tenant_id, table, selection[table])
            outcomes.append(outcome)
            if on_table:
                on_table(outcome)
        return outcomes

    async def restore_table(self, tenant_id: Any, table: str, rows: List[Row]) -> TableRestoreOutcome:
        outcome = TableRestoreOutcome(table=table, expected=len(rows))

        foreign = [row for row in rows if row.get(self.tenant_column) != tenant_id]
        if foreign:
            outcome.state = RestoreState.FAILED
            outcome.error = f"{len(foreign)} row(s) belong to another tenant"
            logger.error(f"{table}: refusing restore, {outcome.error}")
            return outcome

        outcome.state = RestoreState.DELETING
        try:
            await self.store.delete_where(table, self.tenant_column, tenant_id)
        except Exception as e:
            outcome.state = RestoreState.FAILED
            outcome.error = f"Delete failed: {e}"
            logger.error(f"{table}: {outcome.error}")
            return outcome

        outcome.state = RestoreState.INSERTING
        for start in range(0, len(rows), self.batch_size):
            batch = rows[start:start + self.batch_size]
            try:
                await self.store.insert_rows(table, batch)
            except Exception as e:
                outcome.state = RestoreState.FAILED
                outcome.error = f"Insert failed at row {start}: {e}"
                logger.error(f"{table}: {outcome.error} ({outcome.inserted}/{outcome.expected} inserted)")
                return outcome
            outcome.inserted += len(batch)

        outcome.state = RestoreState.DONE
        logger.info(f"{table}: {outcome.inserted} rows restored")
        return outcome
