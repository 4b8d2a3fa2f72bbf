"""Tests for tenant row selection and per-table restore."""

import pytest

from skyplanner_backup.backup.models import BackupDocument, RestoreState, TableSnapshot
from skyplanner_backup.backup.restore import Restorer, order_tables, select_tenant_rows
from tests.fakes import FakeSourceStore


@pytest.fixture
def document():
    return BackupDocument(
        created="2026-02-11T06:00:00.000Z",
        tables={
            "organizations": TableSnapshot.success([{"id": 5}, {"id": 7}]),
            "kunder": TableSnapshot.success([
                {"id": 1, "organization_id": 5, "navn": "A"},
                {"id": 2, "organization_id": 7, "navn": "B"},
                {"id": 3, "organization_id": 7, "navn": "C"},
            ]),
            "avtaler": TableSnapshot.success([{"id": 9, "organization_id": 5}]),
            "ruter": TableSnapshot.failure("timeout"),
            "tags": TableSnapshot.success([{"id": 4, "organization_id": 7, "navn": "vip"}]),
            "unknown_table": TableSnapshot.success([{"id": 1, "organization_id": 7}]),
        },
    )


class TestSelectTenantRows:
    def test_only_tenant_rows(self, document):
        selection = select_tenant_rows(document, 7)

        assert set(selection) == {"kunder", "tags"}
        assert [r["id"] for r in selection["kunder"]] == [2, 3]
        for rows in selection.values():
            assert all(r["organization_id"] == 7 for r in rows)

    def test_global_tables_excluded(self, document):
        assert "organizations" not in select_tenant_rows(document, 7)

    def test_tables_with_no_matching_rows_are_omitted(self, document):
        assert "avtaler" not in select_tenant_rows(document, 7)

    def test_failed_snapshots_are_skipped(self, document):
        assert "ruter" not in select_tenant_rows(document, 7)

    def test_table_filter(self, document):
        selection = select_tenant_rows(document, 7, table_filter=["kunder", "organizations"])
        assert set(selection) == {"kunder"}

    def test_tenant_type_must_match(self, document):
        assert select_tenant_rows(document, "7") == {}


def test_order_tables():
    assert order_tables(["kunde_tags", "zeta", "alpha", "kunder", "tags"]) == [
        "kunder", "tags", "kunde_tags", "alpha", "zeta",
    ]


@pytest.mark.asyncio
async def test_restore_replaces_tenant_rows_only():
    store = FakeSourceStore(tables={"kunder": [
        {"id": 1, "organization_id": 5, "navn": "A"},
        {"id": 2, "organization_id": 7, "navn": "changed"},
    ]})
    rows = [{"id": 2, "organization_id": 7, "navn": "B"}, {"id": 3, "organization_id": 7, "navn": "C"}]

    outcome = await Restorer(store, batch_size=500).restore_table(7, "kunder", rows)

    assert outcome.state == RestoreState.DONE
    assert outcome.inserted == 2
    assert store.deletes == [("kunder", "organization_id", 7)]
    assert {"id": 1, "organization_id": 5, "navn": "A"} in store.tables["kunder"]
    assert sorted(r["navn"] for r in store.tables["kunder"]) == ["A", "B", "C"]


@pytest.mark.asyncio
async def test_inserts_are_batched():
    store = FakeSourceStore(tables={"kunder": []})
    rows = [{"id": i, "organization_id": 7} for i in range(5)]

    outcome = await Restorer(store, batch_size=2).restore_table(7, "kunder", rows)

    assert outcome.inserted == 5
    assert [len(batch) for _, batch in store.inserts] == [2, 2, 1]


@pytest.mark.asyncio
async def test_batch_failure_reports_partial_count():
    store = FakeSourceStore(tables={"kunder": []})
    store.fail_insert_after["kunder"] = 1
    rows = [{"id": i, "organization_id": 7} for i in range(5)]

    outcome = await Restorer(store, batch_size=2).restore_table(7, "kunder", rows)

    assert outcome.state == RestoreState.FAILED
    assert outcome.inserted == 2
    assert outcome.expected == 5
    assert "duplicate key" in outcome.error


@pytest.mark.asyncio
async def test_delete_failure_skips_inserts():
    store = FakeSourceStore(tables={"kunder": []})
    store.fail_delete.add("kunder")

    outcome = await Restorer(store).restore_table(7, "kunder", [{"id": 1, "organization_id": 7}])

    assert outcome.state == RestoreState.FAILED
    assert outcome.error.startswith("Delete failed")
    assert store.inserts == []


@pytest.mark.asyncio
async def test_rows_of_other_tenants_are_refused():
    store = FakeSourceStore(tables={"kunder": []})

    outcome = await Restorer(store).restore_table(7, "kunder", [{"id": 1, "organization_id": 5}])

    assert outcome.state == RestoreState.FAILED
    assert store.deletes == []
    assert store.inserts == []


@pytest.mark.asyncio
async def test_failure_does_not_stop_later_tables():
    store = FakeSourceStore(tables={"kunder": [], "tags": []})
    store.fail_delete.add("kunder")
    seen = []
    selection = {
        "tags": [{"id": 1, "organization_id": 7}],
        "kunder": [{"id": 2, "organization_id": 7}],
    }

    outcomes = await Restorer(store).restore(7, selection, on_table=seen.append)

    assert [o.table for o in outcomes] == ["kunder", "tags"]
    assert [o.state for o in outcomes] == [RestoreState.FAILED, RestoreState.DONE]
    assert seen == outcomes
