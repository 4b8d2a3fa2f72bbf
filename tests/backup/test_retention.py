"""Tests for backup retention."""

import pytest

from skyplanner_backup.backup.gateway import ObjectStoreGateway
from skyplanner_backup.backup.retention import RetentionManager
from skyplanner_backup.retry import RetryPolicy
from tests.fakes import FakeObjectStore

NO_WAIT = RetryPolicy(max_attempts=2, delay=0)


def names(*days):
    return [f"backup-2026-02-{day:02d}T06-00-00.enc" for day in days]


def make_retention(store, max_count):
    return RetentionManager(ObjectStoreGateway(store, NO_WAIT), max_count)


@pytest.fixture
def store():
    store = FakeObjectStore()
    for name in names(1, 2, 3, 4, 5):
        store.blobs[name] = b"x" * 40
    return store


@pytest.mark.asyncio
async def test_keeps_newest(store):
    result = await make_retention(store, 2).prune()

    assert sorted(store.blobs) == names(4, 5)
    assert sorted(result.deleted) == names(1, 2, 3)
    assert result.kept == names(5, 4)


@pytest.mark.asyncio
async def test_nothing_deleted_under_limit(store):
    result = await make_retention(store, 10).prune()

    assert len(store.blobs) == 5
    assert result.deleted == []


@pytest.mark.asyncio
async def test_protected_name_survives(store):
    await make_retention(store, 2).prune(protect=names(1)[0])

    assert sorted(store.blobs) == names(1, 4, 5)


@pytest.mark.asyncio
async def test_legacy_backups_are_deleted(store):
    store.blobs["backup-2025-12-01T06-00-00.json"] = b"{}"

    result = await make_retention(store, 10).prune()

    assert result.legacy_deleted == ["backup-2025-12-01T06-00-00.json"]
    assert "backup-2025-12-01T06-00-00.json" not in store.blobs


@pytest.mark.asyncio
async def test_unrelated_blobs_are_left_alone(store):
    store.blobs["notes.txt"] = b"keep"
    store.blobs["backup-broken.enc"] = b"keep"

    await make_retention(store, 1).prune()

    assert "notes.txt" in store.blobs
    assert "backup-broken.enc" in store.blobs


@pytest.mark.asyncio
async def test_delete_failures_are_recorded(store):
    store.fail_next["delete"] = 2

    result = await make_retention(store, 4).prune()

    assert result.failed == names(1)
    assert result.deleted == []
    assert names(1)[0] in store.blobs


def test_max_count_must_be_positive():
    with pytest.raises(ValueError):
        make_retention(FakeObjectStore(), 0)
