"""Tests for the command line interface."""

import asyncio
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from botocore.exceptions import EndpointConnectionError

from skyplanner_backup import cli
from skyplanner_backup._storage.s3 import S3ObjectStore
from skyplanner_backup.backup.manager import BackupManager
from skyplanner_backup.config import ObjectStoreConfig
from skyplanner_backup.exceptions import ConfigurationError
from tests.fakes import FakeObjectStore, FakeSourceStore

RUN_AT = datetime(2026, 2, 11, 6, 0, 0, tzinfo=timezone.utc)
BACKUP_NAME = "backup-2026-02-11T06-00-00.enc"


@pytest.fixture
def source():
    return FakeSourceStore(
        tables={
            "organizations": [{"id": 7, "navn": "Sør Brann"}],
            "kunder": [
                {"id": 1, "organization_id": 5, "navn": "A"},
                {"id": 2, "organization_id": 7, "navn": "B"},
            ],
            "avtaler": [{"id": 3, "organization_id": 7}],
        },
        catalog=["organizations", "kunder", "avtaler"],
    )


@pytest.fixture
def manager(source, cipher, pipeline_config):
    return BackupManager(source, FakeObjectStore(), cipher, pipeline_config)


@pytest.fixture
def run_cli(manager):
    """Invoke main() against the in-memory manager."""
    def run(*argv):
        with patch.object(cli, "configure_logging"), \
             patch.object(cli.BackupSettings, "from_env"), \
             patch.object(cli.BackupManager, "from_settings", return_value=manager):
            return cli.main(list(argv))
    return run


@pytest.fixture
def backed_up(manager):
    asyncio.run(manager.create_backup(now=RUN_AT))
    return manager


def test_run(run_cli, manager, source, capsys):
    assert run_cli("run") == 0

    out = capsys.readouterr().out
    assert "BACKUP SUMMARY" in out
    assert "kunder" in out
    assert len(manager.gateway.store.blobs) == 1
    assert source.closed


def test_run_dry_run(run_cli, manager, capsys):
    assert run_cli("run", "--dry-run") == 0

    assert "dry run" in capsys.readouterr().out
    assert manager.gateway.store.blobs == {}


def test_run_list(run_cli, backed_up, capsys):
    backed_up.gateway.store.blobs["backup-2025-01-01T00-00-00.json"] = b"{}"

    assert run_cli("run", "--list") == 0

    out = capsys.readouterr().out
    assert BACKUP_NAME in out
    assert "UNENCRYPTED legacy" in out
    assert "Total: 2 backups" in out


def test_run_list_empty(run_cli, capsys):
    assert run_cli("run", "--list") == 0
    assert "No backups found" in capsys.readouterr().out


def test_configuration_error_exits_nonzero(capsys):
    with patch.object(cli, "configure_logging"), \
         patch.object(cli.BackupSettings, "from_env", side_effect=ConfigurationError("BACKUP_ENCRYPTION_KEY must be set")):
        assert cli.main(["run"]) == 1

    assert "configuration" in capsys.readouterr().err


def test_restore_dry_run(run_cli, backed_up, source, capsys):
    assert run_cli("restore", "--org", "7") == 0

    out = capsys.readouterr().out
    assert "Sør Brann" in out
    assert "Add --confirm" in out
    assert source.deletes == []


def test_restore_confirm(run_cli, backed_up, source, capsys):
    assert run_cli("restore", "--org", "7", "--tables", "kunder", "--confirm") == 0

    out = capsys.readouterr().out
    assert "1 tables OK" in out
    assert source.deletes == [("kunder", "organization_id", 7)]
    assert source.lookups == [("organizations", "id", 7)]


def test_restore_failure_exits_nonzero(run_cli, backed_up, source, capsys):
    source.fail_delete.add("avtaler")

    assert run_cli("restore", "--org", "7", "--confirm") == 1
    assert "not atomic" in capsys.readouterr().out


def test_restore_unknown_org(run_cli, backed_up, capsys):
    assert run_cli("restore", "--org", "999", "--confirm") == 1
    assert "999" in capsys.readouterr().err


def test_restore_no_data_for_org(run_cli, backed_up, source, capsys):
    source.tables["organizations"].append({"id": 8, "navn": "Ny"})

    assert run_cli("restore", "--org", "8", "--confirm") == 0
    assert "No data for organization 8" in capsys.readouterr().out


def test_inspect_latest(run_cli, backed_up, capsys):
    assert run_cli("inspect", "--latest") == 0

    out = capsys.readouterr().out
    assert BACKUP_NAME in out
    assert "TOTAL" in out


def test_inspect_table(run_cli, backed_up, capsys):
    assert run_cli("inspect", BACKUP_NAME, "--table", "kunder") == 0

    out = capsys.readouterr().out
    assert "kunder (2 rows)" in out


def test_inspect_unknown_table(run_cli, backed_up, capsys):
    assert run_cli("inspect", BACKUP_NAME, "--table", "nope") == 1
    assert "Available tables" in capsys.readouterr().err


def test_inspect_save(run_cli, backed_up, tmp_path):
    target = tmp_path / "decrypted.json"

    assert run_cli("inspect", "--latest", "--save", str(target)) == 0

    saved = json.loads(target.read_text(encoding="utf-8"))
    assert saved["version"] == 2
    assert saved["tables"]["kunder"]["rows"] == 2


def test_inspect_requires_name(run_cli, capsys):
    assert run_cli("inspect") == 1


def test_inspect_missing_backup(run_cli, capsys):
    assert run_cli("inspect", "backup-2000-01-01T00-00-00.enc") == 1
    assert "Backup not found" in capsys.readouterr().err


def test_unreachable_object_store_names_stage(source, cipher, pipeline_config, capsys):
    s3 = MagicMock()
    s3.head_bucket = AsyncMock()
    s3.put_object = AsyncMock(side_effect=EndpointConnectionError(endpoint_url="https://s3.example.test"))
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=s3)
    context.__aexit__ = AsyncMock(return_value=False)
    session = MagicMock()
    session.client.return_value = context
    object_store = S3ObjectStore(
        ObjectStoreConfig(access_key_id="AKIATEST", secret_access_key="secret"),
        session=session,
    )
    manager = BackupManager(source, object_store, cipher, pipeline_config)

    with patch.object(cli, "configure_logging"), \
         patch.object(cli.BackupSettings, "from_env"), \
         patch.object(cli.BackupManager, "from_settings", return_value=manager):
        assert cli.main(["run"]) == 1

    err = capsys.readouterr().err
    assert "run failed during object store" in err
    assert "https://s3.example.test" in err
    assert s3.put_object.await_count == pipeline_config.max_retries
    assert source.closed
