"""Command line entry point: ``skyplanner-backup run|restore|inspect``."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from ._utils import configure_logging, format_size
from .backup import BackupManager
from .backup.models import BackupDocument, BackupReport, RestoreReport, TableSnapshot, TableRestoreOutcome
from .config import BackupSettings
from .exceptions import BackupError, UnknownTenantError

RULE = "─" * 55


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skyplanner-backup",
        description="Encrypted backup and per-organization restore",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Create an encrypted backup")
    run.add_argument("--dry-run", action="store_true", help="Extract, encrypt and verify without uploading")
    run.add_argument("--list", action="store_true", help="List existing backups and exit")

    restore = sub.add_parser("restore", help="Restore one organization's data")
    restore.add_argument("--org", type=int, required=True, help="Organization id")
    restore.add_argument("--file", help="Backup name (default: newest)")
    restore.add_argument("--tables", help="Comma separated table names")
    restore.add_argument("--confirm", action="store_true", help="Actually write; otherwise dry run")

    inspect = sub.add_parser("inspect", help="Decrypt a backup and show its contents")
    inspect.add_argument("name", nargs="?", help="Backup name")
    inspect.add_argument("--latest", action="store_true", help="Use the newest backup")
    inspect.add_argument("--table", help="Print the rows of one table")
    inspect.add_argument("--save", type=Path, help="Write the decrypted JSON to this path")

    return parser


def print_table_progress(table: str, snapshot: TableSnapshot) -> None:
    if snapshot.ok:
        print(f"  {table:<30} {snapshot.rows:>6}  OK")
    else:
        print(f"  {table:<30} {0:>6}  ERROR: {snapshot.error}")


def print_backup_summary(report: BackupReport) -> None:
    print()
    print("=== BACKUP SUMMARY ===" if not report.dry_run else "=== BACKUP SUMMARY (dry run) ===")
    print(f"  File:             {report.filename}")
    print(f"  Tables:           {report.tables - report.table_errors} OK, {report.table_errors} failed")
    print(f"  Rows:             {report.total_rows}")
    print(f"  Raw size:         {format_size(report.raw_size_bytes)}")
    print(f"  Encrypted size:   {format_size(report.encrypted_size_bytes)} ({report.compression_percent}% smaller)")
    print(f"  SHA-256:          {report.sha256[:16]}...")
    print(f"  Verified:         local={'yes' if report.verified_local else 'no'}"
          f" upload={'yes' if report.verified_upload else 'skipped' if report.dry_run else 'no'}")
    if report.deleted_backups:
        print(f"  Pruned:           {len(report.deleted_backups)} old backup(s)")
    if report.missing_critical_tables:
        print(f"  WARNING critical tables missing: {', '.join(report.missing_critical_tables)}")
    for warning in report.warnings:
        print(f"  WARNING {warning}")


def print_document_summary(name: str, document: BackupDocument) -> None:
    print(f"\nBackup:   {name}")
    print(f"Created:  {document.created}")
    print(f"Version:  {document.version}")
    print(f"Tables:   {len(document.tables)}\n")
    print(f"  {'Table':<30} {'Rows':>6}    Status")
    print(RULE)
    for table in sorted(document.tables):
        snapshot = document.tables[table]
        status = "OK" if snapshot.ok else f"ERROR: {snapshot.error}"
        print(f"  {table:<30} {snapshot.rows:>6}    {status}")
    print(RULE)
    print(f"  {'TOTAL':<30} {document.total_rows:>6}")


def print_restore_outcome(outcome: TableRestoreOutcome) -> None:
    if outcome.ok:
        print(f"  {outcome.table:<30} OK {outcome.inserted} rows restored")
    else:
        print(f"  {outcome.table:<30} FAILED after {outcome.inserted}/{outcome.expected} rows: {outcome.error}")


def print_restore_plan(report: RestoreReport) -> None:
    print(f"Backup:   {report.backup_name} (created {report.backup_created})\n")
    print(f"  {'Table':<30} {'Rows':>6}")
    print(RULE)
    for table, count in report.planned.items():
        print(f"  {table:<30} {count:>6}")
    print(RULE)
    print(f"  {'TOTAL':<30} {sum(report.planned.values()):>6}\n")


async def cmd_run(manager: BackupManager, args) -> int:
    if args.list:
        backups = await manager.list_backups()
        if not backups:
            print("No backups found.")
            return 0
        print("=== AVAILABLE BACKUPS ===\n")
        for backup in backups:
            size = format_size(backup.size_bytes) if backup.size_bytes is not None else "unknown size"
            flag = "(encrypted)" if backup.encrypted else "(UNENCRYPTED legacy)"
            print(f"  {backup.name}  {size}  {flag}")
        print(f"\nTotal: {len(backups)} backups")
        return 0

    print("Extracting tables...")
    report = await manager.create_backup(dry_run=args.dry_run, on_table=print_table_progress)
    print_backup_summary(report)
    return 0


async def cmd_restore(manager: BackupManager, args) -> int:
    tables = [t.strip() for t in args.tables.split(",") if t.strip()] if args.tables else None
    tenant = await manager.lookup_tenant(args.org)

    print("\n=== RESTORE FOR ORGANIZATION ===")
    print(f"Organization: {tenant.get('navn', '?')} (ID: {args.org})")
    print(f"Mode:         {'LIVE RESTORE' if args.confirm else 'Dry run (preview)'}")
    if tables:
        print(f"Tables:       {', '.join(tables)}")
    print()

    report = await manager.restore_tenant(
        args.org,
        backup_name=args.file,
        tables=tables,
        confirm=args.confirm,
        on_table=print_restore_outcome,
        tenant=tenant,
    )

    if not report.planned:
        print(f"No data for organization {args.org} in this backup.")
        return 0

    if report.dry_run:
        print_restore_plan(report)
        print("This was a dry run. No data was changed.")
        print("Add --confirm to restore.")
        return 0

    print(RULE)
    print(f"Done: {len(report.succeeded)} tables OK, {len(report.failed)} failed, "
          f"{report.total_inserted} rows inserted")
    if report.failed:
        print("\nSome tables failed. Restore is not atomic: the tables listed as OK were replaced.")
        for outcome in report.failed:
            print(f"  {outcome.table}: {outcome.inserted}/{outcome.expected} rows, {outcome.error}")
        return 1
    return 0


async def cmd_inspect(manager: BackupManager, args) -> int:
    if not args.name and not args.latest:
        print("Missing backup name. Use --latest for the newest backup.", file=sys.stderr)
        return 1
    name = args.name if args.name else await manager.latest_backup_name()
    document = await manager.load_backup(name)

    if args.table:
        snapshot = document.tables.get(args.table)
        if snapshot is None:
            print(f"Table \"{args.table}\" is not in this backup.", file=sys.stderr)
            print(f"Available tables: {', '.join(sorted(document.tables))}", file=sys.stderr)
            return 1
        print(f"\n=== {args.table} ({snapshot.rows} rows) ===\n")
        print(json.dumps(snapshot.data or [], indent=2, ensure_ascii=False, default=str))
        return 0

    print_document_summary(name, document)
    if args.save:
        args.save.write_text(
            json.dumps(document.to_payload(), indent=2, ensure_ascii=False, default=str),
            encoding="utf-8",
        )
        print(f"\nSaved decrypted backup: {args.save}")
    return 0


COMMANDS = {
    "run": cmd_run,
    "restore": cmd_restore,
    "inspect": cmd_inspect,
}


async def _run(args, settings: BackupSettings) -> int:
    manager = BackupManager.from_settings(settings)
    try:
        return await COMMANDS[args.command](manager, args)
    finally:
        await manager.source.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        settings = BackupSettings.from_env()
        return asyncio.run(_run(args, settings))
    except UnknownTenantError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except BackupError as e:
        print(f"\n{args.command} failed during {e.stage}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
