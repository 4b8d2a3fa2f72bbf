"""Backup and restore orchestration over injected stores."""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional

from .crypto import BackupCipher
from .document import build_document, serialize_document
from .extractor import PaginatedExtractor
from .gateway import ObjectStoreGateway
from .models import (
    BackupDocument,
    BackupListing,
    BackupReport,
    RestoreReport,
    TableRestoreOutcome,
    TableSnapshot,
)
from .restore import Restorer, order_tables, select_tenant_rows
from .retention import RetentionManager
from .sanitizer import find_missing_critical, sanitize_rows
from .schema import RemoteCatalog, SchemaDiscovery, SchemaSource, StaticList
from .verifier import IntegrityVerifier
from .._storage.base import BaseObjectStore, BaseSourceStore
from .._utils import (
    compute_sha256,
    generate_backup_name,
    is_encrypted_backup,
    is_legacy_backup,
    logger,
    parse_backup_timestamp,
)
from ..config import BackupSettings, PipelineConfig
from ..exceptions import BackupInProgressError, BackupNotFoundError, UnknownTenantError
from ..retry import RetryPolicy
from ..tables import TENANT_LOOKUP_TABLE


class BackupManager:
    """Run the backup pipeline and tenant restores.

    Backup: discover -> extract -> sanitize -> guard -> serialize -> encrypt ->
    verify locally -> upload -> verify uploaded copy -> prune.
    """

    def __init__(
        self,
        source: BaseSourceStore,
        object_store: BaseObjectStore,
        cipher: BackupCipher,
        config: Optional[PipelineConfig] = None,
        schema_source: Optional[SchemaSource] = None,
        fallback_schema: Optional[SchemaSource] = None,
    ):
        """Initialize backup manager.

        Args:
            source: Relational store holding tenant data
            object_store: Container for encrypted blobs
            cipher: Cipher holding the run's derived key
            config: Pipeline tuning; defaults apply when omitted
            schema_source: Primary table source, the store catalog by default
            fallback_schema: Table source used when the primary fails
        """
        self.source = source
        self.config = config or PipelineConfig()
        self.cipher = cipher
        self.retry_policy = RetryPolicy(max_attempts=self.config.max_retries, delay=self.config.retry_delay)
        self.gateway = ObjectStoreGateway(object_store, self.retry_policy)
        self.discovery = SchemaDiscovery(
            schema_source or RemoteCatalog(source),
            fallback_schema or StaticList(),
            excluded=self.config.excluded_tables,
        )
        self.extractor = PaginatedExtractor(
            source,
            page_size=self.config.page_size,
            retry_policy=self.retry_policy,
            order_column=self.config.order_column,
        )
        self.verifier = IntegrityVerifier(cipher)
        self.retention = RetentionManager(self.gateway, self.config.max_backups)
        self.restorer = Restorer(
            source,
            tenant_column=self.config.tenant_column,
            batch_size=self.config.restore_batch_size,
        )
        self._run_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: BackupSettings) -> "BackupManager":
        """Manager over the production stores described by ``settings``."""
        from .._storage import create_object_store, create_source_store

        return cls(
            source=create_source_store(settings.source),
            object_store=create_object_store(settings.object_store),
            cipher=BackupCipher(settings.encryption_key),
            config=settings.pipeline,
        )

    @asynccontextmanager
    async def _exclusive(self):
        """Hold the run lock; a second concurrent run fails instead of waiting."""
        if self._run_lock.locked():
            raise BackupInProgressError()
        async with self._run_lock:
            yield

    async def create_backup(
        self,
        dry_run: bool = False,
        on_table: Optional[Callable[[str, TableSnapshot], None]] = None,
        now: Optional[datetime] = None,
    ) -> BackupReport:
        """Create, verify and upload one encrypted backup.

        Args:
            dry_run: Extract, encrypt and verify locally, but skip upload and retention
            on_table: Called after each table is extracted
            now: Run timestamp, defaults to the current UTC time

        Returns:
            BackupReport with per-run statistics and any partial-data warnings

        Raises:
            LocalVerificationError: The encrypted blob did not round-trip; nothing was uploaded
            UploadVerificationError: The uploaded copy is corrupt
            BackupInProgressError: Another run holds this manager
        """
        async with self._exclusive():
            return await self._run_backup(dry_run, on_table, now)

    async def _run_backup(
        self,
        dry_run: bool,
        on_table: Optional[Callable[[str, TableSnapshot], None]],
        now: Optional[datetime],
    ) -> BackupReport:
        now = now or datetime.now(timezone.utc)
        filename = generate_backup_name(now)
        logger.info(f"Starting backup: {filename}{' (dry run)' if dry_run else ''}")

        if not dry_run:
            await self.gateway.ensure_container_exists()

        discovery = await self.discovery.discover()
        warnings = [discovery.warning] if discovery.warning else []
        errors = []
        logger.info(f"Found {len(discovery.tables)} tables ({discovery.source})")

        snapshots = {}
        for table in discovery.tables:
            snapshot = await self.extractor.snapshot(table)
            if snapshot.ok:
                snapshot = TableSnapshot.success(
                    sanitize_rows(table, snapshot.data, self.config.sanitize_rules)
                )
            else:
                errors.append(f"{table}: {snapshot.error}")
            snapshots[table] = snapshot
            if on_table:
                on_table(table, snapshot)

        missing_critical = find_missing_critical(snapshots, self.config.critical_tables)
        if missing_critical:
            message = f"Critical tables missing: {', '.join(missing_critical)}"
            logger.error(message)
            errors.append(message)

        document = build_document(snapshots, created=now)
        plaintext = serialize_document(document)
        plaintext_hash = compute_sha256(plaintext)
        blob = self.cipher.encrypt(plaintext)
        logger.info(f"Encrypted {len(plaintext):,} bytes into {len(blob):,} bytes")

        local = self.verifier.verify_local(blob, plaintext_hash)

        report = BackupReport(
            filename=filename,
            created=document.created,
            dry_run=dry_run,
            tables=len(discovery.tables),
            table_errors=len(document.failed_tables),
            total_rows=document.total_rows,
            raw_size_bytes=len(plaintext),
            encrypted_size_bytes=len(blob),
            sha256=plaintext_hash,
            tables_verified=local.tables_verified,
            verified_local=True,
            schema_source=discovery.source,
            missing_critical_tables=missing_critical,
            warnings=warnings,
            errors=errors,
        )

        if dry_run:
            logger.info("Dry run complete, nothing stored")
            return report

        await self.gateway.upload(filename, blob)
        report.uploaded = True
        logger.info(f"Stored: {self.gateway.store.__class__.__name__}/{filename}")

        await self.verifier.verify_uploaded(self.gateway, filename, plaintext_hash)
        report.verified_upload = True

        retention = await self.retention.prune(protect=filename)
        report.deleted_backups = retention.deleted + retention.legacy_deleted
        if retention.failed:
            report.warnings.append(f"Could not delete: {', '.join(retention.failed)}")

        logger.info(f"Backup complete: {filename} ({len(blob):,} bytes)")
        return report

    async def list_backups(self) -> List[BackupListing]:
        """Backup blobs, newest first; legacy unencrypted ones are flagged."""
        listings = [
            BackupListing(name=blob.name, size_bytes=blob.size, encrypted=is_encrypted_backup(blob.name))
            for blob in await self.gateway.list()
            if is_encrypted_backup(blob.name) or is_legacy_backup(blob.name)
        ]
        listings.sort(key=lambda b: b.name, reverse=True)
        return listings

    async def latest_backup_name(self) -> str:
        names = [b.name for b in await self.gateway.list() if is_encrypted_backup(b.name)]
        if not names:
            raise BackupNotFoundError("latest encrypted backup")
        return max(names, key=lambda name: (parse_backup_timestamp(name), name))

    async def load_backup(self, name: Optional[str] = None) -> BackupDocument:
        """Download and decrypt a backup, the newest one when ``name`` is None."""
        name = name or await self.latest_backup_name()
        blob = await self.gateway.download(name)
        logger.info(f"Decrypting {name} ({len(blob):,} bytes)")
        return self.cipher.decrypt_document(blob)

    async def lookup_tenant(self, tenant_id: Any) -> dict:
        tenant = await self.source.find_one(TENANT_LOOKUP_TABLE, "id", tenant_id)
        if not tenant:
            raise UnknownTenantError(tenant_id)
        return tenant

    async def restore_tenant(
        self,
        tenant_id: Any,
        backup_name: Optional[str] = None,
        tables: Optional[Iterable[str]] = None,
        confirm: bool = False,
        on_table: Optional[Callable[[TableRestoreOutcome], None]] = None,
        tenant: Optional[dict] = None,
    ) -> RestoreReport:
        """Restore one tenant's rows from a backup.

        Without ``confirm`` only the plan (rows per table) is computed.

        Args:
            tenant: Row already returned by lookup_tenant; looked up when omitted

        Raises:
            UnknownTenantError: The tenant does not exist in the store
            BackupInProgressError: Another run holds this manager
        """
        if tenant is None:
            await self.lookup_tenant(tenant_id)

        name = backup_name or await self.latest_backup_name()
        document = await self.load_backup(name)
        selection = select_tenant_rows(
            document,
            tenant_id,
            table_filter=tables,
            tenant_column=self.config.tenant_column,
        )

        report = RestoreReport(
            tenant_id=tenant_id,
            backup_name=name,
            backup_created=document.created,
            dry_run=not confirm,
            planned={table: len(selection[table]) for table in order_tables(selection, self.restorer.priority)},
        )
        if not confirm:
            logger.info(f"Dry run: {sum(report.planned.values())} rows in {len(selection)} tables")
            return report

        logger.warning(f"Restoring organization {tenant_id} from {name} ({len(selection)} tables)")
        async with self._exclusive():
            report.outcomes = await self.restorer.restore(tenant_id, selection, on_table=on_table)
        if report.failed:
            logger.error(f"Restore finished with {len(report.failed)} failed table(s)")
        return report
