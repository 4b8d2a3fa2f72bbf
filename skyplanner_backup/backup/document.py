"""Backup document assembly, serialization and versioned decoding."""

import json
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from .models import BackupDocument, TableSnapshot, CURRENT_VERSION
from ..exceptions import CorruptBackupError, UnsupportedBackupVersionError
from .._utils import iso_timestamp


def build_document(
    tables: Dict[str, TableSnapshot],
    created: Optional[datetime] = None,
) -> BackupDocument:
    return BackupDocument(version=CURRENT_VERSION, created=iso_timestamp(created), tables=dict(tables))


def serialize_document(document: BackupDocument) -> bytes:
    """Compact UTF-8 JSON, the exact bytes that get hashed and encrypted."""
    return json.dumps(
        document.to_payload(),
        ensure_ascii=False,
        separators=(",", ":"),
        default=str,
    ).encode("utf-8")


def _decode_v1(payload: Dict[str, Any]) -> BackupDocument:
    """Legacy plaintext format: ``tables`` maps names straight to row arrays."""
    tables = {}
    for name, rows in payload["tables"].items():
        if not isinstance(rows, list):
            raise CorruptBackupError(f"Table {name!r} in legacy backup is not a row list")
        tables[name] = TableSnapshot.success(rows)
    created = payload.get("created") or payload.get("timestamp") or ""
    return BackupDocument(version=1, created=created, tables=tables)


def _decode_v2(payload: Dict[str, Any]) -> BackupDocument:
    return BackupDocument(
        version=2,
        created=payload.get("created", ""),
        tables=payload["tables"],
    )


_DECODERS: Dict[int, Callable[[Dict[str, Any]], BackupDocument]] = {
    1: _decode_v1,
    2: _decode_v2,
}


def decode_document(plaintext: bytes) -> BackupDocument:
    """Parse decrypted bytes into a BackupDocument.

    Raises:
        CorruptBackupError: On invalid JSON, a missing ``tables`` object or malformed snapshots
        UnsupportedBackupVersionError: On a version without a decoder
    """
    try:
        payload = json.loads(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise CorruptBackupError(f"Backup payload is not valid JSON: {e}") from e

    if not isinstance(payload, dict) or not isinstance(payload.get("tables"), dict):
        raise CorruptBackupError("Backup payload has invalid structure (missing tables)")

    version = payload.get("version", 1)
    decoder = _DECODERS.get(version)
    if decoder is None:
        raise UnsupportedBackupVersionError(version)

    try:
        return decoder(payload)
    except ValidationError as e:
        raise CorruptBackupError(f"Backup payload has malformed table snapshots: {e}") from e
