"""Data models for backup/restore operations."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

CURRENT_VERSION = 2


class TableSnapshot(BaseModel):
    """Extraction result for one table: either rows or an error, never both."""

    data: Optional[List[Dict[str, Any]]] = Field(None, description="Extracted rows")
    rows: int = Field(0, description="Row count")
    error: Optional[str] = Field(None, description="Extraction error message")

    @model_validator(mode="after")
    def _check_form(self) -> "TableSnapshot":
        if (self.data is None) == (self.error is None):
            raise ValueError("snapshot must have exactly one of 'data' or 'error'")
        if self.data is not None and self.rows != len(self.data):
            raise ValueError(f"rows={self.rows} does not match {len(self.data)} data entries")
        if self.error is not None and self.rows != 0:
            raise ValueError("failed snapshot must have rows=0")
        return self

    @classmethod
    def success(cls, rows: List[Dict[str, Any]]) -> "TableSnapshot":
        return cls(data=rows, rows=len(rows))

    @classmethod
    def failure(cls, message: str) -> "TableSnapshot":
        return cls(error=message, rows=0)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_payload(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"error": self.error, "rows": 0}
        return {"data": self.data, "rows": self.rows}


class BackupDocument(BaseModel):
    """Plaintext backup content, built fresh each run and only persisted encrypted."""

    version: int = CURRENT_VERSION
    created: str
    tables: Dict[str, TableSnapshot] = Field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "created": self.created,
            "tables": {name: snapshot.to_payload() for name, snapshot in self.tables.items()},
        }

    @property
    def total_rows(self) -> int:
        return sum(snapshot.rows for snapshot in self.tables.values())

    @property
    def failed_tables(self) -> List[str]:
        return [name for name, snapshot in self.tables.items() if not snapshot.ok]


class BackupReport(BaseModel):
    """Outcome of one backup run."""

    filename: str
    created: str
    dry_run: bool = False
    tables: int = 0
    table_errors: int = 0
    total_rows: int = 0
    raw_size_bytes: int = 0
    encrypted_size_bytes: int = 0
    sha256: str = ""
    tables_verified: int = 0
    verified_local: bool = False
    uploaded: bool = False
    verified_upload: bool = False
    schema_source: str = "catalog"
    missing_critical_tables: List[str] = Field(default_factory=list)
    deleted_backups: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    @property
    def compression_percent(self) -> int:
        if not self.raw_size_bytes:
            return 0
        return round((1 - self.encrypted_size_bytes / self.raw_size_bytes) * 100)


class BackupListing(BaseModel):
    """One backup blob as shown to operators."""

    name: str
    size_bytes: Optional[int] = None
    encrypted: bool


class RestoreState(str, Enum):
    PENDING = "pending"
    DELETING = "deleting-existing"
    INSERTING = "inserting"
    DONE = "done"
    FAILED = "failed"


class TableRestoreOutcome(BaseModel):
    """Per-table restore result. Restores are not atomic across tables."""

    table: str
    state: RestoreState = RestoreState.PENDING
    expected: int = 0
    inserted: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state == RestoreState.DONE


class RestoreReport(BaseModel):
    tenant_id: Any
    backup_name: str
    backup_created: Optional[str] = None
    dry_run: bool = True
    planned: Dict[str, int] = Field(default_factory=dict, description="Rows per table selected for restore")
    outcomes: List[TableRestoreOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[TableRestoreOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> List[TableRestoreOutcome]:
        return [o for o in self.outcomes if o.state == RestoreState.FAILED]

    @property
    def total_inserted(self) -> int:
        return sum(o.inserted for o in self.outcomes)

    @property
    def ok(self) -> bool:
        return not self.failed
