"""Field redaction and critical-table checks applied before serialization."""

from typing import Dict, Iterable, List, Mapping

from .models import TableSnapshot
from .._storage.base import Row

REDACTED = "[REDACTED]"


def sanitize_rows(
    table: str,
    rows: List[Row],
    rules: Mapping[str, Iterable[str]],
) -> List[Row]:
    """Replace configured fields with REDACTED; rows of unlisted tables are returned as is."""
    fields = list(rules.get(table) or [])
    if not fields or not rows:
        return rows

    sanitized = []
    for row in rows:
        clean = dict(row)
        for field in fields:
            if field in clean:
                clean[field] = REDACTED
        sanitized.append(clean)
    return sanitized


def find_missing_critical(
    tables: Dict[str, TableSnapshot],
    critical: Iterable[str],
) -> List[str]:
    """Critical tables that are absent or failed, in configured order."""
    return [
        name for name in critical
        if name not in tables or not tables[name].ok
    ]
