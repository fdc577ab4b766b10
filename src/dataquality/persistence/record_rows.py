"""Turn raw record-store rows into projected ``SourceRecord`` snapshots."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from pydantic import ValidationError

from dataquality.models.records import ObjectType, RecordField, SourceRecord

logger = logging.getLogger(__name__)


def project_rows(
    object_type: ObjectType, rows: Iterable[dict[str, Any]], fields: Iterable[RecordField]
) -> list[SourceRecord]:
    """Keep only ``fields`` of each row; rows that do not validate are skipped."""
    names = {RecordField(f).value for f in fields} | {RecordField.ID.value}
    records: list[SourceRecord] = []
    for row in rows:
        data = {name: row[name] for name in names if row.get(name) is not None}
        try:
            records.append(SourceRecord(object_type=object_type, **data))
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed %s row %r: %d validation errors",
                object_type, row.get("id"), exc.error_count(),
            )
    return records
