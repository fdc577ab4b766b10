"""Shared test doubles: re-export memory backends plus record builders."""

from __future__ import annotations

from typing import Any

from dataquality.models.records import ObjectType, SourceRecord
from dataquality.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryIssueLedger,
    MemoryRecordSource,
)


def record(object_type: ObjectType, record_id: str, **fields: Any) -> SourceRecord:
    """Build a snapshot record with an owner filled in."""
    fields.setdefault("owner", "Dana Owner")
    return SourceRecord(id=record_id, object_type=object_type, **fields)


__all__ = ["MemoryCacheBackend", "MemoryIssueLedger", "MemoryRecordSource", "record"]
