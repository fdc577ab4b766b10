"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from dataquality.core.config import AppSettings
from dataquality.core.protocols import ICacheBackend, IIssueLedger, IRecordSource
from dataquality.persistence.dynamodb_backend import DynamoDBIssueLedger, DynamoDBRecordSource
from dataquality.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryIssueLedger,
    MemoryRecordSource,
)
from dataquality.persistence.redis_backend import RedisCacheBackend


def create_persistence(
    settings: AppSettings | None = None,
) -> tuple[IRecordSource, IIssueLedger, ICacheBackend]:
    """Create wired-up persistence backends from application settings.

    Returns:
        Tuple of (record_source, issue_ledger, cache).
    """
    if settings is None:
        settings = AppSettings()

    if settings.backend == "memory":
        return MemoryRecordSource(), MemoryIssueLedger(), MemoryCacheBackend()

    dynamo = settings.dynamodb
    source = DynamoDBRecordSource(
        table_name=f"{dynamo.records_table}{dynamo.table_suffix}",
        region=dynamo.region,
        endpoint_url=dynamo.endpoint_url,
    )
    ledger = DynamoDBIssueLedger(
        table_name=f"{dynamo.issues_table}{dynamo.table_suffix}",
        region=dynamo.region,
        endpoint_url=dynamo.endpoint_url,
        transaction_size=dynamo.transaction_size,
    )
    cache = RedisCacheBackend(
        host=settings.redis.host,
        port=settings.redis.port,
        db=settings.redis.db,
        namespace=f"dataquality-{settings.environment}",
    )
    return source, ledger, cache
