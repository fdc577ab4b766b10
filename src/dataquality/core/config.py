"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

from dataquality.models.issues import Severity


class ScanConfig(BaseSettings):
    """Detection run configuration."""

    model_config = {"env_prefix": "DQ_SCAN_"}

    record_limit: int = Field(default=10_000, gt=0, le=10_000)
    parallel: bool = True
    max_workers: int = 4
    reopen_fixed: bool = False  # re-open issues whose condition came back after Fixed
    # "Invalid Phone" or "Invalid Phone:fake_pattern" -> Severity
    severity_overrides: dict[str, Severity] = Field(default_factory=dict)


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "DQ_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override
    records_table: str = "dataquality-records"
    issues_table: str = "dataquality-issues"
    transaction_size: int = Field(default=100, gt=0, le=100)


class RedisConfig(BaseSettings):
    """Redis cache configuration."""

    model_config = {"env_prefix": "DQ_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    summary_ttl: int = 60


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "DQ_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    backend: Literal["aws", "memory"] = "aws"

    scan: ScanConfig = Field(default_factory=ScanConfig)
    dynamodb: DynamoDBConfig = Field(default_factory=DynamoDBConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
