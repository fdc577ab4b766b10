"""Tests for scripts/create_tables.py."""

from __future__ import annotations

import sys
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "scripts"))

from create_tables import ISSUES_TABLE, RECORD_INDEX, RECORDS_TABLE, create_tables  # noqa: E402


@pytest.fixture
def ddb():
    with mock_aws():
        yield boto3.resource("dynamodb", region_name="us-east-1")


class TestCreateTables:
    def test_creates_both_tables(self, ddb):
        created = create_tables(ddb, suffix="-dev")
        assert created == [f"{RECORDS_TABLE}-dev", f"{ISSUES_TABLE}-dev"]

    def test_issues_table_has_record_index(self, ddb):
        create_tables(ddb)
        desc = ddb.meta.client.describe_table(TableName=ISSUES_TABLE)["Table"]
        assert [i["IndexName"] for i in desc["GlobalSecondaryIndexes"]] == [RECORD_INDEX]

    def test_is_idempotent(self, ddb):
        create_tables(ddb)
        assert create_tables(ddb) == []
