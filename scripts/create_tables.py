"""Create the DynamoDB tables used by the data quality engine.

Usage:
    python scripts/create_tables.py --endpoint-url http://localhost:4566 --table-suffix -dev
"""

from __future__ import annotations

import argparse
from typing import Any

import boto3

RECORDS_TABLE = "dataquality-records"
ISSUES_TABLE = "dataquality-issues"
RECORD_INDEX = "record-index"

_KEY_SCHEMA = [
    {"AttributeName": "PK", "KeyType": "HASH"},
    {"AttributeName": "SK", "KeyType": "RANGE"},
]

TABLE_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": RECORDS_TABLE,
        "attributes": [
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ],
    },
    {
        "name": ISSUES_TABLE,
        "attributes": [
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
            {"AttributeName": "record_id", "AttributeType": "S"},
            {"AttributeName": "issue_type", "AttributeType": "S"},
        ],
        "indexes": [
            {
                "IndexName": RECORD_INDEX,
                "KeySchema": [
                    {"AttributeName": "record_id", "KeyType": "HASH"},
                    {"AttributeName": "issue_type", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
    },
]


def create_tables(ddb: Any, suffix: str = "") -> list[str]:
    """Create the records and issues tables. Skips tables that already exist."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])
    created: list[str] = []

    for defn in TABLE_DEFINITIONS:
        table_name = f"{defn['name']}{suffix}"
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
        kwargs: dict[str, Any] = {
            "TableName": table_name,
            "KeySchema": _KEY_SCHEMA,
            "AttributeDefinitions": defn["attributes"],
            "BillingMode": "PAY_PER_REQUEST",
        }
        if defn.get("indexes"):
            kwargs["GlobalSecondaryIndexes"] = defn["indexes"]
        client.create_table(**kwargs)
        created.append(table_name)
        print(f"  Created table {table_name}")
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description="Create DynamoDB tables for the data quality engine")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)
    print("Done!")


if __name__ == "__main__":
    main()
