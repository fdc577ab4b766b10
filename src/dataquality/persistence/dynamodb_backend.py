"""DynamoDB backends implementing IRecordSource and IIssueLedger.

Records table (one partition per object type):
    PK = "TYPE#<ObjectType>", SK = "RECORD#<id>", plus the record attributes.

Issues table:
    PK = "ISSUE#<issue id>", SK = "ISSUE"         -> the issue itself
    PK = "OPEN#<record id>#<issue type>", SK = "OPEN" -> guard, exists while the issue is Open
    GSI "record-index" (record_id, issue_type)     -> every issue of a record

The guard item is written in the same transaction as the issue with
``attribute_not_exists``, so two interleaved scans cannot both open an issue
for the same key.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Sequence, TypeVar

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from dataquality.core.exceptions import IssueNotFoundError, LedgerError, SourceUnavailableError
from dataquality.core.types import IssueKey
from dataquality.models.issues import (
    Issue,
    IssueStatus,
    IssueSummary,
    IssueType,
    SeverityUpdate,
    ensure_closing_status,
    sort_issues,
    utcnow,
)
from dataquality.models.records import ObjectType, RecordField, SourceRecord
from dataquality.persistence.record_rows import project_rows

logger = logging.getLogger(__name__)

T = TypeVar("T")

RECORD_INDEX = "record-index"
MAX_TRANSACTION_ITEMS = 100

_AWS_ERRORS = (BotoCoreError, ClientError)


def _resource(region: str, endpoint_url: str | None):
    kwargs: dict = {"region_name": region}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    return boto3.resource("dynamodb", **kwargs)


def _chunks(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _paginate(call, **kwargs: Any) -> list[dict[str, Any]]:
    """Drain a query/scan, following LastEvaluatedKey."""
    items: list[dict[str, Any]] = []
    while True:
        resp = call(**kwargs)
        items.extend(resp.get("Items", []))
        last = resp.get("LastEvaluatedKey")
        if last is None:
            return items
        kwargs["ExclusiveStartKey"] = last


# ---------------------------------------------------------------------------
# Record Source
# ---------------------------------------------------------------------------

class DynamoDBRecordSource:
    """Production IRecordSource reading field-projected record partitions."""

    PAGE_SIZE = 1000

    def __init__(self, table_name: str, region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._table_name = table_name
        self._ddb = _resource(region, endpoint_url)

    def fetch(
        self, object_type: ObjectType, fields: Iterable[RecordField], limit: int = 10_000
    ) -> list[SourceRecord]:
        fields = tuple(fields)
        wanted = dict.fromkeys([RecordField.ID.value, *(RecordField(f).value for f in fields)])
        names = {f"#f{i}": name for i, name in enumerate(wanted)}
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": "PK = :pk",
            "ExpressionAttributeValues": {":pk": f"TYPE#{object_type}"},
            "ProjectionExpression": ", ".join(names),
            "ExpressionAttributeNames": names,
            "Limit": min(self.PAGE_SIZE, limit),
        }

        rows: list[dict[str, Any]] = []
        try:
            table = self._ddb.Table(self._table_name)
            while len(rows) < limit:
                resp = table.query(**kwargs)
                rows.extend(resp.get("Items", []))
                last = resp.get("LastEvaluatedKey")
                if last is None:
                    break
                kwargs["ExclusiveStartKey"] = last
                kwargs["Limit"] = min(self.PAGE_SIZE, limit - len(rows))
        except _AWS_ERRORS as exc:
            raise SourceUnavailableError(object_type, str(exc)) from exc

        return project_rows(object_type, rows[:limit], fields)


# ---------------------------------------------------------------------------
# Issue Ledger
# ---------------------------------------------------------------------------

def _issue_key(issue_id: str) -> dict[str, str]:
    return {"PK": f"ISSUE#{issue_id}", "SK": "ISSUE"}


def _guard_key(record_id: str, issue_type: IssueType | str) -> dict[str, str]:
    return {"PK": f"OPEN#{record_id}#{IssueType(issue_type).value}", "SK": "OPEN"}


def _to_item(issue: Issue) -> dict[str, Any]:
    item = issue.model_dump(mode="json", exclude={"id"}, exclude_none=True)
    item.update(_issue_key(issue.id), issue_id=issue.id)
    return item


def _from_item(item: dict[str, Any]) -> Issue:
    data = {k: v for k, v in item.items() if k not in ("PK", "SK", "issue_id")}
    return Issue.model_validate({"id": item["issue_id"], **data})


class DynamoDBIssueLedger:
    """Production IIssueLedger backed by DynamoDB transactions.

    Each bulk call is split into transactions of at most ``transaction_size``
    items. If a later transaction fails, the earlier ones of the same call are
    compensated before ``LedgerError`` is raised.
    """

    # Above this many distinct records a key lookup scans instead of querying.
    SCAN_THRESHOLD = 200

    def __init__(self, table_name: str, region: str = "us-east-1",
                 endpoint_url: str | None = None,
                 transaction_size: int = MAX_TRANSACTION_ITEMS) -> None:
        self._table_name = table_name
        self._transaction_size = min(transaction_size, MAX_TRANSACTION_ITEMS)
        self._ddb = _resource(region, endpoint_url)
        self._client = self._ddb.meta.client

    @property
    def _table(self):
        return self._ddb.Table(self._table_name)

    def _transact(self, ops: list[dict[str, Any]]) -> None:
        self._client.transact_write_items(TransactItems=ops)

    # ---- bulk writes ----

    def _create_ops(self, issue: Issue) -> list[dict[str, Any]]:
        ops = [{
            "Put": {
                "TableName": self._table_name,
                "Item": _to_item(issue),
                "ConditionExpression": "attribute_not_exists(PK)",
            }
        }]
        if issue.is_open:
            ops.append({
                "Put": {
                    "TableName": self._table_name,
                    "Item": {**_guard_key(issue.record_id, issue.issue_type), "issue_id": issue.id},
                    "ConditionExpression": "attribute_not_exists(PK)",
                }
            })
        return ops

    def _delete_ops(self, issue: Issue) -> list[dict[str, Any]]:
        ops = [{"Delete": {"TableName": self._table_name, "Key": _issue_key(issue.id)}}]
        if issue.is_open:
            ops.append({
                "Delete": {
                    "TableName": self._table_name,
                    "Key": _guard_key(issue.record_id, issue.issue_type),
                    "ConditionExpression": "issue_id = :id",
                    "ExpressionAttributeValues": {":id": issue.id},
                }
            })
        return ops

    def create_issues(self, batch: list[Issue]) -> None:
        per_chunk = max(1, self._transaction_size // 2)
        written: list[Issue] = []
        for chunk in _chunks(batch, per_chunk):
            try:
                self._transact([op for issue in chunk for op in self._create_ops(issue)])
            except _AWS_ERRORS as exc:
                self._compensate(written, self._delete_ops, "creates")
                raise LedgerError(
                    f"Creating {len(batch)} issues failed after {len(written)}; rolled back: {exc}"
                ) from exc
            written.extend(chunk)

    def _update_op(self, update: SeverityUpdate) -> dict[str, Any]:
        return {
            "Update": {
                "TableName": self._table_name,
                "Key": _issue_key(update.issue_id),
                "UpdateExpression": "SET severity = :sev",
                "ConditionExpression": "attribute_exists(PK) AND #st = :open",
                "ExpressionAttributeNames": {"#st": "status"},
                "ExpressionAttributeValues": {
                    ":sev": update.severity.value,
                    ":open": IssueStatus.OPEN.value,
                },
            }
        }

    def update_severity(self, batch: list[SeverityUpdate]) -> None:
        applied: list[SeverityUpdate] = []
        for chunk in _chunks(batch, self._transaction_size):
            try:
                self._transact([self._update_op(u) for u in chunk])
            except _AWS_ERRORS as exc:
                self._compensate(applied, lambda u: [self._update_op(u.reverted())], "severity updates")
                raise LedgerError(
                    f"Updating {len(batch)} severities failed after {len(applied)}; rolled back: {exc}"
                ) from exc
            applied.extend(chunk)

    def _compensate(self, done: list[Any], undo_ops, label: str) -> None:
        """Undo already-committed transactions of a failed bulk call."""
        if not done:
            return
        logger.error("Rolling back %d %s", len(done), label)
        ops = [op for item in done for op in undo_ops(item)]
        for chunk in _chunks(ops, self._transaction_size):
            try:
                self._transact(list(chunk))
            except _AWS_ERRORS as exc:
                logger.exception("Rollback of %s incomplete; manual cleanup required", label)
                raise LedgerError(f"Rollback of {len(done)} {label} incomplete: {exc}") from exc

    # ---- reads ----

    def _query_record(self, record_id: str) -> list[Issue]:
        items = _paginate(
            self._table.query,
            IndexName=RECORD_INDEX,
            KeyConditionExpression="record_id = :rid",
            ExpressionAttributeValues={":rid": record_id},
        )
        return [_from_item(i) for i in items]

    def _scan(self, status: IssueStatus | None = None) -> list[Issue]:
        kwargs: dict[str, Any] = {
            "FilterExpression": "SK = :issue",
            "ExpressionAttributeValues": {":issue": "ISSUE"},
        }
        if status is not None:
            kwargs["FilterExpression"] += " AND #st = :status"
            kwargs["ExpressionAttributeNames"] = {"#st": "status"}
            kwargs["ExpressionAttributeValues"][":status"] = status.value
        return [_from_item(i) for i in _paginate(self._table.scan, **kwargs)]

    def query_issues_by_key(self, keys: Iterable[IssueKey]) -> list[Issue]:
        wanted = set(keys)
        record_ids = {record_id for record_id, _ in wanted}
        try:
            if len(record_ids) > self.SCAN_THRESHOLD:
                candidates = self._scan()
            else:
                candidates = [i for rid in sorted(record_ids) for i in self._query_record(rid)]
        except _AWS_ERRORS as exc:
            raise LedgerError(f"Issue lookup failed: {exc}") from exc
        return [i for i in candidates if i.key in wanted]

    def query_open_issues_by_key(self, keys: Iterable[IssueKey]) -> list[Issue]:
        return [i for i in self.query_issues_by_key(keys) if i.is_open]

    def get_issue(self, issue_id: str) -> Issue:
        try:
            resp = self._table.get_item(Key=_issue_key(issue_id), ConsistentRead=True)
        except _AWS_ERRORS as exc:
            raise LedgerError(f"Issue read failed for {issue_id!r}: {exc}") from exc
        item = resp.get("Item")
        if item is None:
            raise IssueNotFoundError([issue_id])
        return _from_item(item)

    def get_all_issues(self, status: IssueStatus | None = IssueStatus.OPEN) -> list[Issue]:
        try:
            return sort_issues(self._scan(status))
        except _AWS_ERRORS as exc:
            raise LedgerError(f"Issue scan failed: {exc}") from exc

    def get_issues_by_type(
        self, issue_type: IssueType, status: IssueStatus | None = IssueStatus.OPEN
    ) -> list[Issue]:
        return [i for i in self.get_all_issues(status) if i.issue_type == issue_type]

    def get_issues_summary(self, status: IssueStatus | None = IssueStatus.OPEN) -> IssueSummary:
        return IssueSummary.from_issues(self.get_all_issues(status))

    # ---- status mutations ----

    def _restore_ops(self, issue: Issue) -> list[dict[str, Any]]:
        ops = [{"Put": {"TableName": self._table_name, "Item": _to_item(issue)}}]
        if issue.is_open:
            ops.append({
                "Put": {
                    "TableName": self._table_name,
                    "Item": {**_guard_key(issue.record_id, issue.issue_type), "issue_id": issue.id},
                }
            })
        return ops

    def _status_ops(self, before: Issue, after: Issue) -> list[dict[str, Any]]:
        values: dict[str, Any] = {":status": after.status.value}
        if after.fixed_date is not None:
            expression = "SET #st = :status, fixed_date = :fixed"
            values[":fixed"] = after.fixed_date.isoformat()
        else:
            expression = "SET #st = :status REMOVE fixed_date"
        ops: list[dict[str, Any]] = [{
            "Update": {
                "TableName": self._table_name,
                "Key": _issue_key(after.id),
                "UpdateExpression": expression,
                "ConditionExpression": "attribute_exists(PK)",
                "ExpressionAttributeNames": {"#st": "status"},
                "ExpressionAttributeValues": values,
            }
        }]
        if before.is_open:
            ops.append({
                "Delete": {
                    "TableName": self._table_name,
                    "Key": _guard_key(before.record_id, before.issue_type),
                }
            })
        return ops

    def set_status(self, issue_id: str, status: IssueStatus) -> Issue:
        return self.bulk_set_status([issue_id], status)[0]

    def bulk_set_status(self, issue_ids: list[str], status: IssueStatus) -> list[Issue]:
        status = ensure_closing_status(status)
        before: list[Issue] = []
        missing: list[str] = []
        for issue_id in dict.fromkeys(issue_ids):
            try:
                before.append(self.get_issue(issue_id))
            except IssueNotFoundError:
                missing.append(issue_id)
        if missing:
            raise IssueNotFoundError(missing)

        now = utcnow()
        pairs = [(issue, issue.with_status(status, now)) for issue in before]
        applied: list[Issue] = []
        for chunk in _chunks(pairs, max(1, self._transaction_size // 2)):
            try:
                self._transact([op for b, a in chunk for op in self._status_ops(b, a)])
            except _AWS_ERRORS as exc:
                self._compensate(applied, self._restore_ops, "status changes")
                raise LedgerError(f"Status change to {status} failed; rolled back: {exc}") from exc
            applied.extend(b for b, _ in chunk)
        return [after for _, after in pairs]
