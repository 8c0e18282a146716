"""record_store.py — Key-value persistence for raw task records.

Two media implement the same contract:

    DynamoRecordStore    boto3 low-level client against a single table
    InMemoryRecordStore  process-local dict, used by tests and local runs

Contract:
    scan_all()                    lazy, finite, restartable pass over all records
    scan_page(limit, cursor)      one page plus an opaque continuation token
    get(key)                      record dict or None
    put_if_absent(key, record)    raises RecordAlreadyExists
    delete_by_key(key)            raises RecordNotFound

Any failure of the medium itself surfaces as StoreError. The store keeps no
cursor state and caches nothing between calls.
"""
from __future__ import annotations

import base64
import binascii
import json
import logging
import threading
from typing import Any, Dict, Iterator, List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from task_service.errors import InvalidCursor, RecordAlreadyExists, RecordNotFound, StoreError
from task_service.serialization import _deserialize, _serialize, _serialize_item

__all__ = [
    "DynamoRecordStore",
    "InMemoryRecordStore",
    "RecordStore",
]

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


# ---------------------------------------------------------------------------
# Continuation tokens
# ---------------------------------------------------------------------------


def _encode_cursor(position: Any) -> str:
    raw = json.dumps(position, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def _decode_cursor(token: str) -> Any:
    try:
        return json.loads(base64.urlsafe_b64decode(token.encode("ascii")).decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise InvalidCursor(f"Invalid pagination cursor: {exc}") from exc


def _cursor_key(token: str, key_name: str) -> str:
    """Decode a continuation token to the last key it covers: ``{key_name: "<str>"}``."""
    position = _decode_cursor(token)
    if not isinstance(position, dict) or set(position) != {key_name} or not isinstance(position[key_name], str):
        raise InvalidCursor("Invalid pagination cursor.")
    return position[key_name]


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class RecordStore:
    """Base class for record stores keyed by a single string attribute."""

    key_name = "taskId"

    def scan_all(self) -> Iterator[Record]:
        raise NotImplementedError

    def scan_page(self, limit: int, cursor: Optional[str] = None) -> Tuple[List[Record], Optional[str]]:
        raise NotImplementedError

    def get(self, key: str) -> Optional[Record]:
        raise NotImplementedError

    def put_if_absent(self, key: str, record: Record) -> None:
        raise NotImplementedError

    def delete_by_key(self, key: str) -> None:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# DynamoDB
# ---------------------------------------------------------------------------


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code") or "")


class DynamoRecordStore(RecordStore):
    def __init__(self, client: Any, table_name: str, key_name: str = "taskId") -> None:
        self._ddb = client
        self.table_name = table_name
        self.key_name = key_name

    def _key(self, key: str) -> Dict[str, Any]:
        return {self.key_name: _serialize(key)}

    def _scan(self, **kwargs: Any) -> Dict[str, Any]:
        try:
            return self._ddb.scan(TableName=self.table_name, **kwargs)
        except (ClientError, BotoCoreError) as exc:
            logger.error("scan failed: table=%s error=%s", self.table_name, exc)
            raise StoreError(f"scan failed on {self.table_name}") from exc

    def scan_all(self) -> Iterator[Record]:
        resp = self._scan()
        while True:
            for raw in resp.get("Items", []):
                yield _deserialize(raw)
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                break
            resp = self._scan(ExclusiveStartKey=last_key)

    def scan_page(self, limit: int, cursor: Optional[str] = None) -> Tuple[List[Record], Optional[str]]:
        params: Dict[str, Any] = {"Limit": limit}
        if cursor:
            params["ExclusiveStartKey"] = self._key(_cursor_key(cursor, self.key_name))
        resp = self._scan(**params)
        records = [_deserialize(raw) for raw in resp.get("Items", [])]
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            return records, None
        return records, _encode_cursor({self.key_name: _deserialize(last_key)[self.key_name]})

    def get(self, key: str) -> Optional[Record]:
        try:
            resp = self._ddb.get_item(TableName=self.table_name, Key=self._key(key), ConsistentRead=True)
        except (ClientError, BotoCoreError) as exc:
            logger.error("get_item failed: key=%s error=%s", key, exc)
            raise StoreError(f"get_item failed for {key}") from exc
        raw = resp.get("Item")
        if not raw:
            return None
        return _deserialize(raw)

    def put_if_absent(self, key: str, record: Record) -> None:
        item = dict(record)
        item[self.key_name] = key
        try:
            self._ddb.put_item(
                TableName=self.table_name,
                Item=_serialize_item(item),
                ConditionExpression="attribute_not_exists(#k)",
                ExpressionAttributeNames={"#k": self.key_name},
            )
        except ClientError as exc:
            if _error_code(exc) == "ConditionalCheckFailedException":
                raise RecordAlreadyExists(key) from exc
            logger.error("put_item failed: key=%s error=%s", key, exc)
            raise StoreError(f"put_item failed for {key}") from exc
        except BotoCoreError as exc:
            logger.error("put_item failed: key=%s error=%s", key, exc)
            raise StoreError(f"put_item failed for {key}") from exc

    def delete_by_key(self, key: str) -> None:
        try:
            self._ddb.delete_item(
                TableName=self.table_name,
                Key=self._key(key),
                ConditionExpression="attribute_exists(#k)",
                ExpressionAttributeNames={"#k": self.key_name},
            )
        except ClientError as exc:
            if _error_code(exc) == "ConditionalCheckFailedException":
                raise RecordNotFound(key) from exc
            logger.error("delete_item failed: key=%s error=%s", key, exc)
            raise StoreError(f"delete_item failed for {key}") from exc
        except BotoCoreError as exc:
            logger.error("delete_item failed: key=%s error=%s", key, exc)
            raise StoreError(f"delete_item failed for {key}") from exc


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class InMemoryRecordStore(RecordStore):
    """Dict-backed store. Iterates in key order; the lock gives per-key atomicity."""

    def __init__(self, records: Optional[Dict[str, Record]] = None, key_name: str = "taskId") -> None:
        self.key_name = key_name
        self._records: Dict[str, Record] = {k: dict(v) for k, v in (records or {}).items()}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _snapshot(self) -> List[Tuple[str, Record]]:
        with self._lock:
            return [(k, dict(self._records[k])) for k in sorted(self._records)]

    def scan_all(self) -> Iterator[Record]:
        for _key, record in self._snapshot():
            yield record

    def scan_page(self, limit: int, cursor: Optional[str] = None) -> Tuple[List[Record], Optional[str]]:
        after = None
        if cursor:
            after = _cursor_key(cursor, self.key_name)
        remaining = [(k, r) for k, r in self._snapshot() if after is None or k > after]
        page = remaining[:limit]
        next_cursor = None
        if len(remaining) > limit and page:
            next_cursor = _encode_cursor({self.key_name: page[-1][0]})
        return [r for _k, r in page], next_cursor

    def get(self, key: str) -> Optional[Record]:
        with self._lock:
            record = self._records.get(key)
            return dict(record) if record is not None else None

    def put_if_absent(self, key: str, record: Record) -> None:
        item = dict(record)
        item[self.key_name] = key
        with self._lock:
            if key in self._records:
                raise RecordAlreadyExists(key)
            self._records[key] = item

    def delete_by_key(self, key: str) -> None:
        with self._lock:
            if key not in self._records:
                raise RecordNotFound(key)
            del self._records[key]
