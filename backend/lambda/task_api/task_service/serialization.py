"""serialization.py — DynamoDB serialization/deserialization, timestamps, structured logs.
"""
from __future__ import annotations

import datetime as dt
import json
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer

from task_service.config import METRICS_NAMESPACE, SERVICE_NAME

__all__ = [
    "_deserialize",
    "_emit_metric",
    "_emit_structured_observability",
    "_now_z",
    "_serialize",
    "_serialize_item",
]

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

_SER = TypeSerializer()
_DESER = TypeDeserializer()


def _serialize(value: Any) -> Dict[str, Any]:
    """Serialize a Python value for DynamoDB."""
    if isinstance(value, float):
        value = Decimal(str(value))
    return _SER.serialize(value)


def _serialize_item(item: Dict[str, Any]) -> Dict[str, Any]:
    return {k: _serialize(v) for k, v in item.items()}


def _deserialize(item: Dict[str, Any]) -> Dict[str, Any]:
    """Deserialize a DynamoDB item to a plain Python dict."""
    out: Dict[str, Any] = {}
    for k, v in item.items():
        val = _DESER.deserialize(v)
        if isinstance(val, Decimal):
            val = int(val) if val == int(val) else float(val)
        out[k] = val
    return out


def _now_z() -> str:
    """Current UTC timestamp, ISO 8601 with milliseconds and Z suffix."""
    now = dt.datetime.now(dt.timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


# ---------------------------------------------------------------------------
# Structured observability
# ---------------------------------------------------------------------------


def _emit_structured_observability(
    *,
    event: str,
    component: str = "task_service",
    request_id: Optional[str] = None,
    latency_ms: Optional[int] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    payload: Dict[str, Any] = {
        "timestamp": _now_z(),
        "service": SERVICE_NAME,
        "component": component,
        "event": event,
        "request_id": str(request_id or ""),
        "latency_ms": int(max(0, latency_ms or 0)),
        "error_code": str(error_code or ""),
    }
    if extra:
        payload.update(extra)
    logger.info("[OBSERVABILITY] %s", json.dumps(payload, sort_keys=True, default=str))


def _emit_metric(name: str, value: int, unit: str = "Count", **dimensions: Any) -> None:
    """Log a single metric datapoint as a structured observability record."""
    _emit_structured_observability(
        event="metric",
        extra={
            "namespace": METRICS_NAMESPACE,
            "metric_name": name,
            "metric_value": value,
            "metric_unit": unit,
            **dimensions,
        },
    )
