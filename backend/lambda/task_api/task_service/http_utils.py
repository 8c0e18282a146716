"""http_utils.py — HTTP response building, body parsing, path/method extraction.

Handles both API Gateway payload formats: REST API (v1: ``httpMethod`` and
``path``) and HTTP API (v2: ``requestContext.http`` and ``rawPath``).
"""
from __future__ import annotations

import base64
import binascii
import json
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from task_service.config import CORS_ORIGIN
from task_service.errors import ValidationError

__all__ = [
    "_cors_headers",
    "_error",
    "_json_body",
    "_path_method",
    "_preflight",
    "_query_params",
    "_response",
]

# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------

_DEFAULT_CODES = {
    400: "INVALID_INPUT",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def _cors_headers() -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": CORS_ORIGIN,
        "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Accept, Authorization, Content-Type",
    }


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _response(status_code: int, payload: Any, headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Build a standard API Gateway proxy response with CORS headers."""
    return {
        "statusCode": status_code,
        "headers": {**_cors_headers(), "Content-Type": "application/json", **(headers or {})},
        "body": json.dumps(payload, default=_json_default),
    }


def _preflight() -> Dict[str, Any]:
    return {
        "statusCode": 204,
        "headers": {**_cors_headers(), "Content-Type": "application/json"},
        "body": "",
    }


def _error(
    status_code: int,
    message: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build a standard error response.

    Args:
        status_code: HTTP status code.
        message: Human-readable error message.
        headers: Extra response headers (e.g. ``Allow`` on 405).
        **extra: Additional fields merged into the payload; ``code`` and
            ``retryable`` override the envelope defaults.
    """
    code = str(extra.pop("code", "") or "").strip().upper()
    if not code:
        code = _DEFAULT_CODES.get(status_code, "INTERNAL_ERROR")
    retryable = bool(extra.pop("retryable", status_code >= 500))
    details = dict(extra)
    body: Dict[str, Any] = {
        "success": False,
        "error": message,
        "message": message,
        "error_envelope": {
            "code": code,
            "message": message,
            "retryable": retryable,
            "details": details,
        },
    }
    body.update(details)
    return _response(status_code, body, headers=headers)


def _json_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """Parse the JSON object body of an event; raises ValidationError otherwise."""
    raw = event.get("body")
    if raw in (None, ""):
        return {}

    if event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(raw).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise ValidationError(f"Invalid base64 body: {exc}") from exc

    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ValidationError(f"Invalid JSON body: {exc}") from exc

    if not isinstance(parsed, dict):
        raise ValidationError("JSON body must be an object")
    return parsed


def _path_method(event: Dict[str, Any]) -> Tuple[str, str]:
    """Extract HTTP method and path from an API Gateway v1 or v2 event."""
    rc = event.get("requestContext") or {}
    http = rc.get("http") or {}
    method = (http.get("method") or event.get("httpMethod") or "GET").upper()
    path = event.get("rawPath") or http.get("path") or event.get("path") or "/"
    return method, path


def _query_params(event: Dict[str, Any]) -> Dict[str, str]:
    return dict(event.get("queryStringParameters") or {})
