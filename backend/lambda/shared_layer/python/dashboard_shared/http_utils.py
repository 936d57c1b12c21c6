"""dashboard_shared.http_utils: HTTP response helpers with CORS.

Response envelope for the dashboard Lambda: success bodies carry
``ok: true``, errors carry ``ok: false`` and ``error``.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any, Dict, Iterable, Optional, Tuple

from dashboard_shared.config import LEGACY_BASE_PATH
from dashboard_shared.errors import ValidationError

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,PATCH,DELETE,OPTIONS",
}

_ROUTE_PATTERN = re.compile(r"^/?(?P<resource>[A-Za-z_-]+)?(?:/(?P<recordId>[^/]+))?/?$")


def _response(status_code: int, body: Any) -> Dict[str, Any]:
    """Build an API Gateway proxy response with CORS headers."""
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json", **CORS_HEADERS},
        "body": json.dumps(body, default=str),
    }


def _ok(**payload: Any) -> Dict[str, Any]:
    return _response(200, {"ok": True, **payload})


def _error(status_code: int, message: str, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"ok": False, "error": message}
    body.update(extra)
    return _response(status_code, body)


def _preflight() -> Dict[str, Any]:
    return {"statusCode": 204, "headers": dict(CORS_HEADERS), "body": ""}


def _json_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """Parse the JSON object body of an API Gateway event (handles base64)."""
    raw = event.get("body")
    if raw in (None, ""):
        return {}
    try:
        if event.get("isBase64Encoded"):
            raw = base64.b64decode(raw, validate=True).decode("utf-8")
        parsed = json.loads(raw)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError, TypeError) as exc:
        raise ValidationError(f"Invalid JSON body: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValidationError("JSON body must be an object")
    return parsed


def _path_method(event: Dict[str, Any]) -> Tuple[str, str]:
    """Extract HTTP method and path from an API Gateway v1 or v2 event."""
    rc = event.get("requestContext") or {}
    http = rc.get("http") or {}
    method = (http.get("method") or event.get("httpMethod") or "GET").upper()
    path = event.get("rawPath") or event.get("path") or http.get("path") or "/"
    return method, path


def _strip_base(path: str, base_paths: Iterable[str]) -> str:
    path = "/" + path.split("?", 1)[0].strip("/")
    for base in base_paths:
        base = "/" + base.strip("/") if base.strip("/") else ""
        if base and (path == base or path.startswith(base + "/")):
            return path[len(base):] or "/"
    return path


def _parse_route(path: str, base_path: str) -> Tuple[Optional[str], Optional[str]]:
    """Split a request path into ``(resource, record_id)`` below the function base path.

    Returns ``("", "")`` for the base path itself and ``(None, None)`` when the
    remainder is not a route shape at all.
    """
    remainder = _strip_base(path, (base_path, LEGACY_BASE_PATH))
    match = _ROUTE_PATTERN.match(remainder)
    if not match:
        return None, None
    return (match.group("resource") or "").lower(), match.group("recordId") or ""
