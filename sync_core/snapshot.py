from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

DEFAULT_SCOPE = "all"


class SnapshotError(ValueError):
    """Raised when a request body is not a usable roster snapshot."""


def now_ms() -> int:
    return int(datetime.now(tz=timezone.utc).timestamp() * 1000)


def _reject_constant(name: str) -> Any:
    raise SnapshotError(f"Invalid JSON body: {name} is not allowed")


def decode_snapshot_body(body: Any) -> Dict[str, Any]:
    """Turn a raw request body into a snapshot dict.

    Accepts bytes, text, or an already-decoded object. Some producers send the
    snapshot as a JSON-encoded string, so a decoded string is decoded once more.
    """
    payload = body
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SnapshotError("Request body is not valid UTF-8") from exc
    for _ in range(2):
        if not isinstance(payload, str):
            break
        try:
            payload = json.loads(payload, parse_constant=_reject_constant)
        except json.JSONDecodeError as exc:
            raise SnapshotError(f"Invalid JSON body: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise SnapshotError("Missing payload.records (must be an array)")
    return payload


def validate_snapshot(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict) or not isinstance(payload.get("records"), list):
        raise SnapshotError("Missing payload.records (must be an array)")
    return payload


def normalize_snapshot(payload: Dict[str, Any], ts_ms: Optional[int] = None) -> Dict[str, Any]:
    """Fill `scope` and `exportedAt` when the producer left them out.

    Entries in `records` are carried as-is; they are never inspected or merged.
    """
    validate_snapshot(payload)
    out = dict(payload)
    if not out.get("scope"):
        out["scope"] = DEFAULT_SCOPE
    if not out.get("exportedAt"):
        out["exportedAt"] = now_ms() if ts_ms is None else int(ts_ms)
    return out
