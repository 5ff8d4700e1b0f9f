from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from sync_core.codes import is_valid_code
from sync_core.snapshot import SnapshotError, validate_snapshot

SYNC_BASE_URL = os.getenv("SYNC_BASE_URL", "http://localhost:8080")
SYNC_TIMEOUT_S = 15.0
CREATE_PATH = "/api/sync/create"
REDEEM_PATH = "/api/sync/get"


class SyncClientError(RuntimeError):
    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class SyncCodeNotFound(SyncClientError):
    """The code was never issued, was already redeemed, or has expired."""


@dataclass(frozen=True)
class SyncCode:
    code: str
    expires_in_s: int


def _error_message(resp: Any, fallback: str) -> str:
    text = getattr(resp, "text", "") or ""
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return text or fallback


class SyncClient:
    """HTTP wrapper around the create/redeem endpoints.

    Redeem is never retried: a second call for the same code always misses.
    """

    def __init__(self, base_url: str | None = None, timeout_s: float | None = None) -> None:
        self.base_url = (base_url or SYNC_BASE_URL).rstrip("/")
        self.timeout_s = SYNC_TIMEOUT_S if timeout_s is None else float(timeout_s)

    def create_code(self, snapshot: Dict[str, Any]) -> SyncCode:
        validate_snapshot(snapshot)
        try:
            resp = requests.post(f"{self.base_url}{CREATE_PATH}", json=snapshot, timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise SyncClientError(f"Create failed: {exc}") from exc
        if resp.status_code != 200:
            raise SyncClientError(_error_message(resp, "Create failed"), status=resp.status_code)
        try:
            data = resp.json()
        except ValueError as exc:
            raise SyncClientError(f"Create failed: response is not JSON: {exc}", status=resp.status_code) from exc
        if not isinstance(data, dict):
            raise SyncClientError("Create failed: unexpected response body", status=resp.status_code)
        code = str(data.get("code") or "")
        if not is_valid_code(code):
            raise SyncClientError(f"Server returned a malformed code: {code!r}", status=resp.status_code)
        return SyncCode(code=code, expires_in_s=int(data.get("expiresInSec") or 0))

    def redeem(self, code: str) -> Dict[str, Any]:
        code = str(code or "").strip()
        if not is_valid_code(code):
            raise SyncClientError("Enter a 6-digit code")
        try:
            resp = requests.get(f"{self.base_url}{REDEEM_PATH}", params={"code": code}, timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise SyncClientError(f"Sync failed: {exc}") from exc
        if resp.status_code == 404:
            raise SyncCodeNotFound(_error_message(resp, "Code expired or not found"), status=404)
        if resp.status_code != 200:
            raise SyncClientError(_error_message(resp, "Sync failed"), status=resp.status_code)
        try:
            return validate_snapshot(resp.json())
        except (ValueError, SnapshotError) as exc:
            raise SyncClientError(f"Sync data invalid: {exc}", status=resp.status_code) from exc
