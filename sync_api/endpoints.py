from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from sync_core.codes import is_valid_code, make_code
from sync_core.registry import CodeRegistry
from sync_core.snapshot import SnapshotError, decode_snapshot_body, normalize_snapshot, now_ms

from sync_api.settings import DEFAULT_MAX_CODE_ATTEMPTS, TICKET_TTL_S

log = logging.getLogger("sync_api.endpoints")

Response = Tuple[int, Dict[str, Any]]

NOT_FOUND_ERROR = "Code expired or not found"


class CodeCollisionError(RuntimeError):
    """No free code within the bounded number of attempts; live tickets are never overwritten."""


def _server_error(exc: BaseException) -> Response:
    return 500, {"error": "Internal Server Error", "detail": str(exc) or exc.__class__.__name__}


@dataclass
class SyncEndpoints:
    """The create/redeem pair in front of a code registry.

    Handlers take the already-parsed method and input and return
    `(status, json_body)`. They never raise: client mistakes become 4xx,
    misses 404, everything else 500 with a `detail` message.
    """

    registry: CodeRegistry
    ttl_s: int = TICKET_TTL_S
    max_code_attempts: int = DEFAULT_MAX_CODE_ATTEMPTS
    code_factory: Callable[[], str] = make_code
    clock_ms: Callable[[], int] = now_ms

    def _store_ticket(self, snapshot: Dict[str, Any]) -> str:
        # Bounded: a live code or a refused put counts as a collision and is redrawn.
        code = self.code_factory()
        for attempt in range(1, self.max_code_attempts + 1):
            if self.registry.get(code) is None and self.registry.put(code, snapshot, self.ttl_s):
                return code
            log.info("sync code collision on attempt %s/%s", attempt, self.max_code_attempts)
            if attempt < self.max_code_attempts:
                code = self.code_factory()
        log.warning("sync code attempts exhausted after %s attempts", self.max_code_attempts)
        raise CodeCollisionError(f"no free sync code after {self.max_code_attempts} attempts (last {code})")

    def create(self, method: str, body: Any) -> Response:
        if (method or "").upper() != "POST":
            return 405, {"error": "POST only"}
        try:
            payload = decode_snapshot_body(body)
            snapshot = normalize_snapshot(payload, ts_ms=self.clock_ms())
        except SnapshotError as exc:
            return 400, {"error": str(exc)}

        try:
            code = self._store_ticket(snapshot)
        except Exception as exc:
            log.exception("sync create failed")
            return _server_error(exc)

        log.info("sync ticket created records=%s scope=%s", len(snapshot["records"]), snapshot["scope"])
        return 200, {"code": code, "expiresInSec": self.ttl_s}

    def redeem(self, method: str, code: Optional[str]) -> Response:
        if (method or "").upper() != "GET":
            return 405, {"error": "GET only"}
        if not is_valid_code(code):
            return 400, {"error": "Bad code"}

        try:
            snapshot = self.registry.take_once(code)
        except Exception as exc:
            log.exception("sync redeem failed")
            return _server_error(exc)

        if snapshot is None:
            log.info("sync redeem miss")
            return 404, {"error": NOT_FOUND_ERROR}
        log.info("sync ticket redeemed records=%s", len(snapshot.get("records") or []))
        return 200, snapshot
