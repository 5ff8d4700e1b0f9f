from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from .codes import ticket_key
from .registry import CodeRegistry, RegistryError, decode_ticket, encode_ticket

UPSTASH_TIMEOUT_S = 10.0


class UpstashCodeRegistry(CodeRegistry):
    """Tickets in a managed Redis reached through its REST API.

    Each command is POSTed as a JSON array; the reply is `{"result": ...}`
    or `{"error": "..."}`.
    """

    def __init__(self, base_url: str, token: str, timeout_s: float | None = None) -> None:
        if not base_url or not token:
            raise ValueError("upstash url and token are required")
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout_s = UPSTASH_TIMEOUT_S if timeout_s is None else float(timeout_s)

    def _command(self, args: List[str]) -> Any:
        try:
            resp = requests.post(
                self.base_url,
                json=args,
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout_s,
            )
        except requests.RequestException as exc:
            raise RegistryError(f"upstash {args[0]} failed: {exc}") from exc
        try:
            payload = resp.json()
        except ValueError:
            payload = None
        if resp.status_code >= 400 or not isinstance(payload, dict) or "error" in payload:
            detail = payload.get("error") if isinstance(payload, dict) else None
            raise RegistryError(f"upstash {args[0]} failed: HTTP {resp.status_code} {detail or ''}".rstrip())
        return payload.get("result")

    def put(self, code: str, snapshot: Dict[str, Any], ttl_s: int) -> bool:
        if int(ttl_s) <= 0:
            raise ValueError(f"ttl_s must be positive (got {ttl_s!r})")
        result = self._command(["SET", ticket_key(code), encode_ticket(snapshot), "NX", "EX", str(int(ttl_s))])
        return result == "OK"

    def get(self, code: str) -> Optional[Dict[str, Any]]:
        return decode_ticket(self._command(["GET", ticket_key(code)]))

    def take_once(self, code: str) -> Optional[Dict[str, Any]]:
        return decode_ticket(self._command(["GETDEL", ticket_key(code)]))
