from __future__ import annotations

import json
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

from .codes import ticket_key


class RegistryError(RuntimeError):
    """Backend failure (connection, protocol or storage error)."""


def encode_ticket(snapshot: Dict[str, Any]) -> str:
    return json.dumps(snapshot, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def decode_ticket(raw: Any) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    try:
        value = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError as exc:
        raise RegistryError(f"stored ticket is not valid JSON: {exc.msg}") from exc
    if not isinstance(value, dict):
        raise RegistryError("stored ticket is not a JSON object")
    return value


class CodeRegistry(ABC):
    """Key-value store of pending sync tickets with per-key expiry.

    Implementations keep every ticket under `sync:<code>` and let the store
    itself enforce the time-to-live (always in seconds).
    """

    @abstractmethod
    def put(self, code: str, snapshot: Dict[str, Any], ttl_s: int) -> bool:
        """Store the ticket unless a live one exists. Never overwrites."""

    @abstractmethod
    def get(self, code: str) -> Optional[Dict[str, Any]]:
        """Return the live ticket without consuming it."""

    @abstractmethod
    def take_once(self, code: str) -> Optional[Dict[str, Any]]:
        """Atomically return and delete the ticket.

        Among concurrent callers for the same code exactly one gets the
        snapshot; the rest get None.
        """

    def close(self) -> None:
        """Release backend resources, if any."""
        return None


class MemoryCodeRegistry(CodeRegistry):
    """In-process registry for development and tests.

    Tickets are held JSON-encoded so callers can never mutate a stored
    snapshot. `clock` must be monotonic; tests inject their own to
    simulate expiry.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._tickets: Dict[str, Tuple[float, str]] = {}

    def _live(self, key: str, now: float) -> Optional[str]:
        entry = self._tickets.get(key)
        if entry is None:
            return None
        expires_at, raw = entry
        if now >= expires_at:
            del self._tickets[key]
            return None
        return raw

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, (exp, _) in self._tickets.items() if now >= exp]
        for key in expired:
            del self._tickets[key]

    def put(self, code: str, snapshot: Dict[str, Any], ttl_s: int) -> bool:
        if int(ttl_s) <= 0:
            raise ValueError(f"ttl_s must be positive (got {ttl_s!r})")
        key = ticket_key(code)
        raw = encode_ticket(snapshot)
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            if key in self._tickets:
                return False
            self._tickets[key] = (now + int(ttl_s), raw)
            return True

    def get(self, code: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            raw = self._live(ticket_key(code), self._clock())
        return decode_ticket(raw)

    def take_once(self, code: str) -> Optional[Dict[str, Any]]:
        key = ticket_key(code)
        with self._lock:
            raw = self._live(key, self._clock())
            if raw is not None:
                del self._tickets[key]
        return decode_ticket(raw)

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired(self._clock())
            return len(self._tickets)

    def keys(self) -> list[str]:
        with self._lock:
            self._evict_expired(self._clock())
            return sorted(self._tickets)


class LazyCodeRegistry(CodeRegistry):
    """Build the backend on first use, exactly once.

    Concurrent first requests wait on the same initialization instead of
    each opening a connection. A failed build is not cached, so the next
    request tries again.
    """

    def __init__(self, factory: Callable[[], CodeRegistry]) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._backend: Optional[CodeRegistry] = None

    @property
    def backend(self) -> CodeRegistry:
        backend = self._backend
        if backend is not None:
            return backend
        with self._lock:
            if self._backend is None:
                self._backend = self._factory()
            return self._backend

    def put(self, code: str, snapshot: Dict[str, Any], ttl_s: int) -> bool:
        return self.backend.put(code, snapshot, ttl_s)

    def get(self, code: str) -> Optional[Dict[str, Any]]:
        return self.backend.get(code)

    def take_once(self, code: str) -> Optional[Dict[str, Any]]:
        return self.backend.take_once(code)

    def close(self) -> None:
        with self._lock:
            backend, self._backend = self._backend, None
        if backend is not None:
            backend.close()
