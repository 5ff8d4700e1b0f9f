from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import redis

from .codes import ticket_key
from .registry import CodeRegistry, RegistryError, decode_ticket, encode_ticket

log = logging.getLogger("sync_core.redis_registry")


def connect_redis(url: str, timeout_s: float = 5.0) -> "redis.Redis":
    if not url:
        raise ValueError("redis url is required")
    client = redis.Redis.from_url(
        url,
        decode_responses=True,
        socket_timeout=timeout_s,
        socket_connect_timeout=timeout_s,
    )
    log.info("Redis client created for %s", client.connection_pool.connection_kwargs.get("host", "?"))
    return client


class RedisCodeRegistry(CodeRegistry):
    """Tickets in Redis: SET NX EX for put, MULTI/EXEC GET+DEL for take_once.

    The client's connection pool connects on first command and is safe to
    share between request threads.
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str, timeout_s: float = 5.0) -> "RedisCodeRegistry":
        return cls(connect_redis(url, timeout_s=timeout_s))

    def put(self, code: str, snapshot: Dict[str, Any], ttl_s: int) -> bool:
        if int(ttl_s) <= 0:
            raise ValueError(f"ttl_s must be positive (got {ttl_s!r})")
        try:
            stored = self.client.set(ticket_key(code), encode_ticket(snapshot), ex=int(ttl_s), nx=True)
        except redis.RedisError as exc:
            raise RegistryError(f"redis SET failed: {exc}") from exc
        return bool(stored)

    def get(self, code: str) -> Optional[Dict[str, Any]]:
        try:
            raw = self.client.get(ticket_key(code))
        except redis.RedisError as exc:
            raise RegistryError(f"redis GET failed: {exc}") from exc
        return decode_ticket(raw)

    def take_once(self, code: str) -> Optional[Dict[str, Any]]:
        key = ticket_key(code)
        try:
            with self.client.pipeline(transaction=True) as pipe:
                pipe.get(key)
                pipe.delete(key)
                raw, _deleted = pipe.execute()
        except redis.RedisError as exc:
            raise RegistryError(f"redis GET/DEL failed: {exc}") from exc
        return decode_ticket(raw)

    def close(self) -> None:
        try:
            self.client.close()
        except redis.RedisError as exc:
            log.warning("Redis close failed: %s", exc)
