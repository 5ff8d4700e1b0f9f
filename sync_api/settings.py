from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from sync_core.registry import CodeRegistry, LazyCodeRegistry, MemoryCodeRegistry

log = logging.getLogger("sync_api.settings")

TICKET_TTL_S = 600
DEFAULT_MAX_CODE_ATTEMPTS = 8
BACKENDS = ("redis", "upstash", "memory")


class ConfigError(RuntimeError):
    """Configuration is missing or invalid."""


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y")


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def load_config(path: str | Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file is not valid YAML: {path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}")
    return raw


@dataclass(frozen=True)
class SyncSettings:
    host: str = "0.0.0.0"
    port: int = 8080
    backend: str = "memory"
    redis_url: Optional[str] = None
    upstash_url: Optional[str] = None
    upstash_token: Optional[str] = None
    max_code_attempts: int = DEFAULT_MAX_CODE_ATTEMPTS
    lazy_connect: bool = False
    log_level: str = "INFO"
    log_dir: str = "logs"
    ticket_ttl_s: int = TICKET_TTL_S


def _infer_backend(redis_url: Optional[str], upstash_url: Optional[str]) -> str:
    if redis_url:
        return "redis"
    if upstash_url:
        return "upstash"
    raise ConfigError("Missing REDIS_URL environment variable")


def load_settings(config_path: str | Path | None = None) -> SyncSettings:
    """Resolve settings from an optional YAML file, then the environment.

    Environment variables win over file values. Credentials for the selected
    backend must be present, otherwise ConfigError is raised here rather than
    on the first request.
    """
    path = config_path or _env_str("SYNC_CONFIG")
    cfg: dict[str, Any] = load_config(path) if path else {}

    def _cfg_int(key: str, default: int) -> int:
        try:
            return int(cfg.get(key, default))
        except (TypeError, ValueError):
            return default

    redis_url = _env_str("REDIS_URL", cfg.get("redis_url"))
    upstash_url = _env_str("UPSTASH_REDIS_REST_URL", cfg.get("upstash_url"))
    upstash_token = _env_str("UPSTASH_REDIS_REST_TOKEN", cfg.get("upstash_token"))

    backend = (_env_str("SYNC_BACKEND", cfg.get("backend")) or "").lower()
    if not backend:
        backend = _infer_backend(redis_url, upstash_url)
    if backend not in BACKENDS:
        raise ConfigError(f"Unsupported SYNC_BACKEND: {backend!r} (expected one of {', '.join(BACKENDS)})")
    if backend == "redis" and not redis_url:
        raise ConfigError("Missing REDIS_URL environment variable")
    if backend == "upstash":
        if not upstash_url:
            raise ConfigError("Missing UPSTASH_REDIS_REST_URL environment variable")
        if not upstash_token:
            raise ConfigError("Missing UPSTASH_REDIS_REST_TOKEN environment variable")

    max_attempts = _env_int("SYNC_MAX_CODE_ATTEMPTS", _cfg_int("max_code_attempts", DEFAULT_MAX_CODE_ATTEMPTS))
    if max_attempts < 1:
        raise ConfigError(f"SYNC_MAX_CODE_ATTEMPTS must be >= 1 (got {max_attempts})")

    return SyncSettings(
        host=_env_str("SYNC_HOST", cfg.get("host")) or "0.0.0.0",
        port=_env_int("SYNC_PORT", _cfg_int("port", 8080)),
        backend=backend,
        redis_url=redis_url,
        upstash_url=upstash_url,
        upstash_token=upstash_token,
        max_code_attempts=max_attempts,
        lazy_connect=_env_bool("SYNC_LAZY_CONNECT", bool(cfg.get("lazy_connect", False))),
        log_level=_env_str("SYNC_LOG_LEVEL", cfg.get("log_level")) or "INFO",
        log_dir=_env_str("SYNC_LOG_DIR", cfg.get("log_dir")) or "logs",
    )


def _make_backend(settings: SyncSettings) -> CodeRegistry:
    if settings.backend == "redis":
        from sync_core.redis_registry import RedisCodeRegistry

        return RedisCodeRegistry.from_url(settings.redis_url or "")
    if settings.backend == "upstash":
        from sync_core.upstash_registry import UpstashCodeRegistry

        return UpstashCodeRegistry(settings.upstash_url or "", settings.upstash_token or "")
    log.warning("Using in-memory registry; tickets are lost on restart and not shared between processes")
    return MemoryCodeRegistry()


def build_registry(settings: SyncSettings) -> CodeRegistry:
    """Construct the registry once at startup for the configured backend."""
    if settings.lazy_connect:
        return LazyCodeRegistry(lambda: _make_backend(settings))
    return _make_backend(settings)
