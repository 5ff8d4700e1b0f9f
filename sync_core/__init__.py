"""Code registry and snapshot rules shared by the sync endpoints and client."""

from .codes import CODE_MAX, CODE_MIN, KEY_PREFIX, is_valid_code, make_code, ticket_key
from .registry import CodeRegistry, LazyCodeRegistry, MemoryCodeRegistry, RegistryError
from .snapshot import DEFAULT_SCOPE, SnapshotError, decode_snapshot_body, normalize_snapshot, validate_snapshot

__all__ = [
    "CODE_MAX",
    "CODE_MIN",
    "KEY_PREFIX",
    "is_valid_code",
    "make_code",
    "ticket_key",
    "CodeRegistry",
    "LazyCodeRegistry",
    "MemoryCodeRegistry",
    "RegistryError",
    "DEFAULT_SCOPE",
    "SnapshotError",
    "decode_snapshot_body",
    "normalize_snapshot",
    "validate_snapshot",
]
