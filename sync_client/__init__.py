"""Client side of the one-time code roster sync."""

from .client import SyncClient, SyncClientError, SyncCode, SyncCodeNotFound
from .links import code_from_scan, extract_sync_code, make_sync_link, resolve_code, strip_sync_param
from .roster import JsonRosterFile, RosterEntry, pull_roster, push_roster

__all__ = [
    "SyncClient",
    "SyncClientError",
    "SyncCode",
    "SyncCodeNotFound",
    "code_from_scan",
    "extract_sync_code",
    "make_sync_link",
    "resolve_code",
    "strip_sync_param",
    "JsonRosterFile",
    "RosterEntry",
    "pull_roster",
    "push_roster",
]
