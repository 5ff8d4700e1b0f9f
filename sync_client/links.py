from __future__ import annotations

import re
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from sync_core.codes import is_valid_code

SYNC_PARAM = "sync"

_SCAN_RE = re.compile(r"\bsync=([0-9]{6})\b")


def make_sync_link(origin: str, code: str) -> str:
    if not is_valid_code(code):
        raise ValueError(f"invalid sync code: {code!r}")
    return f"{origin.rstrip('/')}/?{urlencode({SYNC_PARAM: code})}"


def extract_sync_code(url: str) -> Optional[str]:
    """Return the code from a `?sync=` link, or None when absent or malformed."""
    query = urlsplit(url or "").query
    for key, value in parse_qsl(query, keep_blank_values=True):
        if key == SYNC_PARAM:
            return value if is_valid_code(value) else None
    return None


def strip_sync_param(url: str) -> str:
    """Drop the `sync` parameter so reloading the page does not redeem again."""
    parts = urlsplit(url)
    kept = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != SYNC_PARAM]
    return urlunsplit(parts._replace(query=urlencode(kept)))


def code_from_scan(raw: str) -> Optional[str]:
    """Pull a code out of a scanned QR payload: a share link or the bare digits."""
    text = (raw or "").strip()
    m = _SCAN_RE.search(text)
    if m:
        return m.group(1)
    return text if is_valid_code(text) else None


def resolve_code(value: str) -> Optional[str]:
    """Typed codes, share links and QR payloads all reduce to the same code."""
    text = (value or "").strip()
    if is_valid_code(text):
        return text
    return extract_sync_code(text) or code_from_scan(text)
