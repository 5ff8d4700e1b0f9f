from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

from sync_core.snapshot import DEFAULT_SCOPE, SnapshotError, now_ms, validate_snapshot

from sync_client.client import SyncClient, SyncClientError, SyncCode
from sync_client.links import resolve_code

log = logging.getLogger("sync_client.roster")

MODES = ("events", "distribution")


@dataclass(frozen=True)
class RosterEntry:
    mode: str
    student_id: str
    name: str
    type: str = ""
    scanned: bool = False
    received: bool = False
    timestamp: str = ""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "RosterEntry":
        return cls(
            mode=str(raw.get("mode") or ""),
            student_id=str(raw.get("studentId") or ""),
            name=str(raw.get("name") or ""),
            type=str(raw.get("type") or ""),
            scanned=bool(raw.get("scanned")),
            received=bool(raw.get("received")),
            timestamp=str(raw.get("timestamp") or ""),
        )

    @property
    def done(self) -> bool:
        # Check-in mode tracks `scanned`, distribution tracks `received`.
        return self.received if self.mode == "distribution" else self.scanned


class SnapshotSource(Protocol):
    def export_snapshot(self) -> Dict[str, Any]:
        ...


class SnapshotSink(Protocol):
    def replace_with(self, snapshot: Dict[str, Any]) -> None:
        ...


class JsonRosterFile:
    """Roster kept as `{"records": [...]}` in a JSON file.

    Stands in for the on-device store: it can export everything as a snapshot
    and be replaced wholesale by a redeemed one.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load_records(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        raw = json.loads(self.path.read_text(encoding="utf-8"))
        if isinstance(raw, list):
            return raw
        return list(validate_snapshot(raw)["records"])

    def entries(self) -> List[RosterEntry]:
        return [RosterEntry.from_dict(r) for r in self.load_records() if isinstance(r, Mapping)]

    def export_snapshot(self) -> Dict[str, Any]:
        return {"records": self.load_records(), "scope": DEFAULT_SCOPE, "exportedAt": now_ms()}

    def replace_with(self, snapshot: Dict[str, Any]) -> None:
        records = validate_snapshot(snapshot)["records"]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps({"records": records}, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)


def summarize(entries: List[RosterEntry]) -> Dict[str, Dict[str, int]]:
    totals: Counter = Counter()
    done: Counter = Counter()
    for e in entries:
        totals[e.mode] += 1
        if e.done:
            done[e.mode] += 1
    return {mode: {"total": totals[mode], "done": done[mode]} for mode in sorted(totals)}


def push_roster(client: SyncClient, source: SnapshotSource) -> SyncCode:
    snapshot = source.export_snapshot()
    result = client.create_code(snapshot)
    log.info("pushed %s records as code %s", len(snapshot.get("records") or []), result.code)
    return result


def pull_roster(client: SyncClient, code_or_link: str, sink: SnapshotSink) -> Dict[str, Any]:
    """Redeem a typed code, share link or scanned QR payload into `sink`."""
    code: Optional[str] = resolve_code(code_or_link)
    if code is None:
        raise SyncClientError("Enter a 6-digit code")
    snapshot = client.redeem(code)
    try:
        sink.replace_with(snapshot)
    except SnapshotError as exc:
        raise SyncClientError(f"Sync data invalid: {exc}") from exc
    log.info("pulled %s records from code %s", len(snapshot["records"]), code)
    return snapshot
