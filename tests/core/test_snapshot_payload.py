from __future__ import annotations

import json

import pytest

from sync_core.snapshot import SnapshotError, decode_snapshot_body, normalize_snapshot, validate_snapshot


def test_decode_accepts_bytes_text_and_dict():
    snap = {"records": [{"studentId": "0123456"}]}
    assert decode_snapshot_body(json.dumps(snap).encode("utf-8")) == snap
    assert decode_snapshot_body(json.dumps(snap)) == snap
    assert decode_snapshot_body(snap) == snap


def test_decode_unwraps_string_encoded_snapshot():
    snap = {"records": [], "scope": "events"}
    body = json.dumps(json.dumps(snap)).encode("utf-8")
    assert decode_snapshot_body(body) == snap


@pytest.mark.parametrize("body", [b"", b"{not json", b"[1, 2]", b"\"just text\"", b"\xff\xfe"])
def test_decode_rejects_non_objects(body):
    with pytest.raises(SnapshotError):
        decode_snapshot_body(body)


@pytest.mark.parametrize("payload", [{}, {"records": None}, {"records": {"a": 1}}, {"records": "abc"}])
def test_validate_requires_records_list(payload):
    with pytest.raises(SnapshotError, match="records"):
        validate_snapshot(payload)


def test_normalize_fills_defaults_without_touching_records():
    records = [{"studentId": "0123456", "name": "Ada", "scanned": False}]
    out = normalize_snapshot({"records": records}, ts_ms=1700000000000)
    assert out == {"records": records, "scope": "all", "exportedAt": 1700000000000}


def test_normalize_keeps_producer_values_and_extra_keys():
    payload = {"records": [], "scope": "distribution", "exportedAt": 42, "device": "front-desk"}
    out = normalize_snapshot(payload, ts_ms=1700000000000)
    assert out == payload
    assert out is not payload


@pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
def test_decode_rejects_non_standard_json_constants(constant):
    with pytest.raises(SnapshotError, match=constant.lstrip("-")):
        decode_snapshot_body(f'{{"records": [{{"score": {constant}}}]}}'.encode("utf-8"))
