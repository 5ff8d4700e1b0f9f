from __future__ import annotations

from typing import Any, Dict

import pytest
import requests

from sync_client.client import SyncClient, SyncClientError, SyncCode, SyncCodeNotFound


class _FakeResponse:
    def __init__(self, payload: Any = None, status: int = 200, text: str = ""):
        self._payload = payload
        self.status_code = status
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("not json")
        return self._payload


def test_create_code_posts_snapshot(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: Dict[str, Any] = {}

    def _post(url: str, json: dict, timeout: float):
        seen.update(url=url, json=json, timeout=timeout)
        return _FakeResponse({"code": "123456", "expiresInSec": 600})

    monkeypatch.setattr("sync_client.client.requests.post", _post)
    client = SyncClient("http://sync.local/", timeout_s=2)
    result = client.create_code({"records": []})
    assert result == SyncCode(code="123456", expires_in_s=600)
    assert seen == {"url": "http://sync.local/api/sync/create", "json": {"records": []}, "timeout": 2.0}


def test_create_code_surfaces_server_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "sync_client.client.requests.post",
        lambda url, json, timeout: _FakeResponse({"error": "Internal Server Error", "detail": "x"}, status=500),
    )
    with pytest.raises(SyncClientError, match="Internal Server Error") as exc:
        SyncClient("http://sync.local").create_code({"records": []})
    assert exc.value.status == 500


def test_create_code_rejects_invalid_snapshot_locally() -> None:
    with pytest.raises(ValueError, match="records"):
        SyncClient("http://sync.local").create_code({"rows": []})


def test_redeem_trims_and_sends_code(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: Dict[str, Any] = {}

    def _get(url: str, params: dict, timeout: float):
        seen.update(url=url, params=params)
        return _FakeResponse({"records": [{"name": "Ada"}], "scope": "all", "exportedAt": 1})

    monkeypatch.setattr("sync_client.client.requests.get", _get)
    snap = SyncClient("http://sync.local").redeem(" 123456 ")
    assert snap["records"] == [{"name": "Ada"}]
    assert seen == {"url": "http://sync.local/api/sync/get", "params": {"code": "123456"}}


def test_redeem_rejects_bad_code_without_request(monkeypatch: pytest.MonkeyPatch) -> None:
    def _get(*a, **kw):
        raise AssertionError("no request expected")

    monkeypatch.setattr("sync_client.client.requests.get", _get)
    with pytest.raises(SyncClientError, match="6-digit"):
        SyncClient("http://sync.local").redeem("12a456")


def test_redeem_miss_is_not_found(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "sync_client.client.requests.get",
        lambda url, params, timeout: _FakeResponse({"error": "Code expired or not found"}, status=404),
    )
    with pytest.raises(SyncCodeNotFound, match="expired or not found"):
        SyncClient("http://sync.local").redeem("123456")


def test_redeem_non_json_error_uses_text(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "sync_client.client.requests.get",
        lambda url, params, timeout: _FakeResponse(None, status=502, text="Bad Gateway"),
    )
    with pytest.raises(SyncClientError, match="Bad Gateway") as exc:
        SyncClient("http://sync.local").redeem("123456")
    assert not isinstance(exc.value, SyncCodeNotFound)


def test_redeem_invalid_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "sync_client.client.requests.get",
        lambda url, params, timeout: _FakeResponse({"rows": []}),
    )
    with pytest.raises(SyncClientError, match="Sync data invalid"):
        SyncClient("http://sync.local").redeem("123456")


def test_network_error_is_wrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    def _get(url, params, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr("sync_client.client.requests.get", _get)
    with pytest.raises(SyncClientError, match="connection refused"):
        SyncClient("http://sync.local").redeem("123456")


def test_create_code_non_json_success_is_client_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "sync_client.client.requests.post",
        lambda url, json, timeout: _FakeResponse(None, status=200, text="<html>proxy page</html>"),
    )
    with pytest.raises(SyncClientError, match="not JSON") as exc:
        SyncClient("http://sync.local").create_code({"records": []})
    assert exc.value.status == 200
