from __future__ import annotations

import pytest

from sync_client.links import code_from_scan, extract_sync_code, make_sync_link, resolve_code, strip_sync_param


def test_make_sync_link():
    assert make_sync_link("https://roster.example.org", "012345") == "https://roster.example.org/?sync=012345"
    assert make_sync_link("https://roster.example.org/", "012345") == "https://roster.example.org/?sync=012345"
    with pytest.raises(ValueError):
        make_sync_link("https://roster.example.org", "12345")


def test_extract_sync_code():
    assert extract_sync_code("https://roster.example.org/?sync=123456") == "123456"
    assert extract_sync_code("https://roster.example.org/?lang=en&sync=123456#top") == "123456"
    assert extract_sync_code("https://roster.example.org/?sync=12345") is None
    assert extract_sync_code("https://roster.example.org/?sync=12a456") is None
    assert extract_sync_code("https://roster.example.org/") is None
    assert extract_sync_code("") is None


def test_strip_sync_param_keeps_other_params():
    assert strip_sync_param("https://roster.example.org/?sync=123456") == "https://roster.example.org/"
    assert strip_sync_param("https://roster.example.org/?lang=en&sync=123456#top") == "https://roster.example.org/?lang=en#top"


def test_code_from_scan():
    assert code_from_scan("https://roster.example.org/?sync=654321") == "654321"
    assert code_from_scan("  654321 ") == "654321"
    assert code_from_scan("sync=6543210") is None
    assert code_from_scan("hello") is None


def test_resolve_code_treats_all_inputs_alike():
    typed = resolve_code(" 777777 ")
    linked = resolve_code(make_sync_link("https://roster.example.org", "777777"))
    scanned = resolve_code("Scan me: https://roster.example.org/?sync=777777")
    assert typed == linked == scanned == "777777"
    assert resolve_code("12345") is None
