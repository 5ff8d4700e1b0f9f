from __future__ import annotations

import argparse
import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
from urllib.parse import parse_qs, urlparse

from sync_api.endpoints import SyncEndpoints
from sync_api.logging_config import setup_logging
from sync_api.settings import ConfigError, SyncSettings, build_registry, load_settings

CREATE_PATH = "/api/sync/create"
REDEEM_PATH = "/api/sync/get"
MAX_BODY_BYTES = 8 * 1024 * 1024
BODY_TIMEOUT_S = 30

log = logging.getLogger("sync_api.rest")


class SyncHTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, server_address, endpoints: SyncEndpoints) -> None:
        self.endpoints = endpoints
        super().__init__(server_address, _Handler)


class _Handler(BaseHTTPRequestHandler):
    server: SyncHTTPServer

    # Socket timeout for each request; a body that stalls past it gets 408.
    timeout = BODY_TIMEOUT_S

    def _dispatch(self) -> None:
        parsed = urlparse(self.path)
        endpoints = self.server.endpoints
        try:
            if parsed.path == CREATE_PATH:
                body = self._read_body() if self.command == "POST" else b""
                if body is None:
                    return
                status, payload = endpoints.create(self.command, body)
            elif parsed.path == REDEEM_PATH:
                params = parse_qs(parsed.query, keep_blank_values=True)
                code = params.get("code", [None])[0]
                status, payload = endpoints.redeem(self.command, code)
            else:
                status, payload = 404, {"error": "not_found"}
        except Exception as exc:
            log.exception("unhandled error for %s %s", self.command, parsed.path)
            status, payload = 500, {"error": "Internal Server Error", "detail": str(exc)}
        self._send_json(status, payload)

    do_GET = _dispatch
    do_POST = _dispatch
    do_PUT = _dispatch
    do_PATCH = _dispatch
    do_DELETE = _dispatch
    do_HEAD = _dispatch
    do_OPTIONS = _dispatch

    def _read_body(self) -> Optional[bytes]:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            self._send_json(400, {"error": "Bad Content-Length"})
            return None
        if length > MAX_BODY_BYTES:
            self._send_json(413, {"error": f"Body too large (max {MAX_BODY_BYTES} bytes)"})
            return None
        if length <= 0:
            return b""
        try:
            return self.rfile.read(length)
        except TimeoutError:
            log.warning("request body not received within %ss", self.timeout)
            self.close_connection = True
            self._send_json(408, {"error": "Request body timed out"})
            return None

    def log_message(self, format: str, *args) -> None:  # noqa: A003
        return

    def _send_json(self, status: int, payload: dict) -> None:
        try:
            body = json.dumps(payload, ensure_ascii=False, allow_nan=False).encode("utf-8")
        except ValueError as exc:
            log.error("response not JSON-serializable: %s", exc)
            status = 500
            body = json.dumps({"error": "Internal Server Error", "detail": str(exc)}).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)


def make_server(settings: SyncSettings, endpoints: Optional[SyncEndpoints] = None) -> SyncHTTPServer:
    if endpoints is None:
        endpoints = SyncEndpoints(
            registry=build_registry(settings),
            ttl_s=settings.ticket_ttl_s,
            max_code_attempts=settings.max_code_attempts,
        )
    return SyncHTTPServer((settings.host, settings.port), endpoints)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="One-time code roster sync server")
    parser.add_argument("--config", help="YAML config file (overridden by environment)")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        raise SystemExit(f"config error: {exc}")

    setup_logging(settings.log_level, component="sync", subdir="server", base_dir=settings.log_dir)
    server = make_server(settings)
    host, port = server.server_address[:2]
    log.info("Sync API listening on http://%s:%s (backend=%s)", host, port, settings.backend)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        log.info("shutting down")
    finally:
        server.server_close()
        server.endpoints.registry.close()


if __name__ == "__main__":
    main()
