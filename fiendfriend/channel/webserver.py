# fiendfriend/channel/webserver.py
from __future__ import annotations

import json
import logging
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, Optional
from urllib.parse import urlparse

from fiendfriend.model import (
    CommandRequest,
    CommandResponse,
    DecodeError,
    decode_request,
    encode_response,
)
from .base import MessageChannel
from .errors import TransportUnavailable

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

GET_ROUTES: Dict[str, CommandRequest] = {
    "random": CommandRequest(command="random", random=True),
    "status": CommandRequest(command="status"),
    "list": CommandRequest(command="list"),
}

MAX_BODY_BYTES = 1024 * 1024


def error_body(status: int, message: str) -> bytes:
    return json.dumps({"error": message, "statusCode": int(status)}).encode("utf-8")


class _CommandRequestHandler(BaseHTTPRequestHandler):
    """Per-connection handler; `channel` is bound on a subclass by HttpChannel."""

    channel: "HttpChannel"
    server_version = "FiendFriend/1.0"

    def log_message(self, format: str, *args) -> None:  # noqa: A002
        self.channel._log.debug("HTTP_ACCESS client=%s %s", self.address_string(), format % args)

    def end_headers(self) -> None:
        for key, value in CORS_HEADERS.items():
            self.send_header(key, value)
        super().end_headers()

    # ---------------- verbs ----------------
    def do_OPTIONS(self) -> None:  # noqa: N802
        self.send_response(HTTPStatus.OK)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_GET(self) -> None:  # noqa: N802
        path = urlparse(self.path).path.lstrip("/")
        request = GET_ROUTES.get(path)
        if request is None:
            self._send_error(HTTPStatus.BAD_REQUEST, "Invalid request")
            return
        self._dispatch(request)

    def do_POST(self) -> None:  # noqa: N802
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = -1
        if length < 0 or length > MAX_BODY_BYTES:
            self._send_error(HTTPStatus.BAD_REQUEST, "Invalid request")
            return

        body = self.rfile.read(length) if length else b""
        try:
            request = decode_request(body)
        except DecodeError as e:
            self.channel._log.info("HTTP_DECODE_FAILED len=%d err=%s", len(body), e)
            self._send_error(HTTPStatus.BAD_REQUEST, "Invalid request")
            return
        self._dispatch(request)

    def _reject(self) -> None:
        self._send_error(HTTPStatus.BAD_REQUEST, "Invalid request")

    def __getattr__(self, name: str):
        # any verb without a do_* method (HEAD, PUT, DELETE, ...) is a bad request, not a 501
        if name.startswith("do_"):
            return self._reject
        raise AttributeError(name)

    # ---------------- dispatch ----------------
    def _dispatch(self, request: CommandRequest) -> None:
        self._responded = False
        try:
            event = self.channel._emit(request, self._send_command_response)
            if event is None:
                self._send_error(HTTPStatus.SERVICE_UNAVAILABLE, "No command handler")
                return
            if not event.wait(self.channel.reply_timeout_s):
                self.channel._log.warning(
                    "HTTP_REPLY_TIMEOUT command=%s timeout_s=%.1f",
                    request.command,
                    self.channel.reply_timeout_s,
                )
        except Exception:
            self.channel._log.exception("HTTP_REQUEST_FAILED command=%s", request.command)

        if not self._responded:
            self._send_error(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal server error")

    def _send_command_response(self, response: CommandResponse) -> None:
        body = encode_response(response, indent=2)
        self._write(HTTPStatus.OK, body)

    def _send_error(self, status: int, message: str) -> None:
        self._write(status, error_body(status, message))

    def _write(self, status: int, body: bytes) -> None:
        self._responded = True
        try:
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
            self.wfile.flush()
        except OSError as e:
            self.channel._log.warning("HTTP_WRITE_FAILED status=%s err=%s", int(status), e)


class _CommandHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    block_on_close = False

    def __init__(self, address, handler_cls, *, logger: logging.Logger):
        self._log = logger
        super().__init__(address, handler_cls)

    def handle_error(self, request, client_address) -> None:
        self._log.warning("HTTP_CONNECTION_ERROR client=%s", client_address, exc_info=True)


class HttpChannel(MessageChannel):
    """
    Loopback HTTP channel.

      OPTIONS *        -> 200 + CORS, no dispatch
      POST *           -> JSON CommandRequest body
      GET /random|/status|/list
    Replies are indented JSON; errors are {"error", "statusCode"}.
    """

    name = "WebServer"

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8080,
        *,
        reply_timeout_s: float = 30.0,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(logger=logger or logging.getLogger(__name__))
        self.host = host
        self.port = int(port)
        self.reply_timeout_s = float(reply_timeout_s)
        self._server: Optional[_CommandHTTPServer] = None

    @property
    def bind_host(self) -> str:
        # '*' and '+' mean every interface
        return "" if self.host in ("*", "+") else self.host

    @property
    def bound_port(self) -> int:
        if self._server is None:
            return self.port
        return int(self._server.server_address[1])

    @property
    def endpoint(self) -> str:
        host = "+" if not self.bind_host else self.bind_host
        return f"http://{host}:{self.bound_port}/"

    def _open(self) -> None:
        handler_cls = type("BoundCommandRequestHandler", (_CommandRequestHandler,), {"channel": self})
        try:
            self._server = _CommandHTTPServer((self.bind_host, self.port), handler_cls, logger=self._log)
        except OSError as e:
            self._server = None
            raise TransportUnavailable(
                f"Failed to start web server on http://{self.host}:{self.port}/: {e}"
            ) from None

    def _listen(self) -> None:
        server = self._server
        assert server is not None

        # serve_forever must run at least once so shutdown() in _interrupt can return
        while True:
            try:
                server.serve_forever(poll_interval=0.5)
            except Exception:
                if self.cancelled:
                    return
                self._log.exception("HTTP_SERVE_FAILED port=%d", self.bound_port)
                self._backoff()
            if self.cancelled:
                return

    def _interrupt(self) -> None:
        server = self._server
        if server is not None:
            server.shutdown()

    def _close(self) -> None:
        if self._server is not None:
            try:
                self._server.server_close()
            finally:
                self._server = None
