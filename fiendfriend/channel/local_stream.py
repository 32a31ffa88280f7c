# fiendfriend/channel/local_stream.py
from __future__ import annotations

import logging
import os
import selectors
import socket
import tempfile
import threading
from pathlib import Path
from typing import Optional

from fiendfriend.model import (
    CommandRequest,
    CommandResponse,
    DecodeError,
    decode_request,
    decode_response,
    encode_request,
    encode_response,
)
from .base import MessageChannel
from .errors import ChannelIOError, TransportUnavailable

DEFAULT_PIPE_NAME = "FiendFriend_IPC"
MAX_REQUEST_BYTES = 1024 * 1024
_CHUNK = 4096


def socket_path_for(pipe_name: str) -> Path:
    """
    Map a pipe name onto a Unix domain socket path.

    Absolute names are used as-is; plain names live in $XDG_RUNTIME_DIR
    (falling back to the temp directory) as '<name>.sock'.
    """
    if os.path.isabs(pipe_name):
        return Path(pipe_name)
    base = os.environ.get("XDG_RUNTIME_DIR") or tempfile.gettempdir()
    return Path(base) / f"{pipe_name}.sock"


def _read_to_end(sock: socket.socket, limit: int = MAX_REQUEST_BYTES) -> bytes:
    buf = bytearray()
    while True:
        chunk = sock.recv(_CHUNK)
        if not chunk:
            return bytes(buf)
        buf += chunk
        if len(buf) > limit:
            raise ChannelIOError(f"payload exceeds {limit} bytes")


def _is_listening(path: Path) -> bool:
    probe = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        probe.settimeout(0.5)
        probe.connect(str(path))
        return True
    except OSError:
        return False
    finally:
        probe.close()


class LocalStreamChannel(MessageChannel):
    """
    Named local byte-stream channel (Unix domain socket).

    Framing: one UTF-8 JSON request per connection, read until the client
    half-closes; one JSON reply is written, then the connection is closed.
    Undecodable requests are logged and closed without a reply.
    """

    name = "NamedPipe"

    def __init__(
        self,
        pipe_name: str = DEFAULT_PIPE_NAME,
        *,
        reply_timeout_s: float = 30.0,
        read_timeout_s: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(logger=logger or logging.getLogger(__name__))
        self.pipe_name = pipe_name
        self.path = socket_path_for(pipe_name)
        self.reply_timeout_s = float(reply_timeout_s)
        self.read_timeout_s = float(read_timeout_s)

        self._server: Optional[socket.socket] = None
        self._selector: Optional[selectors.BaseSelector] = None
        self._wake_r: Optional[socket.socket] = None
        self._wake_w: Optional[socket.socket] = None

    @property
    def endpoint(self) -> str:
        return str(self.path)

    # ---------------- transport hooks ----------------
    def _open(self) -> None:
        if not hasattr(socket, "AF_UNIX"):
            raise TransportUnavailable("local stream sockets are not supported on this platform")

        path = self.path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TransportUnavailable(f"cannot create pipe directory {path.parent}: {e}") from None

        if path.exists():
            if _is_listening(path):
                raise TransportUnavailable(f"pipe '{self.pipe_name}' is already in use ({path})")
            # stale socket file left by a dead process
            try:
                path.unlink()
            except OSError as e:
                raise TransportUnavailable(f"cannot remove stale pipe {path}: {e}") from None

        server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            server.bind(str(path))
            server.listen(8)
            server.setblocking(False)
        except OSError as e:
            server.close()
            raise TransportUnavailable(f"cannot listen on pipe '{self.pipe_name}' ({path}): {e}") from None

        wake_r, wake_w = socket.socketpair()
        wake_r.setblocking(False)

        sel = selectors.DefaultSelector()
        sel.register(server, selectors.EVENT_READ, "accept")
        sel.register(wake_r, selectors.EVENT_READ, "wake")

        self._server = server
        self._selector = sel
        self._wake_r = wake_r
        self._wake_w = wake_w

    def _listen(self) -> None:
        sel = self._selector
        server = self._server
        assert sel is not None and server is not None

        while not self.cancelled:
            try:
                ready = sel.select()
            except OSError as e:
                if self.cancelled:
                    break
                self._log.warning("PIPE_SELECT_FAILED name=%s err=%s", self.pipe_name, e)
                self._backoff()
                continue

            for key, _ in ready:
                if key.data == "wake" or self.cancelled:
                    return
                try:
                    conn, _ = server.accept()
                except BlockingIOError:
                    continue
                except OSError as e:
                    if self.cancelled:
                        return
                    self._log.warning("PIPE_ACCEPT_FAILED name=%s err=%s", self.pipe_name, e)
                    self._backoff()
                    continue

                conn.setblocking(True)
                threading.Thread(
                    target=self._handle_connection,
                    args=(conn,),
                    name=f"{self.name}-conn",
                    daemon=True,
                ).start()

    def _interrupt(self) -> None:
        wake = self._wake_w
        if wake is not None:
            try:
                wake.send(b"\x00")
            except OSError:
                # already closed by the listen thread
                pass

    def _close(self) -> None:
        if self._selector is not None:
            self._selector.close()
            self._selector = None

        for sock in (self._server, self._wake_r, self._wake_w):
            if sock is not None:
                sock.close()
        self._server = None
        self._wake_r = None
        self._wake_w = None

        try:
            self.path.unlink()
        except FileNotFoundError:
            pass

    # ---------------- per connection ----------------
    def _handle_connection(self, conn: socket.socket) -> None:
        with conn:
            try:
                conn.settimeout(self.read_timeout_s)
                raw = _read_to_end(conn)
            except (OSError, ChannelIOError) as e:
                self._log.warning("PIPE_READ_FAILED name=%s err=%s", self.pipe_name, e)
                return

            try:
                request = decode_request(raw)
            except DecodeError as e:
                self._log.warning("PIPE_DECODE_FAILED name=%s len=%d err=%s", self.pipe_name, len(raw), e)
                return

            self._log.debug("PIPE_REQUEST name=%s command=%s", self.pipe_name, request.command)

            def _send(response: CommandResponse) -> None:
                data = encode_response(response)
                try:
                    conn.sendall(data)
                except OSError as e:
                    self._log.warning("PIPE_WRITE_FAILED name=%s err=%s", self.pipe_name, e)

            event = self._emit(request, _send)
            if event is not None and not event.wait(self.reply_timeout_s):
                self._log.warning(
                    "PIPE_REPLY_TIMEOUT name=%s command=%s timeout_s=%.1f",
                    self.pipe_name,
                    request.command,
                    self.reply_timeout_s,
                )


# ---------------- client side ----------------

def exchange_raw(pipe_name: str, payload: bytes, *, timeout: float = 5.0) -> bytes:
    """
    One raw exchange: connect, write payload, half-close, read to end.
    Returns b"" when the server closed without replying.
    """
    path = socket_path_for(pipe_name)
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        sock.settimeout(timeout)
        try:
            sock.connect(str(path))
        except OSError as e:
            raise ChannelIOError(f"could not connect to pipe '{pipe_name}' ({path}): {e}") from None

        try:
            sock.sendall(payload)
            sock.shutdown(socket.SHUT_WR)
            return _read_to_end(sock)
        except OSError as e:
            raise ChannelIOError(f"pipe exchange failed: {e}") from None


def send_request(pipe_name: str, request: CommandRequest, *, timeout: float = 5.0) -> CommandResponse:
    raw = exchange_raw(pipe_name, encode_request(request), timeout=timeout)
    if not raw:
        raise ChannelIOError("pipe closed without a response (request rejected)")
    try:
        return decode_response(raw)
    except DecodeError as e:
        raise ChannelIOError(f"invalid response from pipe: {e}") from None
