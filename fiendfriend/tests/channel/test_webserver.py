from __future__ import annotations

import http.client
import json
import socket
import threading
import time

import pytest

from fiendfriend.app.manager import ChannelManager
from fiendfriend.channel.errors import TransportUnavailable
from fiendfriend.channel.webserver import CORS_HEADERS, HttpChannel


def _request(channel: HttpChannel, method: str, path: str, body: bytes | None = None, headers=None):
    conn = http.client.HTTPConnection("127.0.0.1", channel.bound_port, timeout=5.0)
    try:
        conn.request(method, path, body=body, headers=headers or {})
        resp = conn.getresponse()
        return resp.status, dict(resp.getheaders()), resp.read()
    finally:
        conn.close()


@pytest.fixture
def web(spy):
    mgr = ChannelManager(spy)
    ch = HttpChannel("127.0.0.1", 0)
    assert mgr.add_channel(ch) is True
    try:
        yield ch
    finally:
        mgr.dispose()


def test_bound_port_is_assigned(web):
    assert web.bound_port > 0
    assert web.endpoint == f"http://127.0.0.1:{web.bound_port}/"


def test_get_list(web):
    status, headers, body = _request(web, "GET", "/list")

    assert status == 200
    assert headers["Content-Type"] == "application/json"
    doc = json.loads(body)
    assert doc["success"] is True
    assert doc["availableBaseImages"] == ["a.png", "b.png"]
    assert doc["availableFaceImages"] == ["x.png"]


def test_reply_is_indented_json(web):
    _, _, body = _request(web, "GET", "/status")
    assert body.startswith(b"{\n  ")


def test_get_random(web, spy):
    status, _, body = _request(web, "GET", "/random?cache=1")

    assert status == 200
    assert json.loads(body)["message"] == "Loaded random images"
    assert spy.call_names()[0] == "load_random"


def test_options_preflight_does_not_dispatch(web, spy):
    status, headers, body = _request(web, "OPTIONS", "/")

    assert status == 200
    assert body == b""
    for key, value in CORS_HEADERS.items():
        assert headers[key] == value
    assert spy.calls == []


def test_cors_on_error_responses(web):
    status, headers, _ = _request(web, "GET", "/nope")

    assert status == 400
    assert headers["Access-Control-Allow-Origin"] == "*"


def test_unknown_get_path_is_bad_request(web, spy):
    status, _, body = _request(web, "GET", "/dance")

    assert status == 400
    assert json.loads(body) == {"error": "Invalid request", "statusCode": 400}
    assert spy.calls == []


def test_post_empty_body_is_bad_request(web):
    status, _, body = _request(web, "POST", "/", body=b"")

    assert status == 400
    assert json.loads(body) == {"error": "Invalid request", "statusCode": 400}


@pytest.mark.parametrize("body", [b"not json", b"[]", b'{"command": 1}'])
def test_post_invalid_body_is_bad_request(web, body):
    status, _, _ = _request(web, "POST", "/", body=body, headers={"Content-Type": "application/json"})
    assert status == 400


def test_post_command(web, spy):
    payload = json.dumps({"command": "SetBase", "baseImage": "b.png"}).encode("utf-8")
    status, _, body = _request(web, "POST", "/anything", body=payload, headers={"Content-Type": "application/json"})

    assert status == 200
    doc = json.loads(body)
    assert doc["success"] is True
    assert doc["message"] == "Set base image to b.png"
    assert doc["currentBaseImage"] == "b.png"
    assert spy.base == "b.png"


def test_post_command_failure_is_still_200(web):
    payload = json.dumps({"command": "dance"}).encode("utf-8")
    status, _, body = _request(web, "POST", "/", body=payload)

    assert status == 200
    assert json.loads(body) == {
        "success": False,
        "message": "Unknown command: dance",
        "currentBaseImage": None,
        "currentFaceImage": None,
        "availableBaseImages": None,
        "availableFaceImages": None,
    }


def test_delete_is_bad_request(web):
    status, _, _ = _request(web, "DELETE", "/status")
    assert status == 400


def test_no_subscriber_is_service_unavailable():
    ch = HttpChannel("127.0.0.1", 0)
    ch.start()
    try:
        status, _, body = _request(ch, "GET", "/status")
    finally:
        ch.dispose()

    assert status == 503
    assert json.loads(body)["statusCode"] == 503


def test_handler_that_fails_to_reply_gives_500():
    ch = HttpChannel("127.0.0.1", 0)
    ch.subscribe(lambda e: e.reply(object()))
    ch.start()
    try:
        status, _, body = _request(ch, "GET", "/status")
    finally:
        ch.dispose()

    assert status == 500
    assert json.loads(body) == {"error": "Internal server error", "statusCode": 500}


def test_unanswered_request_times_out_with_500():
    ch = HttpChannel("127.0.0.1", 0, reply_timeout_s=0.1)
    ch.subscribe(lambda _e: None)
    ch.start()
    try:
        status, _, _ = _request(ch, "GET", "/list")
    finally:
        ch.dispose()

    assert status == 500


def test_port_in_use_raises(web):
    other = HttpChannel("127.0.0.1", web.bound_port)

    with pytest.raises(TransportUnavailable):
        other.start()
    assert other.is_active is False


def test_wildcard_host_binds_every_interface():
    assert HttpChannel("*", 0).bind_host == ""
    assert HttpChannel("+", 0).bind_host == ""
    assert HttpChannel("localhost", 0).bind_host == "localhost"


def test_stop_shuts_server_down():
    ch = HttpChannel("127.0.0.1", 0)
    ch.start()
    port = ch.bound_port

    ch.stop(timeout=2.0)

    assert ch.is_active is False
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=1.0)
    with pytest.raises(OSError):
        conn.request("GET", "/status")
        conn.getresponse()
    conn.close()


@pytest.mark.parametrize("method", ["HEAD", "PUT", "PATCH", "FOO"])
def test_other_methods_are_bad_request_json(web, spy, method):
    status, headers, body = _request(web, method, "/status")

    assert status == 400
    assert headers["Content-Type"] == "application/json"
    assert headers["Access-Control-Allow-Origin"] == "*"
    if method != "HEAD":
        assert json.loads(body) == {"error": "Invalid request", "statusCode": 400}
    assert spy.calls == []


def test_stalled_client_does_not_block_others(web):
    stalled = socket.create_connection(("127.0.0.1", web.bound_port), timeout=5.0)
    try:
        stalled.sendall(
            b"POST / HTTP/1.1\r\n"
            b"Host: localhost\r\n"
            b"Content-Type: application/json\r\n"
            b"Content-Length: 100\r\n"
            b"\r\n"
            b"{"
        )

        started = time.monotonic()
        status, _, body = _request(web, "GET", "/status")

        assert status == 200
        assert json.loads(body)["message"] == "Current status"
        assert time.monotonic() - started < 2.0
    finally:
        stalled.close()


def test_shared_cancel_shuts_server_down():
    cancel = threading.Event()
    ch = HttpChannel("127.0.0.1", 0)
    ch.start(cancel)
    thread = ch._listen_thread
    port = ch.bound_port

    cancel.set()
    thread.join(3.0)

    assert not thread.is_alive()
    assert ch.is_active is False
    with pytest.raises(OSError):
        socket.create_connection(("127.0.0.1", port), timeout=1.0).close()
    ch.dispose()
