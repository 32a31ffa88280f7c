from __future__ import annotations

import json
import socket
import textwrap
from pathlib import Path

import pytest

from fiendfriend.app.manager import ChannelManager
from fiendfriend.channel.local_stream import LocalStreamChannel
from fiendfriend.cli.args import parse_args
from fiendfriend.cli.commands import format_status
from fiendfriend.cli.main import main
from fiendfriend.model import ChannelDescriptor


@pytest.fixture(autouse=True)
def _no_root_logging(monkeypatch):
    monkeypatch.setattr("fiendfriend.cli.main.configure_logging", lambda *a, **k: None)


@pytest.fixture
def pipe_server(spy, pipe_path):
    mgr = ChannelManager(spy)
    mgr.add_channel(LocalStreamChannel(pipe_path))
    try:
        yield pipe_path
    finally:
        mgr.dispose()


def _config(tmp_path: Path, text: str) -> str:
    path = tmp_path / "appsettings.yml"
    path.write_text(textwrap.dedent(text).lstrip(), encoding="utf-8")
    return str(path)


def test_parse_send_args():
    args = parse_args(["send", "SETBOTH", "--base", "a.png", "--face", "x.png", "--pipe", "Other_IPC"])

    assert args.cmd == "send"
    assert args.command == "setboth"
    assert (args.base, args.face, args.pipe) == ("a.png", "x.png", "Other_IPC")


def test_parse_rejects_unknown_command():
    with pytest.raises(SystemExit):
        parse_args(["send", "dance"])


def test_parse_serve_args():
    args = parse_args(["serve", "--config", "x.yml", "--log-level", "debug"])

    assert args.config == "x.yml"
    assert args.log_level == "DEBUG"
    assert args.rotate is True
    assert args.sprites is None


def test_parse_serve_no_rotate():
    assert parse_args(["serve", "--no-rotate"]).rotate is False


def test_format_status():
    assert format_status([]) == "No communication channels configured"
    assert format_status([ChannelDescriptor("NamedPipe", True), ChannelDescriptor("WebServer", False)]) == (
        "NamedPipe: Active\nWebServer: Inactive"
    )


def test_channels_command(tmp_path: Path, capsys):
    cfg = _config(
        tmp_path,
        """
        Communication:
          NamedPipe:
            PipeName: Test_IPC
          WebServer:
            Enabled: true
            Port: 9000
        """,
    )

    assert main(["channels", "--config", cfg]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out == [
        "NamedPipe: enabled (name=Test_IPC)",
        "WebServer: enabled (http://localhost:9000/)",
    ]


def test_missing_config_file_is_reported(tmp_path: Path, capsys):
    rc = main(["channels", "--config", str(tmp_path / "missing.yml")])

    assert rc == 1
    assert capsys.readouterr().out.startswith("ERROR:")


def test_serve_without_sprites_is_reported(tmp_path: Path, capsys):
    cfg = _config(tmp_path, "Communication: {}\n")

    rc = main(["serve", "--config", cfg])

    out = capsys.readouterr().out
    assert rc == 1
    assert "ERROR: No sprite directory configured." in out
    assert "Hint:" in out


@pytest.mark.skipif(not hasattr(socket, "AF_UNIX"), reason="needs Unix domain sockets")
def test_send_against_running_pipe(pipe_server, spy, capsys):
    rc = main(["send", "setbase", "--base", "b.png", "--pipe", pipe_server, "--timeout", "2"])

    assert rc == 0
    doc = json.loads(capsys.readouterr().out)
    assert doc["success"] is True
    assert doc["currentBaseImage"] == "b.png"
    assert spy.base == "b.png"


@pytest.mark.skipif(not hasattr(socket, "AF_UNIX"), reason="needs Unix domain sockets")
def test_send_failed_command_exits_nonzero(pipe_server, capsys):
    rc = main(["send", "setface", "--pipe", pipe_server, "--timeout", "2"])

    assert rc == 1
    doc = json.loads(capsys.readouterr().out)
    assert doc["success"] is False
    assert "FaceImage" in doc["message"]


def test_send_without_server(pipe_path, capsys):
    rc = main(["send", "status", "--pipe", pipe_path, "--timeout", "0.5"])

    assert rc == 1
    assert capsys.readouterr().out.startswith("ERROR:")
