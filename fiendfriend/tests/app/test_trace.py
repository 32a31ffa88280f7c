from __future__ import annotations

import json
import logging
from pathlib import Path

from fiendfriend.app.trace import CommandTraceLogger
from fiendfriend.interfaces.command_sink import CommandEvent


def test_trace_appends_jsonl(tmp_path: Path):
    path = tmp_path / "trace" / "commands.jsonl"
    sink = CommandTraceLogger(logger=logging.getLogger("test"), file_path=path)

    sink.on_command(CommandEvent(name="list", channel="NamedPipe", success=True, message="Available images", elapsed_ms=1.23456))
    sink.on_command(CommandEvent(name="dance", channel="WebServer", success=False, message="Unknown command: dance"))
    sink.close()

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2

    first, second = (json.loads(line) for line in lines)
    assert first["name"] == "list"
    assert first["elapsed_ms"] == 1.235
    assert "ts_utc" in first
    assert second["success"] is False
    assert "elapsed_ms" not in second


def test_trace_after_close_is_ignored(tmp_path: Path):
    path = tmp_path / "t.jsonl"
    sink = CommandTraceLogger(logger=logging.getLogger("test"), file_path=path)
    sink.close()
    sink.close()

    sink.on_command(CommandEvent(name="status", channel="NamedPipe", success=True))

    assert path.read_text(encoding="utf-8") == ""


def test_trace_without_file_only_logs(caplog):
    sink = CommandTraceLogger(logger=logging.getLogger("test.trace"))

    with caplog.at_level(logging.DEBUG, logger="test.trace"):
        sink.on_command(CommandEvent(name="status", channel="NamedPipe", success=True, message="Current status"))

    assert "TRACE channel=NamedPipe command=status" in caplog.text
    sink.close()
