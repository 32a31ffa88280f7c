# fiendfriend/interfaces/command_sink.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol


@dataclass(frozen=True, slots=True)
class CommandEvent:
    """
    Processed-command telemetry event (for tracing/debugging).
    Keep this small + stable; put details into payload.
    """
    name: str                   # command text as received, e.g. "setbase"
    channel: str                # "NamedPipe" | "WebServer"
    success: bool
    message: Optional[str] = None
    elapsed_ms: Optional[float] = None
    payload: Optional[Mapping[str, Any]] = None
    ts_utc: Optional[str] = None


class CommandSink(Protocol):
    def on_command(self, event: CommandEvent) -> None: ...
    def close(self) -> None: ...
