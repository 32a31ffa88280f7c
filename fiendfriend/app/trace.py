# fiendfriend/app/trace.py
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from fiendfriend.interfaces.command_sink import CommandEvent, CommandSink


@dataclass
class CommandTraceLogger(CommandSink):
    """
    CommandSink that logs each processed command and, when file_path is set,
    appends it as one JSON line.
    """
    logger: logging.Logger
    file_path: Optional[Path] = None

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._fh: Optional[TextIO] = None
        if self.file_path:
            path = Path(self.file_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            self.file_path = path
            self._fh = path.open("a", encoding="utf-8")

    def close(self) -> None:
        with self._lock:
            fh, self._fh = self._fh, None
        if fh is not None:
            fh.close()

    @staticmethod
    def _record(event: CommandEvent) -> Dict[str, Any]:
        elapsed = event.elapsed_ms
        record = {
            "ts_utc": event.ts_utc or datetime.now(timezone.utc).isoformat(),
            "channel": event.channel,
            "name": event.name,
            "success": event.success,
            "message": event.message,
            "elapsed_ms": None if elapsed is None else round(elapsed, 3),
            "payload": event.payload,
        }
        # nulls are dropped to keep lines short
        return {key: value for key, value in record.items() if value is not None}

    def on_command(self, event: CommandEvent) -> None:
        self.logger.debug(
            "TRACE channel=%s command=%s success=%s msg=%s",
            event.channel,
            event.name,
            event.success,
            event.message,
        )

        line = json.dumps(self._record(event), ensure_ascii=False)
        with self._lock:
            if self._fh is None:
                return
            self._fh.write(line + "\n")
            self._fh.flush()
