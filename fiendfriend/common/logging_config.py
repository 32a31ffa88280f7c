# fiendfriend/common/logging_config.py
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

_LEVEL_COLORS = {
    "DEBUG": "\033[36m",  # cyan
    "INFO": "\033[37m",  # light gray
    "WARNING": "\033[33m",  # yellow
    "ERROR": "\033[31m",  # red
    "CRITICAL": "\033[41m",  # red background
}
_RESET = "\033[0m"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class ConsoleFormatter(logging.Formatter):
    """Compact timestamped formatter, level name colored on a TTY."""

    def __init__(self, colored: bool = True) -> None:
        super().__init__(fmt=LOG_FORMAT, datefmt="%H:%M:%S")
        self.colored = colored and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if not self.colored:
            return base
        level = record.levelname
        color = _LEVEL_COLORS.get(level, "")
        if not color:
            return base
        return base.replace(f"[{level}]", f"[{color}{level}{_RESET}]", 1)


def _has_console_handler(logger: logging.Logger) -> bool:
    return any(type(h) is logging.StreamHandler for h in logger.handlers)


def configure_logging(level: int = logging.INFO, *, use_color: bool = True) -> logging.Logger:
    """
    Configure the root logger with one stderr handler. Idempotent.
    """
    root = logging.getLogger()
    root.setLevel(level)

    if not _has_console_handler(root):
        console = logging.StreamHandler(stream=sys.stderr)
        console.setFormatter(ConsoleFormatter(colored=use_color))
        root.addHandler(console)

    for h in root.handlers:
        if type(h) is logging.StreamHandler:
            h.setLevel(level)

    return root


def configure_file_logging(app_log_path: Path, level: Optional[int] = None) -> None:
    """
    Add a file handler to the root logger (idempotent).
    """
    root = logging.getLogger()
    app_log_path.parent.mkdir(parents=True, exist_ok=True)
    target = str(app_log_path.resolve())

    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target:
            return

    fh = logging.FileHandler(app_log_path, encoding="utf-8", delay=True)
    fh.setLevel(level if level is not None else logging.INFO)
    fh.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(fh)
