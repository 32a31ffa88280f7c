# fiendfriend/cli/args.py
from __future__ import annotations

import argparse
from typing import Optional

from fiendfriend.channel.local_stream import DEFAULT_PIPE_NAME
from fiendfriend.model import CommandName

DEFAULT_CONFIG = "appsettings.json"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fiendfriend")
    sub = parser.add_subparsers(dest="cmd", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=None, help=f"Settings file (YAML/JSON). Default: {DEFAULT_CONFIG} if present.")
    common.add_argument("--log-level", default="INFO", choices=LOG_LEVELS, type=str.upper)

    ps = sub.add_parser("serve", parents=[common], help="Run the remote control channels.")
    ps.add_argument("--sprites", default=None, help="Sprite directory (overrides FiendFriend.SpritePath).")
    ps.add_argument(
        "--no-rotate",
        dest="rotate",
        action="store_false",
        help="Do not pick random images every ImageChangeIntervalMinutes (0 also disables it).",
    )
    ps.add_argument("--trace", default=None, help="Append processed commands to this JSONL file.")
    ps.add_argument("--log-file", default=None, help="Also write logs to this file.")

    sub.add_parser("channels", parents=[common], help="Show which channels the settings enable.")

    pc = sub.add_parser("send", help="Send one command over the local pipe.")
    pc.add_argument(
        "command",
        type=str.lower,
        choices=[c.value for c in CommandName],
        help="Command to send.",
    )
    pc.add_argument("--base", default=None, help="Base image file name.")
    pc.add_argument("--face", default=None, help="Face image file name.")
    pc.add_argument("--pipe", default=DEFAULT_PIPE_NAME, help="Pipe name (or absolute socket path).")
    pc.add_argument("--timeout", type=float, default=5.0)

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
