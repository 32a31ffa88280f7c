# fiendfriend/cli/main.py
from __future__ import annotations

import logging
from typing import Optional

from fiendfriend.core.errors import FiendFriendError
from fiendfriend.common.logging_config import configure_logging

from fiendfriend.cli.args import parse_args
from fiendfriend.cli.commands import (
    cmd_channels,
    cmd_send,
    cmd_serve,
)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(getattr(logging, getattr(args, "log_level", "WARNING")))

    try:
        if args.cmd == "serve":
            return cmd_serve(args)
        if args.cmd == "channels":
            return cmd_channels(args)
        if args.cmd == "send":
            return cmd_send(args)

        return 2
    except FiendFriendError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
