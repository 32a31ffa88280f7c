# fiendfriend/cli/commands.py
from __future__ import annotations

import argparse
import json
import logging
import signal
import threading
from pathlib import Path
from typing import Optional

from fiendfriend.app.config import FiendFriendConfig, load_settings
from fiendfriend.app.manager import ChannelManager
from fiendfriend.app.trace import CommandTraceLogger
from fiendfriend.channel.errors import ChannelIOError
from fiendfriend.channel.local_stream import send_request
from fiendfriend.cli.args import DEFAULT_CONFIG
from fiendfriend.common.logging_config import configure_file_logging
from fiendfriend.core.errors import CommunicationConfigError, FiendFriendError
from fiendfriend.model import ChannelDescriptor, CommandRequest
from fiendfriend.runtime.sprite_controller import SpriteImageController

log = logging.getLogger(__name__)


# ---------------- helpers ----------------

def resolve_config(path: Optional[str]) -> FiendFriendConfig:
    """Explicit path must exist; the default file is optional."""
    if path is not None:
        return load_settings(path)
    if Path(DEFAULT_CONFIG).exists():
        return load_settings(DEFAULT_CONFIG)
    return FiendFriendConfig()


def format_status(channels: list[ChannelDescriptor]) -> str:
    if not channels:
        return "No communication channels configured"
    return "\n".join(f"{c.name}: {'Active' if c.is_active else 'Inactive'}" for c in channels)


# ---------------- serve ----------------

def _rotate_loop(controller: SpriteImageController, interval_s: float, stop: threading.Event) -> None:
    while not stop.wait(interval_s):
        try:
            controller.load_random()
        except FiendFriendError as e:
            log.warning("ROTATE_FAILED msg=%s", e.message)


def cmd_serve(args: argparse.Namespace) -> int:
    cfg = resolve_config(args.config)

    if args.log_file:
        configure_file_logging(Path(args.log_file))

    sprite_path = args.sprites or cfg.sprite_path
    if not sprite_path:
        raise CommunicationConfigError(
            "No sprite directory configured.",
            hint="Set FiendFriend.SpritePath in the settings file or pass --sprites.",
        )

    controller = SpriteImageController(sprite_path)
    bases, faces = controller.list_bases(), controller.list_faces()
    log.info("SPRITES path=%s bases=%d faces=%d", sprite_path, len(bases), len(faces))
    if bases and faces:
        controller.load_random()
    else:
        log.warning("SPRITES_MISSING path=%s", sprite_path)

    cmd_sink = None
    if args.trace:
        cmd_sink = CommandTraceLogger(logger=logging.getLogger("commands"), file_path=Path(args.trace))

    stop = threading.Event()

    def _on_signal(signum, frame) -> None:
        log.info("SIGNAL_RECEIVED signum=%s", signum)
        stop.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    with ChannelManager(controller, cmd_sink=cmd_sink) as manager:
        channels = manager.initialize(cfg.communication)
        print(format_status(channels))

        if args.rotate and cfg.image_change_interval_minutes > 0:
            log.info("IMAGE_ROTATION interval_min=%d", cfg.image_change_interval_minutes)
            threading.Thread(
                target=_rotate_loop,
                args=(controller, cfg.image_change_interval_minutes * 60.0, stop),
                name="image-rotate",
                daemon=True,
            ).start()

        # wake periodically so signals are handled promptly on every platform
        while not stop.wait(0.5):
            pass

        manager.stop_all()

    return 0


# ---------------- channels ----------------

def cmd_channels(args: argparse.Namespace) -> int:
    comm = resolve_config(args.config).communication
    pipe, web = comm.named_pipe, comm.web_server

    print(f"NamedPipe: {'enabled' if pipe.enabled else 'disabled'} (name={pipe.pipe_name})")
    print(f"WebServer: {'enabled' if web.enabled else 'disabled'} (http://{web.host}:{web.port}/)")
    return 0


# ---------------- send ----------------

def cmd_send(args: argparse.Namespace) -> int:
    request = CommandRequest(
        command=args.command,
        base_image=args.base,
        face_image=args.face,
        random=args.command == "random",
    )

    try:
        response = send_request(args.pipe, request, timeout=args.timeout)
    except ChannelIOError as e:
        print(f"ERROR: {e}")
        return 1

    print(json.dumps(response.to_dict(), indent=2))
    return 0 if response.success else 1
