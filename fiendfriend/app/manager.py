# fiendfriend/app/manager.py
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from fiendfriend.app.config import CommunicationSettings
from fiendfriend.app.processor import CommandProcessor
from fiendfriend.channel.base import MessageChannel, MessageReceived
from fiendfriend.channel.errors import ChannelClosedError
from fiendfriend.channel.registry import NAMED_PIPE, WEB_SERVER, ChannelDriverRegistry
from fiendfriend.interfaces.command_sink import CommandEvent, CommandSink
from fiendfriend.interfaces.image_controller import ImageController
from fiendfriend.model import ChannelDescriptor, CommandResponse


class ChannelManager:
    """
    Composition root for the remote control channels.

    - builds the channels enabled in CommunicationSettings
    - routes every received message through the CommandProcessor
    - starts/stops/disposes all channels together
    A channel that fails to start is disposed and skipped; the others still run.
    """

    def __init__(
        self,
        controller: ImageController,
        *,
        registry: Optional[ChannelDriverRegistry] = None,
        processor: Optional[CommandProcessor] = None,
        cmd_sink: Optional[CommandSink] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._log = logger or logging.getLogger(__name__)
        self._registry = registry or ChannelDriverRegistry.default()
        self._processor = processor or CommandProcessor(controller, logger=self._log)
        self._cmd_sink = cmd_sink

        self._lock = threading.Lock()
        self._channels: List[MessageChannel] = []
        self._cancel = threading.Event()
        self._disposed = False

    @property
    def channels(self) -> List[MessageChannel]:
        with self._lock:
            return list(self._channels)

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    # ---------------- setup ----------------
    def initialize(self, settings: CommunicationSettings) -> List[ChannelDescriptor]:
        if self._disposed:
            raise ChannelClosedError("ChannelManager already disposed")

        pipe = settings.named_pipe
        if pipe.enabled:
            self._add_channel(NAMED_PIPE, pipe_name=pipe.pipe_name)

        web = settings.web_server
        if web.enabled:
            self._add_channel(WEB_SERVER, host=web.host, port=web.port)

        return self.status()

    def add_channel(self, channel: MessageChannel) -> bool:
        """Subscribe + start an already constructed channel. Returns False if it failed to start."""
        if self._disposed:
            raise ChannelClosedError("ChannelManager already disposed")

        unsubscribe = channel.subscribe(self._on_message)
        try:
            channel.start(self._cancel)
        except Exception as e:
            self._log.error("CHANNEL_START_FAILED name=%s err=%s", channel.name, e)
            unsubscribe()
            try:
                channel.dispose()
            except Exception:
                self._log.exception("CHANNEL_DISPOSE_ERROR name=%s", channel.name)
            return False

        with self._lock:
            self._channels.append(channel)
        self._log.info("CHANNEL_STARTED name=%s", channel.name)
        return True

    def _add_channel(self, driver: str, **params) -> bool:
        try:
            channel = self._registry.create(driver, **params)
        except Exception as e:
            self._log.error("CHANNEL_CREATE_FAILED driver=%s err=%s", driver, e)
            return False
        return self.add_channel(channel)

    # ---------------- routing ----------------
    def _on_message(self, event: MessageReceived) -> None:
        t0 = time.perf_counter()
        try:
            response = self._processor.process(event.command, event.request)
        except Exception as e:
            self._log.exception("COMMAND_PROCESSING_ERROR channel=%s command=%s", event.channel, event.command)
            response = CommandResponse.failure(str(e) or type(e).__name__)

        elapsed_ms = (time.perf_counter() - t0) * 1000.0
        self._log.info(
            "COMMAND_DONE channel=%s command=%s success=%s elapsed_ms=%.1f",
            event.channel,
            event.command,
            response.success,
            elapsed_ms,
        )

        try:
            event.reply(response)
        except Exception:
            self._log.exception("COMMAND_REPLY_FAILED channel=%s command=%s", event.channel, event.command)

        if self._cmd_sink is not None:
            try:
                self._cmd_sink.on_command(
                    CommandEvent(
                        name=event.command,
                        channel=event.channel,
                        success=response.success,
                        message=response.message,
                        elapsed_ms=elapsed_ms,
                        payload={"request": event.request.to_dict(), "response": response.to_dict()},
                    )
                )
            except Exception:
                self._log.exception("CMD_SINK_ERROR")

    # ---------------- status ----------------
    def status(self) -> List[ChannelDescriptor]:
        return [ChannelDescriptor(name=c.name, is_active=c.is_active) for c in self.channels]

    # ---------------- teardown ----------------
    def stop_all(self) -> None:
        self._cancel.set()

        channels = self.channels
        if not channels:
            return

        with ThreadPoolExecutor(max_workers=len(channels), thread_name_prefix="channel-stop") as pool:
            futures = {pool.submit(c.stop): c for c in channels}
            for fut, channel in futures.items():
                try:
                    fut.result()
                except Exception:
                    self._log.exception("CHANNEL_STOP_ERROR name=%s", channel.name)

        self._log.info("CHANNELS_STOPPED count=%d", len(channels))

    def dispose(self) -> None:
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            channels = list(self._channels)
            self._channels.clear()

        if not self._cancel.is_set():
            self._cancel.set()

        for channel in channels:
            try:
                channel.dispose()
            except Exception:
                self._log.exception("CHANNEL_DISPOSE_ERROR name=%s", channel.name)

        if self._cmd_sink is not None:
            try:
                self._cmd_sink.close()
            except Exception:
                self._log.exception("CMD_SINK_CLOSE_ERROR")

        self._log.info("CHANNEL_MANAGER_DISPOSED channels=%d", len(channels))

    def __enter__(self) -> "ChannelManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()
