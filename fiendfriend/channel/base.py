# fiendfriend/channel/base.py
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

from fiendfriend.model import CommandRequest, CommandResponse
from .errors import ChannelClosedError, ReplyAlreadySent

RETRY_BACKOFF_S = 1.0
CANCEL_POLL_S = 0.2

ReplyFn = Callable[[CommandResponse], None]


class MessageReceived:
    """
    One decoded inbound request plus its single-use reply callback.

    reply() may be called from any thread; the channel's connection handler
    blocks in wait() until it has been called (or times out).
    """

    def __init__(self, channel: str, request: CommandRequest, reply_fn: ReplyFn):
        self.channel = channel
        self.request = request
        self._reply_fn = reply_fn
        self._lock = threading.Lock()
        self._sent = False
        self._done = threading.Event()

    @property
    def command(self) -> str:
        return self.request.command

    @property
    def replied(self) -> bool:
        return self._sent

    def reply(self, response: CommandResponse) -> None:
        with self._lock:
            if self._sent:
                raise ReplyAlreadySent(f"reply already sent for command '{self.command}'")
            self._sent = True
        try:
            self._reply_fn(response)
        finally:
            self._done.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)


MessageCallback = Callable[[MessageReceived], None]


class MessageChannel(ABC):
    """
    Abstract command channel (local stream, HTTP, ...).

    Contract:
      - start(cancel) binds the transport and spawns the listen thread. Idempotent
        while active. Setup failures raise TransportUnavailable, is_active stays False.
      - stop() ends the listen loop, joins it, releases the transport. Safe when
        never started. A stopped channel is single-use: start() raises ChannelClosedError.
      - dispose() stops if needed and drops subscribers. Safe to repeat.
      - setting the shared cancel event (or calling cancel()) wakes the listen
        loop; once it exits the channel is inactive and the transport released.
      - every decoded inbound request is delivered once to each subscriber.

    Subclasses implement _open/_listen/_interrupt/_close.
    """

    name: str = "channel"

    def __init__(self, *, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)

        self._subscribers: List[MessageCallback] = []
        self._sub_lock = threading.Lock()

        self._lifecycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._cancel: Optional[threading.Event] = None
        self._listen_thread: Optional[threading.Thread] = None

        self._active = False
        self._closed = False
        self._release_lock = threading.Lock()
        self._released = False

    # --- state ---
    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def cancelled(self) -> bool:
        if self._stop_event.is_set():
            return True
        cancel = self._cancel
        return cancel is not None and cancel.is_set()

    # --- subscribers ---
    def subscribe(self, callback: MessageCallback) -> Callable[[], None]:
        with self._sub_lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._sub_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def _emit(self, request: CommandRequest, reply_fn: ReplyFn) -> Optional[MessageReceived]:
        """Deliver a decoded request; returns None when nobody is subscribed."""
        with self._sub_lock:
            subscribers = list(self._subscribers)
        if not subscribers:
            self._log.warning("CHANNEL_NO_SUBSCRIBER name=%s command=%s", self.name, request.command)
            return None

        event = MessageReceived(self.name, request, reply_fn)
        for cb in subscribers:
            try:
                cb(event)
            except Exception:
                self._log.exception("CHANNEL_SUBSCRIBER_ERROR name=%s command=%s", self.name, request.command)
        return event

    # --- lifecycle ---
    def start(self, cancel: Optional[threading.Event] = None) -> None:
        with self._lifecycle_lock:
            if self._active:
                return
            if self._closed:
                raise ChannelClosedError(f"channel '{self.name}' was stopped and cannot be restarted")

            self._cancel = cancel
            self._open()

            self._listen_thread = threading.Thread(
                target=self._run_listen,
                name=f"{self.name}-listen",
                daemon=True,
            )
            self._active = True
            self._listen_thread.start()

            if cancel is not None:
                threading.Thread(
                    target=self._watch_cancel,
                    args=(cancel,),
                    name=f"{self.name}-cancel",
                    daemon=True,
                ).start()

        self._log.info("CHANNEL_LISTENING name=%s endpoint=%s", self.name, self.endpoint)

    def cancel(self) -> None:
        """End the listen loop without waiting for it. In-flight exchanges finish."""
        self._closed = True
        self._stop_event.set()
        self._wake()

    def stop(self, timeout: Optional[float] = None) -> None:
        with self._lifecycle_lock:
            # a finished listen loop clears _active but the thread is still recorded
            if not self._active and self._listen_thread is None:
                return
            self._active = False
            self._closed = True
            self._stop_event.set()
            thread = self._listen_thread
            self._listen_thread = None

            self._wake()

            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout)

            self._release()

        self._log.info("CHANNEL_STOPPED name=%s", self.name)

    def dispose(self) -> None:
        try:
            self.stop()
        finally:
            self._closed = True
            with self._sub_lock:
                self._subscribers.clear()

    def _watch_cancel(self, cancel: threading.Event) -> None:
        while not cancel.wait(CANCEL_POLL_S):
            if self._stop_event.is_set():
                return
        if not self._stop_event.is_set():
            self._log.info("CHANNEL_CANCELLED name=%s", self.name)
            self.cancel()

    def _run_listen(self) -> None:
        try:
            self._listen()
        except Exception:
            self._log.exception("CHANNEL_LISTEN_LOOP_CRASHED name=%s", self.name)
        finally:
            # the loop only ends on cancellation or a crash; either way the channel is done
            self._active = False
            self._closed = True
            self._release()

    def _wake(self) -> None:
        try:
            self._interrupt()
        except Exception:
            self._log.exception("CHANNEL_INTERRUPT_ERROR name=%s", self.name)

    def _release(self) -> None:
        with self._release_lock:
            if self._released:
                return
            self._released = True
        try:
            self._close()
        except Exception:
            self._log.exception("CHANNEL_CLOSE_ERROR name=%s", self.name)

    def _backoff(self) -> None:
        self._stop_event.wait(RETRY_BACKOFF_S)

    # --- transport hooks ---
    @property
    @abstractmethod
    def endpoint(self) -> str: ...

    @abstractmethod
    def _open(self) -> None:
        """Bind the transport. Raise TransportUnavailable on failure."""

    @abstractmethod
    def _listen(self) -> None:
        """Listen loop; runs on the channel's own thread until cancelled."""

    @abstractmethod
    def _interrupt(self) -> None:
        """Wake a blocked accept so the listen loop can observe cancellation."""

    @abstractmethod
    def _close(self) -> None:
        """Release the transport resource."""

    def __enter__(self) -> "MessageChannel":
        self.start()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.dispose()
