from .base import MessageChannel, MessageReceived
from .errors import ChannelError, TransportUnavailable, ChannelIOError, ChannelClosedError, ReplyAlreadySent
from .webserver import HttpChannel
from .local_stream import LocalStreamChannel, send_request
from .registry import ChannelDriverRegistry

__all__ = [
    "MessageChannel", "MessageReceived",
    "ChannelError", "TransportUnavailable", "ChannelIOError", "ChannelClosedError", "ReplyAlreadySent",
    "HttpChannel", "LocalStreamChannel", "send_request",
    "ChannelDriverRegistry"]
