# fiendfriend/channel/errors.py
from __future__ import annotations

class ChannelError(Exception):
    """Base class for channel-layer failures."""

class TransportUnavailable(ChannelError):
    """Listener could not be set up (name/address in use, permission denied)."""

class ChannelIOError(ChannelError):
    pass

class ChannelClosedError(ChannelError):
    """Channel was stopped or disposed and cannot be started again."""

class ReplyAlreadySent(ChannelError):
    pass
