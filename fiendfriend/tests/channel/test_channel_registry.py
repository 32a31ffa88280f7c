from __future__ import annotations

import pytest

from fiendfriend.channel.base import MessageChannel
from fiendfriend.channel.errors import ChannelError
from fiendfriend.channel.local_stream import LocalStreamChannel
from fiendfriend.channel.registry import ChannelDriverRegistry
from fiendfriend.channel.webserver import HttpChannel


class DummyChannel(MessageChannel):
    name = "Dummy"

    def __init__(self, *, x: int = 0):
        super().__init__()
        self.x = x

    @property
    def endpoint(self) -> str: return "dummy"
    def _open(self) -> None: ...
    def _listen(self) -> None: ...
    def _interrupt(self) -> None: ...
    def _close(self) -> None: ...


def test_registry_has_and_get_class_case_insensitive():
    reg = ChannelDriverRegistry({"DUMMY": DummyChannel})

    assert reg.has("dummy") is True
    assert reg.has("DUMMY") is True
    assert reg.has("DuMmY") is True

    assert reg.get_class("dummy") is DummyChannel


def test_registry_get_class_unknown_raises():
    reg = ChannelDriverRegistry({})
    with pytest.raises(ChannelError):
        reg.get_class("namedpipe")


def test_registry_create_instantiates_without_starting():
    reg = ChannelDriverRegistry({"dummy": DummyChannel})

    ch = reg.create("DUMMY", x=42)
    assert isinstance(ch, DummyChannel)
    assert ch.x == 42
    assert ch.is_active is False


def test_default_registry_maps_config_sections():
    reg = ChannelDriverRegistry.default()

    assert reg.get_class("NamedPipe") is LocalStreamChannel
    assert reg.get_class("WebServer") is HttpChannel


def test_unknown_section_error_lists_known_channels():
    with pytest.raises(ChannelError) as ei:
        ChannelDriverRegistry.default().create("SerialPort")

    assert "SerialPort" in str(ei.value)
    assert "NamedPipe" in str(ei.value)
    assert "WebServer" in str(ei.value)
