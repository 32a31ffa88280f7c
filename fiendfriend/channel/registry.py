# fiendfriend/channel/registry.py
from __future__ import annotations

from typing import Dict, Type

from .base import MessageChannel
from .errors import ChannelError
from .webserver import HttpChannel
from .local_stream import LocalStreamChannel

# driver key == Communication.<section> name in appsettings, so a settings
# section selects its channel class directly
NAMED_PIPE = "NamedPipe"
WEB_SERVER = "WebServer"


class ChannelDriverRegistry:
    """
    Channel classes keyed by their settings section name.

    Lookup ignores case, the same way the settings loader matches section
    names. The manager calls create() with the section's values as keyword
    arguments; the channel is returned unstarted.
    """

    def __init__(self, drivers: Dict[str, Type[MessageChannel]]):
        self._drivers: Dict[str, Type[MessageChannel]] = {k.lower(): v for k, v in drivers.items()}

    @classmethod
    def default(cls) -> "ChannelDriverRegistry":
        return cls({NAMED_PIPE: LocalStreamChannel, WEB_SERVER: HttpChannel})

    def has(self, driver: str) -> bool:
        return driver.lower() in self._drivers

    def get_class(self, driver: str) -> Type[MessageChannel]:
        try:
            return self._drivers[driver.lower()]
        except KeyError:
            known = ", ".join(sorted(c.name for c in self._drivers.values()))
            raise ChannelError(f"No channel for settings section '{driver}' (known: {known})") from None

    def create(self, driver: str, **params) -> MessageChannel:
        return self.get_class(driver)(**params)
