# fiendfriend/app/config.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from fiendfriend.channel.local_stream import DEFAULT_PIPE_NAME
from fiendfriend.core.errors import CommunicationConfigError


@dataclass(frozen=True)
class NamedPipeSettings:
    enabled: bool = True
    pipe_name: str = DEFAULT_PIPE_NAME


@dataclass(frozen=True)
class WebServerSettings:
    enabled: bool = False
    host: str = "localhost"
    port: int = 8080


@dataclass(frozen=True)
class CommunicationSettings:
    named_pipe: NamedPipeSettings = field(default_factory=NamedPipeSettings)
    web_server: WebServerSettings = field(default_factory=WebServerSettings)


@dataclass(frozen=True)
class FiendFriendConfig:
    sprite_path: Optional[str] = None
    image_change_interval_minutes: int = 5
    communication: CommunicationSettings = field(default_factory=CommunicationSettings)


# ---------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------

def _norm(key: Any) -> str:
    return str(key).replace("_", "").replace("-", "").lower()


def _section(doc: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    for key, value in doc.items():
        if _norm(key) == _norm(name):
            if value is None:
                return {}
            if not isinstance(value, Mapping):
                raise CommunicationConfigError(
                    f"Config section '{name}' must be a mapping.",
                    details={"section": name, "value": value},
                )
            return value
    return {}


def _cast(value: Any, type_name: str) -> Any:
    if type_name == "str":
        if not isinstance(value, str):
            raise TypeError(f"Expected str, got {type(value).__name__}")
        return value

    if type_name == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Expected int, got {type(value).__name__}")
        return value

    if type_name == "bool":
        if isinstance(value, bool):
            return value
        # accept 0/1 int
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise TypeError(f"Expected bool (or 0/1), got {type(value).__name__}")

    raise TypeError(f"Unknown schema type '{type_name}'")


def _get(section: Mapping[str, Any], where: str, name: str, type_name: str, default: Any) -> Any:
    for key, value in section.items():
        if _norm(key) == _norm(name):
            if value is None:
                return default
            try:
                return _cast(value, type_name)
            except TypeError as e:
                raise CommunicationConfigError(
                    f"Invalid value for '{where}.{name}'.",
                    hint=str(e),
                    details={"key": f"{where}.{name}", "value": value, "expected_type": type_name},
                ) from None
    return default


def settings_from_mapping(doc: Optional[Mapping[str, Any]]) -> FiendFriendConfig:
    """
    Build settings from a parsed appsettings document.

    Recognised keys (case-insensitive, '_'/'-' ignored):
      FiendFriend.SpritePath, FiendFriend.ImageChangeIntervalMinutes
      Communication.NamedPipe.Enabled, Communication.NamedPipe.PipeName
      Communication.WebServer.Enabled, .Host, .Port
    """
    doc = doc or {}
    if not isinstance(doc, Mapping):
        raise CommunicationConfigError("Settings document must be a mapping.")

    app = _section(doc, "FiendFriend")
    comm = _section(doc, "Communication")
    pipe = _section(comm, "NamedPipe")
    web = _section(comm, "WebServer")

    pipe_defaults = NamedPipeSettings()
    web_defaults = WebServerSettings()

    named_pipe = NamedPipeSettings(
        enabled=_get(pipe, "NamedPipe", "Enabled", "bool", pipe_defaults.enabled),
        pipe_name=_get(pipe, "NamedPipe", "PipeName", "str", pipe_defaults.pipe_name),
    )
    web_server = WebServerSettings(
        enabled=_get(web, "WebServer", "Enabled", "bool", web_defaults.enabled),
        host=_get(web, "WebServer", "Host", "str", web_defaults.host),
        port=_get(web, "WebServer", "Port", "int", web_defaults.port),
    )

    if not named_pipe.pipe_name.strip():
        raise CommunicationConfigError("NamedPipe.PipeName must not be empty.")
    if not 0 <= web_server.port <= 65535:
        raise CommunicationConfigError(
            f"WebServer.Port out of range: {web_server.port}",
            hint="Use a port between 1 and 65535 (0 picks a free port).",
            details={"port": web_server.port},
        )

    interval = _get(app, "FiendFriend", "ImageChangeIntervalMinutes", "int", 5)
    if interval < 0:
        raise CommunicationConfigError("FiendFriend.ImageChangeIntervalMinutes must be >= 0.")

    return FiendFriendConfig(
        sprite_path=_get(app, "FiendFriend", "SpritePath", "str", None),
        image_change_interval_minutes=interval,
        communication=CommunicationSettings(named_pipe=named_pipe, web_server=web_server),
    )


def load_settings(path: str | Path) -> FiendFriendConfig:
    """Load settings from a YAML (or JSON) file."""
    path = Path(path)
    if not path.exists():
        raise CommunicationConfigError(
            f"Settings file not found: {path}",
            hint="Pass --config pointing at appsettings.json / appsettings.yml.",
            details={"path": str(path)},
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                doc = json.load(f) or {}
            else:
                doc = yaml.safe_load(f) or {}
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise CommunicationConfigError(
            "Failed to read settings file.",
            hint=str(e),
            details={"path": str(path)},
        ) from None

    return settings_from_mapping(doc)
