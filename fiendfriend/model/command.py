# fiendfriend/model/command.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class CommandName(str, Enum):
    """Commands understood by the remote control layer."""

    RANDOM = "random"
    SETBASE = "setbase"
    SETFACE = "setface"
    SETBOTH = "setboth"
    STATUS = "status"
    LIST = "list"

    @classmethod
    def parse(cls, text: Optional[str]) -> Optional["CommandName"]:
        """Case-insensitive lookup; returns None for unknown text."""
        if not text:
            return None
        try:
            return cls(text.lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class CommandRequest:
    """
    Inbound request shape.

    Wire keys: command, baseImage, faceImage, random.
    """
    command: str = ""
    base_image: Optional[str] = None
    face_image: Optional[str] = None
    random: bool = False

    @property
    def name(self) -> Optional[CommandName]:
        return CommandName.parse(self.command)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command": self.command,
            "baseImage": self.base_image,
            "faceImage": self.face_image,
            "random": self.random,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CommandRequest":
        command = d.get("command")
        if command is None:
            command = ""
        if not isinstance(command, str):
            raise TypeError(f"'command' must be a string, got {type(command).__name__}")

        base_image = d.get("baseImage")
        if base_image is not None and not isinstance(base_image, str):
            raise TypeError(f"'baseImage' must be a string, got {type(base_image).__name__}")

        face_image = d.get("faceImage")
        if face_image is not None and not isinstance(face_image, str):
            raise TypeError(f"'faceImage' must be a string, got {type(face_image).__name__}")

        random = d.get("random", False)
        if random is None:
            random = False
        if not isinstance(random, bool):
            raise TypeError(f"'random' must be a bool, got {type(random).__name__}")

        return cls(command=command, base_image=base_image, face_image=face_image, random=random)


# wire key -> attribute name, in serialization order
_RESPONSE_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("success", "success"),
    ("message", "message"),
    ("currentBaseImage", "current_base_image"),
    ("currentFaceImage", "current_face_image"),
    ("availableBaseImages", "available_base_images"),
    ("availableFaceImages", "available_face_images"),
)

RESULT_FIELDS: Tuple[str, ...] = (
    "current_base_image",
    "current_face_image",
    "available_base_images",
    "available_face_images",
)


@dataclass(frozen=True)
class CommandResponse:
    """
    Outbound reply shape. success=False always carries a non-empty message.
    """
    success: bool
    message: Optional[str] = None
    current_base_image: Optional[str] = None
    current_face_image: Optional[str] = None
    available_base_images: Optional[List[str]] = field(default=None)
    available_face_images: Optional[List[str]] = field(default=None)

    def __post_init__(self) -> None:
        if not self.success and not self.message:
            raise ValueError("failed CommandResponse requires a message")

    @classmethod
    def failure(cls, message: str) -> "CommandResponse":
        return cls(success=False, message=message or "Command failed")

    def populated_fields(self) -> Tuple[str, ...]:
        """Names of the result fields that carry a value."""
        return tuple(name for name in RESULT_FIELDS if getattr(self, name) is not None)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for key, attr in _RESPONSE_FIELDS:
            value = getattr(self, attr)
            out[key] = list(value) if isinstance(value, (list, tuple)) else value
        return out

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CommandResponse":
        kwargs = {attr: d.get(key) for key, attr in _RESPONSE_FIELDS}
        kwargs["success"] = bool(kwargs["success"])
        return cls(**kwargs)


@dataclass(frozen=True)
class ChannelDescriptor:
    """Point-in-time channel status; not a live handle."""
    name: str
    is_active: bool
