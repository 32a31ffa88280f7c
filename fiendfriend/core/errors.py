# fiendfriend/core/errors.py
from __future__ import annotations


class FiendFriendError(Exception):
    """
    Base class for all expected operational errors in FiendFriend.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, logs, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration errors (nothing is listening yet)
# ---------------------------------------------------------------------------

class CommunicationConfigError(FiendFriendError):
    """
    Communication settings are missing, unreadable or of the wrong type.

    Examples:
      - settings file not found
      - WebServer.Port is not an integer
      - unknown channel driver key
    """
    code = "communication_config_error"


# ---------------------------------------------------------------------------
# Per-request command errors (answered with success=false)
# ---------------------------------------------------------------------------

class CommandValidationError(FiendFriendError):
    """
    A recognised command is missing a required parameter.

    Examples:
      - setbase without baseImage
      - setboth with only one of the two images
    """
    code = "command_validation_error"


class UnknownCommandError(FiendFriendError):
    """
    The command text does not name any supported command.
    """
    code = "unknown_command"

    def __init__(self, command: str):
        super().__init__(
            f"Unknown command: {command}",
            hint="Supported: random, setbase, setface, setboth, status, list",
            details={"command": command},
        )
        self.command = command


# ---------------------------------------------------------------------------
# Target controller errors
# ---------------------------------------------------------------------------

class ImageNotFoundError(FiendFriendError):
    """
    A requested sprite image does not exist.

    Examples:
      - setbase with a file name not present under bases/
      - random with an empty faces/ directory
    """
    code = "image_not_found"
