# fiendfriend/app/processor.py
from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from fiendfriend.core.errors import CommandValidationError, UnknownCommandError
from fiendfriend.interfaces.image_controller import ImageController
from fiendfriend.model import CommandName, CommandRequest, CommandResponse

Handler = Callable[[ImageController, CommandRequest], CommandResponse]


def _random(ctl: ImageController, req: CommandRequest) -> CommandResponse:
    ctl.load_random()
    base, face = ctl.get_current()
    return CommandResponse(
        success=True,
        message="Loaded random images",
        current_base_image=base,
        current_face_image=face,
    )


def _set_base(ctl: ImageController, req: CommandRequest) -> CommandResponse:
    if not req.base_image:
        raise CommandValidationError("BaseImage parameter is required")
    ctl.set_base(req.base_image)
    return CommandResponse(
        success=True,
        message=f"Set base image to {req.base_image}",
        current_base_image=req.base_image,
    )


def _set_face(ctl: ImageController, req: CommandRequest) -> CommandResponse:
    if not req.face_image:
        raise CommandValidationError("FaceImage parameter is required")
    ctl.set_face(req.face_image)
    return CommandResponse(
        success=True,
        message=f"Set face image to {req.face_image}",
        current_face_image=req.face_image,
    )


def _set_both(ctl: ImageController, req: CommandRequest) -> CommandResponse:
    if not req.base_image or not req.face_image:
        raise CommandValidationError("Both BaseImage and FaceImage parameters are required")
    # base first; a rejected base never reaches set_face. No rollback if face fails.
    ctl.set_base(req.base_image)
    ctl.set_face(req.face_image)
    return CommandResponse(
        success=True,
        message=f"Set images to {req.base_image} and {req.face_image}",
        current_base_image=req.base_image,
        current_face_image=req.face_image,
    )


def _status(ctl: ImageController, req: CommandRequest) -> CommandResponse:
    base, face = ctl.get_current()
    return CommandResponse(
        success=True,
        message="Current status",
        current_base_image=base,
        current_face_image=face,
    )


def _list(ctl: ImageController, req: CommandRequest) -> CommandResponse:
    bases = list(ctl.list_bases())
    faces = list(ctl.list_faces())
    return CommandResponse(
        success=True,
        message="Available images",
        available_base_images=bases,
        available_face_images=faces,
    )


COMMAND_TABLE: Dict[CommandName, Handler] = {
    CommandName.RANDOM: _random,
    CommandName.SETBASE: _set_base,
    CommandName.SETFACE: _set_face,
    CommandName.SETBOTH: _set_both,
    CommandName.STATUS: _status,
    CommandName.LIST: _list,
}

assert set(COMMAND_TABLE) == set(CommandName), "every CommandName needs a handler"


class CommandProcessor:
    """
    Stateless command dispatcher.

    Maps a command name (case-insensitive) onto ImageController calls and
    wraps the outcome in a CommandResponse. Validation and controller errors
    become success=False responses; nothing is raised to the caller.
    Safe to call concurrently from any number of channels.
    """

    def __init__(self, controller: ImageController, *, logger: Optional[logging.Logger] = None):
        self._controller = controller
        self._log = logger or logging.getLogger(__name__)

    @property
    def controller(self) -> ImageController:
        return self._controller

    def process(self, command: str, request: Optional[CommandRequest] = None) -> CommandResponse:
        request = request or CommandRequest(command=command or "")
        try:
            name = CommandName.parse(command)
            if name is None:
                raise UnknownCommandError(command or "")
            return COMMAND_TABLE[name](self._controller, request)
        except Exception as e:
            self._log.info("COMMAND_FAILED command=%s err=%s", command, e)
            return CommandResponse.failure(str(e) or type(e).__name__)
