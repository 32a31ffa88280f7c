# fiendfriend/model/codec.py
from __future__ import annotations

import json
from typing import Optional, Union

from .command import CommandRequest, CommandResponse

ENCODING = "utf-8"


class DecodeError(ValueError):
    """Payload is not a valid command request/response document."""


def _load_object(raw: Union[bytes, str]) -> dict:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode(ENCODING)
        except UnicodeDecodeError as e:
            raise DecodeError(f"payload is not valid UTF-8: {e}") from None

    if not raw or not raw.strip():
        raise DecodeError("empty payload")

    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DecodeError(f"invalid JSON: {e.msg} (pos {e.pos})") from None

    if not isinstance(doc, dict):
        raise DecodeError(f"expected a JSON object, got {type(doc).__name__}")
    return doc


def decode_request(raw: Union[bytes, str]) -> CommandRequest:
    doc = _load_object(raw)
    try:
        return CommandRequest.from_dict(doc)
    except TypeError as e:
        raise DecodeError(str(e)) from None


def encode_request(request: CommandRequest) -> bytes:
    return json.dumps(request.to_dict()).encode(ENCODING)


def decode_response(raw: Union[bytes, str]) -> CommandResponse:
    doc = _load_object(raw)
    try:
        return CommandResponse.from_dict(doc)
    except (TypeError, ValueError) as e:
        raise DecodeError(str(e)) from None


def encode_response(response: CommandResponse, *, indent: Optional[int] = None) -> bytes:
    return json.dumps(response.to_dict(), indent=indent, ensure_ascii=False).encode(ENCODING)
