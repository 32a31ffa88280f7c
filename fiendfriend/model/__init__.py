from .command import CommandName, CommandRequest, CommandResponse, ChannelDescriptor
from .codec import DecodeError, decode_request, encode_request, decode_response, encode_response

__all__ = ["CommandName",
           "CommandRequest",
           "CommandResponse",
           "ChannelDescriptor",
           "DecodeError",
           "decode_request",
           "encode_request",
           "decode_response",
           "encode_response"]
