from .command_sink import CommandEvent, CommandSink
from .image_controller import ImageController

__all__ = ["CommandEvent", "CommandSink", "ImageController"]
