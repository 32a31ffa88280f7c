# fiendfriend/interfaces/image_controller.py
from __future__ import annotations

from typing import List, Protocol, Tuple


class ImageController(Protocol):
    """
    Target controller owning the widget's displayed base/face images.

    All methods may be called from background threads; implementations that
    need a specific execution context (UI thread) marshal onto it themselves.
    Missing images raise ImageNotFoundError.
    """
    def load_random(self) -> None: ...
    def set_base(self, name: str) -> None: ...
    def set_face(self, name: str) -> None: ...
    def set_both(self, base: str, face: str) -> None: ...
    def list_bases(self) -> List[str]: ...
    def list_faces(self) -> List[str]: ...
    def get_current(self) -> Tuple[str, str]: ...
