from __future__ import annotations

import os
import shutil
import tempfile

import pytest

from fiendfriend.core.errors import ImageNotFoundError


class SpyController:
    """
    In-memory ImageController that records every call.
    Images not in the available lists are rejected with ImageNotFoundError.
    """

    def __init__(self, bases=("a.png", "b.png"), faces=("x.png",)):
        self.bases = list(bases)
        self.faces = list(faces)
        self.base = ""
        self.face = ""
        self.calls: list[tuple] = []

    def load_random(self) -> None:
        self.calls.append(("load_random",))
        if not self.bases or not self.faces:
            raise ImageNotFoundError("No PNG files found in bases or faces directories.")
        self.base, self.face = self.bases[0], self.faces[0]

    def set_base(self, name: str) -> None:
        self.calls.append(("set_base", name))
        if name not in self.bases:
            raise ImageNotFoundError(f"Base image not found: {name}")
        self.base = name

    def set_face(self, name: str) -> None:
        self.calls.append(("set_face", name))
        if name not in self.faces:
            raise ImageNotFoundError(f"Face image not found: {name}")
        self.face = name

    def set_both(self, base: str, face: str) -> None:
        self.calls.append(("set_both", base, face))
        self.set_base(base)
        self.set_face(face)

    def list_bases(self) -> list[str]:
        self.calls.append(("list_bases",))
        return list(self.bases)

    def list_faces(self) -> list[str]:
        self.calls.append(("list_faces",))
        return list(self.faces)

    def get_current(self) -> tuple[str, str]:
        self.calls.append(("get_current",))
        return self.base, self.face

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def spy() -> SpyController:
    return SpyController()


@pytest.fixture
def pipe_path():
    """
    Short absolute socket path (AF_UNIX paths are limited to ~100 bytes,
    pytest's tmp_path can get longer than that).
    """
    d = tempfile.mkdtemp(prefix="ff-")
    try:
        yield os.path.join(d, "p.sock")
    finally:
        shutil.rmtree(d, ignore_errors=True)
