# fiendfriend/runtime/sprite_controller.py
from __future__ import annotations

import logging
import random
import threading
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from fiendfriend.core.errors import ImageNotFoundError

ChangeCallback = Callable[[str, str], None]  # (base, face)

SPRITE_PATTERN = "*.png"


class SpriteImageController:
    """
    Directory-backed image controller.

    Layout:
        <sprite_path>/bases/*.png
        <sprite_path>/faces/*.png

    Tracks the current base/face file names under a lock; an optional
    on_change callback lets a UI re-render (it runs on the caller's thread).
    """

    def __init__(
        self,
        sprite_path: str | Path,
        *,
        on_change: Optional[ChangeCallback] = None,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.sprite_path = Path(sprite_path)
        self.bases_dir = self.sprite_path / "bases"
        self.faces_dir = self.sprite_path / "faces"
        self.on_change = on_change

        self._rng = rng or random.Random()
        self._log = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()

        self._base = ""
        self._face = ""

    # ---------------- listing ----------------
    @staticmethod
    def _list(directory: Path) -> List[str]:
        if not directory.is_dir():
            return []
        return sorted(p.name for p in directory.glob(SPRITE_PATTERN) if p.is_file())

    def list_bases(self) -> List[str]:
        return self._list(self.bases_dir)

    def list_faces(self) -> List[str]:
        return self._list(self.faces_dir)

    # ---------------- mutation ----------------
    @staticmethod
    def _check(directory: Path, name: str, kind: str) -> None:
        # plain file names only; no escaping the sprite directory
        if not name or Path(name).name != name or not (directory / name).is_file():
            raise ImageNotFoundError(
                f"{kind} image not found: {name}",
                details={"directory": str(directory), "name": name},
            )

    def set_base(self, name: str) -> None:
        self._check(self.bases_dir, name, "Base")
        with self._lock:
            self._base = name
            self._notify()

    def set_face(self, name: str) -> None:
        self._check(self.faces_dir, name, "Face")
        with self._lock:
            self._face = name
            self._notify()

    def set_both(self, base: str, face: str) -> None:
        self.set_base(base)
        self.set_face(face)

    def load_random(self) -> None:
        bases = self.list_bases()
        faces = self.list_faces()
        if not bases or not faces:
            raise ImageNotFoundError(
                "No PNG files found in bases or faces directories.",
                hint=f"Check the sprite path: {self.sprite_path}",
                details={"bases": len(bases), "faces": len(faces)},
            )

        with self._lock:
            self._base = self._rng.choice(bases)
            self._face = self._rng.choice(faces)
            self._log.debug("RANDOM_IMAGES base=%s face=%s", self._base, self._face)
            self._notify()

    def get_current(self) -> Tuple[str, str]:
        with self._lock:
            return self._base, self._face

    def _notify(self) -> None:
        cb = self.on_change
        if cb is None:
            return
        try:
            cb(self._base, self._face)
        except Exception:
            self._log.exception("ON_CHANGE_CALLBACK_ERROR")
