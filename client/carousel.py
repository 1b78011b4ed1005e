from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Mapping

from models.block_record import PHOTO_SIDES

SIDE_LABELS = {
    "front": "Frente",
    "back": "Trás",
    "left": "Lado Esquerdo",
    "right": "Lado Direito",
}


@dataclass(frozen=True)
class CarouselPhoto:
    url: str
    label: str


@dataclass
class Carousel:
    """Photos of one block and the index of the one on display.

    Navigation wraps: `next()` past the last photo lands on the first and
    `previous()` from the first lands on the last.
    """

    photos: List[CarouselPhoto] = field(default_factory=list)
    index: int = 0

    @classmethod
    def for_block(cls, block: Mapping, resolve_url: Callable[[Mapping, str], str]) -> "Carousel":
        """Build a carousel from a block's photos in front, back, left, right order."""
        photos = [
            CarouselPhoto(url=resolve_url(block, side), label=SIDE_LABELS[side])
            for side in PHOTO_SIDES
            if block.get(f"photo_{side}")
        ]
        return cls(photos=photos)

    def __len__(self) -> int:
        return len(self.photos)

    @property
    def current(self) -> CarouselPhoto:
        if not self.photos:
            raise IndexError("carousel is empty")
        return self.photos[self.index]

    def next(self) -> CarouselPhoto:
        return self._step(1)

    def previous(self) -> CarouselPhoto:
        return self._step(-1)

    def go_to(self, index: int) -> CarouselPhoto:
        if not 0 <= index < len(self.photos):
            raise IndexError(f"photo index {index} out of range")
        self.index = index
        return self.current

    def _step(self, direction: int) -> CarouselPhoto:
        if not self.photos:
            raise IndexError("carousel is empty")
        self.index = (self.index + direction) % len(self.photos)
        return self.current
