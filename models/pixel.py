from __future__ import annotations
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Pixel:
    """
    Value-object holding a single packed 0xAARRGGBB color.
    Signed 32-bit values are folded into the unsigned range on construction.
    """
    value: int

    def __post_init__(self):
        object.__setattr__(self, "value", self.value & 0xFFFFFFFF)

    @classmethod
    def from_rgb(cls, red: int, green: int, blue: int, alpha: int = 0xFF) -> Pixel:
        return cls((alpha << 24) | (red << 16) | (green << 8) | blue)

    @classmethod
    def gray(cls, level: int) -> Pixel:
        """Opaque pixel with R = G = B = level."""
        return cls.from_rgb(level, level, level)

    @property
    def alpha(self) -> int:
        return (self.value >> 24) & 0xFF

    @property
    def red(self) -> int:
        return (self.value >> 16) & 0xFF

    @property
    def green(self) -> int:
        return (self.value >> 8) & 0xFF

    @property
    def blue(self) -> int:
        return self.value & 0xFF


# Both matrices are indexed [x][y]: outer length is the width, inner the height.
PixelMatrix = List[List[Pixel]]
GrayscaleMatrix = List[List[int]]
