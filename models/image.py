from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import numpy as np


@dataclass
class Image:
    """
    Simple data object: a raster of uint8 pixels plus its color model.
    No Pillow logic outside the repository layer.
    """
    pixels: np.ndarray # Shape (H, W) for "L", (H, W, 3) for "RGB", (H, W, 4) for "RGBA".
    mode: str = "RGB" # Color model of `pixels`.
    alpha_premultiplied: bool = False # Color channels already scaled by alpha.
    path: Path | None = None # Source of the image.

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]
