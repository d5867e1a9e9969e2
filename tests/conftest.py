"""
Shared fixtures for the image handling tests.
"""

import io

import numpy as np
import pytest
from PIL import Image as PILImage

from models.image import Image
from repositories.image_repository import ImageRepository
from services.image_service import ImageService


@pytest.fixture
def image_repository() -> ImageRepository:
    return ImageRepository(fetch_timeout=5)


@pytest.fixture
def image_service(image_repository) -> ImageService:
    return ImageService(image_repository=image_repository, default_format="png")


@pytest.fixture
def rgb_pixels() -> np.ndarray:
    """A deterministic 4 (high) x 5 (wide) RGB raster."""
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, size=(4, 5, 3), dtype=np.uint8)


@pytest.fixture
def rgb_image(rgb_pixels) -> Image:
    return Image(pixels=rgb_pixels.copy(), mode="RGB")


@pytest.fixture
def rgba_image() -> Image:
    rng = np.random.default_rng(7)
    return Image(pixels=rng.integers(0, 256, size=(3, 2, 4), dtype=np.uint8), mode="RGBA")


@pytest.fixture
def png_bytes(rgb_pixels) -> bytes:
    with io.BytesIO() as buffer:
        PILImage.fromarray(rgb_pixels).save(buffer, format="PNG")
        return buffer.getvalue()
