from pathlib import Path
from typing import Optional, Union
import base64
import logging
import os
import numpy as np
from dotenv import load_dotenv
from models.image import Image
from models.pixel import Pixel, PixelMatrix, GrayscaleMatrix
from models.errors import DecodeError, ConstructionError, EncodeError
from repositories.image_repository import ImageRepository

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ImageService:
    """
    Image I/O and pixel-matrix helpers.

    Loading, saving and matrix construction log failures and hand back an
    empty result (None / False). Base64 encoding raises instead, since there
    is no meaningful empty encoding.
    """
    def __init__(self, image_repository: ImageRepository | None = None, default_format: str | None = None):
        self.DEFAULT_BASE64_FORMAT = default_format or os.getenv("DEFAULT_BASE64_FORMAT", "png")
        self.image_repository = image_repository or ImageRepository()

    # ─── I/O ──────────────────────────────────────────────────────────
    def load_from_source(self, source: Union[str, Path]) -> Optional[Image]:
        """
        Load an image from an http(s) URL, a file URL or a filesystem path.

        Returns:
            The decoded Image, or None if the bytes could not be fetched or decoded.
        """
        try:
            return self.image_repository.load(source)
        except DecodeError:
            logger.exception(f"Failed to load image from {source}")
            return None

    def save_to_file(self, image: Optional[Image], path: Union[str, Path]) -> bool:
        """
        Save an image, picking the format from everything after the first '.'
        of the path ("out.final.png" -> "final.png", "my.dir/out.png" -> "dir/out.png").

        Returns:
            True if the file was written, False otherwise.
        """
        if image is None:
            logger.warning(f"No image given, nothing saved to {path}")
            return False

        format_name = self.format_from_path(path)
        try:
            self.image_repository.write(image, path, format_name)
        except EncodeError:
            logger.exception(f"Failed to save image to {path} as '{format_name}'")
            return False
        return True

    @staticmethod
    def format_from_path(path: Union[str, Path]) -> str:
        path = str(path)
        return path[path.find(".") + 1:]

    # ─── pixel matrices ───────────────────────────────────────────────
    def to_matrix(self, image: Image) -> PixelMatrix:
        """Return a [width][height] matrix of Pixels."""
        if image is None:
            raise ValueError("to_matrix requires an image")

        packed = self.image_repository.pack(image)
        return [[Pixel(value) for value in column] for column in packed.T.tolist()]

    def from_matrix(self, matrix: PixelMatrix) -> Optional[Image]:
        """
        Build an image sized [len(matrix)][len(matrix[0])] from packed Pixels.

        The matrix must be rectangular: a column longer than the first one
        fails the build, a shorter one leaves its missing pixels opaque black.
        """
        try:
            packed = self._pack_columns(matrix, lambda pixel: pixel.value)
            return self.image_repository.unpack(packed)
        except ConstructionError:
            logger.exception("Failed to build image from pixel matrix")
            return None

    def from_grayscale(self, matrix: GrayscaleMatrix) -> Optional[Image]:
        """
        Build a gray image (R = G = B) from a matrix of intensities.

        Note: values are clamped to [0, 255] in the caller's matrix itself.
        """
        for column in matrix:
            for y, level in enumerate(column):
                column[y] = max(min(level, 255), 0)

        try:
            packed = self._pack_columns(matrix, lambda level: Pixel.gray(level).value)
            return self.image_repository.unpack(packed)
        except ConstructionError:
            logger.exception("Failed to build image from grayscale matrix")
            return None

    @staticmethod
    def _pack_columns(matrix, to_value) -> np.ndarray:
        try:
            width, height = len(matrix), len(matrix[0])
            packed = np.full((height, width), 0xFF000000, dtype=np.uint32)
            for x, column in enumerate(matrix):
                packed[:len(column), x] = [to_value(entry) for entry in column]
        except (IndexError, TypeError, ValueError, AttributeError, OverflowError) as err:
            raise ConstructionError(f"Invalid pixel matrix: {err}") from err
        return packed

    # ─── encoding / copying ───────────────────────────────────────────
    def to_base64(self, image: Image, fmt: str | None = None) -> str:
        """
        Encode an image as standard, padded Base64 text.

        Raises:
            UnsupportedFormatError: No codec is registered for `fmt`.
            EncodeError: The image is missing or the codec rejects it.
        """
        fmt = fmt or self.DEFAULT_BASE64_FORMAT
        if image is None:
            raise EncodeError("Cannot encode a missing image")

        data = self.image_repository.encode(image, fmt)
        return base64.b64encode(data).decode("ascii")

    def deep_copy(self, image: Image) -> Image:
        """Copy an image into an independent pixel buffer."""
        if image is None:
            raise ValueError("deep_copy requires an image")
        return self.image_repository.copy(image)
