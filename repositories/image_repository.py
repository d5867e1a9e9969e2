from pathlib import Path
from typing import Union
from urllib.parse import urlparse
from urllib.request import url2pathname
import base64
import io
import logging
import os
import numpy as np
import requests
from PIL import Image as PILImage
from dotenv import load_dotenv
from models.image import Image
from models.errors import DecodeError, ConstructionError, EncodeError, UnsupportedFormatError

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

Source = Union[str, Path]

# Pillow modes kept as-is; everything else is converted on load.
_NATIVE_MODES = {"L", "RGB", "RGBA"}


class ImageRepository:
    """
    Handles byte retrieval, codec calls and packed-pixel access for Image entities.
    Errors are raised as typed exceptions; callers decide whether to swallow them.
    """
    def __init__(self, fetch_timeout: float | None = None):
        if fetch_timeout is None:
            fetch_timeout = os.getenv("IMAGE_FETCH_TIMEOUT", "30")
        self.fetch_timeout = float(fetch_timeout)

    # ─── byte retrieval ───────────────────────────────────────────────
    def fetch_bytes(self, source: Source) -> bytes:
        """
        Read raw bytes from an http(s):// URL, a file:// URL or a filesystem path.
        """
        path = self.local_path(source)
        if path is None:
            try:
                with requests.get(str(source), timeout=self.fetch_timeout) as response:
                    response.raise_for_status()
                    return response.content
            except requests.RequestException as err:
                raise DecodeError(f"Could not fetch image from {source}: {err}") from err

        try:
            return path.read_bytes()
        except OSError as err:
            raise DecodeError(f"Could not read image file {path}: {err}") from err

    @staticmethod
    def local_path(source: Source) -> Path | None:
        """Filesystem path behind `source`, or None for http(s) URLs."""
        if isinstance(source, Path):
            return source
        parsed = urlparse(source)
        if parsed.scheme in ("http", "https"):
            return None
        if parsed.scheme == "file":
            return Path(url2pathname(parsed.path))
        return Path(source)

    def load(self, source: Source) -> Image:
        data = self.fetch_bytes(source)
        image = self.decode(data, self.local_path(source))
        logger.debug(f"Loaded {image.width}x{image.height} {image.mode} image from {source}")
        return image

    # ─── codec ────────────────────────────────────────────────────────
    @staticmethod
    def decode(data: bytes, path: Path | None = None) -> Image:
        """Decode image bytes, letting Pillow detect the format."""
        try:
            with PILImage.open(io.BytesIO(data)) as pil_img:
                pil_img.load()
                return ImageRepository.from_pil(pil_img, path)
        except (OSError, ValueError, PILImage.DecompressionBombError) as err:
            raise DecodeError(f"Unrecognised or corrupt image data: {err}") from err

    @staticmethod
    def resolve_format(format_name: str) -> str:
        """
        Map a format name such as "png" or "JPG" onto Pillow's format id.
        """
        extensions = PILImage.registered_extensions()
        pil_format = extensions.get(f".{format_name.lower()}")
        if pil_format is None or pil_format not in PILImage.SAVE:
            raise UnsupportedFormatError(format_name)
        return pil_format

    @staticmethod
    def encode(image: Image, format_name: str) -> bytes:
        pil_format = ImageRepository.resolve_format(format_name)
        with io.BytesIO() as buffer:
            try:
                ImageRepository._savable(image).save(buffer, format=pil_format)
            except (OSError, ValueError, KeyError) as err:
                raise EncodeError(f"Could not encode image as {format_name}: {err}") from err
            return buffer.getvalue()

    @staticmethod
    def write(image: Image, path: Source, format_name: str) -> None:
        # Resolve first so an unknown format never creates the file.
        pil_format = ImageRepository.resolve_format(format_name)
        try:
            ImageRepository._savable(image).save(path, format=pil_format)
        except (OSError, ValueError, KeyError) as err:
            raise EncodeError(f"Could not write image to {path}: {err}") from err
        logger.debug(f"Wrote {image.width}x{image.height} image to {path} as {pil_format}")

    @staticmethod
    def from_base64(text: str) -> Image:
        try:
            data = base64.b64decode(text, validate=True)
        except ValueError as err:
            raise DecodeError(f"Invalid Base64 image payload: {err}") from err
        return ImageRepository.decode(data)

    # ─── Pillow bridge ────────────────────────────────────────────────
    @staticmethod
    def to_pil(image: Image) -> PILImage.Image:
        pil_mode = "RGBa" if image.mode == "RGBA" and image.alpha_premultiplied else image.mode
        np_img = np.ascontiguousarray(image.pixels, dtype=np.uint8)
        return PILImage.frombytes(pil_mode, (image.width, image.height), np_img.tobytes())

    @staticmethod
    def from_pil(pil_img: PILImage.Image, path: Path | None = None) -> Image:
        if pil_img.mode == "RGBa":
            return Image(pixels=np.array(pil_img), mode="RGBA", alpha_premultiplied=True, path=path)

        if pil_img.mode == "1":
            pil_img = pil_img.convert("L")
        elif pil_img.mode in ("P", "PA"):
            has_alpha = pil_img.mode == "PA" or "transparency" in pil_img.info
            pil_img = pil_img.convert("RGBA" if has_alpha else "RGB")
        elif pil_img.mode == "LA":
            pil_img = pil_img.convert("RGBA")
        elif pil_img.mode not in _NATIVE_MODES:
            pil_img = pil_img.convert("RGB")

        return Image(pixels=np.array(pil_img), mode=pil_img.mode, path=path)

    @staticmethod
    def _savable(image: Image) -> PILImage.Image:
        # Encoders expect straight alpha.
        pil_img = ImageRepository.to_pil(image)
        return pil_img.convert("RGBA") if pil_img.mode == "RGBa" else pil_img

    # ─── packed pixels ────────────────────────────────────────────────
    @staticmethod
    def pack(image: Image) -> np.ndarray:
        """
        Return a (H, W) uint32 array of 0xAARRGGBB values.
        Images without an alpha channel read back as fully opaque.
        """
        rgba = np.asarray(ImageRepository.to_pil(image).convert("RGBA"), dtype=np.uint32)
        return (rgba[..., 3] << 24) | (rgba[..., 0] << 16) | (rgba[..., 1] << 8) | rgba[..., 2]

    @staticmethod
    def unpack(packed: np.ndarray) -> Image:
        """
        Build an Image from a (H, W) array of 0xAARRGGBB values.
        The result is RGB when every pixel is opaque, RGBA otherwise.
        """
        if packed.ndim != 2 or packed.shape[0] == 0 or packed.shape[1] == 0:
            raise ConstructionError(f"Cannot build an image of shape {packed.shape}")

        packed = packed.astype(np.uint32)
        alpha = (packed >> 24) & 0xFF
        channels = [(packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF]
        if np.all(alpha == 0xFF):
            return Image(pixels=np.stack(channels, axis=-1).astype(np.uint8), mode="RGB")
        return Image(pixels=np.stack(channels + [alpha], axis=-1).astype(np.uint8), mode="RGBA")

    @staticmethod
    def copy(image: Image) -> Image:
        return Image(
            pixels=image.pixels.copy(),
            mode=image.mode,
            alpha_premultiplied=image.alpha_premultiplied,
            path=image.path,
        )
