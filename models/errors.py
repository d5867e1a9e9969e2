class ImageHandlingError(Exception):
    """Base class for image loading, construction and encoding failures."""


class DecodeError(ImageHandlingError):
    """Image bytes could not be fetched or decoded."""


class ConstructionError(ImageHandlingError):
    """An Image could not be built from a pixel matrix."""


class EncodeError(ImageHandlingError):
    """An Image could not be encoded or written."""


class UnsupportedFormatError(EncodeError):
    """The requested format name has no registered codec."""

    def __init__(self, format_name: str):
        super().__init__(f"No image codec registered for format '{format_name}'")
        self.format_name = format_name
