"""Exception types raised by the export pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Union


class CipherCanvasError(Exception):
    """Base class for every error raised by ciphercanvas."""


class EncodingError(CipherCanvasError, ValueError):
    """The payload does not fit a QR symbol at the requested error correction level."""


class ImageError(CipherCanvasError):
    """SVG parsing, pixel buffer allocation or PNG encoding failed."""


class UnsupportedFormatError(CipherCanvasError, ValueError):
    def __init__(self, image_format: str) -> None:
        super().__init__(f"Unsupported image format: {image_format!r}")
        self.format = image_format


class OutputExistsError(CipherCanvasError, FileExistsError):
    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__(f"File already exists: {path}")
        self.path = Path(path)


class ScriptError(CipherCanvasError):
    """Raised inside the scripting sandbox."""


class ConfigError(CipherCanvasError):
    """The settings file could not be read or parsed."""
