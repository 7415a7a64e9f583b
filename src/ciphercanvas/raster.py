"""SVG rasterization.

Documents are rendered by CairoSVG at their intrinsic size and placed onto a
square RGBA buffer with an identity transform: one CSS pixel of the root
viewport maps to one pixel of the output. Larger documents are cropped and
smaller ones leave a transparent margin; nothing is scaled.
"""

from __future__ import annotations

import io
import logging
from typing import Union

import cairosvg
from PIL import Image

from .errors import ImageError

logger = logging.getLogger(__name__)

# tiny-skia style limit: the row stride and the buffer must fit a signed 32-bit int
MAX_BUFFER_BYTES = 2**31 - 1


def allocate(size: int) -> Image.Image:
    """Return a transparent ``size`` x ``size`` RGBA buffer."""
    if size <= 0:
        raise ImageError(f"Cannot create a pixel buffer of size {size}x{size}")
    if size * size * 4 > MAX_BUFFER_BYTES:
        raise ImageError(f"Pixel buffer of size {size}x{size} is too large")
    try:
        return Image.new("RGBA", (size, size), (0, 0, 0, 0))
    except (MemoryError, ValueError) as exc:
        raise ImageError(f"Failed to create a pixel buffer of size {size}x{size}: {exc}") from exc


def render_document(data: Union[bytes, str]) -> Image.Image:
    """Render an SVG document at its intrinsic size."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        png = cairosvg.svg2png(bytestring=data)
    except Exception as exc:
        # CairoSVG surfaces XML, CSS and cairo failures with their own types
        raise ImageError(f"Failed to parse SVG data: {exc}") from exc
    if not isinstance(png, bytes):
        raise ImageError("Failed to parse SVG data: no image was produced")
    with Image.open(io.BytesIO(png)) as image:
        return image.convert("RGBA")


def rasterize(data: Union[bytes, str], size: int) -> Image.Image:
    """Paint an SVG document onto a new ``size`` x ``size`` RGBA image."""
    canvas = allocate(size)
    document = render_document(data)
    # crop pads with transparent pixels past the document's edge
    canvas.alpha_composite(document.crop((0, 0, size, size)))
    logger.info("Rendered a %dx%d document onto a %dx%d pixel buffer", *document.size, size, size)
    return canvas


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    try:
        image.save(buffer, format="PNG")
    except (OSError, ValueError) as exc:
        raise ImageError(f"Failed to encode PNG image: {exc}") from exc
    return buffer.getvalue()


def svg_to_png(data: Union[bytes, str], size: int) -> bytes:
    """Rasterize an SVG document into a ``size`` x ``size`` PNG."""
    logger.info("Loading SVG content with size %dx%d", size, size)
    return encode_png(rasterize(data, size))
