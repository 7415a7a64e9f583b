"""SVG export helpers for QR matrices."""

from __future__ import annotations

import logging
from typing import List
from xml.sax.saxutils import quoteattr

from .matrix import QUIET_ZONE, QrMatrix

logger = logging.getLogger(__name__)


def module_pixels(matrix_side: int, size: int) -> int:
    """Return the edge length in pixels of one module for a minimum ``size``.

    The quiet zone on both sides is included in the division; the result is
    rounded up so the rendered image is never smaller than ``size``.
    """
    if size < 0:
        raise ValueError("size must not be negative")
    modules = matrix_side + 2 * QUIET_ZONE
    return max(1, -(-size // modules))


def output_dimension(matrix_side: int, size: int) -> int:
    """Edge length in pixels of the SVG produced for a minimum ``size``."""
    return module_pixels(matrix_side, size) * (matrix_side + 2 * QUIET_ZONE)


def render_svg(
    matrix: QrMatrix,
    size: int,
    foreground: str = "#ffffff",
    background: str = "#000000",
) -> str:
    """Render ``matrix`` as a square SVG document at least ``size`` pixels wide.

    ``foreground`` fills the dark modules and ``background`` fills the whole
    canvas, quiet zone included.
    """
    unit = module_pixels(matrix.size, size)
    dimension = unit * (matrix.size + 2 * QUIET_ZONE)
    parts = _svg_header(dimension, background)
    parts.append(f"<path fill={quoteattr(foreground)} d=\"")
    for x, y in matrix.dark_modules():
        parts.append(_module_path((x + QUIET_ZONE) * unit, (y + QUIET_ZONE) * unit, unit))
    parts.append("\"/>")
    parts.extend(_svg_footer())
    logger.info("QR code rendered to a %dx%d SVG (module size %dpx)", dimension, dimension, unit)
    return "".join(parts)


def _module_path(left: int, top: int, unit: int) -> str:
    return f"M{left} {top}h{unit}v{unit}h-{unit}z"


def _svg_header(dimension: int, background: str) -> List[str]:
    return [
        '<?xml version="1.0" standalone="yes"?>',
        '<svg xmlns="http://www.w3.org/2000/svg" version="1.1"',
        f' width="{dimension}" height="{dimension}"',
        f' viewBox="0 0 {dimension} {dimension}" shape-rendering="crispEdges">',
        f"<rect x=\"0\" y=\"0\" width=\"{dimension}\" height=\"{dimension}\" fill={quoteattr(background)}/>",
    ]


def _svg_footer() -> List[str]:
    return ["</svg>"]
