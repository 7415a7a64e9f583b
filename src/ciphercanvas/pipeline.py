"""Wi-Fi credentials to exported QR image."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .export import ExportedArtifact, Sink, TerminalGraphicsSink, export_image
from .generator import Encryption, encode_wifi
from .svg import output_dimension, render_svg

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QrCodeOptions:
    ssid: str
    password: str = ""
    encryption: Encryption = Encryption.WPA
    size: int = 512
    format: str = "svg"
    foreground: str = "#ffffff"
    background: str = "#000000"
    output_path: Optional[Path] = None
    overwrite: bool = False
    preview: bool = False


def generate_qr_code(options: QrCodeOptions, sink: Optional[Sink] = None) -> ExportedArtifact:
    """Encode, render and export a Wi-Fi QR code.

    The image is exported at the renderer's final dimension, which may exceed
    ``options.size``. Without an output path the artifact goes to ``sink``,
    the terminal graphics preview when ``options.preview`` is set, or stdout.
    """
    matrix = encode_wifi(options.ssid, options.password, options.encryption)
    image = render_svg(matrix, options.size, options.foreground, options.background)
    dimension = output_dimension(matrix.size, options.size)
    logger.info("Rendered %dx%d modules at %dx%d pixels", matrix.size, matrix.size, dimension, dimension)

    if sink is None and options.preview and options.output_path is None:
        sink = TerminalGraphicsSink()
    return export_image(
        image,
        options.format,
        dimension,
        options.output_path,
        overwrite=options.overwrite,
        sink=sink,
    )
