"""Wi-Fi QR code generation with SVG/PNG export and Lua scripting."""

__version__ = "0.3.0"

from .errors import (
    CipherCanvasError,
    ConfigError,
    EncodingError,
    ImageError,
    OutputExistsError,
    ScriptError,
    UnsupportedFormatError,
)
from .export import ExportedArtifact, ExportRequest, ImageFormat, export_image
from .generator import Encryption, build_wifi_payload, encode_matrix, encode_wifi
from .matrix import QrMatrix
from .pipeline import QrCodeOptions, generate_qr_code
from .raster import svg_to_png
from .svg import output_dimension, render_svg

__all__ = [
    "CipherCanvasError",
    "ConfigError",
    "EncodingError",
    "ImageError",
    "OutputExistsError",
    "ScriptError",
    "UnsupportedFormatError",
    "ExportedArtifact",
    "ExportRequest",
    "ImageFormat",
    "export_image",
    "Encryption",
    "build_wifi_payload",
    "encode_matrix",
    "encode_wifi",
    "QrMatrix",
    "QrCodeOptions",
    "generate_qr_code",
    "svg_to_png",
    "output_dimension",
    "render_svg",
]
