"""Export of rendered QR images to files, stdout or the terminal."""

from __future__ import annotations

import base64
import logging
import os
import sys
import tempfile
from contextlib import suppress
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, TextIO, Union

from .errors import OutputExistsError, UnsupportedFormatError
from .raster import svg_to_png

logger = logging.getLogger(__name__)

LOW_RESOLUTION_THRESHOLD = 256
GRAPHICS_CHUNK_SIZE = 4096

PathLike = Union[str, os.PathLike]


class ImageFormat(str, Enum):
    SVG = "svg"
    PNG = "png"

    @classmethod
    def parse(cls, value: str) -> "ImageFormat":
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedFormatError(value) from None

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @property
    def mimetype(self) -> str:
        return "image/svg+xml" if self is ImageFormat.SVG else "image/png"


@dataclass(frozen=True)
class ExportedArtifact:
    format: ImageFormat
    data: bytes
    size: int
    path: Optional[Path] = None


@dataclass(frozen=True)
class ExportRequest:
    image: str
    format: str
    size: int
    output_path: Optional[Path] = None
    overwrite: bool = False


class Sink(Protocol):
    def write(self, artifact: ExportedArtifact) -> Optional[Path]:
        """Deliver ``artifact``; return the path written, if any."""


def atomic_write(path: PathLike, data: bytes, overwrite: bool = False) -> Path:
    """Write ``data`` to ``path`` so that no partial file is ever visible there.

    The data goes to a temporary file in the same directory first. With
    ``overwrite`` false the temporary file is hard-linked into place, which
    fails instead of replacing a file created in the meantime.
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        if overwrite:
            os.replace(tmp_name, path)
        else:
            try:
                os.link(tmp_name, path)
            except FileExistsError:
                raise OutputExistsError(path) from None
            os.unlink(tmp_name)
    except BaseException:
        with suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise
    return path


class FileSink:
    def __init__(self, path: PathLike, overwrite: bool = False) -> None:
        self.path = Path(path)
        self.overwrite = overwrite

    def write(self, artifact: ExportedArtifact) -> Optional[Path]:
        written = atomic_write(self.path, artifact.data, overwrite=self.overwrite)
        logger.info("Saved %s image to %s", artifact.format.value.upper(), written)
        return written


class StdoutSink:
    """Print SVG text, or write raw PNG bytes to the binary stdout buffer."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream

    def write(self, artifact: ExportedArtifact) -> Optional[Path]:
        stream = self._stream if self._stream is not None else sys.stdout
        if artifact.format is ImageFormat.SVG:
            stream.write(artifact.data.decode("utf-8"))
            stream.write("\n")
        else:
            stream.flush()
            binary: BinaryIO = getattr(stream, "buffer", stream)
            binary.write(artifact.data)
            binary.flush()
        logger.info("Image output to stdout.")
        return None


class TerminalGraphicsSink:
    """Inline preview using the kitty terminal graphics protocol."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream

    def write(self, artifact: ExportedArtifact) -> Optional[Path]:
        stream = self._stream if self._stream is not None else sys.stdout
        png = artifact.data
        if artifact.format is ImageFormat.SVG:
            png = svg_to_png(artifact.data, artifact.size)
        stream.write(encode_graphics_protocol(png))
        stream.write("\n")
        stream.flush()
        logger.info("Image displayed using the terminal graphics protocol.")
        return None


def encode_graphics_protocol(png: bytes) -> str:
    """Return the escape sequences that display ``png`` inline."""
    payload = base64.standard_b64encode(png).decode("ascii")
    chunks = [payload[i:i + GRAPHICS_CHUNK_SIZE] for i in range(0, len(payload), GRAPHICS_CHUNK_SIZE)] or [""]
    parts = []
    for index, chunk in enumerate(chunks):
        more = 1 if index < len(chunks) - 1 else 0
        keys = f"f=100,a=T,m={more}" if index == 0 else f"m={more}"
        parts.append(f"\x1b_G{keys};{chunk}\x1b\\")
    return "".join(parts)


def render_artifact(image: str, format: Union[str, ImageFormat], size: int) -> ExportedArtifact:
    """Produce the bytes for ``image`` in ``format`` without writing anything."""
    image_format = format if isinstance(format, ImageFormat) else ImageFormat.parse(format)
    if image_format is ImageFormat.SVG:
        return ExportedArtifact(ImageFormat.SVG, image.encode("utf-8"), size)
    if size <= LOW_RESOLUTION_THRESHOLD:
        logger.warning("Image size is %dx%d, which may result in lower quality.", size, size)
    return ExportedArtifact(ImageFormat.PNG, svg_to_png(image, size), size)


def export(request: ExportRequest, sink: Optional[Sink] = None) -> ExportedArtifact:
    """Run ``request`` through the export pipeline.

    With an ``output_path`` the artifact is written there, its extension
    replaced by the canonical one for the format. Without one it is handed to
    ``sink`` (stdout by default) and the filesystem is not touched.

    Raises:
        UnsupportedFormatError: Before any I/O, for formats other than svg/png.
        OutputExistsError: If the destination exists and ``overwrite`` is false.
        ImageError: If rasterization fails.
    """
    image_format = ImageFormat.parse(request.format)
    logger.info("Starting to save image with format '%s' to %s", image_format.value, request.output_path)

    destination: Optional[Path] = None
    if request.output_path is not None:
        destination = Path(request.output_path).with_suffix(image_format.extension)
        if not request.overwrite and destination.exists():
            raise OutputExistsError(destination)

    artifact = render_artifact(request.image, image_format, request.size)
    if destination is not None:
        written = FileSink(destination, overwrite=request.overwrite).write(artifact)
    else:
        written = (sink if sink is not None else StdoutSink()).write(artifact)
    return replace(artifact, path=written)


def export_image(
    image: str,
    format: str,
    size: int,
    output_path: Optional[PathLike] = None,
    overwrite: bool = False,
    *,
    sink: Optional[Sink] = None,
) -> ExportedArtifact:
    request = ExportRequest(
        image=image,
        format=format,
        size=size,
        output_path=Path(output_path) if output_path is not None else None,
        overwrite=overwrite,
    )
    return export(request, sink=sink)
