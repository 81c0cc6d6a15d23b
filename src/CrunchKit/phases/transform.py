"""Prepare decoded PNGs for the encoder.

Each image goes through ``decode -> size resolution -> (premultiply)``
and ends up as a file path the encoder can read. Size resolution depends
on the resize mode:

* ``none``: reject images the encoder cannot take.
* ``border``: pad with transparent pixels to the right and bottom.
* ``scale``: leave pixels alone and ask the encoder to rescale.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..config import ResizeMode, MIN_TEXTURE_DIM, BLOCK_ALIGN
from ..core import ImageDescriptor, PixelBuffer, load_png, save_png
from ..core.errors import InvalidDimensionsError

logger = logging.getLogger("crunchkit.transform")

PMA_SUFFIX = "_pma"
BORDER_SUFFIX = "_border"


@dataclass
class PreparedImage:
    """Encoder input produced by the transform stage."""

    input_path: str
    temp_path: Optional[str] = None
    target_width: Optional[int] = None
    target_height: Optional[int] = None
    width: int = 0
    height: int = 0


def _align_up(value: int, align: int = BLOCK_ALIGN) -> int:
    remainder = value % align
    return value if remainder == 0 else value + (align - remainder)


def valid_size(width: int, height: int) -> Tuple[int, int]:
    """Return the smallest encoder-valid size covering (width, height)."""
    return (
        max(_align_up(width), MIN_TEXTURE_DIM),
        max(_align_up(height), MIN_TEXTURE_DIM),
    )


def assert_valid_size(buffer: PixelBuffer) -> PixelBuffer:
    """Raise `InvalidDimensionsError` unless the encoder accepts the size."""
    if buffer.width < MIN_TEXTURE_DIM or buffer.height < MIN_TEXTURE_DIM:
        raise InvalidDimensionsError(
            f"width and height must be at least {MIN_TEXTURE_DIM} pixels "
            f"(got {buffer.width}x{buffer.height})"
        )
    if buffer.width % BLOCK_ALIGN != 0:
        raise InvalidDimensionsError(
            f"width must be a multiple of {BLOCK_ALIGN} (got {buffer.width})"
        )
    if buffer.height % BLOCK_ALIGN != 0:
        raise InvalidDimensionsError(
            f"height must be a multiple of {BLOCK_ALIGN} (got {buffer.height})"
        )
    return buffer


def add_border(buffer: PixelBuffer) -> PixelBuffer:
    """Pad *buffer* to a valid size; the original stays at the top-left."""
    width, height = valid_size(buffer.width, buffer.height)
    if (width, height) == (buffer.width, buffer.height):
        return buffer
    padded = PixelBuffer.blank(width, height)
    padded.pixels[:buffer.height, :buffer.width] = buffer.pixels
    logger.debug(
        "Bordered %dx%d -> %dx%d", buffer.width, buffer.height, width, height
    )
    return padded


def premultiply(buffer: PixelBuffer) -> PixelBuffer:
    """Scale RGB by alpha, rounding halves up; alpha is unchanged."""
    src = buffer.pixels
    alpha = src[:, :, 3:4].astype(np.float64) / 255.0
    rgb = np.floor(src[:, :, :3].astype(np.float64) * alpha + 0.5)
    out = src.copy()
    out[:, :, :3] = np.clip(rgb, 0, 255).astype(np.uint8)
    return PixelBuffer(out)


def temp_path(source_path: str, suffix: str) -> str:
    """Return ``<dir>/<basename><suffix><ext>`` next to *source_path*."""
    stem, ext = os.path.splitext(source_path)
    return f"{stem}{suffix}{ext}"


class ImageTransformer:
    """Run the transform stage for one descriptor at a time."""

    def prepare(self, descriptor: ImageDescriptor) -> PreparedImage:
        """Decode, size-check or repair, and optionally premultiply."""
        source = descriptor.source_path
        buffer = load_png(source)
        prepared = PreparedImage(input_path=source)
        modified = False

        if descriptor.resize == ResizeMode.BORDER:
            bordered = add_border(buffer)
            modified = bordered is not buffer
            buffer = bordered
        elif descriptor.resize == ResizeMode.SCALE:
            prepared.target_width, prepared.target_height = valid_size(
                buffer.width, buffer.height
            )
            logger.debug(
                "Encoder will rescale %s to %dx%d",
                source, prepared.target_width, prepared.target_height,
            )
        else:
            assert_valid_size(buffer)

        if descriptor.premultiply:
            logger.info("Converting %s to premultiplied alpha", _local(source))
            buffer = premultiply(buffer)
            prepared.temp_path = save_png(buffer, temp_path(source, PMA_SUFFIX))
        elif modified:
            prepared.temp_path = save_png(buffer, temp_path(source, BORDER_SUFFIX))

        if prepared.temp_path:
            prepared.input_path = prepared.temp_path
        prepared.width = buffer.width
        prepared.height = buffer.height
        return prepared


def _local(path: str) -> str:
    try:
        return os.path.relpath(path)
    except ValueError:
        return path
