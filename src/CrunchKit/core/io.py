"""PNG I/O utilities -- load/save RGBA uint8 pixel buffers via Pillow."""

import logging
import os
from dataclasses import dataclass

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError

logger = logging.getLogger("crunchkit.io")

# Pillow modes for 16-bit greyscale PNGs; convert("RGBA") would clip them.
_WIDE_GREY_MODES = ("I;16", "I;16B", "I;16L", "I")


@dataclass
class PixelBuffer:
    """Decoded image as an (H, W, 4) uint8 RGBA array in row-major order."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[-1] != 4:
            raise ValueError(
                f"PixelBuffer requires an HxWx4 array, got shape {self.pixels.shape}"
            )
        if self.pixels.dtype != np.uint8:
            self.pixels = self.pixels.astype(np.uint8)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @classmethod
    def blank(cls, width: int, height: int) -> "PixelBuffer":
        """Return a fully transparent black buffer."""
        return cls(np.zeros((height, width, 4), dtype=np.uint8))


def _wide_grey_to_rgba(samples: np.ndarray) -> np.ndarray:
    """Scale 16-bit grey samples to 8 bits and expand to opaque RGBA."""
    grey = np.clip(samples.astype(np.int64) >> 8, 0, 255).astype(np.uint8)
    alpha = np.full_like(grey, 255)
    return np.dstack([grey, grey, grey, alpha])


def load_png(path: str) -> PixelBuffer:
    """Decode a PNG file into an RGBA `PixelBuffer`.

    Palette, grayscale, and RGB inputs are converted to RGBA; 16-bit grey
    samples are scaled down to 8 bits. Any decode failure raises
    `DecodeError`.
    """
    try:
        with Image.open(path) as img:
            if img.format != "PNG":
                raise DecodeError(f"Not a PNG image: {path} (format={img.format})")
            if img.mode in _WIDE_GREY_MODES:
                arr = _wide_grey_to_rgba(np.asarray(img))
            elif img.mode != "RGBA":
                logger.debug("Converting '%s' from %s->RGBA", path, img.mode)
                with img.convert("RGBA") as converted:
                    arr = np.array(converted, dtype=np.uint8)
            else:
                arr = np.array(img, dtype=np.uint8)
    except DecodeError:
        raise
    except FileNotFoundError:
        raise
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise DecodeError(f"Failed to decode PNG '{path}': {e}") from e
    logger.debug("Loaded %s (%dx%d)", path, arr.shape[1], arr.shape[0])
    return PixelBuffer(arr)


def save_png(buffer: PixelBuffer, path: str) -> str:
    """Encode *buffer* as an RGBA PNG at *path*.

    Uses atomic write (temp file + ``os.replace``) so the encoder never
    sees a truncated input.
    """
    parent_dir = os.path.dirname(path) or "."
    os.makedirs(parent_dir, exist_ok=True)
    tmp_path = f"{path}.tmp.{os.getpid()}.png"
    try:
        with Image.fromarray(np.ascontiguousarray(buffer.pixels)) as img:
            img.save(tmp_path, format="PNG")
        os.replace(tmp_path, path)
        logger.debug("Saved: %s (%dx%d)", path, buffer.width, buffer.height)
    finally:
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass
    return path
