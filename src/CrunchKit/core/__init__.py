"""Core utilities -- re-exports all public symbols for convenience."""

from .errors import (
    CrunchKitError,
    ManifestReadError,
    GlobError,
    DecodeError,
    InvalidDimensionsError,
    CompressionError,
    MetadataParseError,
)
from .records import (
    TargetOverride,
    ConversionRequest,
    ImageDescriptor,
    CompressionJob,
    ImageResult,
    BatchResult,
)
from .io import PixelBuffer, load_png, save_png
from .overrides import (
    OverrideStore, parse_manifest_line, parse_manifest, read_manifest,
)
from .scanning import expand_target, glob_target, resolve_targets
from .logging import setup_logging

__all__ = [
    "CrunchKitError", "ManifestReadError", "GlobError", "DecodeError",
    "InvalidDimensionsError", "CompressionError", "MetadataParseError",
    "TargetOverride", "ConversionRequest", "ImageDescriptor",
    "CompressionJob", "ImageResult", "BatchResult",
    "PixelBuffer", "load_png", "save_png",
    "OverrideStore", "parse_manifest_line", "parse_manifest", "read_manifest",
    "expand_target", "glob_target", "resolve_targets",
    "setup_logging",
]
