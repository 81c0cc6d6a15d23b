"""Request, descriptor, and result dataclasses."""

import os
from dataclasses import dataclass, asdict, field
from typing import List, Optional, Tuple, Union

from ..config import (
    ConversionConfig, OutputFormat, ResizeMode,
    DEFAULT_QUALITY, DEFAULT_PREMULTIPLY, DEFAULT_FORMAT, DEFAULT_RESIZE,
    parse_output_format, parse_resize_mode,
)


@dataclass(frozen=True)
class TargetOverride:
    """Per-target quality/resize values parsed from a manifest line."""

    quality: Optional[float] = None
    resize: Optional[ResizeMode] = None

    @property
    def is_empty(self) -> bool:
        return self.quality is None and self.resize is None


@dataclass(frozen=True)
class ConversionRequest:
    """One batch invocation: targets plus global options."""

    targets: Union[str, Tuple[str, ...]]
    quality: float = DEFAULT_QUALITY
    premultiply: bool = DEFAULT_PREMULTIPLY
    output_format: OutputFormat = DEFAULT_FORMAT
    delete_source: bool = False
    resize: ResizeMode = DEFAULT_RESIZE

    def __post_init__(self) -> None:
        """Normalize list targets to a tuple and coerce enum fields."""
        if isinstance(self.targets, list):
            object.__setattr__(self, "targets", tuple(self.targets))
        if not self.targets:
            raise ValueError("ConversionRequest requires at least one target")
        object.__setattr__(self, "output_format", parse_output_format(self.output_format))
        object.__setattr__(self, "resize", parse_resize_mode(self.resize))

    @classmethod
    def from_config(cls, targets, config: ConversionConfig) -> "ConversionRequest":
        """Build a request whose global options come from *config*."""
        return cls(
            targets=targets,
            quality=float(config.quality),
            premultiply=bool(config.premultiply),
            output_format=parse_output_format(config.output_format),
            delete_source=bool(config.delete_source),
            resize=parse_resize_mode(config.resize),
        )


def _replace_ext(path: str, ext: str) -> str:
    stem, _ = os.path.splitext(path)
    return stem + ext


@dataclass(frozen=True)
class ImageDescriptor:
    """A resolved image with effective per-image settings."""

    source_path: str
    quality: float = DEFAULT_QUALITY
    premultiply: bool = DEFAULT_PREMULTIPLY
    output_format: OutputFormat = DEFAULT_FORMAT
    resize: ResizeMode = DEFAULT_RESIZE
    delete_source: bool = False

    @classmethod
    def resolve(cls, path: str, request: ConversionRequest,
                override: Optional[TargetOverride] = None) -> "ImageDescriptor":
        """Apply override > request > built-in default precedence."""
        override = override or TargetOverride()
        quality = override.quality
        if quality is None:
            quality = request.quality if request.quality is not None else DEFAULT_QUALITY
        resize = override.resize or request.resize or DEFAULT_RESIZE
        return cls(
            source_path=os.path.abspath(path),
            quality=float(quality),
            premultiply=request.premultiply,
            output_format=request.output_format or DEFAULT_FORMAT,
            resize=resize,
            delete_source=request.delete_source,
        )

    @property
    def output_path(self) -> str:
        ext = ".dds" if self.output_format == OutputFormat.DDS else ".crn"
        return _replace_ext(self.source_path, ext)

    @property
    def spritesheet_path(self) -> str:
        return _replace_ext(self.source_path, ".json")

    def to_dict(self) -> dict:
        """Return the planned conversion as a JSON-serializable dictionary."""
        return {
            "source_path": self.source_path,
            "output_path": self.output_path,
            "quality": self.quality,
            "premultiply": self.premultiply,
            "output_format": self.output_format.value,
            "resize": self.resize.value,
            "delete_source": self.delete_source,
        }


@dataclass(frozen=True)
class CompressionJob:
    """Arguments for a single encoder invocation."""

    input_path: str
    output_path: str
    quality_byte: int
    output_format: OutputFormat = DEFAULT_FORMAT
    target_width: Optional[int] = None
    target_height: Optional[int] = None

    @property
    def rescale(self) -> Optional[Tuple[int, int]]:
        if self.target_width and self.target_height:
            return (self.target_width, self.target_height)
        return None


@dataclass
class ImageResult:
    """Outcome of converting one image."""

    source_path: str
    ok: bool = False
    stage: str = ""
    error: str = ""
    error_type: str = ""
    output_path: str = ""
    spritesheet_patched: bool = False
    source_deleted: bool = False

    def to_dict(self) -> dict:
        """Return dataclass fields as a plain dictionary."""
        return asdict(self)


@dataclass
class BatchResult:
    """Outcome of a whole conversion run."""

    resolved: bool = True
    resolution_error: str = ""
    images: List[ImageResult] = field(default_factory=list)
    dry_run: bool = False
    planned: List[dict] = field(default_factory=list)

    @property
    def succeeded(self) -> List[ImageResult]:
        return [r for r in self.images if r.ok]

    @property
    def failed(self) -> List[ImageResult]:
        return [r for r in self.images if not r.ok]

    @property
    def has_image_failures(self) -> bool:
        return any(not r.ok for r in self.images)

    @property
    def ok(self) -> bool:
        """Batch succeeds unless target resolution itself failed."""
        return self.resolved

    def to_dict(self) -> dict:
        """Return a JSON-serializable summary."""
        return {
            "resolved": self.resolved,
            "resolution_error": self.resolution_error,
            "dry_run": self.dry_run,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "images": [r.to_dict() for r in self.images],
            "planned": self.planned,
        }
