"""Define typed configuration models for batch texture conversion.

Use `ConversionConfig` to load, validate, and persist runtime settings.
"""

import dataclasses
import os
import logging
import yaml
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger("crunchkit.config")


class OutputFormat(Enum):
    """Enumerate container formats the encoder can write."""

    CRN = "crn"
    DDS = "dds"


class ResizeMode(Enum):
    """Enumerate policies for images whose size the encoder rejects."""

    NONE = "none"
    BORDER = "border"
    SCALE = "scale"


DEFAULT_QUALITY = 0.5
DEFAULT_PREMULTIPLY = True
DEFAULT_FORMAT = OutputFormat.CRN
DEFAULT_RESIZE = ResizeMode.NONE

# Encoder input constraints.
MIN_TEXTURE_DIM = 64
BLOCK_ALIGN = 4


def parse_output_format(value) -> OutputFormat:
    """Coerce a string or enum into `OutputFormat`."""
    if isinstance(value, OutputFormat):
        return value
    text = str(value).strip().lower()
    try:
        return OutputFormat(text)
    except ValueError:
        raise ValueError(
            f"output format must be one of "
            f"{[f.value for f in OutputFormat]}, got '{value}'"
        ) from None


def parse_resize_mode(value) -> ResizeMode:
    """Coerce a string, enum, or None into `ResizeMode`."""
    if isinstance(value, ResizeMode):
        return value
    if value is None:
        return ResizeMode.NONE
    text = str(value).strip().lower()
    if text in ("", "null"):
        return ResizeMode.NONE
    try:
        return ResizeMode(text)
    except ValueError:
        raise ValueError(
            f"resize must be one of {[m.value for m in ResizeMode]}, got '{value}'"
        ) from None


@dataclass
class EncoderConfig:
    """Store settings for the external crunch encoder process."""

    tool_path: str = ""
    timeout_seconds: int = 0  # 0 = wait indefinitely
    max_output_bytes: int = 1024 * 1000
    no_progress: bool = True


_SUPPORTED_CONFIG_VERSION = 1


@dataclass
class ConversionConfig:
    """Master conversion configuration."""

    config_version: int = 1
    quality: float = DEFAULT_QUALITY
    premultiply: bool = DEFAULT_PREMULTIPLY
    output_format: str = DEFAULT_FORMAT.value
    delete_source: bool = False
    resize: str = DEFAULT_RESIZE.value
    glob_workers: int = 4
    log_level: str = "INFO"
    log_file: str = ""
    report_path: str = ""
    fail_on_image_errors: bool = False
    dry_run: bool = False

    encoder: EncoderConfig = field(default_factory=EncoderConfig)

    @classmethod
    def from_yaml(cls, path: str) -> "ConversionConfig":
        """Load conversion configuration from YAML or return defaults."""
        if not os.path.exists(path):
            logger.info("Config file '%s' not found. Using defaults.", path)
            config = cls()
            config.validate()
            return config
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(
                f"Failed to parse YAML config '{path}': {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise ValueError(
                f"Config file '{path}' must contain a YAML mapping, "
                f"got {type(data).__name__}"
            )
        yaml_version = data.get("config_version", 1)
        if isinstance(yaml_version, int) and yaml_version > _SUPPORTED_CONFIG_VERSION:
            logger.warning(
                "Config file '%s' has config_version=%d, but this build only "
                "supports up to version %d. Some settings may be ignored.",
                path, yaml_version, _SUPPORTED_CONFIG_VERSION,
            )
        config = cls()
        _apply_mapping(config, data)
        try:
            config.validate()
        except ValueError as exc:
            raise ValueError(f"{path}: {exc}") from exc
        return config

    def to_yaml(self, path: str):
        """Write conversion configuration to a YAML file."""
        data = dataclasses.asdict(self)
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        ext = os.path.splitext(path)[1]
        tmp_path = f"{path}.tmp.{os.getpid()}{ext}"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass

    def validate(self):
        """Validate configuration values. Raises ValueError on invalid config."""
        errors = []

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if str(self.log_level).upper() not in valid_log_levels:
            errors.append(
                f"log_level must be one of {sorted(valid_log_levels)}, "
                f"got '{self.log_level}'"
            )

        if isinstance(self.quality, bool) or not isinstance(self.quality, (int, float)):
            errors.append(f"quality must be a number, got {self.quality!r}")
        elif not (0.0 <= float(self.quality) <= 1.0):
            errors.append(f"quality must be in [0, 1], got {self.quality}")

        try:
            self.output_format = parse_output_format(self.output_format).value
        except ValueError as exc:
            errors.append(str(exc))
        try:
            self.resize = parse_resize_mode(self.resize).value
        except ValueError as exc:
            errors.append(str(exc))

        if self.glob_workers < 1:
            errors.append("glob_workers must be >= 1")
        if self.glob_workers > 64:
            errors.append("glob_workers must be <= 64")

        # Encoder
        if self.encoder.timeout_seconds < 0:
            errors.append("encoder.timeout_seconds must be >= 0 (0 = no timeout)")
        if self.encoder.max_output_bytes < 1:
            errors.append("encoder.max_output_bytes must be >= 1")
        if self.encoder.tool_path and not os.path.isfile(self.encoder.tool_path):
            logger.warning(
                "encoder.tool_path '%s' does not exist; conversions will fail "
                "until the encoder is installed.",
                self.encoder.tool_path,
            )

        if errors:
            raise ValueError(
                "Config validation failed:\n  " + "\n  ".join(errors)
            )


_INVALID = object()


def _coerce(value, expected: type):
    """Return *value* converted to *expected*, or ``_INVALID``.

    ints widen to float and integral floats narrow to int; bools never
    stand in for numbers.
    """
    if value is None:
        return _INVALID
    if isinstance(value, bool) or expected is bool:
        return value if isinstance(value, bool) and expected is bool else _INVALID
    if expected is float and isinstance(value, (int, float)):
        return float(value)
    if expected is int and isinstance(value, float) and value.is_integer():
        return int(value)
    return value if isinstance(value, expected) else _INVALID


def _apply_mapping(target, data: dict, prefix: str = "") -> None:
    """Copy YAML values onto dataclass *target*, keeping defaults for bad entries."""
    for key, value in data.items():
        name = f"{prefix}{key}"
        if not hasattr(target, key):
            logger.warning("Unknown config key ignored: '%s'", name)
            continue
        current = getattr(target, key)
        if dataclasses.is_dataclass(current):
            if isinstance(value, dict):
                _apply_mapping(current, value, f"{name}.")
            else:
                logger.warning(
                    "Config section '%s' must be a mapping, got %r; keeping defaults",
                    name, value,
                )
            continue
        coerced = _coerce(value, type(current))
        if coerced is _INVALID:
            logger.warning(
                "Config key '%s' expects %s, got %r; keeping default %r",
                name, type(current).__name__, value, current,
            )
            continue
        setattr(target, key, coerced)
