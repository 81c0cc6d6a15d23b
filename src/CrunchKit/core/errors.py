"""Exception taxonomy for target resolution and per-image conversion."""


class CrunchKitError(Exception):
    """Base class for conversion errors."""


class ManifestReadError(CrunchKitError, OSError):
    """Raised when a manifest list file cannot be read."""


class GlobError(CrunchKitError, RuntimeError):
    """Raised when a target pattern cannot be expanded."""


class DecodeError(CrunchKitError, ValueError):
    """Raised when a source image is not a decodable PNG."""


class InvalidDimensionsError(CrunchKitError, ValueError):
    """Raised when an image violates the encoder size rules and resizing is off."""


class CompressionError(CrunchKitError, RuntimeError):
    """Raised when the external encoder cannot be run or exits non-zero."""

    def __init__(self, message: str, output: str = "", returncode=None):
        super().__init__(message)
        self.output = output
        self.returncode = returncode

    def __str__(self):
        base = super().__str__()
        if self.output and self.output.strip():
            tail = self.output.strip().splitlines()[-1]
            return f"{base} ({tail})"
        return base


class MetadataParseError(CrunchKitError, ValueError):
    """Raised when a companion spritesheet JSON cannot be parsed."""


# Errors expected while converting a single image; anything in this tuple
# fails that image only.
IMAGE_ERRORS = (
    DecodeError,
    InvalidDimensionsError,
    CompressionError,
    MetadataParseError,
    OSError,
)
