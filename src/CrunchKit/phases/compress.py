"""Invoke the external crunch encoder.

The encoder is a platform-specific binary shipped next to the package
(see `CrunchKit.BIN_DIR`) or configured via ``encoder.tool_path``.
"""

import logging
import math
import os
import signal
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from ..config import ConversionConfig, OutputFormat
from ..core import CompressionJob, ImageDescriptor
from ..core.errors import CompressionError

logger = logging.getLogger("crunchkit.compress")

BLOCK_MODE = "-DXT5"

_PLATFORM_EXECUTABLES = {
    "win32": "crunch.exe",
    "darwin": "crunch_osx",
    "linux": "crunch_lin",
}
_FALLBACK_EXECUTABLE = "crunch_lin"
# Encoder output lines echoed to the log per run.
_LOG_TAIL_LINES = 40


def quality_to_byte(quality: float) -> int:
    """Map quality in [0, 1] to the encoder's 0-255 byte, rounding halves up.

    Out-of-range and infinite values clamp to the nearest bound; NaN maps to 0.
    """
    q = float(quality)
    if math.isnan(q):
        return 0
    q = min(max(q, 0.0), 1.0)
    return int(math.floor(q * 255 + 0.5))


def executable_name(platform: str) -> str:
    """Return the encoder binary name for *platform* (``sys.platform``)."""
    name = _PLATFORM_EXECUTABLES.get(platform)
    if name is None:
        logger.warning(
            "Unknown OS '%s' - trying linux crunch executable", platform
        )
        return _FALLBACK_EXECUTABLE
    return name


def describe_exit(returncode: int, platform: str = None) -> str:
    """Describe an encoder exit status, naming the signal when it was killed."""
    platform = platform or sys.platform
    if returncode >= 0:
        return f"exit code {returncode}"
    if platform == "win32":
        return f"crashed with status 0x{returncode & 0xFFFFFFFF:08X}"
    try:
        return f"killed by {signal.Signals(-returncode).name}"
    except ValueError:
        return f"killed by signal {-returncode}"


def build_job(descriptor: ImageDescriptor, input_path: str,
              target_width: Optional[int] = None,
              target_height: Optional[int] = None) -> CompressionJob:
    """Derive the encoder job for *descriptor* reading from *input_path*."""
    return CompressionJob(
        input_path=input_path,
        output_path=descriptor.output_path,
        quality_byte=quality_to_byte(descriptor.quality),
        output_format=descriptor.output_format,
        target_width=target_width,
        target_height=target_height,
    )


class CrunchEncoder:
    """Build and run crunch command lines."""

    def __init__(self, config: ConversionConfig = None, platform: str = None):
        """Initialize encoder settings; *platform* defaults to ``sys.platform``."""
        self.config = config or ConversionConfig()
        self.cfg = self.config.encoder
        self.platform = platform or sys.platform
        self._tool_path: Optional[str] = None

    def resolve_executable(self) -> str:
        """Resolve and cache the encoder path."""
        if self._tool_path:
            return self._tool_path
        if self.cfg.tool_path:
            tool_path = self.cfg.tool_path
        else:
            from .. import BIN_DIR
            tool_path = str(Path(BIN_DIR) / executable_name(self.platform))
        if not os.path.isfile(tool_path):
            logger.warning("Encoder not found at %s", tool_path)
        self._tool_path = tool_path
        return tool_path

    def build_args(self, job: CompressionJob) -> List[str]:
        """Return the full encoder command line for *job*."""
        fmt = "dds" if job.output_format == OutputFormat.DDS else "crn"
        cmd = [
            self.resolve_executable(),
            "-file", job.input_path,
            "-out", job.output_path,
            "-fileformat", fmt,
            BLOCK_MODE,
            "-quality", str(job.quality_byte),
            "-mipMode", "None",
        ]
        if self.cfg.no_progress:
            # Keeps stdout small enough for the output cap.
            cmd.append("-noprogress")
        if job.rescale:
            width, height = job.rescale
            cmd.extend(["-rescale", str(width), str(height)])
        return cmd

    def compress(self, job: CompressionJob) -> None:
        """Run the encoder for *job*; raise `CompressionError` on failure.

        The tail of the encoder's output is logged: at DEBUG on success, at
        ERROR when it fails.
        """
        cmd = self.build_args(job)
        logger.info(
            "Crunching %s to %s with quality of %d",
            job.input_path, job.output_path, job.quality_byte,
        )
        logger.debug("Running crunch: %s", " ".join(cmd))
        timeout = self.cfg.timeout_seconds or None
        try:
            proc = subprocess.run(
                cmd, capture_output=True, text=True,
                encoding="utf-8", errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise CompressionError(
                f"Encoder timed out after {timeout}s for {job.input_path}",
                output=_as_text(e.stdout) + _as_text(e.stderr),
            ) from e
        except OSError as e:
            raise CompressionError(
                f"Failed to start encoder '{cmd[0]}': {e}"
            ) from e

        output = f"{proc.stdout or ''}{proc.stderr or ''}"
        if len(output.encode("utf-8", errors="replace")) > self.cfg.max_output_bytes:
            raise CompressionError(
                f"Encoder output exceeded {self.cfg.max_output_bytes} bytes "
                f"for {job.input_path}",
                output=output[-4096:],
                returncode=proc.returncode,
            )

        failed = proc.returncode != 0
        level = logging.ERROR if failed else logging.DEBUG
        for line in output.splitlines()[-_LOG_TAIL_LINES:]:
            if line.strip():
                logger.log(level, "[crunch] %s", line[:500])

        if failed:
            raise CompressionError(
                f"Encoder failed for {job.input_path}: "
                f"{describe_exit(proc.returncode, self.platform)}",
                output=output,
                returncode=proc.returncode,
            )


def _as_text(output) -> str:
    if not output:
        return ""
    return output if isinstance(output, str) else output.decode(errors="replace")
