"""CrunchKit: batch PNG -> CRN/DDS conversion around the crunch encoder."""

import os as _os
from pathlib import Path as _Path

__version__ = "1.0.0"


def _encoder_dir() -> _Path:
    """Return the directory holding the per-platform crunch binaries.

    ``CRUNCHKIT_BIN_DIR`` overrides the ``bin/`` folder shipped inside the
    package. The directory is not required to exist until an encoder runs.
    """
    env = _os.environ.get("CRUNCHKIT_BIN_DIR")
    if env:
        return _Path(env).expanduser()
    return _Path(__file__).resolve().parent / "bin"


BIN_DIR = _encoder_dir()

__all__ = ["__version__", "BIN_DIR"]
