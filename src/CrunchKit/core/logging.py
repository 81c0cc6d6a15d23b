"""Logging setup for conversion runs.

Handlers attach to the ``crunchkit`` logger only. Console output goes
through ``tqdm.write`` so log lines land above the per-image progress bar
instead of tearing it.
"""

import logging
import logging.handlers
import os

from tqdm import tqdm

logger = logging.getLogger("crunchkit")

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
# 10 MB max per log file, keep 3 rotated backups
_LOG_MAX_BYTES = 10 * 1024 * 1024
_LOG_BACKUP_COUNT = 3
_OWNED = "_crunchkit_handler"


class TqdmHandler(logging.StreamHandler):
    """Stream handler that cooperates with an active tqdm bar."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=self.stream)
        except Exception:
            self.handleError(record)


def _owned(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _OWNED, True)
    handler.setFormatter(logging.Formatter(_FORMAT))
    return handler


def setup_logging(level: str = "INFO", log_file: str = None) -> logging.Logger:
    """Configure the ``crunchkit`` logger; safe to call more than once.

    Handlers installed by an earlier call are replaced, never stacked.
    """
    numeric_level = logging.getLevelName(str(level).upper())
    invalid_level = not isinstance(numeric_level, int)
    if invalid_level:
        numeric_level = logging.INFO

    for handler in [h for h in logger.handlers if getattr(h, _OWNED, False)]:
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_owned(TqdmHandler()))
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        logger.addHandler(_owned(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=_LOG_MAX_BYTES, backupCount=_LOG_BACKUP_COUNT,
            encoding="utf-8",
        )))
    logger.setLevel(numeric_level)
    # Records are fully handled here; the CLI's early basicConfig handler
    # on the root logger would print them twice.
    logger.propagate = False
    if invalid_level:
        logger.warning("Invalid log level '%s', defaulting to INFO", level)
    return logger
