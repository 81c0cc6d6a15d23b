"""Per-target override store and manifest list-file parsing.

A manifest holds one target (glob pattern, directory, or PNG path) per
line, optionally followed by a quality value and/or a resize keyword::

    sprites/hero.png 0.8 border
    ui/**/*.png scale
    backgrounds 1
"""

import logging
import math
import re
from typing import Dict, Iterator, List, Optional, Tuple

from ..config import ResizeMode
from .errors import ManifestReadError
from .records import TargetOverride

logger = logging.getLogger("crunchkit.overrides")

_LINE_RE = re.compile(
    r"^(?P<target>.+?)"
    r"(?:\s+(?P<quality>\d+(?:\.\d+)?|\.\d+))?"
    r"(?:\s+(?P<resize>scale|border))?$"
)


class OverrideStore:
    """Map target strings to their `TargetOverride`.

    One store lives for one batch: the resolver fills it while expanding
    targets and the pipeline reads it while building descriptors.
    """

    def __init__(self):
        self._entries: Dict[str, TargetOverride] = {}

    def set(self, key: str, override: TargetOverride) -> None:
        self._entries[key] = override

    def get(self, key: str) -> TargetOverride:
        """Return the override for *key*, or an empty one."""
        return self._entries.get(key, TargetOverride())

    def copy_to(self, source_key: str, dest_key: str) -> None:
        """Give *dest_key* exactly the override of *source_key* (overwrite)."""
        self._entries[dest_key] = self.get(source_key)

    def items(self) -> Iterator[Tuple[str, TargetOverride]]:
        return iter(self._entries.items())

    def __contains__(self, key) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def parse_manifest_line(line: str) -> Optional[Tuple[str, TargetOverride]]:
    """Split one manifest line into its target and trailing override.

    Returns None for blank and comment lines.
    """
    text = line.strip()
    if not text or text.startswith("#"):
        return None
    match = _LINE_RE.match(text)
    if match is None:
        return text, TargetOverride()

    target = match.group("target").strip()
    quality_text = match.group("quality")
    resize_text = match.group("resize")

    quality = float(quality_text) if quality_text is not None else None
    if quality is not None and not math.isfinite(quality):
        logger.warning(
            "Ignoring unrepresentable quality '%s...' for '%s'", quality_text[:16], target,
        )
        quality = None
    if quality is not None and not (0.0 <= quality <= 1.0):
        logger.warning(
            "Quality %s for '%s' is outside [0, 1]; it will be clamped by the encoder mapping.",
            quality_text, target,
        )
    resize = ResizeMode(resize_text) if resize_text is not None else None
    return target, TargetOverride(quality=quality, resize=resize)


def parse_manifest(text: str, store: OverrideStore) -> List[str]:
    """Return manifest targets in order, recording overrides into *store*."""
    targets = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        parsed = parse_manifest_line(line)
        if parsed is None:
            continue
        target, override = parsed
        if not override.is_empty:
            store.set(target, override)
            logger.debug(
                "Manifest line %d: %s (quality=%s, resize=%s)",
                line_no, target, override.quality,
                override.resize.value if override.resize else None,
            )
        targets.append(target)
    return targets


def read_manifest(path: str, store: OverrideStore) -> List[str]:
    """Read a UTF-8 manifest file and parse it into *store*."""
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestReadError(f"Failed to read manifest '{path}': {e}") from e
    targets = parse_manifest(text, store)
    logger.info("Manifest %s: %d target(s)", path, len(targets))
    return targets
