"""Repoint a spritesheet JSON sidecar at its compressed texture."""

import json
import logging
import os

from ..core.errors import MetadataParseError

logger = logging.getLogger("crunchkit.spritesheet")


def patch_spritesheet(json_path: str, output_path: str) -> bool:
    """Set ``meta.image`` in *json_path* to the basename of *output_path*.

    Returns False when there is no sidecar to patch.
    """
    if not os.path.isfile(json_path):
        return False

    logger.info("Modifying %s to point to %s", json_path, os.path.basename(output_path))
    try:
        with open(json_path, "r", encoding="utf-8-sig") as f:
            data = json.loads(f.read())
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MetadataParseError(f"Error parsing {json_path}: {e}") from e
    if not isinstance(data, dict):
        raise MetadataParseError(
            f"Error parsing {json_path}: expected a JSON object, "
            f"got {type(data).__name__}"
        )
    meta = data.get("meta")
    if not isinstance(meta, dict):
        raise MetadataParseError(f"Error parsing {json_path}: missing 'meta' object")

    meta["image"] = os.path.basename(output_path)

    tmp_path = f"{json_path}.tmp.{os.getpid()}"
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, separators=(",", ":"), ensure_ascii=False)
        os.replace(tmp_path, json_path)
    finally:
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass
    return True
