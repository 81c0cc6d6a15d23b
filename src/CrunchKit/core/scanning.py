"""Resolve glob patterns, directories, and manifest files into PNG paths."""

import glob
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence, Union

from .errors import GlobError
from .overrides import OverrideStore, read_manifest

logger = logging.getLogger("crunchkit.scanning")

MANIFEST_EXT = ".txt"


def is_manifest_target(targets) -> bool:
    """Return True when *targets* names a manifest list file."""
    return (
        isinstance(targets, str)
        and os.path.splitext(targets)[1].lower() == MANIFEST_EXT
    )


def expand_target(target: str) -> str:
    """Turn a directory-like target into a recursive PNG pattern."""
    if ".png" not in target:
        return os.path.join(target, "**", "*.png")
    return target


def glob_target(pattern: str) -> List[str]:
    """Expand one pattern in filesystem enumeration order."""
    try:
        return glob.glob(pattern, recursive=True)
    except Exception as e:
        raise GlobError(f"Failed to expand pattern '{pattern}': {e}") from e


def resolve_targets(
    targets: Union[str, Sequence[str]],
    store: OverrideStore,
    max_workers: int = 4,
) -> List[str]:
    """Resolve *targets* into absolute PNG paths with propagated overrides.

    Every match inherits the override recorded under the target string that
    produced it, replacing whatever the store held for that path.
    """
    if is_manifest_target(targets):
        targets = read_manifest(targets, store)
    elif isinstance(targets, str):
        targets = [targets]
    else:
        targets = list(targets)

    if not targets:
        logger.warning("No targets to resolve.")
        return []

    patterns = [expand_target(t) for t in targets]
    workers = max(1, min(int(max_workers), len(patterns)))
    if workers == 1:
        expanded = [glob_target(p) for p in patterns]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            expanded = list(pool.map(glob_target, patterns))

    matches: List[str] = []
    seen = set()
    for target, pattern, found in zip(targets, patterns, expanded):
        if not found:
            logger.warning("No PNG files matched '%s'", pattern)
            continue
        logger.debug("Pattern %s matched %d file(s)", pattern, len(found))
        for match in found:
            full_path = os.path.abspath(match)
            store.copy_to(target, full_path)
            if full_path in seen:
                continue
            seen.add(full_path)
            matches.append(full_path)

    logger.info("Resolved %d image(s) from %d target(s)", len(matches), len(targets))
    return matches
