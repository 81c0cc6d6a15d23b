"""Orchestrate batch PNG -> CRN/DDS conversion end-to-end.

`ConversionPipeline` resolves targets into image descriptors and drives
each image through transform, compression, cleanup, spritesheet patching,
and optional source deletion. Images are processed strictly one at a
time; a failure stops only the image it belongs to.
"""

import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from tqdm import tqdm

from .config import ConversionConfig
from .core import (
    BatchResult, ConversionRequest, ImageDescriptor, ImageResult,
    OverrideStore, resolve_targets,
)
from .core.errors import GlobError, IMAGE_ERRORS
from .phases.compress import CrunchEncoder, build_job
from .phases.spritesheet import patch_spritesheet
from .phases.transform import ImageTransformer

logger = logging.getLogger("crunchkit")


def _get_version() -> str:
    """Read version from package."""
    from . import __version__
    return __version__


def _local(path: str) -> str:
    try:
        return os.path.relpath(path)
    except ValueError:
        return path


@dataclass
class StepOutcome:
    """Result of one per-image stage: a value, or the error that stopped it."""

    stage: str
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None


class ConversionPipeline:
    """Batch conversion orchestrator.

    Per image:
    1. Transform (decode, size check/repair, premultiply)
    2. Compress (external encoder)
    3. Cleanup (temporary premultiplied/padded input)
    4. Patch spritesheet JSON
    5. Delete source PNG (optional)
    """

    def __init__(
        self,
        config: ConversionConfig = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ):
        """Initialize pipeline state and stage processors."""
        self.config = config or ConversionConfig()
        self._progress_callback = progress_callback
        self.transformer = ImageTransformer()
        self.encoder = CrunchEncoder(self.config)
        self.overrides: Optional[OverrideStore] = None

    # ------------------------------------------
    # Resolution
    # ------------------------------------------

    def resolve(self, request: ConversionRequest) -> List[ImageDescriptor]:
        """Expand the request's targets into descriptors.

        Raises `OSError` (manifest) or `GlobError` (pattern); no partial list
        is returned.
        """
        self.overrides = OverrideStore()
        paths = resolve_targets(
            request.targets, self.overrides, max_workers=self.config.glob_workers
        )
        return [
            ImageDescriptor.resolve(path, request, self.overrides.get(path))
            for path in paths
        ]

    # ------------------------------------------
    # Per-image stages
    # ------------------------------------------

    @staticmethod
    def _run_step(stage: str, fn: Callable, *args) -> StepOutcome:
        try:
            return StepOutcome(stage=stage, ok=True, value=fn(*args))
        except IMAGE_ERRORS as e:
            return StepOutcome(stage=stage, ok=False, error=e)
        except Exception as e:
            logger.error("Unexpected error during %s: %s", stage, e, exc_info=True)
            return StepOutcome(stage=stage, ok=False, error=e)

    def _compress(self, descriptor: ImageDescriptor, prepared) -> str:
        try:
            job = build_job(
                descriptor, prepared.input_path,
                prepared.target_width, prepared.target_height,
            )
            self.encoder.compress(job)
        finally:
            if prepared.temp_path:
                self._remove_temp(prepared.temp_path)
        return job.output_path

    @staticmethod
    def _remove_temp(path: str) -> None:
        logger.info("Removing temp image %s", _local(path))
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to remove temp image %s: %s", path, exc)

    @staticmethod
    def _delete_source(path: str) -> bool:
        logger.info("Removing source image %s", _local(path))
        os.remove(path)
        return True

    def process_image(self, descriptor: ImageDescriptor) -> ImageResult:
        """Convert one image; failures are captured in the returned result."""
        source = descriptor.source_path
        result = ImageResult(source_path=source)
        logger.info("Handling %s", _local(source))

        outcome = self._run_step("transform", self.transformer.prepare, descriptor)
        if outcome.ok:
            prepared = outcome.value
            outcome = self._run_step("compress", self._compress, descriptor, prepared)
        if outcome.ok:
            result.output_path = outcome.value
            outcome = self._run_step(
                "spritesheet", patch_spritesheet,
                descriptor.spritesheet_path, descriptor.output_path,
            )
        if outcome.ok:
            result.spritesheet_patched = bool(outcome.value)
            if descriptor.delete_source:
                outcome = self._run_step("delete_source", self._delete_source, source)
                result.source_deleted = outcome.ok

        result.stage = outcome.stage
        result.ok = outcome.ok
        if not outcome.ok:
            result.error = str(outcome.error)
            result.error_type = type(outcome.error).__name__
            logger.error(
                "Failed on %s during %s: %s",
                _local(source), outcome.stage, outcome.error,
            )
        return result

    # ------------------------------------------
    # Batch
    # ------------------------------------------

    def _report_progress(self, done: int, total: int) -> None:
        if self._progress_callback is None:
            return
        try:
            self._progress_callback(done, total)
        except Exception:
            logger.debug("Progress callback failed", exc_info=True)

    def run(self, request: ConversionRequest) -> BatchResult:
        """Resolve targets and convert every image one after another."""
        start_time = time.time()
        logger.info("=" * 60)
        logger.info(f"CRUNCHKIT TEXTURE CONVERSION v{_get_version()}")
        logger.info("=" * 60)
        logger.info(f"Targets: {request.targets}")
        logger.info(
            f"Defaults: quality={request.quality} premultiply={request.premultiply} "
            f"format={request.output_format.value} resize={request.resize.value} "
            f"delete_source={request.delete_source}"
        )

        batch = BatchResult()
        try:
            descriptors = self.resolve(request)
        except (OSError, GlobError) as exc:
            logger.error("Target resolution failed: %s", exc)
            batch.resolved = False
            batch.resolution_error = str(exc)
            self._save_results(batch)
            return batch

        if self.config.dry_run:
            logger.info("*** DRY RUN MODE ***")
            batch.dry_run = True
            for d in descriptors:
                logger.info(
                    "[DRY RUN] %s -> %s (quality=%.2f, resize=%s, premultiply=%s)",
                    _local(d.source_path), _local(d.output_path),
                    d.quality, d.resize.value, d.premultiply,
                )
                batch.planned.append(d.to_dict())
            self._save_results(batch)
            return batch

        total = len(descriptors)
        for done, descriptor in enumerate(tqdm(descriptors, desc="crunch"), start=1):
            batch.images.append(self.process_image(descriptor))
            self._report_progress(done, total)

        elapsed = time.time() - start_time
        logger.info("=" * 60)
        failed = batch.failed
        if not descriptors:
            logger.warning(
                f"CONVERSION FINISHED WITH WARNINGS in {elapsed:.1f}s -- "
                "No images found -- check target patterns"
            )
        elif failed:
            logger.warning(
                f"CONVERSION FINISHED WITH WARNINGS in {elapsed:.1f}s -- "
                f"{len(failed)}/{total} image(s) had errors"
            )
            for r in failed:
                logger.warning("  %s [%s] %s", _local(r.source_path), r.stage, r.error)
        else:
            logger.info(f"CONVERSION COMPLETE in {elapsed:.1f}s")
        logger.info(f"Converted {len(batch.succeeded)}/{total} images")
        logger.info("=" * 60)

        self._save_results(batch)
        return batch

    def _save_results(self, batch: BatchResult):
        path = self.config.report_path
        if not path:
            return
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        tmp_path = f"{path}.tmp.{os.getpid()}"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(batch.to_dict(), f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass
        logger.info(f"Results saved: {path}")
