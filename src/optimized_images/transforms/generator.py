from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional

from ..config import GeneralConfig, eager_transforms
from ..errors import TransformUnavailable, TransformUnsupported
from ..media.asset import AssetRef
from ..media.codec import ImageCodecGateway
from ..models import OptimizedImageResult, VariantSpec
from .planner import TransformPlanner

logger = logging.getLogger(__name__)


class VariantGenerator:
    """Run planned transform jobs for one asset and collect the resulting URLs.

    Jobs run strictly in planner order, so when two jobs share an effective
    width the later one wins. Unsupported formats and assets that cannot be
    transformed are skipped; any :class:`TransformFailure` propagates and no
    partial result is returned.
    """

    def __init__(
        self,
        codec: ImageCodecGateway,
        planner: TransformPlanner | None = None,
        config: GeneralConfig | None = None,
    ) -> None:
        self.codec = codec
        self.planner = planner or TransformPlanner()
        self.config = config

    def generate(
        self,
        asset: AssetRef,
        specs: Iterable[VariantSpec],
        base: Optional[OptimizedImageResult] = None,
    ) -> OptimizedImageResult:
        result = OptimizedImageResult()
        if base is not None:
            result.focal_point = dict(base.focal_point) if base.focal_point else None
            result.original_width = base.original_width
            result.original_height = base.original_height

        native_format = asset.native_format
        for job in self.planner.plan(tuple(specs)):
            final_format = job.format or native_format
            if not (self.codec.can_manipulate(final_format) and self.codec.can_manipulate(native_format)):
                logger.debug(
                    "Skipping %sx%s: cannot manipulate %s -> %s",
                    job.effective_width,
                    job.effective_height,
                    native_format,
                    final_format,
                )
                continue

            url = ""
            with eager_transforms(self.config) as config:
                try:
                    url = asset.request_transform_url(
                        replace(job, format=final_format),
                        eager=config.generate_transforms_before_page_load,
                    )
                except (TransformUnavailable, TransformUnsupported) as exc:
                    logger.debug("No transform produced for %sx%s: %s", job.effective_width, job.effective_height, exc)

            if url:
                result.add_url(job.effective_width, url)
            result.focal_point = dict(asset.focal_point) if asset.focal_point else None
            result.original_width = asset.width
            result.original_height = asset.height
            logger.info("Created transform %sx%s for variant %s", job.effective_width, job.effective_height, job.spec)
        return result
