from __future__ import annotations

import logging
import math
from typing import Iterable, List

from ..models import TransformJob, VariantSpec, round_half_up

logger = logging.getLogger(__name__)


class TransformPlanner:
    """Expand variant specs into one transform job per (spec, retina multiplier)."""

    def plan(self, specs: Iterable[VariantSpec]) -> List[TransformJob]:
        jobs: List[TransformJob] = []
        for spec in specs:
            for multiplier in spec.retina_multipliers:
                jobs.append(self.job_for(spec, multiplier))
        logger.debug("Planned %s transform jobs", len(jobs))
        return jobs

    @staticmethod
    def job_for(spec: VariantSpec, multiplier: float) -> TransformJob:
        width = round_half_up(spec.width * multiplier)
        # floor(width / (x / y)) without the intermediate float ratio
        height = math.floor(width * spec.aspect_ratio_y / spec.aspect_ratio_x)
        return TransformJob(
            effective_width=width,
            effective_height=height,
            quality=spec.quality,
            format=spec.format,
            multiplier=multiplier,
            spec=spec,
        )
