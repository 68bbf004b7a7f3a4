from __future__ import annotations

import pytest

from optimized_images.models import VariantSpec, validate_variants
from optimized_images.transforms.planner import TransformPlanner


def _spec(width: int, x: float, y: float, sizes=("1",), quality: int = 82, fmt: str | None = "jpg") -> VariantSpec:
    return VariantSpec.from_dict(
        {
            "width": width,
            "aspectRatioX": x,
            "aspectRatioY": y,
            "retinaSizes": list(sizes),
            "quality": quality,
            "format": fmt,
        }
    )


def test_one_job_per_spec_and_multiplier() -> None:
    specs = [_spec(1170, 16, 9, ("1", "2")), _spec(750, 4, 3), _spec(320, 4, 3, ("1", "1.5", "3"))]
    jobs = TransformPlanner().plan(specs)
    assert len(jobs) == sum(len(spec.retina_multipliers) for spec in specs) == 6


def test_jobs_follow_spec_then_multiplier_order() -> None:
    specs = [_spec(100, 1, 1, ("1", "2")), _spec(300, 1, 1, ("1", "2"))]
    widths = [job.effective_width for job in TransformPlanner().plan(specs)]
    assert widths == [100, 200, 300, 600]


def test_height_is_floored_from_aspect_ratio() -> None:
    (job,) = TransformPlanner().plan([_spec(970, 16, 9)])
    assert job.effective_width == 970
    # 970 * 9 / 16 == 545.625
    assert job.effective_height == 545
    assert job.quality == 82
    assert job.format == "jpg"


@pytest.mark.parametrize(
    "width, multiplier, expected",
    [
        (320, "2", (640, 480)),
        (375, "1.5", (563, 422)),
        (750, "1", (750, 562)),
        (333, "3", (999, 749)),
    ],
)
def test_retina_multiplier_scales_width_before_height(width: int, multiplier: str, expected: tuple) -> None:
    (job,) = TransformPlanner().plan([_spec(width, 4, 3, (multiplier,))])
    assert job.size == expected


def test_duplicate_widths_are_kept() -> None:
    specs = [_spec(750, 16, 9), _spec(375, 4, 3, ("2",))]
    jobs = TransformPlanner().plan(specs)
    assert [job.size for job in jobs] == [(750, 421), (750, 562)]


def test_missing_retina_sizes_default_to_single_job() -> None:
    specs = validate_variants(
        [{"width": 500, "aspectRatioX": 2, "aspectRatioY": 1, "quality": 70, "format": None}]
    )
    (job,) = TransformPlanner().plan(specs)
    assert job.size == (500, 250)
    assert job.multiplier == 1.0
    assert job.format is None
