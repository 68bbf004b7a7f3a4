from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, PositiveInt, TypeAdapter, ValidationError, field_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_RETINA_MULTIPLIERS: Tuple[float, ...] = (1.0,)
MIN_QUALITY = 1
MAX_QUALITY = 100
WEBP_SUFFIX = ".webp"

PositiveNumber = Annotated[float, Field(gt=0, allow_inf_nan=False)]


class VariantRecord(BaseModel):
    """A variant as persisted in the field settings."""

    width: PositiveInt
    aspectRatioX: PositiveNumber
    aspectRatioY: PositiveNumber
    retinaSizes: List[PositiveNumber] = Field(default_factory=lambda: list(DEFAULT_RETINA_MULTIPLIERS))
    quality: Annotated[int, Field(ge=MIN_QUALITY, le=MAX_QUALITY)]
    format: Optional[str]

    @field_validator("retinaSizes", mode="before")
    @classmethod
    def default_retina_sizes(cls, v):
        if v is None or (isinstance(v, (list, tuple)) and len(v) == 0):
            return list(DEFAULT_RETINA_MULTIPLIERS)
        return v

    @field_validator("format")
    @classmethod
    def normalize_format(cls, v):
        if v is None:
            return None
        return v.strip().lower().lstrip(".") or None


_VARIANT_RECORDS = TypeAdapter(List[VariantRecord])


@dataclass(frozen=True, slots=True)
class VariantSpec:
    """One declared output shape: base width, aspect ratio, quality and format."""

    width: int
    aspect_ratio_x: float
    aspect_ratio_y: float
    quality: int
    format: Optional[str] = None
    retina_multipliers: Tuple[float, ...] = DEFAULT_RETINA_MULTIPLIERS

    @property
    def aspect_ratio(self) -> float:
        return self.aspect_ratio_x / self.aspect_ratio_y

    @classmethod
    def from_record(cls, record: VariantRecord) -> "VariantSpec":
        return cls(
            width=record.width,
            aspect_ratio_x=record.aspectRatioX,
            aspect_ratio_y=record.aspectRatioY,
            quality=record.quality,
            format=record.format,
            retina_multipliers=tuple(record.retinaSizes),
        )

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "VariantSpec":
        """Build a spec from a persisted settings record.

        Only ``retinaSizes`` is defaulted; every other key must be present.
        ``format`` may be ``None`` or ``""`` to mean "use the asset's format".
        """

        try:
            return cls.from_record(VariantRecord.model_validate(record))
        except ValidationError as exc:
            raise ConfigurationError(_describe(exc, prefix="Variant")) from exc

    def to_dict(self) -> Dict[str, Any]:
        return {
            "width": self.width,
            "aspectRatioX": self.aspect_ratio_x,
            "aspectRatioY": self.aspect_ratio_y,
            "retinaSizes": [_format_number(size) for size in self.retina_multipliers],
            "quality": self.quality,
            "format": self.format,
        }


@dataclass(frozen=True, slots=True)
class TransformJob:
    """A concrete rendering request derived from one spec and one multiplier."""

    effective_width: int
    effective_height: int
    quality: int
    format: Optional[str]
    multiplier: float = 1.0
    spec: Optional[VariantSpec] = field(default=None, compare=False, repr=False)

    @property
    def size(self) -> Tuple[int, int]:
        return self.effective_width, self.effective_height


@dataclass(slots=True)
class OptimizedImageResult:
    standard_urls: Dict[int, str] = field(default_factory=dict)
    webp_urls: Dict[int, str] = field(default_factory=dict)
    focal_point: Optional[Dict[str, Any]] = None
    original_width: Optional[int] = None
    original_height: Optional[int] = None

    def add_url(self, width: int, url: str) -> None:
        self.standard_urls[width] = url
        self.webp_urls[width] = url + WEBP_SUFFIX

    def url_for_width(self, width: int) -> Optional[str]:
        """Return the smallest variant at least *width* wide, else the largest one."""

        if not self.standard_urls:
            return None
        widths = sorted(self.standard_urls)
        for candidate in widths:
            if candidate >= width:
                return self.standard_urls[candidate]
        return self.standard_urls[widths[-1]]

    def srcset(self) -> str:
        return _srcset(self.standard_urls)

    def webp_srcset(self) -> str:
        return _srcset(self.webp_urls)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "optimizedImageUrls": {str(width): url for width, url in self.standard_urls.items()},
            "optimizedWebPImageUrls": {str(width): url for width, url in self.webp_urls.items()},
            "focalPoint": self.focal_point,
            "originalImageWidth": self.original_width,
            "originalImageHeight": self.original_height,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OptimizedImageResult":
        focal_point = data.get("focalPoint")
        return cls(
            standard_urls=_url_map(data.get("optimizedImageUrls")),
            webp_urls=_url_map(data.get("optimizedWebPImageUrls")),
            focal_point=dict(focal_point) if isinstance(focal_point, Mapping) else None,
            original_width=_optional_int(data.get("originalImageWidth")),
            original_height=_optional_int(data.get("originalImageHeight")),
        )


def validate_variants(raw: Any) -> Tuple[VariantSpec, ...]:
    """Validate a configured variant list and return it as an immutable tuple."""

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Variants are not valid JSON: {exc}") from exc

    if isinstance(raw, (str, bytes, Mapping)) or not isinstance(raw, Sequence):
        raise ConfigurationError("Variants must be a list of variant records")

    records = [item.to_dict() if isinstance(item, VariantSpec) else item for item in raw]
    try:
        validated = _VARIANT_RECORDS.validate_python(records)
    except ValidationError as exc:
        raise ConfigurationError(_describe(exc, prefix="Variant #")) from exc
    return tuple(VariantSpec.from_record(record) for record in validated)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _describe(exc: ValidationError, prefix: str) -> str:
    messages = []
    for error in exc.errors():
        loc = [str(part) for part in error["loc"]]
        if prefix.endswith("#") and loc:
            where = f"{prefix}{loc[0]}"
            loc = loc[1:]
        else:
            where = prefix
        if loc:
            where = f"{where} {'.'.join(loc)}"
        messages.append(f"{where}: {error['msg']}")
    return "; ".join(messages)


def _srcset(urls: Mapping[int, str]) -> str:
    return ", ".join(f"{urls[width]} {width}w" for width in sorted(urls))


def _url_map(raw: Any) -> Dict[int, str]:
    if not isinstance(raw, Mapping):
        return {}
    urls: Dict[int, str] = {}
    for key, url in raw.items():
        if not url:
            continue
        try:
            width = round_half_up(float(key))
        except (TypeError, ValueError, OverflowError):
            logger.warning("Dropping stored URL with non-numeric width %r", key)
            continue
        urls[width] = str(url)
    return urls


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning("Ignoring stored dimension %r", value)
        return None


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
