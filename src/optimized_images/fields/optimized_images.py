from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..media.asset import AssetRef
from ..models import OptimizedImageResult, VariantSpec, validate_variants
from ..transforms.generator import VariantGenerator

logger = logging.getLogger(__name__)

DEFAULT_VARIANTS: Tuple[Dict[str, Any], ...] = (
    {"width": 1170, "aspectRatioX": 16.0, "aspectRatioY": 9.0, "retinaSizes": ["1"], "quality": 82, "format": "jpg"},
    {"width": 970, "aspectRatioX": 16.0, "aspectRatioY": 9.0, "retinaSizes": ["1"], "quality": 82, "format": "jpg"},
    {"width": 750, "aspectRatioX": 4.0, "aspectRatioY": 3.0, "retinaSizes": ["1"], "quality": 60, "format": "jpg"},
    {"width": 320, "aspectRatioX": 4.0, "aspectRatioY": 3.0, "retinaSizes": ["1"], "quality": 60, "format": "jpg"},
)


@dataclass(slots=True)
class AssetElement:
    """The host's record for a saved asset: identity, pixels and stored field values."""

    asset: Optional[AssetRef]
    id: Optional[int] = None
    field_values: Dict[str, Any] = field(default_factory=dict)


class OptimizedImagesField:
    """Field that stores optimized variant URLs for an asset.

    The asset being saved is always passed in by the caller; the field keeps no
    per-save state, so one instance can serve any number of saves.
    """

    def __init__(
        self,
        generator: VariantGenerator,
        handle: str = "optimizedImages",
        variants: Sequence[Any] | None = None,
    ) -> None:
        self.generator = generator
        self.handle = handle
        self.variants: Tuple[VariantSpec, ...] = validate_variants(
            variants if variants is not None else DEFAULT_VARIANTS
        )

    def validate_settings(self, raw: Any = None) -> Tuple[VariantSpec, ...]:
        """Validate *raw* settings (or the current ones) and adopt them."""

        specs = validate_variants(self.settings()["variants"] if raw is None else raw)
        self.variants = specs
        return specs

    def settings(self) -> Dict[str, List[Dict[str, Any]]]:
        return {"variants": [spec.to_dict() for spec in self.variants]}

    def normalize(self, raw: Any, asset: Optional[AssetRef] = None) -> OptimizedImageResult:
        value = raw
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        if isinstance(value, str):
            value = self._decode(value)

        if isinstance(value, OptimizedImageResult):
            model = value
        elif isinstance(value, Mapping):
            model = OptimizedImageResult.from_dict(value)
        else:
            if value is not None:
                logger.warning("Ignoring unexpected %s value for field %s", type(value).__name__, self.handle)
            model = OptimizedImageResult()

        if asset is not None:
            model = self.generator.generate(asset, self.variants, base=model)
        return model

    def serialize(self, result: Optional[OptimizedImageResult]) -> str:
        if result is None:
            result = OptimizedImageResult()
        return result.to_json()

    def before_element_save(self, element: AssetElement, is_new: bool) -> bool:
        """Regenerate every variant of an existing asset before it is written."""

        if is_new or element.asset is None:
            return True
        result = self.normalize(element.field_values.get(self.handle), element.asset)
        element.field_values[self.handle] = self.serialize(result)
        return True

    def after_element_save(
        self,
        element: AssetElement,
        is_new: bool,
        save_element: Callable[[AssetElement], bool],
    ) -> None:
        """Give a new asset default field content and save it again.

        The second save happens once the element has an identity, and runs
        :meth:`before_element_save` as an update, which performs the real
        generation.
        """

        if not is_new or element.asset is None:
            return
        defaults = self.normalize(None, None)
        element.field_values[self.handle] = self.serialize(defaults)
        success = save_element(element)
        logger.info("Re-saved new asset %s: %s", element.id, success)

    def _decode(self, text: str) -> Any:
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Stored value for field %s is not JSON; using defaults", self.handle)
            return None

