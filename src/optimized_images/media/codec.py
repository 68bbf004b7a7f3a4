from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Protocol, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from ..errors import TransformFailure, TransformUnavailable, TransformUnsupported
from ..models import WEBP_SUFFIX, TransformJob

if TYPE_CHECKING:
    from .asset import ImageAsset

logger = logging.getLogger(__name__)

_FORMAT_ALIASES = {"jpg": "jpeg", "tif": "tiff"}
_RGB_ONLY_FORMATS = {"JPEG", "BMP"}


class ImageCodecGateway(Protocol):
    def can_manipulate(self, format: str) -> bool: ...

    def transform(self, asset: "ImageAsset", job: TransformJob, *, eager: bool) -> str: ...


@dataclass(slots=True)
class PendingTransform:
    asset: "ImageAsset"
    job: TransformJob
    target: Path


class PillowCodecGateway:
    """Render transforms with Pillow into a directory served under ``base_url``."""

    def __init__(
        self,
        output_dir: Path,
        base_url: str = "/transforms",
        *,
        webp_siblings: bool = False,
        webp_quality: int = 80,
    ) -> None:
        self.output_dir = output_dir
        self.base_url = base_url.rstrip("/")
        self.webp_siblings = webp_siblings
        self.webp_quality = webp_quality
        self.pending: List[PendingTransform] = []
        output_dir.mkdir(parents=True, exist_ok=True)

    def can_manipulate(self, format: str) -> bool:
        pil_format = pillow_format(format)
        return pil_format is not None and pil_format in Image.OPEN and pil_format in Image.SAVE

    def transform(self, asset: "ImageAsset", job: TransformJob, *, eager: bool) -> str:
        target_format = job.format or asset.native_format
        if not self.can_manipulate(target_format):
            raise TransformUnsupported(f"Cannot write images as {target_format!r}")
        if job.effective_width < 1 or job.effective_height < 1:
            raise TransformUnsupported(f"Cannot render a {job.effective_width}x{job.effective_height} image")

        relative = self.relative_path(asset, job)
        target = self.output_dir / relative
        if eager:
            self._render(asset, job, target)
        else:
            logger.debug("Deferring transform %s for %s", relative, asset.filename)
            self.pending.append(PendingTransform(asset=asset, job=job, target=target))
        return f"{self.base_url}/{relative.as_posix()}"

    def generate_pending(self) -> List[Path]:
        rendered: List[Path] = []
        while self.pending:
            item = self.pending.pop(0)
            self._render(item.asset, item.job, item.target)
            rendered.append(item.target)
        return rendered

    @staticmethod
    def relative_path(asset: "ImageAsset", job: TransformJob) -> Path:
        extension = (job.format or asset.native_format).lower()
        folder = f"_{job.effective_width}x{job.effective_height}_crop_center-center_{job.quality}"
        return Path(folder) / f"{asset.stem}.{extension}"

    def _render(self, asset: "ImageAsset", job: TransformJob, target: Path) -> None:
        target_format = job.format or asset.native_format
        pil_format = pillow_format(target_format)
        logger.debug("Rendering %s (%sx%s, q%s)", target, job.effective_width, job.effective_height, job.quality)
        try:
            with Image.open(BytesIO(asset.data)) as source:
                image = ImageOps.exif_transpose(source)
                resized = ImageOps.fit(
                    image,
                    job.size,
                    method=Image.Resampling.LANCZOS,
                    centering=_centering(asset.focal_point),
                )
        except UnidentifiedImageError as exc:
            raise TransformUnavailable(f"{asset.filename} is not a readable image") from exc
        except (OSError, ValueError) as exc:
            raise TransformFailure(f"Unable to transform {asset.filename}: {exc}") from exc

        if pil_format in _RGB_ONLY_FORMATS and resized.mode != "RGB":
            resized = resized.convert("RGB")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            resized.save(target, pil_format, quality=job.quality)
            if self.webp_siblings:
                resized.save(target.with_name(target.name + WEBP_SUFFIX), "WEBP", quality=self.webp_quality)
        except (OSError, ValueError, KeyError) as exc:
            raise TransformFailure(f"Unable to write {target}: {exc}") from exc


def pillow_format(format: str | None) -> Optional[str]:
    """Map a file extension such as ``jpg`` to Pillow's format name."""

    if not format:
        return None
    extension = format.lower().lstrip(".")
    extensions = Image.registered_extensions()
    pil_format = extensions.get(f".{extension}")
    if pil_format is None:
        pil_format = extensions.get(f".{_FORMAT_ALIASES.get(extension, extension)}")
    return pil_format


def _centering(focal_point: Optional[dict]) -> Tuple[float, float]:
    if not focal_point:
        return 0.5, 0.5
    x = min(max(float(focal_point.get("x", 0.5)), 0.0), 1.0)
    y = min(max(float(focal_point.get("y", 0.5)), 0.0), 1.0)
    return x, y
