from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Optional, Protocol, Tuple
from urllib.parse import urlparse

from PIL import Image, UnidentifiedImageError

from ..errors import TransformUnavailable
from ..models import TransformJob
from .codec import ImageCodecGateway
from .downloader import ImageDownloader

logger = logging.getLogger(__name__)

IMAGE_KIND = "image"


class AssetRef(Protocol):
    @property
    def native_format(self) -> str: ...

    @property
    def width(self) -> Optional[int]: ...

    @property
    def height(self) -> Optional[int]: ...

    @property
    def focal_point(self) -> Optional[Dict[str, Any]]: ...

    def request_transform_url(self, job: TransformJob, *, eager: bool) -> str: ...


class ImageAsset:
    """An original image held in memory, transformed through a codec gateway."""

    def __init__(
        self,
        filename: str,
        data: bytes,
        codec: ImageCodecGateway,
        *,
        kind: str = IMAGE_KIND,
        focal_point: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.filename = filename
        self.data = data
        self.codec = codec
        self.kind = kind
        self.focal_point = focal_point
        self._size: Optional[Tuple[Optional[int], Optional[int]]] = None

    @classmethod
    def from_path(cls, path: Path, codec: ImageCodecGateway, **kwargs: Any) -> "ImageAsset":
        return cls(path.name, path.read_bytes(), codec, **kwargs)

    @classmethod
    def from_url(
        cls, url: str, codec: ImageCodecGateway, downloader: ImageDownloader, **kwargs: Any
    ) -> "ImageAsset":
        filename = PurePosixPath(urlparse(url).path).name or "original"
        return cls(filename, downloader.download(url), codec, **kwargs)

    @property
    def stem(self) -> str:
        return PurePosixPath(self.filename).stem

    @property
    def native_format(self) -> str:
        return PurePosixPath(self.filename).suffix.lstrip(".").lower()

    @property
    def width(self) -> Optional[int]:
        return self._dimensions()[0]

    @property
    def height(self) -> Optional[int]:
        return self._dimensions()[1]

    def request_transform_url(self, job: TransformJob, *, eager: bool) -> str:
        if self.kind != IMAGE_KIND:
            raise TransformUnavailable(f"{self.filename} is a {self.kind} asset, not an image")
        return self.codec.transform(self, job, eager=eager)

    def _dimensions(self) -> Tuple[Optional[int], Optional[int]]:
        if self._size is None:
            self._size = (None, None)
            if self.kind == IMAGE_KIND:
                try:
                    with Image.open(BytesIO(self.data)) as image:
                        self._size = image.size
                except UnidentifiedImageError:
                    logger.debug("Unable to read dimensions of %s", self.filename)
        return self._size
