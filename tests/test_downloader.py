from __future__ import annotations

from pathlib import Path
from typing import List

import httpx
import pytest

from optimized_images.media.asset import ImageAsset
from optimized_images.media.codec import PillowCodecGateway
from optimized_images.media.downloader import ImageDownloader


class FlakyHandler:
    def __init__(self, failures: int, content: bytes = b"image-bytes") -> None:
        self.failures = failures
        self.content = content
        self.calls: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(str(request.url))
        if len(self.calls) <= self.failures:
            return httpx.Response(503)
        return httpx.Response(200, content=self.content)


def test_download_retries_until_success() -> None:
    handler = FlakyHandler(failures=2)
    downloader = ImageDownloader(retries=2, transport=httpx.MockTransport(handler))

    assert downloader.download("https://assets.test/a.png") == b"image-bytes"
    assert len(handler.calls) == 3


def test_download_gives_up_after_retries() -> None:
    handler = FlakyHandler(failures=5)
    downloader = ImageDownloader(retries=1, transport=httpx.MockTransport(handler))

    with pytest.raises(RuntimeError) as excinfo:
        downloader.download("https://assets.test/a.png")
    assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)
    assert len(handler.calls) == 2


def test_cached_originals_are_not_downloaded_twice(tmp_path: Path) -> None:
    handler = FlakyHandler(failures=0)
    downloader = ImageDownloader(cache_dir=tmp_path / "cache", transport=httpx.MockTransport(handler))

    first = downloader.download("https://assets.test/photos/a.png?v=1")
    second = downloader.download("https://assets.test/photos/a.png?v=1")

    assert first == second == b"image-bytes"
    assert len(handler.calls) == 1
    (cached,) = (tmp_path / "cache").iterdir()
    assert cached.name.endswith("_a.png")


def test_image_asset_from_url_uses_path_name(tmp_path: Path) -> None:
    handler = FlakyHandler(failures=0)
    downloader = ImageDownloader(transport=httpx.MockTransport(handler))

    asset = ImageAsset.from_url(
        "https://assets.test/photos/Hero.WEBP?sig=abc", PillowCodecGateway(tmp_path), downloader
    )

    assert asset.filename == "Hero.WEBP"
    assert asset.native_format == "webp"
    assert asset.data == b"image-bytes"
