from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)


class ImageDownloader:
    """Fetch original images over HTTP, with optional on-disk caching."""

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        timeout: float = 20.0,
        retries: int = 2,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.cache_dir = cache_dir
        self.timeout = timeout
        self.retries = retries
        self.transport = transport
        if cache_dir is not None:
            cache_dir.mkdir(parents=True, exist_ok=True)

    def download(self, url: str) -> bytes:
        target_path = self._resolve_cache_path(url)
        if target_path is not None and target_path.exists():
            logger.debug("Using cached original for %s", url)
            return target_path.read_bytes()

        last_error: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            try:
                with httpx.Client(timeout=self.timeout, follow_redirects=True, transport=self.transport) as client:
                    logger.debug("Downloading original %s (attempt %s)", url, attempt + 1)
                    response = client.get(url)
                    response.raise_for_status()
                    data = response.content
                if target_path is not None:
                    target_path.write_bytes(data)
                return data
            except httpx.HTTPError as exc:
                logger.warning("Failed to download %s: %s", url, exc)
                last_error = exc
        assert last_error is not None
        raise RuntimeError(f"Unable to download original {url}") from last_error

    def _resolve_cache_path(self, url: str) -> Optional[Path]:
        if self.cache_dir is None:
            return None
        digest = hashlib.sha1(url.encode("utf-8"), usedforsecurity=False).hexdigest()
        name = Path(urlparse(url).path).name or "original"
        return self.cache_dir / f"{digest}_{name}"
