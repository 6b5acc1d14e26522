"""
Local cache for Kick profile images.

Downloads each channel's profile picture once, stores it on disk with an
atomic write, and hands it to the compositor as a base64 data URI with a
content type detected from magic bytes.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import re
from pathlib import Path
from uuid import uuid4

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Maximum image size: 5 MB
# ---------------------------------------------------------------------------
_MAX_IMAGE_BYTES = 5 * 1024 * 1024

_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
_SAFE_SLUG = re.compile(r"[^a-z0-9_-]", re.IGNORECASE)
_KNOWN_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "gif", "svg"}


class ProfileImageConfig(BaseModel):
    """Configuration for the profile image cache.

    Attributes
    ----------
    image_dir : Path
        Directory holding one file per channel slug.
    timeout : float
        HTTP timeout in seconds for image downloads.
    max_concurrent_fetches : int
        Maximum concurrent downloads (semaphore limit).
    """

    image_dir: Path
    timeout: float = 10.0
    max_concurrent_fetches: int = 4


class ProfileImageCache:
    """Download-once store for channel profile images.

    Parameters
    ----------
    config : ProfileImageConfig
        Cache directory and fetch limits.
    """

    def __init__(self, config: ProfileImageConfig) -> None:
        self._config = config
        self._semaphore = asyncio.Semaphore(config.max_concurrent_fetches)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def cache_path(self, slug: str, url: str) -> Path:
        """Compute the on-disk path for a slug's image.

        The extension is taken from the URL path, defaulting to ``jpg``.
        """
        ext = url.split("?")[0].rsplit("/", 1)[-1].rsplit(".", 1)
        suffix = ext[1].lower() if len(ext) == 2 else "jpg"
        if suffix not in _KNOWN_EXTENSIONS:
            suffix = "jpg"
        return self._config.image_dir / f"{_SAFE_SLUG.sub('_', slug)}.{suffix}"

    # ------------------------------------------------------------------
    # Content-type detection via magic bytes
    # ------------------------------------------------------------------

    @staticmethod
    def detect_content_type(data: bytes, fallback_suffix: str = "jpg") -> str:
        """Detect an image MIME type from its leading bytes.

        Parameters
        ----------
        data : bytes
            Image bytes (only the first few are inspected).
        fallback_suffix : str
            File extension used when no signature matches.

        Returns
        -------
        str
            MIME type string.
        """
        if data[:2] == b"\xff\xd8":
            return "image/jpeg"
        if data[:4] == b"\x89PNG":
            return "image/png"
        if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
            return "image/webp"
        if data[:4] == b"GIF8":
            return "image/gif"
        head = data[:256].lstrip()
        if head.startswith(b"<svg") or head.startswith(b"<?xml"):
            return "image/svg+xml"
        if fallback_suffix == "svg":
            return "image/svg+xml"
        return "image/jpeg" if fallback_suffix in ("jpg", "jpeg") else f"image/{fallback_suffix}"

    # ------------------------------------------------------------------
    # Fetch pipeline
    # ------------------------------------------------------------------

    async def get_local_image(self, slug: str, url: str) -> Path | None:
        """Return the cached file for *slug*, downloading it on first use.

        Returns
        -------
        Path | None
            Local file path, or None when the download failed.
        """
        cache_path = self.cache_path(slug, url)
        if cache_path.is_file():
            return cache_path

        if await self._fetch_and_cache(url, cache_path):
            return cache_path
        return None

    async def get_data_uri(self, slug: str, url: str) -> str | None:
        """Return the cached profile image for *slug* as a data URI."""
        path = await self.get_local_image(slug, url)
        if path is None:
            return None

        try:
            data = path.read_bytes()
        except OSError:
            logger.warning("Failed to read local image %s", path, exc_info=True)
            return None

        mime = self.detect_content_type(data, path.suffix.lstrip("."))
        return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"

    async def _fetch_and_cache(self, url: str, cache_path: Path) -> bool:
        """Fetch an image from *url* and write it to *cache_path* atomically."""
        async with self._semaphore:
            try:
                async with httpx.AsyncClient(
                    follow_redirects=True,
                    timeout=self._config.timeout,
                    headers={"User-Agent": _USER_AGENT},
                ) as client:
                    response = await client.get(url)
            except httpx.HTTPError as exc:
                logger.warning("HTTP error fetching profile image %s: %s", url, exc)
                return False

        if response.status_code != 200:
            logger.warning(
                "Unexpected status %d fetching profile image %s",
                response.status_code,
                url,
            )
            return False

        body = response.content
        if not body or len(body) > _MAX_IMAGE_BYTES:
            logger.warning("Rejected profile image of %d bytes from %s", len(body), url)
            return False

        # Atomic write: temp file → rename
        try:
            cache_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = cache_path.with_name(f".{cache_path.stem}.tmp.{uuid4()}")
            tmp_path.write_bytes(body)
            tmp_path.replace(cache_path)
            logger.debug("Cached profile image: %s (%d bytes)", cache_path, len(body))
            return True
        except OSError:
            logger.error(
                "Disk error writing profile image to %s", cache_path, exc_info=True
            )
            return False
