from __future__ import annotations

import asyncio
from io import BytesIO
import logging
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx
from PIL import Image, UnidentifiedImageError

from cardpress_core.core.config import DEFAULT_USER_AGENT
from cardpress_core.core.errors import ResourceResolutionError

LOGGER = logging.getLogger(__name__)

_HTTP_SCHEMES = ("http", "https")


def is_http_url(url: str) -> bool:
    return urlparse(url).scheme.lower() in _HTTP_SCHEMES


def local_path_for(url: str) -> Path:
    """Filesystem path for a bare path or a `file://` url."""

    parsed = urlparse(url)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if parsed.scheme and len(parsed.scheme) > 1:
        raise ResourceResolutionError(f"unsupported url scheme `{parsed.scheme}` for `{url}`")
    return Path(url)


def decode_image(payload: bytes, *, source: str) -> Image.Image:
    try:
        image = Image.open(BytesIO(payload))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ResourceResolutionError(f"could not decode image `{source}`: {exc}") from exc
    return image.convert("RGBA")


class LocalImageFetcher:
    """Reads images from the filesystem (plain paths or `file://` urls)."""

    def fetch(self, url: str) -> Image.Image:
        path = local_path_for(url)
        try:
            payload = path.read_bytes()
        except OSError as exc:
            raise ResourceResolutionError(f"could not read image `{url}`: {exc}") from exc
        LOGGER.debug("read %d bytes from %s", len(payload), path)
        return decode_image(payload, source=url)


class HttpImageFetcher:
    """Downloads images over http(s) with httpx; usable from sync and async pipelines.

    Clients passed in are borrowed and left open; otherwise a short-lived client is
    created per request.
    """

    def __init__(
        self,
        *,
        timeout_s: float = 15.0,
        user_agent: str = DEFAULT_USER_AGENT,
        client: httpx.Client | None = None,
        async_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = httpx.Timeout(timeout_s)
        self._headers = {"User-Agent": user_agent}
        self._client = client
        self._async_client = async_client

    def fetch(self, url: str) -> Image.Image:
        try:
            if self._client is not None:
                response = self._client.get(url)
            else:
                with httpx.Client(timeout=self._timeout, follow_redirects=True, headers=self._headers) as client:
                    response = client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ResourceResolutionError(f"could not fetch image `{url}`: {exc}") from exc
        LOGGER.debug("downloaded %d bytes from %s", len(response.content), url)
        return decode_image(response.content, source=url)

    async def fetch_async(self, url: str) -> Image.Image:
        try:
            if self._async_client is not None:
                response = await self._async_client.get(url)
            else:
                async with httpx.AsyncClient(
                    timeout=self._timeout, follow_redirects=True, headers=self._headers
                ) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ResourceResolutionError(f"could not fetch image `{url}`: {exc}") from exc
        LOGGER.debug("downloaded %d bytes from %s", len(response.content), url)
        return await asyncio.to_thread(decode_image, response.content, source=url)


class RoutingImageFetcher:
    """Sends http(s) urls to the http fetcher and everything else to the local one."""

    def __init__(self, *, local: LocalImageFetcher | None = None, http: HttpImageFetcher | None = None) -> None:
        self._local = local or LocalImageFetcher()
        self._http = http or HttpImageFetcher()

    def fetch(self, url: str) -> Image.Image:
        if is_http_url(url):
            return self._http.fetch(url)
        return self._local.fetch(url)

    async def fetch_async(self, url: str) -> Image.Image:
        if is_http_url(url):
            return await self._http.fetch_async(url)
        return await asyncio.to_thread(self._local.fetch, url)
