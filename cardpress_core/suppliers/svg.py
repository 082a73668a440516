from __future__ import annotations

import asyncio
import logging
import xml.etree.ElementTree as ET

import httpx

from cardpress_core.core.config import DEFAULT_USER_AGENT
from cardpress_core.core.errors import ResourceResolutionError
from cardpress_core.render.svg import SvgDocument

from .images import is_http_url, local_path_for

LOGGER = logging.getLogger(__name__)


class SvgDocumentLoader:
    """Loads SVG markup from a path, `file://` or http(s) url and parses it into an `SvgDocument`."""

    def __init__(self, *, timeout_s: float = 15.0, user_agent: str = DEFAULT_USER_AGENT) -> None:
        self._timeout = httpx.Timeout(timeout_s)
        self._headers = {"User-Agent": user_agent}

    def load_from_url(self, url: str) -> SvgDocument:
        if is_http_url(url):
            try:
                with httpx.Client(timeout=self._timeout, follow_redirects=True, headers=self._headers) as client:
                    response = client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise ResourceResolutionError(f"could not fetch svg `{url}`: {exc}") from exc
            return self._parse(response.content, source=url)
        return self._load_local(url)

    async def load_from_url_async(self, url: str) -> SvgDocument:
        if is_http_url(url):
            try:
                async with httpx.AsyncClient(
                    timeout=self._timeout, follow_redirects=True, headers=self._headers
                ) as client:
                    response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise ResourceResolutionError(f"could not fetch svg `{url}`: {exc}") from exc
            return await asyncio.to_thread(self._parse, response.content, source=url)
        return await asyncio.to_thread(self._load_local, url)

    def _load_local(self, url: str) -> SvgDocument:
        return self._parse(self._read_local(url), source=url)

    def _read_local(self, url: str) -> bytes:
        path = local_path_for(url)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise ResourceResolutionError(f"could not read svg `{url}`: {exc}") from exc

    def _parse(self, markup: bytes, *, source: str) -> SvgDocument:
        try:
            document = SvgDocument.from_markup(markup)
        except (ET.ParseError, ValueError) as exc:
            raise ResourceResolutionError(f"could not parse svg `{source}`: {exc}") from exc
        LOGGER.debug("parsed svg `%s` with %d shapes", source, len(document.shapes))
        return document
