"""Announce page titles for URLs posted in channels."""

from __future__ import annotations

import re

import httpx
from bs4 import BeautifulSoup
from cachetools import TTLCache
from loguru import logger

from relaybot.events import ChannelAddress
from relaybot.gateway.channels import ActionSender
from relaybot.http_client import DEFAULT_RETRY

URL_RE = re.compile(r"(https?://[^ ]+)")

MAX_CONTENT_BYTES = 2 * 1024 * 1024


def find_urls(text: str) -> list[str]:
    return URL_RE.findall(text)


def extract_title(html: str) -> str | None:
    """og:title if present, else <title>. Whitespace collapsed; None if empty."""
    soup = BeautifulSoup(html, "html.parser")
    title: str | None = None
    og = soup.find("meta", attrs={"property": "og:title"})
    if og is not None and og.get("content"):
        title = str(og["content"])
    elif soup.title is not None:
        title = soup.title.get_text()
    if title is None:
        return None
    title = " ".join(title.split())
    return title or None


class UrlTitleFetcher:
    """Fetches and caches page titles. Never raises to its caller."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        maxsize: int = 256,
        ttl: int = 3600,
    ) -> None:
        self._client = client
        self._cache: TTLCache[str, str | None] = TTLCache(maxsize=maxsize, ttl=float(ttl))

    async def title(self, url: str) -> str | None:
        try:
            return self._cache[url]
        except KeyError:
            pass
        try:
            html = await self._fetch(url)
        except httpx.HTTPError as exc:
            logger.debug("Could not get url {}: {}", url, exc)
            return None
        title = extract_title(html) if html is not None else None
        self._cache[url] = title
        return title

    @DEFAULT_RETRY
    async def _fetch(self, url: str) -> str | None:
        """Body of an HTML page, or None for non-HTML, errors statuses and oversized pages."""
        async with self._client.stream("GET", url) as resp:
            if resp.status_code >= 400:
                logger.debug("{} returned {}", url, resp.status_code)
                return None
            content_type = resp.headers.get("content-type")
            if content_type and not content_type.startswith("text/html"):
                logger.debug("Not a HTML page: {} ({})", url, content_type)
                return None
            length = resp.headers.get("content-length")
            if length is not None:
                try:
                    if int(length) > MAX_CONTENT_BYTES:
                        logger.debug("Content length > 2MB, not fetching {}", url)
                        return None
                except ValueError:
                    return None
            body = bytearray()
            async for chunk in resp.aiter_bytes():
                body.extend(chunk)
                if len(body) > MAX_CONTENT_BYTES:
                    logger.debug("Body of {} exceeded 2MB, giving up", url)
                    return None
            return body.decode(resp.encoding or "utf-8", errors="replace")

    async def announce(self, actions: ActionSender, source: ChannelAddress, text: str) -> None:
        for url in find_urls(text):
            title = await self.title(url)
            if title:
                await actions.say(source, f"Title: {title}")
