"""Glossary image resolution, probing and preloading.

Glossary images are authored relative to an unknown mix of conventions (page
root, chapter subdirectory, site root). ``ImageResolver.resolve`` tries each
plausible base in priority order and memoizes the first URL that loads as an
image, or ``None`` once every candidate has failed.
"""

import asyncio
import logging
import re
from urllib.parse import urljoin

import httpx

from .config import Settings
from .models import GlossTerm

logger = logging.getLogger(__name__)

_ABSOLUTE_RE = re.compile(r"^https?://", re.IGNORECASE)


def _is_image_response(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "")
    return response.status_code == 200 and content_type.lower().startswith("image/")


class PreloadHandle:
    """Background fetch of one resolved image URL."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.data: bytes | None = None
        self.failed = False
        self.task: asyncio.Task | None = None

    @property
    def in_flight(self) -> bool:
        return self.task is not None and not self.task.done()

    @property
    def complete(self) -> bool:
        return self.data is not None

    def discard(self) -> None:
        """Drop the decoded bytes, as a browser may do for a hidden tab."""
        self.data = None


class ImageResolver:
    """Owns the resolution cache and the preload cache for one session."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        self.settings = settings
        self.client = client
        self.resolved: dict[str, str | None] = {}
        self.preloaded: dict[str, PreloadHandle] = {}
        self.chapter_file: str | None = None  # currently open chapter

    # ── Probing ─────────────────────────────────────────────

    async def probe(self, url: str) -> bool:
        """Return True if *url* loads as an image within the probe timeout."""
        timeout = self.settings.probe_timeout
        try:
            response = await asyncio.wait_for(
                self.client.get(url, timeout=timeout), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.debug(f"Probe timed out: {url}")
            return False
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"Probe failed: {url} ({type(e).__name__})")
            return False
        ok = _is_image_response(response)
        if not ok:
            logger.debug(f"Probe rejected: {url} (HTTP {response.status_code})")
        return ok

    # ── Resolution ──────────────────────────────────────────

    def candidates(self, raw: str) -> list[str]:
        """Absolute candidate URLs for *raw*, deduplicated in priority order."""
        bases = [self.settings.site_url, self.settings.page_dir_url]
        if self.chapter_file:
            chapter_url = self.settings.chapter_url(self.chapter_file)
            bases.append(chapter_url)
            bases.append(urljoin(chapter_url, "./"))
        bases.append(self.settings.site_root_url)

        urls: list[str] = []
        for base in bases:
            try:
                url = urljoin(base, raw)
            except ValueError:
                continue
            if url not in urls:
                urls.append(url)
        return urls

    def is_cached(self, raw: str) -> bool:
        return raw in self.resolved

    async def resolve(self, raw: str | None) -> str | None:
        if not raw:
            return None
        if raw in self.resolved:
            return self.resolved[raw]

        tried: set[str] = set()
        if _ABSOLUTE_RE.match(raw) or raw.startswith("/"):
            direct = urljoin(self.settings.site_url, raw)
            tried.add(direct)
            if await self.probe(direct):
                self.resolved[raw] = direct
                return direct

        for url in self.candidates(raw):
            if url in tried:
                continue
            tried.add(url)
            if await self.probe(url):
                self.resolved[raw] = url
                logger.debug(f"Resolved image {raw!r} -> {url}")
                return url

        self.resolved[raw] = None
        logger.info(f"Image {raw!r} could not be resolved ({len(tried)} candidates tried)")
        return None

    # ── Preloading ──────────────────────────────────────────

    def preload(self, url: str) -> PreloadHandle:
        """Start fetching *url* unless a complete or in-flight handle exists."""
        handle = self.preloaded.get(url)
        if handle is not None and (handle.complete or handle.in_flight):
            return handle
        handle = PreloadHandle(url)
        handle.task = asyncio.ensure_future(self._fetch_into(handle))
        self.preloaded[url] = handle
        return handle

    async def _fetch_into(self, handle: PreloadHandle) -> None:
        try:
            response = await self.client.get(handle.url, timeout=self.settings.http_timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            handle.failed = True
            logger.debug(f"Preload failed: {handle.url} ({type(e).__name__})")
            return
        if _is_image_response(response):
            handle.data = response.content
        else:
            handle.failed = True
            logger.debug(f"Preload rejected: {handle.url} (HTTP {response.status_code})")

    async def preload_glossary(self, terms: list[GlossTerm]) -> int:
        """Resolve and preload every glossary image; return how many started."""
        started = 0
        for term in terms:
            if not term.image:
                continue
            if self.is_cached(term.image) and self.resolved[term.image] is None:
                continue
            resolved = await self.resolve(term.image)
            if resolved and resolved not in self.preloaded:
                self.preload(resolved)
                started += 1
        return started

    async def refresh_preloads(self, terms: list[GlossTerm]) -> None:
        """Re-issue preloads dropped while the tab was hidden."""
        await asyncio.gather(*(self._refresh_one(t) for t in terms if t.image))

    async def _refresh_one(self, term: GlossTerm) -> None:
        resolved = await self.resolve(term.image)
        if resolved:
            self.preload(resolved)

    async def drain(self) -> None:
        """Wait for outstanding preloads to settle."""
        pending = [h.task for h in self.preloaded.values() if h.in_flight]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
