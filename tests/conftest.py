"""Shared pytest fixtures for the chapter-reader test suite.

Fixtures
--------
- test_settings   : Settings pointing at http://reader.test/book/index.html
- site            : FakeSite serving manifest, chapters and images over httpx
- frames / timers : manual frame scheduler and clock for deterministic timing
- page            : headless Page (viewport, content, bottom nav, panel)
- tooltip_layer   : FakeTooltipLayer recording attached tooltips
- make_app        : factory building a ReaderApp on top of the fixtures above

Builder functions (plain helpers, not fixtures)
-----------------------------------------------
- manifest(...)   : manifest entries as a list of dicts
- gloss(...)      : a glossary span as authored in chapter markdown
"""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from chapter_reader.app import ReaderApp
from chapter_reader.config import Settings
from chapter_reader.headless import headless_page
from chapter_reader.page import Page
from chapter_reader.renderer import MarkdownItRenderer
from chapter_reader.storage import JsonFileStore, SessionStore

SITE = "http://reader.test"
PAGE_URL = f"{SITE}/book/index.html"
BOOK = f"{SITE}/book"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def manifest(*entries: tuple) -> list[dict]:
    """Build manifest entries from ``(file, title[, done])`` tuples."""
    out = []
    for entry in entries:
        item = {"file": entry[0], "title": entry[1]}
        if len(entry) > 2:
            item["done"] = entry[2]
        out.append(item)
    return out


def gloss(word: str, tip: str, img: str | None = None, alt: str = "") -> str:
    attrs = f'class="gloss" data-tippy-content="{tip}"'
    if img:
        attrs += f' data-img="{img}" data-img-alt="{alt}"'
    return f"<span {attrs}>{word}</span>"


# ---------------------------------------------------------------------------
# Fake HTTP site
# ---------------------------------------------------------------------------


class FakeSite:
    """Static site behind an httpx.MockTransport, recording every request."""

    def __init__(self) -> None:
        self.routes: dict[str, httpx.Response] = {}
        self.requests: list[httpx.Request] = []

    def add(self, url: str, body: bytes | str = b"", status: int = 200,
            content_type: str = "text/plain; charset=utf-8") -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = httpx.Response(
            status, content=body, headers={"content-type": content_type}
        )

    def add_manifest(self, entries: list[dict]) -> None:
        self.add(f"{BOOK}/chapters.json", json.dumps(entries), content_type="application/json")

    def add_chapter(self, file: str, markdown: str) -> None:
        self.add(f"{BOOK}/chapters/{file}", markdown, content_type="text/markdown")

    def add_image(self, url: str) -> None:
        self.add(url, PNG_BYTES, content_type="image/png")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(
            route.status_code, content=route.content, headers=route.headers
        )

    def hits(self, url: str) -> int:
        return sum(1 for r in self.requests if str(r.url) == url)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


# ---------------------------------------------------------------------------
# Manual scheduling
# ---------------------------------------------------------------------------


class ManualFrames:
    """Frame scheduler driven by ``flush()``; one flush = one rendered frame."""

    def __init__(self) -> None:
        self.queue: list = []

    def request_frame(self, callback) -> None:
        self.queue.append(callback)

    def flush(self, count: int = 1) -> None:
        for _ in range(count):
            pending, self.queue = self.queue, []
            for callback in pending:
                callback()


class _TimerHandle:
    def __init__(self, when: float, callback) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimers:
    """Clock that only moves when ``advance()`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self.handles: list[_TimerHandle] = []

    def call_later(self, delay: float, callback) -> _TimerHandle:
        handle = _TimerHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[_TimerHandle]:
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.pending if h.when <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.handles.remove(handle)
            self.now = max(self.now, handle.when)
            handle.callback()
        self.now = target


# ---------------------------------------------------------------------------
# Fake tooltip layer
# ---------------------------------------------------------------------------


class FakeTooltip:
    def __init__(self, term, on_show, on_image_click) -> None:
        self.term = term
        self.on_show = on_show
        self.on_image_click = on_image_click
        self.content = None
        self.hidden = False
        self.destroyed = False

    async def show(self) -> None:
        self.hidden = False
        await self.on_show(self)

    def click_image(self) -> None:
        self.on_image_click(self)

    def set_content(self, content) -> None:
        self.content = content

    def hide(self) -> None:
        self.hidden = True

    def destroy(self) -> None:
        self.destroyed = True


class FakeTooltipLayer:
    def __init__(self) -> None:
        self.attached: list[FakeTooltip] = []

    def attach(self, term, on_show, on_image_click) -> FakeTooltip:
        tooltip = FakeTooltip(term, on_show, on_image_click)
        self.attached.append(tooltip)
        return tooltip

    def live(self) -> list[FakeTooltip]:
        return [t for t in self.attached if not t.destroyed]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        site_url=PAGE_URL,
        state_file=tmp_path / "state.json",
        probe_timeout=0.5,
        http_timeout=2.0,
        top_threshold=10.0,
        hide_delay=1.0,
        settle_delays=(0.1, 0.5),
    )


@pytest.fixture()
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture()
def frames() -> ManualFrames:
    return ManualFrames()


@pytest.fixture()
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture()
def page() -> Page:
    return headless_page(inner_height=800.0)


@pytest.fixture()
def tooltip_layer() -> FakeTooltipLayer:
    return FakeTooltipLayer()


@pytest.fixture()
def session_store() -> SessionStore:
    return SessionStore()


@pytest.fixture()
def make_app(test_settings, frames, timers, page, tooltip_layer, session_store):
    """Return ``build(client, **overrides) -> ReaderApp`` sharing the fixtures."""

    def build(client: httpx.AsyncClient, **overrides) -> ReaderApp:
        kwargs = dict(
            page=page,
            cfg=test_settings,
            client=client,
            renderer=MarkdownItRenderer(),
            tooltip_layer=tooltip_layer,
            durable=JsonFileStore(test_settings.state_file),
            session=session_store,
            frames=frames,
            timers=timers,
        )
        kwargs.update(overrides)
        return ReaderApp(**kwargs)

    return build
