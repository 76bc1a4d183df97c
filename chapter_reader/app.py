"""Reader wiring + CLI entry point."""

import argparse
import asyncio
import logging
import sys

import httpx

from .chapters import ChapterStore
from .config import Settings, settings
from .headless import headless_page
from .images import ImageResolver
from .navigation import NavigationController
from .page import Page
from .reading import ReadTracker
from .renderer import MarkdownItRenderer, Renderer
from .scheduling import FrameScheduler, LoopFrameScheduler, LoopTimers, Timers
from .storage import JsonFileStore, KeyValueStore, SessionStore
from .tooltips import TooltipLayer, TooltipManager
from .viewer import ImageViewer
from .visibility import VisibilityStateMachine

logger = logging.getLogger(__name__)


class ReaderApp:
    """One page lifetime: owns every cache and routes host events.

    Construct a fresh instance per page load. Passing the same ``session``
    store to the next instance models a reload within one browsing session.
    """

    def __init__(
        self,
        page: Page,
        cfg: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        renderer: Renderer | None = None,
        tooltip_layer: TooltipLayer | None = None,
        durable: KeyValueStore | None = None,
        session: KeyValueStore | None = None,
        frames: FrameScheduler | None = None,
        timers: Timers | None = None,
    ) -> None:
        self.settings = cfg or settings
        self.page = page
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.settings.http_timeout, follow_redirects=True
        )
        self.frames = frames or LoopFrameScheduler(self.settings.frame_interval)
        self.timers = timers or LoopTimers()
        self.durable = durable if durable is not None else JsonFileStore(self.settings.state_file)
        self.session = session if session is not None else SessionStore()

        self.store = ChapterStore()
        self.resolver = ImageResolver(self.settings, self.client)
        self.viewer = ImageViewer(
            zoom_scale=self.settings.zoom_scale,
            drag_threshold=self.settings.drag_threshold,
        )
        self.tooltips = TooltipManager(self.resolver, self.viewer, tooltip_layer)
        self.visibility = VisibilityStateMachine(
            self.settings, page.viewport, page.competing, self.frames, self.timers
        )
        self.reading = ReadTracker(
            self.settings, page.viewport, page.content, self.frames, self.durable
        )
        self.navigation = NavigationController(
            self.settings,
            self.client,
            page,
            self.store,
            self.resolver,
            self.tooltips,
            self.viewer,
            self.visibility,
            self.frames,
            renderer=renderer,
            durable=self.durable,
            session=self.session,
            reading=self.reading,
        )

    async def start(self) -> bool:
        self.visibility.initial_setup()
        return await self.navigation.start()

    # ── Host events ─────────────────────────────────────────

    def on_scroll(self) -> None:
        self.visibility.on_scroll()
        self.reading.on_scroll()

    def on_resize(self) -> None:
        self.visibility.on_resize()
        self.reading.on_resize()

    def on_layout_change(self) -> None:
        self.visibility.on_layout_change()

    def on_unload(self) -> None:
        self.navigation.handle_unload()

    async def on_visibility_change(self, visible: bool) -> None:
        if not visible:
            return
        await self.resolver.refresh_preloads(self.navigation.terms)

    def on_next_unread(self) -> int | None:
        return self.reading.scroll_to_next_unread()

    async def on_key(self, key: str, editing: bool = False) -> bool:
        if self.viewer.handle_key(key):
            return True
        return await self.navigation.handle_key(key, editing=editing)

    async def close(self) -> None:
        tasks = list(self.navigation.preload_tasks)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self.resolver.drain()
        if self._owns_client:
            await self.client.aclose()


async def run_headless(cfg: Settings, chapter: str | None = None) -> int:
    """Open the reader against a live site and report what it found."""
    page = headless_page()
    app = ReaderApp(page, cfg, renderer=MarkdownItRenderer())
    try:
        if not await app.start():
            print(page.content.status or "Reader failed to start", file=sys.stderr)
            return 1
        if chapter is not None:
            index = app.store.index_of(chapter)
            if index is None:
                print(f"Chapter not available: {chapter}", file=sys.stderr)
                return 1
            await app.navigation.go_to_chapter(index)

        for entry in app.store.listing():
            marker = ">" if entry.index == app.navigation.current_index else " "
            suffix = "" if entry.clickable else "  (not available yet)"
            print(f"{marker} {entry.index + 1:3d}. {entry.label}{suffix}")

        if page.content.status:
            print(page.content.status, file=sys.stderr)
            return 1

        for term in app.navigation.terms:
            if not term.image:
                continue
            url = await app.resolver.resolve(term.image)
            print(f"  image {term.image} -> {url or 'unresolved'}")
        return 0
    finally:
        await app.close()


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Headless chapter reader session")
    parser.add_argument("site_url", nargs="?", help="URL of the reading page")
    parser.add_argument("--chapter", help="manifest file name of the chapter to open")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    cfg = settings
    if args.site_url:
        cfg = Settings(site_url=args.site_url)

    try:
        sys.exit(asyncio.run(run_headless(cfg, args.chapter)))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    main()
