"""Chapter switching, prev/next controls and reading-position continuity."""

import asyncio
import logging

import httpx

from .chapters import ChapterStore, fetch_text
from .config import Settings
from .errors import ReaderError
from .glossary import scan_chapter
from .images import ImageResolver
from .models import Chapter, GlossTerm, NavControl, NavigationState, ScrollSnapshot
from .page import Page
from .reading import ReadTracker
from .renderer import Renderer, render_chapter
from .scheduling import FrameScheduler, after_frames
from .storage import (
    LAST_CHAPTER_KEY,
    KeyValueStore,
    safe_get,
    safe_remove,
    safe_set,
    scroll_key,
)
from .tooltips import TooltipManager
from .viewer import ImageViewer
from .visibility import VisibilityStateMachine

logger = logging.getLogger(__name__)

LOADING_MESSAGE = "Loading..."
LOADING_CHAPTER_MESSAGE = "Loading chapter..."
NO_CHAPTERS_MESSAGE = "No available chapters."

_PLACEMENTS = ("top", "bottom")


class NavigationController:
    """Owns the current chapter index and everything tied to a chapter switch."""

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        page: Page,
        store: ChapterStore,
        resolver: ImageResolver,
        tooltips: TooltipManager,
        viewer: ImageViewer,
        visibility: VisibilityStateMachine,
        frames: FrameScheduler,
        renderer: Renderer | None = None,
        durable: KeyValueStore | None = None,
        session: KeyValueStore | None = None,
        reading: ReadTracker | None = None,
    ) -> None:
        self.settings = settings
        self.client = client
        self.page = page
        self.store = store
        self.resolver = resolver
        self.tooltips = tooltips
        self.viewer = viewer
        self.visibility = visibility
        self.frames = frames
        self.renderer = renderer
        self.durable = durable
        self.session = session
        self.reading = reading

        self.state = NavigationState()
        self.controls: list[NavControl] = [
            NavControl(role=role, placement=placement)
            for placement in _PLACEMENTS
            for role in ("prev", "next")
        ]
        self.terms: list[GlossTerm] = []
        self.loaded_file: str | None = None
        self.preload_tasks: set[asyncio.Future] = set()
        self._unloaded = False

    @property
    def current_index(self) -> int:
        return self.state.current_index

    @property
    def current_chapter(self) -> Chapter | None:
        if self.state.current_index < 0:
            return None
        return self.store[self.state.current_index]

    def _at_top(self) -> bool:
        return self.page.viewport.scroll_y <= self.settings.top_threshold

    # ── Controls ────────────────────────────────────────────

    def control(self, role: str, placement: str = "bottom") -> NavControl:
        for c in self.controls:
            if c.role == role and c.placement == placement:
                return c
        raise KeyError(f"No {placement} {role} control")

    def prev_target(self) -> int | None:
        return self.store.find_prev_eligible(self.state.current_index - 1)

    def next_target(self) -> int | None:
        return self.store.find_next_eligible(self.state.current_index + 1)

    def refresh_controls(self) -> None:
        targets = {"prev": self.prev_target(), "next": self.next_target()}
        for c in self.controls:
            target = targets[c.role]
            c.target_index = target
            c.label = self.store[target].title if target is not None else ""
            c.disabled = target is None

    def disable_controls(self) -> None:
        for c in self.controls:
            c.target_index = None
            c.label = ""
            c.disabled = True

    async def activate(self, control: NavControl) -> bool:
        if control.disabled or control.target_index is None:
            return False
        return await self.go_to_chapter(control.target_index)

    async def handle_key(self, key: str, editing: bool = False) -> bool:
        """Arrow keys page through chapters unless the user is typing."""
        if editing:
            return False
        if key == "ArrowLeft":
            target = self.prev_target()
        elif key == "ArrowRight":
            target = self.next_target()
        else:
            return False
        if target is None:
            return False
        return await self.go_to_chapter(target)

    # ── Startup ─────────────────────────────────────────────

    async def start(self) -> bool:
        """Load the manifest and open the remembered or first chapter."""
        content = self.page.content
        content.show_status(LOADING_MESSAGE)
        try:
            await self.store.load(self.client, self.settings.manifest_url)
        except ReaderError as e:
            logger.error(f"Manifest load failed: {e}")
            content.show_status(f"Error: {e}")
            self.disable_controls()
            return False

        saved = safe_get(self.durable, LAST_CHAPTER_KEY)
        if saved:
            index = self.store.index_of(saved)
            if index is not None:
                logger.info(f"Resuming last chapter: {saved}")
                await self.go_to_chapter(index)
                return True

        first = self.store.find_first_eligible()
        if first is None:
            content.show_status(NO_CHAPTERS_MESSAGE)
            self.disable_controls()
            return False
        await self.go_to_chapter(first)
        return True

    # ── Chapter switching ───────────────────────────────────

    async def go_to_chapter(self, index: int) -> bool:
        """Switch to chapter *index*; a no-op for out-of-range or undone entries."""
        if not self.store.is_eligible(index):
            return False
        self.state.current_index = index
        chapter = self.store[index]

        load = asyncio.ensure_future(self.load_chapter(index))
        self.refresh_controls()
        self.page.viewport.scroll_to(0)
        safe_set(self.durable, LAST_CHAPTER_KEY, chapter.file)
        if self.page.panel is not None:
            self.page.panel.close()
        # Don't wait for a scroll event to bring the nav back after a switch
        if self._at_top() and not self.visibility.competing_visible():
            self.visibility.show_immediate()

        await load
        return True

    async def load_chapter(self, index: int) -> bool:
        chapter = self.store[index]
        content = self.page.content
        content.set_title(chapter.title)
        content.show_status(LOADING_CHAPTER_MESSAGE)
        if self.reading is not None:
            self.reading.reset()

        try:
            text = await fetch_text(self.client, self.settings.chapter_url(chapter.file))
        except ReaderError as e:
            if self.state.current_index == index:
                logger.error(f"Chapter load failed for {chapter.file}: {e}")
                content.show_status(f"Chapter load error: {e}")
            return False

        if self.state.current_index != index:
            logger.debug(f"Discarding stale load of {chapter.file}")
            return False

        try:
            html = render_chapter(self.renderer, text)
        except Exception as e:
            logger.error(f"Rendering {chapter.file} failed: {e}", exc_info=True)
            content.show_status(f"Chapter load error: {e}")
            return False

        self.loaded_file = chapter.file
        self.resolver.chapter_file = chapter.file

        scan = scan_chapter(html)
        content.set_html(scan.html)
        self.terms = terms = scan.terms
        task = asyncio.ensure_future(self.resolver.preload_glossary(terms))
        self.preload_tasks.add(task)
        task.add_done_callback(self.preload_tasks.discard)
        self.tooltips.bind(terms)
        self.viewer.bind_images(scan.images)
        if self.reading is not None:
            self.reading.start(chapter.file, scan.read_targets, enabled=chapter.blur)
            self.frames.request_frame(self.reading.check)
        self.refresh_controls()

        self._restore_scroll(chapter.file)
        self.visibility.on_layout_change()
        self.visibility.initial_setup()

        logger.info(
            f"Opened chapter {index + 1}/{len(self.store)}: {chapter.title or chapter.file} "
            f"({len(terms)} glossary terms, {len(scan.images)} images)"
        )
        return True

    # ── Scroll carry-over ───────────────────────────────────

    def _restore_scroll(self, file: str) -> None:
        key = scroll_key(file)
        raw = safe_get(self.session, key)
        if raw is None:
            if self._at_top():
                self.visibility.show_immediate()
            return

        try:
            offset = float(raw)
        except ValueError:
            offset = 0.0

        def apply() -> None:
            if self.loaded_file != file or self.current_chapter.file != file:
                return
            self.page.viewport.scroll_to(offset)
            safe_remove(self.session, key)
            logger.debug(f"Restored scroll offset {offset:g} for {file}")

        # Two frames: the first lets the new content lay out, the second scrolls
        after_frames(self.frames, 2, apply)

    def handle_unload(self) -> ScrollSnapshot | None:
        """Record the scroll offset of the open chapter; runs once per page."""
        if self._unloaded:
            return None
        self._unloaded = True
        chapter = self.current_chapter
        if chapter is None:
            return None
        snapshot = ScrollSnapshot(file=chapter.file, offset=self.page.viewport.scroll_y)
        safe_set(self.session, scroll_key(snapshot.file), str(snapshot.offset))
        return snapshot
