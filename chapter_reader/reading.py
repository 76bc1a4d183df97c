"""Per-chapter read progress.

Rendered chapters are split into numbered read targets (see
``glossary.stamp_read_targets``). A target becomes read once its top passes
the read line, or when the reader reaches the end of the document. Read
indices are kept in the durable store under ``read:<file>`` as a JSON list.
Chapters whose manifest entry says ``"blur": false`` are not tracked at all.
"""

import json
import logging

from .config import Settings
from .page import ContentView, Viewport
from .scheduling import CoalescedTick, FrameScheduler, after_frames
from .storage import KeyValueStore, read_key, safe_get, safe_set

logger = logging.getLogger(__name__)

# Targets centred this close to the current offset are not "next"
NEXT_UNREAD_EPSILON = 2.0


def load_read_indices(store: KeyValueStore | None, file: str) -> set[int]:
    raw = safe_get(store, read_key(file))
    if not raw:
        return set()
    try:
        data = json.loads(raw)
    except ValueError:
        logger.debug(f"Ignoring unreadable read progress for {file}")
        return set()
    if not isinstance(data, list):
        return set()
    return {i for i in data if isinstance(i, int) and not isinstance(i, bool)}


class ReadTracker:
    def __init__(
        self,
        settings: Settings,
        viewport: Viewport,
        content: ContentView,
        frames: FrameScheduler,
        durable: KeyValueStore | None = None,
    ) -> None:
        self.settings = settings
        self.viewport = viewport
        self.content = content
        self.frames = frames
        self.durable = durable
        self.file: str | None = None
        self.enabled = False
        self.count = 0
        self.read: set[int] = set()
        self._tick = CoalescedTick(frames, self.check)

    def start(self, file: str, count: int, enabled: bool = True) -> None:
        """Begin tracking a freshly rendered chapter with *count* targets."""
        self.file = file
        self.count = count
        self.enabled = enabled
        self.read = load_read_indices(self.durable, file) if enabled else set()
        logger.debug(
            f"Read tracking for {file}: "
            + (f"{len(self.read)}/{count} read" if enabled else "disabled")
        )

    def reset(self) -> None:
        self.file = None
        self.count = 0
        self.enabled = False
        self.read = set()

    @property
    def unread(self) -> list[int]:
        if not self.enabled:
            return []
        return [i for i in range(self.count) if i not in self.read]

    def is_read(self, index: int) -> bool:
        return not self.enabled or index in self.read

    def mark(self, *indices: int) -> list[int]:
        """Mark targets read and persist; return the ones that were new."""
        if not self.enabled or self.file is None:
            return []
        new = [i for i in indices if 0 <= i < self.count and i not in self.read]
        if new:
            self.read.update(new)
            safe_set(self.durable, read_key(self.file), json.dumps(sorted(self.read)))
        return new

    # ── Scroll-driven marking ───────────────────────────────

    def on_scroll(self) -> None:
        self._tick.schedule()

    def on_resize(self) -> None:
        self._tick.schedule()

    def _at_bottom(self) -> bool:
        doc = self.viewport.document_height
        if doc is None:
            return False
        bottom = self.viewport.scroll_y + self.viewport.inner_height
        return bottom >= doc - self.settings.bottom_slack

    def _target_top(self, index: int) -> float | None:
        region = self.content.read_target(index)
        rect = region.bounding_rect() if region is not None else None
        return None if rect is None else rect.top

    def check(self) -> list[int]:
        """Mark every unread target whose top is above the read line."""
        if not self.enabled or self.file is None:
            return []
        if self._at_bottom():
            return self.mark(*self.unread)
        line = self.viewport.inner_height * self.settings.read_line_ratio
        passed = []
        for i in self.unread:
            top = self._target_top(i)
            if top is not None and top < line:
                passed.append(i)
        return self.mark(*passed)

    # ── Next unread ─────────────────────────────────────────

    def next_unread(self) -> int | None:
        """The unread target whose centre is nearest below the current offset."""
        y = self.viewport.scroll_y
        centres = []
        for i in self.unread:
            region = self.content.read_target(i)
            rect = region.bounding_rect() if region is not None else None
            if rect is None:
                continue
            centres.append((rect.top + y + (rect.bottom - rect.top) / 2, i))
        for centre, i in sorted(centres):
            if centre > y + NEXT_UNREAD_EPSILON:
                return i
        return None

    def offset_for(self, index: int) -> float | None:
        """Scroll offset that centres target *index* in the viewport."""
        region = self.content.read_target(index)
        rect = region.bounding_rect() if region is not None else None
        if rect is None:
            return None
        y = self.viewport.scroll_y
        height = self.viewport.inner_height
        target = round(rect.top + y + (rect.bottom - rect.top) / 2 - height / 2)
        doc = self.viewport.document_height
        if doc is not None:
            target = min(target, max(0.0, doc - height))
        return max(0.0, target)

    def scroll_to_next_unread(self) -> int | None:
        """Centre the next unread target after layout settles; return its index."""
        index = self.next_unread()
        if index is None:
            return None
        file = self.file

        def apply() -> None:
            if self.file != file:
                return
            offset = self.offset_for(index)
            if offset is not None:
                self.viewport.scroll_to(offset)

        after_frames(self.frames, 2, apply)
        return index
