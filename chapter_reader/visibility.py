"""Show/hide decisions for the floating top navigation.

Every trigger (scroll and resize frames, the competing-region observer,
chapter loads, settle timers) funnels into ``VisibilityStateMachine.evaluate``:

1. competing control on screen  -> hidden now, pending hide cancelled
2. at top, or scrolled upwards  -> visible now, pending hide cancelled
3. otherwise                    -> hide after ``hide_delay`` unless cancelled

A forced evaluation (the first one of initial setup) applies rule 3 immediately.
The settle re-evaluations that follow are ordinary ones.
"""

import logging
from typing import Callable

from .config import Settings
from .models import VisibilityState
from .page import Region, Viewport, region_in_view
from .scheduling import Cancellable, CoalescedTick, FrameScheduler, Timers

logger = logging.getLogger(__name__)


class RegionObserver:
    """Reports visibility transitions of a region, independent of scrolling."""

    def __init__(
        self,
        region: Region | None,
        viewport: Viewport,
        callback: Callable[[bool], None],
    ) -> None:
        self.region = region
        self.viewport = viewport
        self.callback = callback
        self._visible: bool | None = None

    def check(self) -> bool:
        visible = region_in_view(self.region, self.viewport)
        if visible != self._visible:
            self._visible = visible
            self.callback(visible)
        return visible


class VisibilityStateMachine:
    def __init__(
        self,
        settings: Settings,
        viewport: Viewport,
        competing: Region | None,
        frames: FrameScheduler,
        timers: Timers,
    ) -> None:
        self.settings = settings
        self.viewport = viewport
        self.competing = competing
        self.timers = timers
        self.state = VisibilityState(last_scroll_y=viewport.scroll_y)
        self._timer: Cancellable | None = None
        self._tick = CoalescedTick(frames, self._on_frame)
        self._listeners: list[Callable[[bool], None]] = []
        self.observer = RegionObserver(competing, viewport, self._on_competing_change)

    @property
    def visible(self) -> bool:
        return self.state.top_nav_visible

    def add_listener(self, listener: Callable[[bool], None]) -> None:
        self._listeners.append(listener)

    def competing_visible(self) -> bool:
        return region_in_view(self.competing, self.viewport)

    # ── Triggers ────────────────────────────────────────────

    def on_scroll(self) -> None:
        self._tick.schedule()

    def on_resize(self) -> None:
        self._tick.schedule()

    def on_layout_change(self) -> None:
        self.observer.check()

    def _on_frame(self) -> None:
        self.evaluate()
        self.observer.check()

    def _on_competing_change(self, visible: bool) -> None:
        if visible:
            self.evaluate()

    def initial_setup(self) -> None:
        """Evaluate now and again once late layout shifts have settled."""
        self.observer.check()
        self.evaluate(force=True)
        for delay in self.settings.settle_delays:
            # unforced: rule 3 arms the hide timer
            self.timers.call_later(delay, self.evaluate)

    # ── Evaluation ──────────────────────────────────────────

    def evaluate(self, force: bool = False) -> None:
        y = self.viewport.scroll_y
        scrolling_up = y < self.state.last_scroll_y
        at_top = y <= self.settings.top_threshold

        if self.competing_visible():
            self.hide_immediate()
        elif at_top or scrolling_up:
            self.show_immediate()
        elif force:
            self.hide_immediate()
        else:
            self._arm_hide()

        self.state.last_scroll_y = y

    def show_immediate(self) -> None:
        if self.competing_visible():
            self.hide_immediate()
            return
        self._cancel_hide()
        self._set_visible(True)

    def hide_immediate(self) -> None:
        self._cancel_hide()
        self._set_visible(False)

    def _arm_hide(self) -> None:
        if self._timer is not None:
            return
        self._timer = self.timers.call_later(self.settings.hide_delay, self._on_hide_timer)
        self.state.hide_timer_armed = True

    def _on_hide_timer(self) -> None:
        self._timer = None
        self.state.hide_timer_armed = False
        # hidden either way, whether or not the competing control appeared meanwhile
        self._set_visible(False)

    def _cancel_hide(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.state.hide_timer_armed = False

    def _set_visible(self, visible: bool) -> None:
        if self.state.top_nav_visible == visible:
            return
        self.state.top_nav_visible = visible
        logger.debug(f"Top navigation {'shown' if visible else 'hidden'}")
        for listener in self._listeners:
            listener(visible)
