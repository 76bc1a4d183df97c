"""Full-screen image viewer: click to zoom, drag to pan while zoomed."""

import logging

from .models import ContentImage, ViewerTransform

logger = logging.getLogger(__name__)


class ImageViewer:
    def __init__(self, zoom_scale: float = 2.0, drag_threshold: float = 6.0) -> None:
        self.zoom_scale = zoom_scale
        self.drag_threshold = drag_threshold
        self.visible = False
        self.src = ""
        self.alt = ""
        self.zoomed = False
        self.offset_x = 0.0
        self.offset_y = 0.0
        self.images: list[ContentImage] = []
        self._pressed = False
        self._dragged = False
        self._last = (0.0, 0.0)

    @property
    def transform(self) -> ViewerTransform:
        return ViewerTransform(
            x=self.offset_x,
            y=self.offset_y,
            scale=self.zoom_scale if self.zoomed else 1.0,
        )

    def _reset(self) -> None:
        self.zoomed = False
        self.offset_x = self.offset_y = 0.0
        self._pressed = False
        self._dragged = False

    def open(self, src: str, alt: str = "") -> None:
        self.src = src
        self.alt = alt or ""
        self.visible = True
        self._reset()
        logger.debug(f"Viewer opened: {src}")

    def close(self) -> None:
        if not self.visible:
            return
        self.visible = False
        self.src = ""
        self.alt = ""
        self._reset()

    # ── Pointer handling ────────────────────────────────────

    def press(self, x: float, y: float) -> None:
        if not self.visible:
            return
        self._pressed = True
        self._dragged = False
        self._last = (x, y)

    def move(self, x: float, y: float) -> None:
        # Panning only applies while zoomed
        if not self._pressed or not self.zoomed:
            return
        dx = x - self._last[0]
        dy = y - self._last[1]
        if not self._dragged and abs(dx) + abs(dy) >= self.drag_threshold:
            self._dragged = True
        if self._dragged:
            self._last = (x, y)
            self.offset_x += dx
            self.offset_y += dy

    def release(self) -> bool:
        """End a press. Returns True when it toggled zoom.

        A press that turned into a drag never toggles, so letting go of the
        image after panning leaves the zoom level alone.
        """
        if not self._pressed:
            return False
        self._pressed = False
        if self._dragged:
            self._dragged = False
            return False
        self.zoomed = not self.zoomed
        if not self.zoomed:
            self.offset_x = self.offset_y = 0.0
        return True

    def backdrop_click(self) -> None:
        self.close()

    def handle_key(self, key: str) -> bool:
        if key == "Escape" and self.visible:
            self.close()
            return True
        return False

    # ── Content images ──────────────────────────────────────

    def bind_images(self, images: list[ContentImage]) -> None:
        self.images = list(images)

    def open_content_image(self, index: int) -> bool:
        if index < 0 or index >= len(self.images):
            return False
        image = self.images[index]
        self.open(image.src, image.alt)
        return True
