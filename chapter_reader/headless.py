"""In-memory page used by the CLI and by tests."""

from .models import Rect
from .page import Page


class HeadlessViewport:
    def __init__(self, inner_height: float = 800.0, document_height: float | None = None) -> None:
        self._scroll_y = 0.0
        self._inner_height = inner_height
        self.document_height = document_height

    @property
    def scroll_y(self) -> float:
        return self._scroll_y

    @property
    def inner_height(self) -> float:
        return self._inner_height

    def scroll_to(self, y: float) -> None:
        y = max(0.0, float(y))
        if self.document_height is not None:
            y = min(y, max(0.0, self.document_height - self._inner_height))
        self._scroll_y = y


class HeadlessContent:
    def __init__(self) -> None:
        self.title = ""
        self.status: str | None = None
        self.html = ""
        self.targets: dict[int, FixedRegion] = {}

    def set_title(self, title: str) -> None:
        self.title = title

    def show_status(self, message: str) -> None:
        self.status = message
        self.html = ""
        self.targets = {}

    def set_html(self, html: str) -> None:
        self.status = None
        self.html = html
        self.targets = {}

    def read_target(self, index: int) -> "FixedRegion | None":
        return self.targets.get(index)

    def place_target(self, index: int, top: float, height: float) -> None:
        """Lay out read target *index* at a viewport-relative position."""
        region = self.targets.setdefault(index, FixedRegion())
        region.place(top, height)


class FixedRegion:
    """A region whose viewport-relative rect is set by the host."""

    def __init__(self, rect: Rect | None = None) -> None:
        self.rect = rect

    def bounding_rect(self) -> Rect | None:
        return self.rect

    def place(self, top: float, height: float) -> None:
        self.rect = Rect(top=top, bottom=top + height)


class HeadlessPanel:
    def __init__(self) -> None:
        self.is_open = False

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False


def headless_page(inner_height: float = 800.0) -> Page:
    return Page(
        viewport=HeadlessViewport(inner_height=inner_height),
        content=HeadlessContent(),
        competing=FixedRegion(),
        panel=HeadlessPanel(),
    )
