"""Interfaces of the page the controller drives.

The controller never touches a document directly. A host (a browser bridge,
a test double, or ``headless``) implements these protocols.
"""

from dataclasses import dataclass
from typing import Protocol

from .models import Rect


class Viewport(Protocol):
    @property
    def scroll_y(self) -> float: ...

    @property
    def inner_height(self) -> float: ...

    document_height: float | None  # None = unknown

    def scroll_to(self, y: float) -> None: ...


class ContentView(Protocol):
    def set_title(self, title: str) -> None: ...

    def show_status(self, message: str) -> None: ...

    def set_html(self, html: str) -> None: ...

    def read_target(self, index: int) -> "Region | None":
        """The element stamped with ``data-read-index=index``, if laid out."""


class Region(Protocol):
    def bounding_rect(self) -> Rect | None: ...


class ChapterPanel(Protocol):
    def close(self) -> None: ...


def region_in_view(region: Region | None, viewport: Viewport) -> bool:
    """True when *region* intersects the visible part of the viewport."""
    if region is None:
        return False
    rect = region.bounding_rect()
    if rect is None:
        return False
    return rect.top < viewport.inner_height and rect.bottom > 0


@dataclass(slots=True)
class Page:
    viewport: Viewport
    content: ContentView
    competing: Region | None = None  # the bottom navigation bar
    panel: ChapterPanel | None = None
