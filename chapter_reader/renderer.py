"""Markdown rendering collaborator.

The controller only needs ``render(text) -> html``; the default adapter wraps
markdown-it-py with raw HTML enabled so authored glossary spans survive.
"""

from typing import Protocol

from markdown_it import MarkdownIt

RENDERER_MISSING_HTML = "<p>Error: markdown renderer is not available</p>"


class Renderer(Protocol):
    def render(self, text: str) -> str: ...


class MarkdownItRenderer:
    def __init__(self) -> None:
        self._md = MarkdownIt(
            "commonmark",
            {"html": True, "typographer": True},
        ).enable("table").enable("strikethrough")

    def render(self, text: str) -> str:
        return self._md.render(text)


def render_chapter(renderer: Renderer | None, text: str) -> str:
    if renderer is None:
        return RENDERER_MISSING_HTML
    return renderer.render(text)
