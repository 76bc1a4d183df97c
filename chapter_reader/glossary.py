"""Glossary and content-image extraction from rendered chapter HTML."""

import logging
from typing import NamedTuple

from bs4 import BeautifulSoup, Tag

from .models import ContentImage, GlossTerm

logger = logging.getLogger(__name__)

GLOSS_CLASS = "gloss"
GLOSS_KEY_ATTR = "data-gloss-key"
READ_INDEX_ATTR = "data-read-index"

# Attributes checked for the tooltip body, first non-empty wins
_TEXT_ATTRS = ("data-tippy-content", "data-tip", "title")


def _attr(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return (value or "").strip()


def _tooltip_text(tag: Tag) -> str:
    for name in _TEXT_ATTRS:
        value = _attr(tag, name)
        if value:
            return value
    return tag.decode_contents().strip()


def extract_glossary(soup: BeautifulSoup) -> list[GlossTerm]:
    """Collect ``.gloss`` elements and stamp each with a stable key.

    A native ``title`` attribute is dropped once read so the browser does not
    show its own tooltip on top of ours.
    """
    terms = []
    for i, tag in enumerate(soup.select(f".{GLOSS_CLASS}")):
        key = f"gloss-{i}"
        text = _tooltip_text(tag)
        if tag.has_attr("title"):
            del tag["title"]
        tag[GLOSS_KEY_ATTR] = key
        terms.append(
            GlossTerm(
                key=key,
                text=text,
                image=_attr(tag, "data-img") or None,
                image_alt=_attr(tag, "data-img-alt"),
            )
        )
    return terms


def extract_images(soup: BeautifulSoup) -> list[ContentImage]:
    images = []
    for img in soup.find_all("img"):
        src = _attr(img, "src") or _attr(img, "data-src")
        if not src:
            continue
        images.append(ContentImage(src=src, alt=_attr(img, "alt")))
    return images


def stamp_read_targets(soup: BeautifulSoup) -> int:
    """Number the blocks whose reading is tracked; return how many there are.

    Every top-level block is one target, except that a block holding images
    contributes each image instead of itself.
    """
    count = 0
    for child in soup.find_all(recursive=False):
        imgs = child.find_all("img") if child.name != "img" else []
        for target in imgs or [child]:
            target[READ_INDEX_ATTR] = str(count)
            count += 1
    return count


class ChapterScan(NamedTuple):
    html: str
    terms: list[GlossTerm]
    images: list[ContentImage]
    read_targets: int


def scan_chapter(html: str) -> ChapterScan:
    """Return the annotated HTML plus its glossary terms, images and read targets."""
    soup = BeautifulSoup(html, "html.parser")
    terms = extract_glossary(soup)
    images = extract_images(soup)
    read_targets = stamp_read_targets(soup)
    with_images = sum(1 for t in terms if t.image)
    logger.debug(
        f"Scanned chapter: {len(terms)} glossary terms ({with_images} with images), "
        f"{len(images)} content images, {read_targets} read targets"
    )
    return ChapterScan(str(soup), terms, images, read_targets)
