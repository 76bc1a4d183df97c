"""Chapter manifest loading and eligibility scans."""

import json
import logging

import httpx
from pydantic import ValidationError

from .errors import FetchError, ParseError
from .models import Chapter, ChapterListEntry

logger = logging.getLogger(__name__)

# Sent with manifest and chapter requests so edits show up without a hard reload
NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}


async def fetch_text(client: httpx.AsyncClient, url: str) -> str:
    """GET *url* bypassing caches; raise FetchError on any failure."""
    try:
        response = await client.get(url, headers=NO_CACHE_HEADERS)
    except httpx.HTTPError as e:
        raise FetchError(f"{type(e).__name__}: {e}") from e
    if not response.is_success:
        raise FetchError(f"HTTP {response.status_code}")
    return response.text


class ChapterStore:
    """Ordered chapter list. Indices stay absolute even for undone entries."""

    def __init__(self, chapters: list[Chapter] | None = None) -> None:
        self.chapters: list[Chapter] = list(chapters or [])

    def __len__(self) -> int:
        return len(self.chapters)

    def __getitem__(self, index: int) -> Chapter:
        return self.chapters[index]

    @staticmethod
    def parse(raw: str) -> list[Chapter]:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ParseError(f"Manifest is not valid JSON: {e}") from e
        if not isinstance(data, list):
            raise ParseError("Manifest must be a JSON array")
        chapters = []
        for i, entry in enumerate(data):
            if not isinstance(entry, dict):
                raise ParseError(f"Manifest entry {i} is not an object")
            try:
                chapters.append(Chapter(**entry))
            except (ValidationError, TypeError) as e:
                raise ParseError(f"Manifest entry {i} is invalid: {e}") from e
        return chapters

    async def load(self, client: httpx.AsyncClient, manifest_url: str) -> list[Chapter]:
        raw = await fetch_text(client, manifest_url)
        self.chapters = self.parse(raw)
        undone = sum(1 for c in self.chapters if not c.done)
        logger.info(
            f"Loaded manifest: {len(self.chapters)} chapters ({undone} not yet available)"
        )
        return self.chapters

    def is_eligible(self, index: int) -> bool:
        if index < 0 or index >= len(self.chapters):
            return False
        return self.chapters[index].done

    def find_prev_eligible(self, start: int) -> int | None:
        """Scan backwards from *start* (inclusive) for an eligible chapter."""
        for i in range(min(start, len(self.chapters) - 1), -1, -1):
            if self.chapters[i].done:
                return i
        return None

    def find_next_eligible(self, start: int) -> int | None:
        """Scan forwards from *start* (inclusive) for an eligible chapter."""
        for i in range(max(start, 0), len(self.chapters)):
            if self.chapters[i].done:
                return i
        return None

    def find_first_eligible(self) -> int | None:
        return self.find_next_eligible(0)

    def index_of(self, file: str) -> int | None:
        """Index of the eligible chapter stored under *file*, if any."""
        for i, chapter in enumerate(self.chapters):
            if chapter.file == file and chapter.done:
                return i
        return None

    def label(self, index: int) -> str:
        return self.chapters[index].title or f"Chapter {index + 1}"

    def listing(self) -> list[ChapterListEntry]:
        return [
            ChapterListEntry(index=i, label=self.label(i), clickable=c.done)
            for i, c in enumerate(self.chapters)
        ]
