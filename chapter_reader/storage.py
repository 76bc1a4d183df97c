"""Key-value stores backing last-chapter memory, read progress and scroll carry-over.

Two scopes exist:

- a *durable* store that survives restarts, kept as a small JSON file;
- a *session* store that survives reloads but not the end of the browsing
  session, kept in memory and handed to every app instance of that session.

Access failures never propagate. ``safe_get``/``safe_set``/``safe_remove``
log them and degrade to "first visit" behaviour.
"""

import json
import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

LAST_CHAPTER_KEY = "last-chapter-file"


def scroll_key(file: str) -> str:
    return f"scroll:{file}"


def read_key(file: str) -> str:
    return f"read:{file}"


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class SessionStore:
    """In-memory store scoped to one browsing session."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileStore:
    """Durable store persisted as a flat JSON object on disk."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        raw = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return {str(k): str(v) for k, v in raw.items()}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8"
        )

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = str(value)
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


def safe_get(store: KeyValueStore | None, key: str) -> str | None:
    if store is None:
        return None
    try:
        return store.get(key)
    except (OSError, ValueError) as e:
        logger.debug(f"Storage read failed for {key!r}: {e}")
        return None


def safe_set(store: KeyValueStore | None, key: str, value: str) -> bool:
    if store is None:
        return False
    try:
        store.set(key, value)
        return True
    except (OSError, ValueError) as e:
        logger.debug(f"Storage write failed for {key!r}: {e}")
        return False


def safe_remove(store: KeyValueStore | None, key: str) -> None:
    if store is None:
        return
    try:
        store.remove(key)
    except (OSError, ValueError) as e:
        logger.debug(f"Storage delete failed for {key!r}: {e}")
