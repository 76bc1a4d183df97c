"""Tests for chapter_reader.storage -- durable/session stores and safe access."""

from pathlib import Path

from chapter_reader.storage import (
    LAST_CHAPTER_KEY,
    JsonFileStore,
    SessionStore,
    safe_get,
    safe_remove,
    safe_set,
    scroll_key,
)


class BrokenStore:
    """Store whose every access fails, like storage disabled by the user."""

    def get(self, key):
        raise OSError("storage disabled")

    def set(self, key, value):
        raise OSError("storage disabled")

    def remove(self, key):
        raise OSError("storage disabled")


class TestSessionStore:
    def test_set_get_remove(self):
        store = SessionStore()
        store.set(scroll_key("01.md"), "420")
        assert store.get("scroll:01.md") == "420"
        assert "scroll:01.md" in store

        store.remove("scroll:01.md")
        assert store.get("scroll:01.md") is None
        store.remove("scroll:01.md")  # removing twice is fine


class TestJsonFileStore:
    def test_round_trip_survives_new_instance(self, tmp_path: Path):
        path = tmp_path / "state" / "reader.json"
        JsonFileStore(path).set(LAST_CHAPTER_KEY, "03.md")

        assert path.exists()
        assert JsonFileStore(path).get(LAST_CHAPTER_KEY) == "03.md"

    def test_missing_file_reads_as_empty(self, tmp_path: Path):
        assert JsonFileStore(tmp_path / "none.json").get(LAST_CHAPTER_KEY) is None

    def test_remove(self, tmp_path: Path):
        store = JsonFileStore(tmp_path / "s.json")
        store.set("a", "1")
        store.set("b", "2")
        store.remove("a")
        assert store.get("a") is None
        assert store.get("b") == "2"


class TestSafeAccess:
    def test_failures_are_swallowed(self):
        broken = BrokenStore()
        assert safe_get(broken, "k") is None
        assert safe_set(broken, "k", "v") is False
        safe_remove(broken, "k")

    def test_corrupt_file_degrades_to_first_visit(self, tmp_path: Path):
        path = tmp_path / "s.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonFileStore(path)
        assert safe_get(store, LAST_CHAPTER_KEY) is None

    def test_non_object_file_degrades(self, tmp_path: Path):
        path = tmp_path / "s.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert safe_get(JsonFileStore(path), LAST_CHAPTER_KEY) is None

    def test_none_store(self):
        assert safe_get(None, "k") is None
        assert safe_set(None, "k", "v") is False
        safe_remove(None, "k")
