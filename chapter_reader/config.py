"""Settings loaded from .env via pydantic-settings."""

from pathlib import Path
from urllib.parse import urljoin

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Site layout
    site_url: str = "http://localhost:8000/"  # URL of the reading page itself
    manifest_path: str = "chapters.json"
    chapters_dir: str = "chapters"

    # Durable state (last opened chapter, read targets per chapter)
    state_file: Path = Path(".chapter-reader-state.json")

    # Network
    http_timeout: float = 15.0
    probe_timeout: float = 3.0  # seconds per image candidate

    # Floating navigation
    top_threshold: float = 10.0  # px from the top that counts as "at top"
    hide_delay: float = 1.0  # seconds of sustained downward scroll before hiding
    settle_delays: tuple[float, ...] = (0.1, 0.5)  # re-evaluations after load
    frame_interval: float = 1 / 60

    # Read tracking
    read_line_ratio: float = 0.5  # a target counts as read once its top passes this viewport fraction
    bottom_slack: float = 6.0  # px from the document end that counts as "read to the end"

    # Image viewer
    zoom_scale: float = 2.0
    drag_threshold: float = 6.0  # px, Manhattan distance

    @property
    def page_dir_url(self) -> str:
        return urljoin(self.site_url, "./")

    @property
    def site_root_url(self) -> str:
        return urljoin(self.site_url, "/")

    @property
    def manifest_url(self) -> str:
        return urljoin(self.page_dir_url, self.manifest_path)

    def chapter_url(self, file: str) -> str:
        """Absolute URL of a chapter document (``chapters/<file>``)."""
        return urljoin(self.page_dir_url, f"{self.chapters_dir.strip('/')}/{file}")


settings = Settings()
