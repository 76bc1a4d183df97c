"""Pydantic models for chapters, navigation and glossary state."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Manifest models ---

class Chapter(BaseModel):
    """One manifest entry. Order in the manifest is the navigation order."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    file: str
    title: str = ""
    done: bool = True  # False = listed but not yet available
    blur: bool = True  # False = no read tracking for this chapter

    @field_validator("done", "blur", mode="before")
    @classmethod
    def only_false_disables(cls, v):
        """Only a literal JSON false turns a flag off."""
        return v is not False


class ChapterListEntry(BaseModel):
    index: int
    label: str
    clickable: bool


# --- Navigation models ---

class NavigationState(BaseModel):
    current_index: int = -1  # -1 = nothing loaded yet


class NavControl(BaseModel):
    """A prev/next button as the page should render it."""
    role: Literal["prev", "next"]
    placement: Literal["top", "bottom"]
    target_index: int | None = None
    label: str = ""  # title of the target chapter, shown as the button tooltip
    disabled: bool = True


class VisibilityState(BaseModel):
    last_scroll_y: float = 0.0
    hide_timer_armed: bool = False
    top_nav_visible: bool = False


class Rect(BaseModel):
    """Vertical extent of an element relative to the viewport top."""
    top: float
    bottom: float


# --- Glossary / image models ---

class GlossTerm(BaseModel):
    key: str  # value of the data-gloss-key attribute stamped on the element
    text: str = ""  # tooltip body (HTML)
    image: str | None = None  # raw data-img reference
    image_alt: str = ""


class ContentImage(BaseModel):
    src: str
    alt: str = ""


class TooltipContent(BaseModel):
    text: str = ""
    image_url: str | None = None
    image_alt: str = ""


class ViewerTransform(BaseModel):
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0

    def css(self) -> str:
        return f"translate({self.x:g}px, {self.y:g}px) scale({self.scale:g})"


# --- Persisted state ---

class ScrollSnapshot(BaseModel):
    file: str
    offset: float = Field(default=0.0, ge=0.0)
