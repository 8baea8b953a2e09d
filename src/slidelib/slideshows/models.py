"""Slideshow document models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from slidelib.archives.models import Item

DEFAULT_SLIDESHOW_ID = "default"
DEFAULT_SLIDESHOW_NAME = "Current Slideshow"
UNTITLED_SLIDESHOW_NAME = "Untitled Slideshow"


def clean_name(value: Any) -> str:
    """Return a trimmed slideshow name, substituting the untitled label when blank."""
    text = "" if value is None else str(value).strip()
    return text or UNTITLED_SLIDESHOW_NAME


class SlideRef(BaseModel):
    """Reference to an item in a specific archive."""

    model_config = ConfigDict(frozen=True)

    archive: str
    id: str

    @field_validator("archive", "id", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()


def coerce_refs(raw: Any) -> List[SlideRef]:
    """Return valid references from ``raw``, silently dropping malformed entries."""
    if not isinstance(raw, (list, tuple)):
        return []
    refs: List[SlideRef] = []
    for entry in raw:
        if isinstance(entry, SlideRef):
            ref = entry
        elif isinstance(entry, dict):
            ref = SlideRef(archive=entry.get("archive") or "", id=entry.get("id") or "")
        else:
            continue
        if ref.id:
            refs.append(ref)
    return refs


class Slideshow(BaseModel):
    """Named ordered list of slide references."""

    name: str = DEFAULT_SLIDESHOW_NAME
    slides: List[SlideRef] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _clean_name(cls, value: Any) -> str:
        return clean_name(value)

    @field_validator("slides", mode="before")
    @classmethod
    def _clean_slides(cls, value: Any) -> List[SlideRef]:
        return coerce_refs(value)


class SlideshowDocument(BaseModel):
    """Persisted slideshows plus the pointer to the current one.

    Validation repairs the invariants: there is always at least one slideshow
    and the current pointer always names one of them.
    """

    slideshows: Dict[str, Slideshow] = Field(default_factory=dict)
    current_slideshow_id: str = DEFAULT_SLIDESHOW_ID

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {}
        data = dict(data)
        if "currentSlideshowId" in data and "current_slideshow_id" not in data:
            data["current_slideshow_id"] = data.pop("currentSlideshowId")
        else:
            data.pop("currentSlideshowId", None)
        shows = data.get("slideshows")
        if isinstance(shows, dict):
            data["slideshows"] = {
                str(key): value for key, value in shows.items() if isinstance(value, dict)
            }
        else:
            data["slideshows"] = {}
        current = data.get("current_slideshow_id")
        data["current_slideshow_id"] = "" if current is None else str(current).strip()
        return data

    @model_validator(mode="after")
    def _repair(self) -> "SlideshowDocument":
        if not self.slideshows:
            self.slideshows[DEFAULT_SLIDESHOW_ID] = Slideshow(name=DEFAULT_SLIDESHOW_NAME)
        if self.current_slideshow_id not in self.slideshows:
            self.current_slideshow_id = next(iter(self.slideshows))
        return self


@dataclass(slots=True)
class ResolvedSlideshow:
    """Slideshow restricted to references whose items currently exist.

    Attributes:
        id: Slideshow identifier.
        name: Display name.
        current: Whether this is the current slideshow.
        slides: References that resolved, in persisted order.
        items: Items aligned with ``slides``.
    """

    id: str
    name: str
    current: bool = False
    slides: list[SlideRef] = field(default_factory=list)
    items: list[Item] = field(default_factory=list)


__all__ = [
    "DEFAULT_SLIDESHOW_ID",
    "DEFAULT_SLIDESHOW_NAME",
    "UNTITLED_SLIDESHOW_NAME",
    "SlideRef",
    "Slideshow",
    "SlideshowDocument",
    "ResolvedSlideshow",
    "clean_name",
    "coerce_refs",
]
