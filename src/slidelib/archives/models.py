"""Data models for archive metadata, discovered items, and purge records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from .discovery import ScannedFile

TEXT_FIELDS = ("artist", "year", "medium", "gallery", "size")


def dedupe_tags(tags: Iterable[Any]) -> List[str]:
    """Trim tags and drop empties and exact duplicates, keeping first-seen order."""
    seen: set[str] = set()
    result: List[str] = []
    for tag in tags:
        value = str(tag).strip()
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def title_from_path(relative_path: str) -> str:
    """Return the filename stem used as the derived title."""
    return PurePosixPath(relative_path).stem


class TitleField(BaseModel):
    """Title value tagged with its provenance.

    ``derived`` titles mirror the filename stem and were never set by the user;
    ``explicit`` titles were set by the user, possibly to the empty string.
    """

    kind: Literal["derived", "explicit"] = "derived"
    value: str = ""


class MetadataRecord(BaseModel):
    """User-editable metadata for one item."""

    title: TitleField = Field(default_factory=TitleField)
    artist: str = ""
    year: str = ""
    medium: str = ""
    gallery: str = ""
    size: str = ""
    tags: List[str] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: Any) -> Any:
        # Plain-string titles predate provenance tracking; they were always user-set.
        if value is None:
            return TitleField()
        if isinstance(value, str):
            return TitleField(kind="explicit", value=value.strip())
        return value

    @field_validator("artist", "year", "medium", "gallery", "size", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> List[str]:
        if not isinstance(value, (list, tuple)):
            return []
        return dedupe_tags(value)

    @classmethod
    def default_for(cls, relative_path: str) -> "MetadataRecord":
        """Return the record assigned to a newly discovered file."""
        return cls(title=TitleField(kind="derived", value=title_from_path(relative_path)))

    @classmethod
    def from_fields(
        cls, fields: Mapping[str, Any], *, previous: Optional["MetadataRecord"] = None
    ) -> "MetadataRecord":
        """Build a replacement record from user-supplied fields.

        A supplied ``title`` becomes explicit even when empty; an omitted title
        keeps the provenance of ``previous``.
        """
        if "title" in fields:
            raw_title = fields["title"]
            if isinstance(raw_title, (TitleField, Mapping)):
                title = TitleField.model_validate(raw_title)
            else:
                title = TitleField(
                    kind="explicit", value="" if raw_title is None else str(raw_title).strip()
                )
        elif previous is not None:
            title = previous.title.model_copy()
        else:
            title = TitleField()

        payload: Dict[str, Any] = {key: fields.get(key, "") for key in TEXT_FIELDS}
        payload["tags"] = fields.get("tags") or []
        return cls(title=title, **payload)

    def display_title(self, relative_path: str) -> str:
        """Return the title shown to users for the item at ``relative_path``."""
        if self.title.kind == "derived":
            return title_from_path(relative_path)
        return self.title.value

    def is_blank(self) -> bool:
        """Return whether no user-entered data is present."""
        if self.title.kind == "explicit" and self.title.value:
            return False
        return not self.tags and not any(getattr(self, name) for name in TEXT_FIELDS)


class MetadataDocument(BaseModel):
    """Persisted ``id -> metadata`` mapping for one archive."""

    metadata: Dict[str, MetadataRecord] = Field(default_factory=dict)


class Item(BaseModel):
    """Display-ready record for one discovered image file."""

    id: str
    archive: str
    relative_path: str
    url: str
    thumb_url: str = ""
    title: str = ""
    title_kind: Literal["derived", "explicit"] = "derived"
    artist: str = ""
    year: str = ""
    medium: str = ""
    gallery: str = ""
    size: str = ""
    tags: List[str] = Field(default_factory=list)
    modified_at: datetime


class PurgedRecord(BaseModel):
    """Append-only provenance entry written when an item is purged."""

    id: str
    original_path: str
    purged_path: str
    purged_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: MetadataRecord = Field(default_factory=MetadataRecord)


class PurgeLog(BaseModel):
    """Persisted list of purge records for one archive."""

    items: List[PurgedRecord] = Field(default_factory=list)


@dataclass(slots=True)
class ReconcileResult:
    """Changes applied to a metadata store by one reconciliation pass.

    Attributes:
        document: Metadata document after reconciliation.
        files: Image files discovered by the scan.
        added: Ids that received default records.
        removed: Ids whose records were pruned.
        enriched: Ids filled from field-bundle catalogs.
    """

    document: MetadataDocument
    files: list[ScannedFile] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    enriched: list[str] = field(default_factory=list)

    @property
    def paths(self) -> list[str]:
        return [entry.relative_path for entry in self.files]

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed or self.enriched)


@dataclass(slots=True)
class PurgeResult:
    """Outcome of purging one item.

    Attributes:
        purged_path: Path of the file relative to the purge directory.
        removed_from_slides: Number of slideshow references removed.
    """

    purged_path: str
    removed_from_slides: int


__all__ = [
    "TitleField",
    "MetadataRecord",
    "MetadataDocument",
    "Item",
    "PurgedRecord",
    "PurgeLog",
    "ReconcileResult",
    "PurgeResult",
    "dedupe_tags",
    "title_from_path",
]
