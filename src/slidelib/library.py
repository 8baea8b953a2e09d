"""Orchestration facade tying archives, slideshows, thumbnails, and export together."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import quote

from slidelib.archives import (
    Archive,
    ArchiveRegistry,
    Item,
    MetadataRecord,
    MetadataStore,
    PurgedRecord,
    PurgeResult,
    encode_id,
)
from slidelib.archives.identity import decode_id
from slidelib.config.models import SlideLibConfig
from slidelib.errors import InvalidIdError
from slidelib.export import ExportResult, SlideshowExporter
from slidelib.slideshows import ResolvedSlideshow, SlideRef, SlideshowIndex
from slidelib.thumbnails import ThumbnailCache

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ArchiveItems:
    """Display-ready items of one reconciled archive."""

    archive: Archive
    items: dict[str, Item] = field(default_factory=dict)
    sources: dict[str, Path] = field(default_factory=dict)


class ItemSets:
    """Item provider that reconciles archives the first time they are referenced."""

    def __init__(self, library: "Library", *, thumbnails: bool = True) -> None:
        self._library = library
        self._thumbnails = thumbnails
        self._sets: dict[str, ArchiveItems] = {}

    def archive_items(self, archive_key: Optional[str]) -> ArchiveItems:
        key = self._library.registry.normalize_key(archive_key)
        if key not in self._sets:
            self._sets[key] = self._library.collect(key, thumbnails=self._thumbnails)
        return self._sets[key]

    def resolve_item(self, archive_key: str, item_id: str) -> Optional[Item]:
        return self.archive_items(archive_key).items.get(item_id)

    def source_for(self, item: Item) -> Optional[Path]:
        return self.archive_items(item.archive).sources.get(item.id)


@dataclass(slots=True)
class LibraryState:
    """Snapshot returned by a state read.

    Attributes:
        active_archive: Key of the archive the items belong to.
        archives: Configured archives as ``{"key", "label"}`` entries.
        items: Items of the active archive in scan order.
        slideshows: Every slideshow restricted to resolvable references.
        current_slideshow_id: Identifier of the current slideshow.
    """

    active_archive: str
    archives: list[dict[str, str]]
    items: list[Item]
    slideshows: list[ResolvedSlideshow]
    current_slideshow_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "active_archive": self.active_archive,
            "archives": self.archives,
            "items": [item.model_dump(mode="json") for item in self.items],
            "slideshows": [
                {
                    "id": show.id,
                    "name": show.name,
                    "current": show.current,
                    "slides": [ref.model_dump(mode="json") for ref in show.slides],
                }
                for show in self.slideshows
            ],
            "current_slideshow_id": self.current_slideshow_id,
        }


class Library:
    """Entry point for every archive operation exposed to users."""

    def __init__(
        self,
        registry: ArchiveRegistry,
        slideshows: SlideshowIndex,
        thumbnails: ThumbnailCache,
        exporter: SlideshowExporter,
        *,
        background_workers: int = 1,
    ) -> None:
        self.registry = registry
        self.slideshows = slideshows
        self.thumbnails = thumbnails
        self.exporter = exporter
        self._stores: dict[str, MetadataStore] = {}
        self._stores_lock = threading.Lock()
        self._background = ThreadPoolExecutor(
            max_workers=background_workers, thread_name_prefix="slidelib-tasks"
        )

    @classmethod
    def from_config(cls, config: SlideLibConfig) -> "Library":
        """Build a library from resolved configuration."""
        registry = ArchiveRegistry.from_settings(config.library)
        data_dir = Path(config.library.data_dir).expanduser()
        index = SlideshowIndex(
            data_dir / config.library.slideshows_file,
            normalize_archive=registry.normalize_key,
        )
        thumbnails = ThumbnailCache(
            max_edge=config.thumbnails.max_edge,
            workers=config.thumbnails.workers,
            jpeg_quality=config.thumbnails.jpeg_quality,
        )
        return cls(registry, index, thumbnails, SlideshowExporter(config.export))

    # ------------------------------------------------------------------ #
    # Archives and state                                                 #
    # ------------------------------------------------------------------ #

    def store(self, archive_key: Optional[str]) -> MetadataStore:
        """Return the metadata store of an archive, creating it on first use."""
        archive = self.registry.get(archive_key)
        with self._stores_lock:
            store = self._stores.get(archive.key)
            if store is None:
                store = MetadataStore(archive)
                self._stores[archive.key] = store
            return store

    def collect(self, archive_key: Optional[str], *, thumbnails: bool = True) -> ArchiveItems:
        """Reconcile one archive and build its display records."""
        store = self.store(archive_key)
        archive = store.archive
        result = store.reconcile()
        collected = ArchiveItems(archive=archive)
        for entry in result.files:
            item_id = encode_id(entry.relative_path)
            record = result.document.metadata.get(item_id) or MetadataRecord.default_for(
                entry.relative_path
            )
            thumb_url = ""
            if thumbnails:
                thumb_url = self.thumbnails.thumbnail_url(
                    archive, entry.path, entry.relative_path, entry.mtime
                )
            collected.items[item_id] = Item(
                id=item_id,
                archive=archive.key,
                relative_path=entry.relative_path,
                url=f"/library/{quote(archive.key)}/{quote(entry.relative_path, safe='/')}",
                thumb_url=thumb_url,
                title=record.display_title(entry.relative_path),
                title_kind=record.title.kind,
                artist=record.artist,
                year=record.year,
                medium=record.medium,
                gallery=record.gallery,
                size=record.size,
                tags=list(record.tags),
                modified_at=entry.modified_at,
            )
            collected.sources[item_id] = entry.path
        return collected

    def build_state(self, archive_key: Optional[str] = None) -> LibraryState:
        """Reconcile the active archive and resolve every slideshow against it.

        Archives referenced by slideshows are reconciled as well so that
        cross-archive references resolve.
        """
        provider = ItemSets(self)
        active = provider.archive_items(archive_key)
        document = self.slideshows.load()
        for key in sorted(self.slideshows.referenced_archives(document)):
            provider.archive_items(key)
        resolved = self.slideshows.resolve(provider, document)
        return LibraryState(
            active_archive=active.archive.key,
            archives=[{"key": archive.key, "label": archive.label} for archive in self.registry],
            items=list(active.items.values()),
            slideshows=resolved,
            current_slideshow_id=document.current_slideshow_id,
        )

    # ------------------------------------------------------------------ #
    # Items                                                              #
    # ------------------------------------------------------------------ #

    def update_item(
        self, archive_key: Optional[str], item_id: str, fields: Mapping[str, Any]
    ) -> MetadataRecord:
        return self.store(archive_key).update(item_id, fields)

    def purge_item(
        self,
        archive_key: Optional[str],
        item_id: str,
        metadata_override: Mapping[str, Any] | None = None,
    ) -> PurgeResult:
        """Move an item out of its archive and erase every reference to it.

        Raises:
            NotFoundError: If the item's file does not exist.
        """
        store = self.store(archive_key)
        archive = store.archive
        with store.lock:
            relative, source = store.resolve_path(item_id)
            purged_path = store.move_to_purge(relative, source)
            persisted = store.remove_record(item_id)
        if metadata_override is not None:
            snapshot = MetadataRecord.from_fields(metadata_override, previous=persisted)
        else:
            snapshot = persisted or MetadataRecord.default_for(relative)

        removed = self.slideshows.remove_everywhere(SlideRef(archive=archive.key, id=item_id))
        self.thumbnails.remove(archive, relative)
        store.append_purge_record(
            PurgedRecord(
                id=item_id,
                original_path=relative,
                purged_path=purged_path,
                metadata=snapshot,
            )
        )
        LOGGER.info(
            "Purged %s:%s to %s (%d slideshow reference(s) removed).",
            archive.key,
            relative,
            purged_path,
            removed,
        )
        return PurgeResult(purged_path=purged_path, removed_from_slides=removed)

    def make_ref(self, archive_key: Optional[str], item_id: str) -> SlideRef:
        return SlideRef(archive=self.registry.normalize_key(archive_key), id=item_id)

    def ref_for_path(self, archive_key: Optional[str], relative_path: str) -> SlideRef:
        """Return the reference of the item stored at ``relative_path``."""
        return self.make_ref(archive_key, encode_id(relative_path))

    @staticmethod
    def describe_id(item_id: str) -> str:
        """Return the relative path behind ``item_id``, or the id itself if it is malformed."""
        try:
            return decode_id(item_id)
        except InvalidIdError:
            return item_id

    # ------------------------------------------------------------------ #
    # Slideshows                                                         #
    # ------------------------------------------------------------------ #

    def create_slideshow(self, name: Optional[str] = None) -> str:
        return self.slideshows.create(name)

    def rename_slideshow(self, slideshow_id: str, name: Optional[str]) -> None:
        self.slideshows.rename(slideshow_id, name)

    def delete_slideshow(self, slideshow_id: str) -> str:
        return self.slideshows.delete(slideshow_id)

    def set_current_slideshow(self, slideshow_id: str) -> None:
        self.slideshows.set_current(slideshow_id)

    def reorder_slideshow(self, slideshow_id: str, refs: Iterable[SlideRef]) -> None:
        self.slideshows.replace_order(slideshow_id, refs)

    def toggle_slide(self, slideshow_id: str, ref: SlideRef, selected: bool) -> bool:
        return self.slideshows.toggle(slideshow_id, ref, selected)

    # ------------------------------------------------------------------ #
    # Export                                                             #
    # ------------------------------------------------------------------ #

    def export_slideshow(
        self,
        slideshow_id: Optional[str] = None,
        archive_key: Optional[str] = None,
    ) -> ExportResult:
        """Render a slideshow, the current one by default, to a PDF document.

        Raises:
            EmptyOrMissingSlideshowError: If the slideshow is unknown or has no resolvable slides.
        """
        provider = ItemSets(self, thumbnails=False)
        provider.archive_items(archive_key)
        document = self.slideshows.load()
        target_id = slideshow_id or document.current_slideshow_id
        target: ResolvedSlideshow | None = None
        for show in self.slideshows.resolve(provider, document):
            if show.id == target_id:
                target = show
                break
        return self.exporter.render(target, provider.source_for)

    # ------------------------------------------------------------------ #
    # Background work                                                    #
    # ------------------------------------------------------------------ #

    def schedule_state(self, archive_key: Optional[str] = None) -> Future[LibraryState]:
        return self._background.submit(self.build_state, archive_key)

    def schedule_export(
        self,
        slideshow_id: Optional[str] = None,
        archive_key: Optional[str] = None,
    ) -> Future[ExportResult]:
        return self._background.submit(self.export_slideshow, slideshow_id, archive_key)

    def close(self, wait: bool = True) -> None:
        """Stop background executors, optionally draining in-flight work."""
        self._background.shutdown(wait=wait)
        if wait:
            self.thumbnails.wait()
        self.thumbnails.shutdown(wait=wait)

    def __enter__(self) -> "Library":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["Library", "LibraryState", "ArchiveItems", "ItemSets"]
