"""Persisted slideshow index with cross-archive reference resolution."""

from __future__ import annotations

import logging
import secrets
import threading
import time
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Protocol

from slidelib.archives.models import Item
from slidelib.errors import ConflictError, NotFoundError
from slidelib.persistence import read_document, write_document

from .models import ResolvedSlideshow, SlideRef, Slideshow, SlideshowDocument, clean_name, coerce_refs

LOGGER = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(value: int) -> str:
    digits = []
    while True:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
        if value == 0:
            return "".join(reversed(digits))


def make_slideshow_id() -> str:
    """Return an identifier of the form ``ss_<millis base36>_<6 random chars>``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"ss_{_base36(int(time.time() * 1000))}_{suffix}"


class ItemProvider(Protocol):
    """Anything that can look up an item by archive key and id."""

    def resolve_item(self, archive_key: str, item_id: str) -> Optional[Item]: ...


class SlideshowIndex:
    """Read-modify-write access to the global slideshow document.

    Mutations are serialized by an in-process lock; other processes writing the
    same document are not coordinated.
    """

    def __init__(
        self,
        path: Path,
        *,
        normalize_archive: Callable[[Optional[str]], str] | None = None,
    ) -> None:
        self.path = path
        self._normalize_archive = normalize_archive or (lambda key: (key or "").strip())
        self.lock = threading.RLock()

    # ------------------------------------------------------------------ #
    # Documents                                                          #
    # ------------------------------------------------------------------ #

    def load(self) -> SlideshowDocument:
        document = read_document(self.path, SlideshowDocument, SlideshowDocument)
        for show in document.slideshows.values():
            show.slides = [self.normalize_ref(ref) for ref in show.slides]
        return document

    def save(self, document: SlideshowDocument) -> None:
        write_document(self.path, document)

    def normalize_ref(self, ref: SlideRef | dict[str, Any]) -> SlideRef:
        if isinstance(ref, dict):
            ref = SlideRef(archive=ref.get("archive") or "", id=ref.get("id") or "")
        return SlideRef(archive=self._normalize_archive(ref.archive), id=ref.id)

    # ------------------------------------------------------------------ #
    # Operations                                                         #
    # ------------------------------------------------------------------ #

    def create(self, name: Optional[str] = None) -> str:
        """Create an empty slideshow, make it current, and return its id."""
        with self.lock:
            document = self.load()
            slideshow_id = make_slideshow_id()
            while slideshow_id in document.slideshows:
                slideshow_id = make_slideshow_id()
            document.slideshows[slideshow_id] = Slideshow(name=clean_name(name))
            document.current_slideshow_id = slideshow_id
            self.save(document)
            return slideshow_id

    def rename(self, slideshow_id: str, name: Optional[str]) -> None:
        with self.lock:
            document = self.load()
            self._require(document, slideshow_id).name = clean_name(name)
            self.save(document)

    def delete(self, slideshow_id: str) -> str:
        """Delete a slideshow and return the id that is current afterwards.

        Raises:
            NotFoundError: If the slideshow does not exist.
            ConflictError: If it is the only remaining slideshow.
        """
        with self.lock:
            document = self.load()
            self._require(document, slideshow_id)
            if len(document.slideshows) <= 1:
                raise ConflictError("Cannot delete the only slideshow.")
            del document.slideshows[slideshow_id]
            if document.current_slideshow_id not in document.slideshows:
                document.current_slideshow_id = next(iter(document.slideshows))
            self.save(document)
            return document.current_slideshow_id

    def set_current(self, slideshow_id: str) -> None:
        with self.lock:
            document = self.load()
            self._require(document, slideshow_id)
            document.current_slideshow_id = slideshow_id
            self.save(document)

    def replace_order(self, slideshow_id: str, refs: Iterable[SlideRef | dict[str, Any]]) -> None:
        """Overwrite the reference list of a slideshow."""
        with self.lock:
            document = self.load()
            show = self._require(document, slideshow_id)
            show.slides = [self.normalize_ref(ref) for ref in coerce_refs(list(refs))]
            self.save(document)

    def add(self, slideshow_id: str, ref: SlideRef) -> bool:
        """Append ``ref`` unless already present; return whether it was added."""
        with self.lock:
            document = self.load()
            show = self._require(document, slideshow_id)
            ref = self.normalize_ref(ref)
            if ref in show.slides:
                return False
            show.slides.append(ref)
            self.save(document)
            return True

    def remove(self, slideshow_id: str, ref: SlideRef) -> bool:
        """Remove ``ref`` if present; return whether anything was removed."""
        with self.lock:
            document = self.load()
            show = self._require(document, slideshow_id)
            ref = self.normalize_ref(ref)
            remaining = [entry for entry in show.slides if entry != ref]
            if len(remaining) == len(show.slides):
                return False
            show.slides = remaining
            self.save(document)
            return True

    def toggle(self, slideshow_id: str, ref: SlideRef, selected: bool) -> bool:
        """Set membership of ``ref`` in a slideshow; return whether it changed."""
        if selected:
            return self.add(slideshow_id, ref)
        return self.remove(slideshow_id, ref)

    def remove_everywhere(self, ref: SlideRef) -> int:
        """Remove ``ref`` from every slideshow and return the number of removals."""
        with self.lock:
            document = self.load()
            ref = self.normalize_ref(ref)
            removed = 0
            for show in document.slideshows.values():
                before = len(show.slides)
                show.slides = [entry for entry in show.slides if entry != ref]
                removed += before - len(show.slides)
            if removed:
                self.save(document)
            return removed

    def referenced_archives(self, document: SlideshowDocument | None = None) -> set[str]:
        document = document or self.load()
        return {ref.archive for show in document.slideshows.values() for ref in show.slides}

    def resolve(
        self,
        provider: ItemProvider,
        document: SlideshowDocument | None = None,
    ) -> list[ResolvedSlideshow]:
        """Return every slideshow restricted to references that currently resolve.

        Unresolved references are omitted from the result but stay in the
        persisted document, so items that reappear are picked up again.
        """
        document = document or self.load()
        resolved: list[ResolvedSlideshow] = []
        for slideshow_id, show in document.slideshows.items():
            entry = ResolvedSlideshow(
                id=slideshow_id,
                name=show.name,
                current=slideshow_id == document.current_slideshow_id,
            )
            for ref in show.slides:
                item = provider.resolve_item(ref.archive, ref.id)
                if item is None:
                    LOGGER.debug(
                        "Slideshow %s: unresolved reference %s:%s", slideshow_id, ref.archive, ref.id
                    )
                    continue
                entry.slides.append(ref)
                entry.items.append(item)
            resolved.append(entry)
        return resolved

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _require(self, document: SlideshowDocument, slideshow_id: str) -> Slideshow:
        show = document.slideshows.get(slideshow_id)
        if show is None:
            raise NotFoundError(f"Slideshow not found: {slideshow_id}")
        return show


__all__ = ["SlideshowIndex", "ItemProvider", "make_slideshow_id"]
