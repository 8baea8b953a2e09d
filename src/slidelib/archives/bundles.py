"""Field-bundle catalogs used to prefill metadata for excursion photos.

Field bundles are JSON files named ``photo_metadata_<excursion>.json``. Each
holds either ``{"items": [{"id": ..., "title": ...}, ...]}`` or a mapping of
image filename to metadata. Archive files named ``FB_<excursion>_IMG_<n>.jpg``
are matched against the bundle for their excursion.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Iterable, Optional

from .models import MetadataRecord

LOGGER = logging.getLogger(__name__)

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")
_ID_KEYS = ("id", "imageId", "photoId", "fileId", "filename", "fileName")


def normalize_slug(value: str) -> str:
    """Return a lower-case underscore slug."""
    return _SLUG_STRIP.sub("_", value.lower()).strip("_")


def split_excursion_stem(stem: str) -> tuple[str, str]:
    """Split ``FB_<excursion>_IMG_<n>`` into ``(excursion, image part)``."""
    if not stem.startswith("FB_"):
        return "", ""
    rest = stem[3:]
    marker = rest.find("_IMG_")
    if marker >= 0:
        return rest[:marker], "IMG_" + rest[marker + len("_IMG_") :]
    cut = rest.rfind("_")
    if cut <= 0:
        return rest, ""
    return rest[:cut], rest[cut + 1 :]


@dataclass(slots=True)
class FieldBundle:
    """Metadata entries from one bundle file, keyed by image filename."""

    source: str
    excursion_slug: str
    entries: dict[str, MetadataRecord] = field(default_factory=dict)

    def lookup(self, candidates: Iterable[str]) -> Optional[MetadataRecord]:
        for candidate in candidates:
            hit = self.entries.get(candidate)
            if hit is not None:
                return hit
        return None


def _bundle_entries(payload: Any) -> list[tuple[str, dict[str, Any]]]:
    entries: list[tuple[str, dict[str, Any]]] = []
    if not isinstance(payload, dict):
        return entries
    items = payload.get("items")
    if isinstance(items, list):
        for item in items:
            if not isinstance(item, dict):
                continue
            raw_id = next((item[key] for key in _ID_KEYS if item.get(key)), "")
            identifier = str(raw_id).strip()
            if identifier:
                entries.append((identifier, item))
        return entries
    for key, value in payload.items():
        if isinstance(value, dict):
            entries.append((str(key).strip(), value))
    return entries


class FieldBundleCatalog:
    """Lazily loaded set of field bundles from one directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self._bundles: list[FieldBundle] | None = None

    def bundles(self) -> list[FieldBundle]:
        if self._bundles is None:
            self._bundles = self._load()
        return self._bundles

    def match(self, relative_path: str) -> Optional[MetadataRecord]:
        """Return bundle metadata for the image at ``relative_path``, if any."""
        name = PurePosixPath(relative_path).name
        excursion, _ = split_excursion_stem(PurePosixPath(name).stem)
        slug = normalize_slug(excursion)
        if not name or not slug:
            return None
        for bundle in self.bundles():
            if bundle.excursion_slug != slug:
                continue
            hit = bundle.lookup((name, name.lower()))
            if hit is not None:
                return hit
        return None

    def _load(self) -> list[FieldBundle]:
        if not self.directory.is_dir():
            return []
        bundles: list[FieldBundle] = []
        for path in sorted(self.directory.iterdir()):
            if not path.is_file() or path.suffix.lower() != ".json":
                continue
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                LOGGER.warning("Ignoring unreadable field bundle %s: %s", path, exc)
                continue
            slug = normalize_slug(re.sub(r"^photo_metadata_", "", path.stem, flags=re.IGNORECASE))
            bundle = FieldBundle(source=path.name, excursion_slug=slug)
            for identifier, raw in _bundle_entries(payload):
                record = MetadataRecord.from_fields(raw)
                bundle.entries[identifier] = record
                bundle.entries[identifier.lower()] = record
            if bundle.entries:
                bundles.append(bundle)
        return bundles


__all__ = ["FieldBundleCatalog", "FieldBundle", "normalize_slug", "split_excursion_stem"]
