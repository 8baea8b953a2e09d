"""Configured archives and their on-disk locations."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional

from slidelib.config.models import ArchiveSettings, LibrarySettings
from slidelib.errors import NotFoundError


@dataclass(frozen=True, slots=True)
class Archive:
    """Resolved filesystem layout of one archive.

    Attributes:
        key: Stable identifier used in slideshow references.
        label: Human-readable archive name.
        library_dir: Root directory of the image files.
        metadata_file: JSON document storing per-item metadata.
        thumbs_dir: Directory of generated thumbnails.
        purged_dir: Holding directory for purged files.
        purged_log: JSON document recording purged items.
        bundle_dir: Optional directory of field-bundle catalogs.
    """

    key: str
    label: str
    library_dir: Path
    metadata_file: Path
    thumbs_dir: Path
    purged_dir: Path
    purged_log: Path
    bundle_dir: Optional[Path] = None

    def path_for(self, relative_path: str) -> Optional[Path]:
        """Join ``relative_path`` onto the library root, refusing paths that escape it."""
        return safe_join(self.library_dir, relative_path)

    def ensure_directories(self) -> None:
        for directory in (self.library_dir, self.thumbs_dir, self.purged_dir):
            directory.mkdir(parents=True, exist_ok=True)


def safe_join(root: Path, relative_path: str) -> Optional[Path]:
    """Return ``root / relative_path`` when it stays inside ``root``, else ``None``."""
    if not relative_path:
        return None
    base = root.resolve()
    candidate = (base / relative_path).resolve()
    if candidate == base or base not in candidate.parents:
        return None
    return candidate


def _resolve(data_dir: Path, value: Optional[str], fallback: Path) -> Path:
    if not value:
        return fallback
    path = Path(value).expanduser()
    return path if path.is_absolute() else data_dir / path


def archive_from_settings(settings: ArchiveSettings, data_dir: Path) -> Archive:
    """Build an :class:`Archive` from configuration, applying default locations."""
    base = data_dir / "archives" / settings.key
    bundle_dir = None
    if settings.use_field_bundles:
        bundle_dir = _resolve(data_dir, settings.bundle_dir, base / "bundles")
    return Archive(
        key=settings.key,
        label=settings.label or settings.key,
        library_dir=_resolve(data_dir, settings.library_dir, base / "library"),
        metadata_file=_resolve(data_dir, settings.metadata_file, base / "metadata.json"),
        thumbs_dir=_resolve(data_dir, settings.thumbs_dir, base / "thumbs"),
        purged_dir=_resolve(data_dir, settings.purged_dir, base / "purged"),
        purged_log=_resolve(data_dir, settings.purged_log, base / "purged.json"),
        bundle_dir=bundle_dir,
    )


class ArchiveRegistry:
    """Named archives, one of which is the default."""

    def __init__(self, archives: Iterable[Archive], default_key: str) -> None:
        self._archives = {archive.key: archive for archive in archives}
        if default_key not in self._archives:
            raise NotFoundError(f"Default archive {default_key!r} is not configured.")
        self._default_key = default_key

    @classmethod
    def from_settings(cls, settings: LibrarySettings) -> "ArchiveRegistry":
        data_dir = Path(settings.data_dir).expanduser()
        archives = [archive_from_settings(entry, data_dir) for entry in settings.archives]
        return cls(archives, settings.default_archive)

    @property
    def default_key(self) -> str:
        return self._default_key

    def normalize_key(self, key: Optional[str]) -> str:
        """Return ``key`` if it names an archive, otherwise the default key."""
        candidate = (key or "").strip()
        return candidate if candidate in self._archives else self._default_key

    def get(self, key: Optional[str]) -> Archive:
        return self._archives[self.normalize_key(key)]

    def keys(self) -> list[str]:
        return list(self._archives)

    def __iter__(self) -> Iterator[Archive]:
        return iter(self._archives.values())

    def __contains__(self, key: object) -> bool:
        return key in self._archives


__all__ = ["Archive", "ArchiveRegistry", "archive_from_settings", "safe_join"]
