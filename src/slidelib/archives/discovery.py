"""Image discovery for archive roots."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

LOGGER = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset(
    {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".svg", ".tif", ".tiff", ".avif"}
)


def is_image_name(name: str) -> bool:
    """Return whether ``name`` carries a supported image extension."""
    return os.path.splitext(name)[1].lower() in IMAGE_EXTENSIONS


@dataclass(frozen=True, slots=True)
class ScannedFile:
    """Image file observed during a scan.

    Attributes:
        relative_path: Path relative to the archive root, using forward slashes.
        path: Absolute path of the file.
        mtime: Modification time in seconds since the epoch.
    """

    relative_path: str
    path: Path
    mtime: float

    @property
    def modified_at(self) -> datetime:
        return datetime.fromtimestamp(self.mtime, tz=timezone.utc)


class ArchiveScanner:
    """Walk an archive root and yield supported image files."""

    def __init__(self, *, include_hidden: bool = False) -> None:
        self.include_hidden = include_hidden

    def scan(self, root: Path) -> Iterator[ScannedFile]:
        """Yield image files under ``root``; directories are visited in sorted order."""
        root = root.expanduser()
        if not root.is_dir():
            return

        def _on_error(exc: OSError) -> None:
            LOGGER.warning("Skipping unreadable directory %s: %s", exc.filename, exc.strerror)

        for current, dirnames, filenames in os.walk(root, onerror=_on_error):
            if not self.include_hidden:
                dirnames[:] = [name for name in dirnames if not name.startswith(".")]
            dirnames.sort()
            base = Path(current)
            for name in sorted(filenames):
                if not self.include_hidden and name.startswith("."):
                    continue
                if not is_image_name(name):
                    continue
                path = base / name
                try:
                    stat = path.stat()
                except OSError:
                    continue
                if not path.is_file():
                    continue
                relative = path.relative_to(root).as_posix()
                yield ScannedFile(relative_path=relative, path=path, mtime=stat.st_mtime)

    def relative_paths(self, root: Path) -> list[str]:
        """Return the relative paths of every image under ``root``."""
        return [entry.relative_path for entry in self.scan(root)]


__all__ = ["ArchiveScanner", "ScannedFile", "IMAGE_EXTENSIONS", "is_image_name"]
