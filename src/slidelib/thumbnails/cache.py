"""On-demand thumbnail cache with per-file job deduplication."""

from __future__ import annotations

import functools
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import quote

from slidelib.archives.identity import encode_id
from slidelib.archives.registry import Archive
from slidelib.errors import ExternalToolError

from .generator import render_thumbnail

LOGGER = logging.getLogger(__name__)

ThumbnailRenderer = Callable[[Path, Path, int], None]


class ThumbnailCache:
    """Serve fresh thumbnails and regenerate stale ones in the background.

    At most one job per ``(archive, relative path)`` is in flight. The job
    table is owned by the instance: entries are inserted before work is
    submitted and removed when the job finishes, whether it succeeded or not.
    """

    def __init__(
        self,
        *,
        max_edge: int = 360,
        workers: int = 2,
        jpeg_quality: int = 85,
        renderer: Optional[ThumbnailRenderer] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        self.max_edge = max_edge
        self._renderer = renderer or functools.partial(render_thumbnail, quality=jpeg_quality)
        self._executor = executor or ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="slidelib-thumbs"
        )
        self._jobs: dict[str, Future[None]] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    @staticmethod
    def thumbnail_name(relative_path: str) -> str:
        return f"{encode_id(relative_path)}.jpg"

    def thumbnail_path(self, archive: Archive, relative_path: str) -> Path:
        return archive.thumbs_dir / self.thumbnail_name(relative_path)

    def is_fresh(self, archive: Archive, relative_path: str, source_mtime: float) -> bool:
        """Return whether a thumbnail exists and is not older than its source."""
        try:
            stat = self.thumbnail_path(archive, relative_path).stat()
        except OSError:
            return False
        return stat.st_mtime >= source_mtime

    def thumbnail_url(
        self,
        archive: Archive,
        source: Path,
        relative_path: str,
        source_mtime: float,
    ) -> str:
        """Return the thumbnail URL, or ``""`` while a fresh one is unavailable.

        A missing or stale thumbnail schedules regeneration; callers fall back
        to the original image until a later request finds it fresh.
        """
        if self.is_fresh(archive, relative_path, source_mtime):
            return f"/thumbs/{archive.key}/{quote(self.thumbnail_name(relative_path))}"
        self.ensure(archive, source, relative_path)
        return ""

    def ensure(self, archive: Archive, source: Path, relative_path: str) -> bool:
        """Schedule regeneration unless a job for the same file is already running.

        Returns:
            bool: ``True`` when a new job was scheduled.
        """
        key = self.job_key(archive, relative_path)
        with self._lock:
            if key in self._jobs:
                return False
            try:
                future = self._executor.submit(self._run, key, archive, source, relative_path)
            except RuntimeError as exc:
                LOGGER.debug("Thumbnail executor unavailable for %s: %s", key, exc)
                return False
            self._jobs[key] = future
            return True

    def remove(self, archive: Archive, relative_path: str, timeout: float | None = None) -> None:
        """Delete a cached thumbnail, first letting an in-flight job for it finish."""
        with self._lock:
            future = self._jobs.get(self.job_key(archive, relative_path))
        if future is not None:
            wait_futures([future], timeout=timeout)
        self.thumbnail_path(archive, relative_path).unlink(missing_ok=True)

    def pending(self) -> list[str]:
        with self._lock:
            return list(self._jobs)

    def wait(self, timeout: float | None = None) -> None:
        """Block until the jobs in flight at call time have finished."""
        with self._lock:
            futures = list(self._jobs.values())
        if futures:
            wait_futures(futures, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    @staticmethod
    def job_key(archive: Archive, relative_path: str) -> str:
        return f"{archive.key}:{relative_path}"

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _run(self, key: str, archive: Archive, source: Path, relative_path: str) -> None:
        try:
            self._renderer(source, self.thumbnail_path(archive, relative_path), self.max_edge)
        except ExternalToolError as exc:
            LOGGER.debug("Thumbnail unavailable, serving original: %s", exc)
        except Exception:
            LOGGER.warning("Unexpected thumbnail failure for %s", key, exc_info=True)
        finally:
            with self._lock:
                self._jobs.pop(key, None)


__all__ = ["ThumbnailCache", "ThumbnailRenderer"]
