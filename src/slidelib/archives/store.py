"""Persisted per-archive metadata and its reconciliation against the filesystem."""

from __future__ import annotations

import errno
import logging
import os
import shutil
import threading
from pathlib import Path, PurePosixPath
from typing import Any, Mapping, Optional

from slidelib.errors import InvalidIdError, NotFoundError
from slidelib.persistence import read_document, write_document

from .bundles import FieldBundleCatalog
from .discovery import ArchiveScanner
from .identity import decode_id, encode_id
from .models import MetadataDocument, MetadataRecord, PurgedRecord, PurgeLog, ReconcileResult
from .registry import Archive, safe_join

LOGGER = logging.getLogger(__name__)


def unique_relative_path(root: Path, relative_path: str) -> str:
    """Return ``relative_path`` or the first free ``<stem>-N<ext>`` variant under ``root``."""
    normalized = PurePosixPath(relative_path.replace("\\", "/"))
    candidate = normalized
    index = 1
    while (root / candidate).exists():
        index += 1
        candidate = normalized.with_name(f"{normalized.stem}-{index}{normalized.suffix}")
    return candidate.as_posix()


def move_file(source: Path, destination: Path) -> None:
    """Rename ``source`` to ``destination``, copying across devices when required."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    try:
        os.rename(source, destination)
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise
        shutil.copy2(source, destination)
        source.unlink()


class MetadataStore:
    """Read-modify-write access to one archive's metadata document.

    Every mutation runs under the store's lock. The lock serializes writers
    inside this process only; other processes writing the same document are
    not coordinated and may lose updates.
    """

    def __init__(
        self,
        archive: Archive,
        *,
        scanner: ArchiveScanner | None = None,
    ) -> None:
        self.archive = archive
        self.scanner = scanner or ArchiveScanner()
        self.lock = threading.RLock()

    # ------------------------------------------------------------------ #
    # Documents                                                          #
    # ------------------------------------------------------------------ #

    def load(self) -> MetadataDocument:
        return read_document(self.archive.metadata_file, MetadataDocument, MetadataDocument)

    def save(self, document: MetadataDocument) -> None:
        write_document(self.archive.metadata_file, document)

    def load_purge_log(self) -> PurgeLog:
        return read_document(self.archive.purged_log, PurgeLog, PurgeLog)

    def append_purge_record(self, record: PurgedRecord) -> None:
        with self.lock:
            log = self.load_purge_log()
            log.items.append(record)
            write_document(self.archive.purged_log, log)

    # ------------------------------------------------------------------ #
    # Operations                                                         #
    # ------------------------------------------------------------------ #

    def resolve_path(self, item_id: str) -> tuple[str, Path]:
        """Return the relative and absolute path of an existing item.

        Raises:
            NotFoundError: If the id is malformed or its file is missing.
        """
        try:
            relative = decode_id(item_id)
        except InvalidIdError as exc:
            raise NotFoundError(f"Item not found: {item_id}") from exc
        absolute = self.archive.path_for(relative)
        if absolute is None or not absolute.is_file():
            raise NotFoundError(f"Item not found: {item_id}")
        return relative, absolute

    def reconcile(self) -> ReconcileResult:
        """Align the metadata document with the files currently on disk.

        New files receive default records and records of vanished files are
        pruned. The document is only written when something changed; files
        themselves are never touched.
        """
        with self.lock:
            files = list(self.scanner.scan(self.archive.library_dir))
            document = self.load()
            result = ReconcileResult(document=document, files=files)

            discovered: dict[str, str] = {
                encode_id(entry.relative_path): entry.relative_path for entry in files
            }
            for item_id, relative in discovered.items():
                if item_id not in document.metadata:
                    document.metadata[item_id] = MetadataRecord.default_for(relative)
                    result.added.append(item_id)

            for item_id in list(document.metadata):
                if item_id not in discovered:
                    del document.metadata[item_id]
                    result.removed.append(item_id)

            if self.archive.bundle_dir is not None:
                self._apply_bundles(document, discovered, result)

            if result.changed:
                LOGGER.info(
                    "Reconciled archive %s: %d added, %d removed, %d enriched.",
                    self.archive.key,
                    len(result.added),
                    len(result.removed),
                    len(result.enriched),
                )
                self.save(document)
            return result

    def update(self, item_id: str, fields: Mapping[str, Any]) -> MetadataRecord:
        """Replace the record of an existing item.

        Raises:
            NotFoundError: If the item no longer exists on disk.
        """
        with self.lock:
            self.resolve_path(item_id)
            document = self.load()
            record = MetadataRecord.from_fields(fields, previous=document.metadata.get(item_id))
            document.metadata[item_id] = record
            self.save(document)
            return record

    def get(self, item_id: str) -> Optional[MetadataRecord]:
        return self.load().metadata.get(item_id)

    def remove_record(self, item_id: str) -> Optional[MetadataRecord]:
        """Delete and return the record for ``item_id`` if one is stored."""
        with self.lock:
            document = self.load()
            record = document.metadata.pop(item_id, None)
            if record is not None:
                self.save(document)
            return record

    def move_to_purge(self, relative_path: str, source: Path) -> str:
        """Move an item's file under the purge directory and return its new relative path."""
        self.archive.purged_dir.mkdir(parents=True, exist_ok=True)
        purged_relative = unique_relative_path(self.archive.purged_dir, relative_path)
        destination = safe_join(self.archive.purged_dir, purged_relative)
        if destination is None:
            raise NotFoundError(f"Could not resolve purge destination for {relative_path}")
        move_file(source, destination)
        return purged_relative

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _apply_bundles(
        self,
        document: MetadataDocument,
        discovered: Mapping[str, str],
        result: ReconcileResult,
    ) -> None:
        assert self.archive.bundle_dir is not None
        catalog = FieldBundleCatalog(self.archive.bundle_dir)
        for item_id, relative in discovered.items():
            record = document.metadata[item_id]
            if not record.is_blank():
                continue
            match = catalog.match(relative)
            if match is None:
                continue
            enriched = match.model_copy(deep=True)
            if enriched.title.kind == "derived":
                enriched.title = record.title.model_copy()
            if enriched != record:
                document.metadata[item_id] = enriched
                result.enriched.append(item_id)


__all__ = ["MetadataStore", "unique_relative_path", "move_file"]
