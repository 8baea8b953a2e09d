"""Archive discovery, identity, and metadata persistence."""

from .discovery import IMAGE_EXTENSIONS, ArchiveScanner, ScannedFile
from .identity import decode_id, encode_id
from .models import (
    Item,
    MetadataDocument,
    MetadataRecord,
    PurgedRecord,
    PurgeLog,
    PurgeResult,
    ReconcileResult,
    TitleField,
)
from .registry import Archive, ArchiveRegistry
from .store import MetadataStore

__all__ = [
    "IMAGE_EXTENSIONS",
    "ArchiveScanner",
    "ScannedFile",
    "encode_id",
    "decode_id",
    "Item",
    "MetadataDocument",
    "MetadataRecord",
    "PurgedRecord",
    "PurgeLog",
    "PurgeResult",
    "ReconcileResult",
    "TitleField",
    "Archive",
    "ArchiveRegistry",
    "MetadataStore",
]
