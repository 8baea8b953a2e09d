"""Reversible item identifiers derived from archive-relative paths."""

from __future__ import annotations

import base64
import binascii
import re
from pathlib import PurePosixPath

from slidelib.errors import InvalidIdError

_URLSAFE = re.compile(r"^[A-Za-z0-9_-]+$")


def encode_id(relative_path: str) -> str:
    """Encode an archive-relative path as a URL-safe identifier.

    Args:
        relative_path: Path relative to the archive root.

    Returns:
        str: Unpadded URL-safe base64 of the UTF-8 path bytes.
    """
    raw = relative_path.encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_id(item_id: str) -> str:
    """Decode an identifier produced by :func:`encode_id`.

    Args:
        item_id: Identifier to decode.

    Returns:
        str: Archive-relative path exactly as it was encoded.

    Raises:
        InvalidIdError: If the identifier is malformed, is not the canonical
            encoding of its path, or names an unsafe path.
    """
    if not isinstance(item_id, str) or not _URLSAFE.match(item_id):
        raise InvalidIdError(f"Malformed item id: {item_id!r}")
    if len(item_id) % 4 == 1:
        raise InvalidIdError(f"Malformed item id length: {item_id!r}")

    padded = item_id + "=" * (-len(item_id) % 4)
    try:
        relative = base64.urlsafe_b64decode(padded).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise InvalidIdError(f"Malformed item id: {item_id!r}") from exc
    if encode_id(relative) != item_id:
        raise InvalidIdError(f"Non-canonical item id: {item_id!r}")

    if not relative or relative.startswith("/") or "\x00" in relative:
        raise InvalidIdError(f"Item id does not name a relative path: {item_id!r}")
    if ".." in PurePosixPath(relative).parts:
        raise InvalidIdError(f"Item id escapes the archive root: {item_id!r}")
    return relative


__all__ = ["encode_id", "decode_id"]
