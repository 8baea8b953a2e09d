"""Pillow-backed thumbnail rendering."""

from __future__ import annotations

import os
from pathlib import Path

from PIL import Image, ImageOps

from slidelib.errors import ExternalToolError


def render_thumbnail(source: Path, destination: Path, max_edge: int, *, quality: int = 85) -> None:
    """Write a JPEG no larger than ``max_edge`` on either side.

    The file is written beside ``destination`` and moved into place, so a
    partially written thumbnail is never observed as fresh.

    Raises:
        ExternalToolError: If the source cannot be decoded or the output written.
    """
    temporary = destination.with_name(f".{destination.name}.tmp")
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        with Image.open(source) as opened:
            image = ImageOps.exif_transpose(opened)
            image.thumbnail((max_edge, max_edge))
            if image.mode != "RGB":
                image = image.convert("RGB")
            image.save(temporary, format="JPEG", quality=quality)
        os.replace(temporary, destination)
    except Exception as exc:
        temporary.unlink(missing_ok=True)
        raise ExternalToolError(f"Could not render thumbnail for {source}: {exc}") from exc


__all__ = ["render_thumbnail"]
