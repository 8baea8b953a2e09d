"""Thumbnail generation and caching."""

from .cache import ThumbnailCache, ThumbnailRenderer
from .generator import render_thumbnail

__all__ = ["ThumbnailCache", "ThumbnailRenderer", "render_thumbnail"]
