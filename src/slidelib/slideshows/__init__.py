"""Slideshow persistence and resolution."""

from .index import ItemProvider, SlideshowIndex, make_slideshow_id
from .models import (
    DEFAULT_SLIDESHOW_ID,
    ResolvedSlideshow,
    SlideRef,
    Slideshow,
    SlideshowDocument,
)

__all__ = [
    "DEFAULT_SLIDESHOW_ID",
    "ItemProvider",
    "ResolvedSlideshow",
    "SlideRef",
    "Slideshow",
    "SlideshowDocument",
    "SlideshowIndex",
    "make_slideshow_id",
]
