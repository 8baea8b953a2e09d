"""Slideshow export: page layout, caption fitting, and PDF rendering."""

from .exporter import ExportResult, SlideshowExporter, export_filename
from .layout import (
    CaptionFit,
    CaptionParts,
    PageLayout,
    Rect,
    build_caption_parts,
    compute_layout,
    fit_caption,
    fit_contain,
)
from .surface import DocumentSurface, ReportLabSurface, load_image

__all__ = [
    "ExportResult",
    "SlideshowExporter",
    "export_filename",
    "CaptionFit",
    "CaptionParts",
    "PageLayout",
    "Rect",
    "build_caption_parts",
    "compute_layout",
    "fit_caption",
    "fit_contain",
    "DocumentSurface",
    "ReportLabSurface",
    "load_image",
]
