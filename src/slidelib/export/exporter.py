"""Render resolved slideshows to paginated PDF documents."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from slidelib.archives.models import Item
from slidelib.config.models import ExportSettings
from slidelib.errors import EmptyOrMissingSlideshowError
from slidelib.slideshows.models import ResolvedSlideshow

from .layout import (
    ELLIPSIS,
    CaptionFit,
    PageLayout,
    build_caption_parts,
    compute_layout,
    fit_caption,
    place_image,
)
from .surface import DocumentSurface, ReportLabSurface, load_image

LOGGER = logging.getLogger(__name__)

_UNSAFE_FILENAME = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_WHITESPACE = re.compile(r"\s+")


def export_filename(name: str) -> str:
    """Return a filesystem-safe ``<name>.pdf`` for a slideshow."""
    cleaned = _WHITESPACE.sub(" ", _UNSAFE_FILENAME.sub("_", name.strip())).strip()
    return f"{cleaned or 'slideshow'}.pdf"


@dataclass(slots=True)
class ExportResult:
    """Rendered document and per-page diagnostics.

    Attributes:
        data: Encoded document bytes.
        filename: Suggested file name for the document.
        pages: Number of pages emitted.
        blank_images: Items whose image could not be drawn.
    """

    data: bytes
    filename: str
    pages: int
    blank_images: list[str] = field(default_factory=list)


class SlideshowExporter:
    """Lay out one page per resolved slide on a document surface."""

    def __init__(
        self,
        settings: ExportSettings | None = None,
        *,
        surface_factory: Callable[[], DocumentSurface] = ReportLabSurface,
        image_loader: Callable[[Path], Optional[Any]] = load_image,
    ) -> None:
        self.settings = settings or ExportSettings()
        self.layout = compute_layout(self.settings)
        self._surface_factory = surface_factory
        self._image_loader = image_loader

    def render(
        self,
        slideshow: ResolvedSlideshow | None,
        path_for: Callable[[Item], Optional[Path]],
    ) -> ExportResult:
        """Render ``slideshow`` and return the encoded document.

        Args:
            slideshow: Resolved slideshow, or ``None`` when it does not exist.
            path_for: Returns the source file of an item, or ``None`` if unavailable.

        Raises:
            EmptyOrMissingSlideshowError: If there is no slideshow or no slide to render.
        """
        if slideshow is None:
            raise EmptyOrMissingSlideshowError("Slideshow not found.")
        if not slideshow.items:
            raise EmptyOrMissingSlideshowError(f"No slides in slideshow {slideshow.name!r}.")

        surface = self._surface_factory()
        blank: list[str] = []
        for item in slideshow.items:
            if not self._render_page(surface, item, path_for(item)):
                blank.append(f"{item.archive}:{item.relative_path}")

        data = surface.finish()
        LOGGER.info(
            "Exported slideshow %s: %d page(s), %d without image.",
            slideshow.id,
            len(slideshow.items),
            len(blank),
        )
        return ExportResult(
            data=data,
            filename=export_filename(slideshow.name),
            pages=len(slideshow.items),
            blank_images=blank,
        )

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _render_page(self, surface: DocumentSurface, item: Item, source: Optional[Path]) -> bool:
        settings = self.settings
        layout = self.layout
        surface.begin_page(layout.width, layout.height)
        surface.draw_frame(
            layout.frame,
            fill=settings.frame_color,
            stroke=settings.border_color,
            stroke_width=settings.border_width,
            radius=settings.frame_radius,
        )

        drawn = False
        image = self._image_loader(source) if source is not None and source.is_file() else None
        if image is not None:
            width, height = surface.image_size(image)
            target = place_image(layout.image_area, width, height)
            if target.width > 0 and target.height > 0:
                try:
                    surface.draw_image(image, target)
                    drawn = True
                except Exception as exc:
                    LOGGER.warning("Could not embed %s: %s", source, exc)
        elif source is None:
            LOGGER.warning("Source file for %s:%s is unavailable.", item.archive, item.relative_path)

        self._draw_caption(surface, layout, item)
        return drawn

    def _draw_caption(self, surface: DocumentSurface, layout: PageLayout, item: Item) -> None:
        settings = self.settings
        size = settings.caption_font_size
        parts = build_caption_parts(
            artist=item.artist,
            title=item.title,
            year=item.year,
            medium=item.medium,
            size=item.size,
        )

        def measure(text: str, font: str) -> float:
            return surface.text_width(text, font, size)

        fitted = fit_caption(
            parts,
            layout.caption.width,
            measure,
            plain_font=settings.caption_font,
            emphasis_font=settings.caption_italic_font,
        )
        runs = self._caption_runs(fitted)
        total = sum(measure(text, font) for text, font in runs)
        cursor = layout.caption.x + max(0.0, (layout.caption.width - total) / 2)
        baseline = layout.caption.y + (layout.caption.height - size) / 2
        for text, font in runs:
            surface.draw_text(text, cursor, baseline, font=font, size=size, color=settings.caption_color)
            cursor += measure(text, font)

    def _caption_runs(self, fitted: CaptionFit) -> list[tuple[str, str]]:
        plain = self.settings.caption_font
        runs = [
            (fitted.prefix, plain),
            (fitted.title, self.settings.caption_italic_font),
            (fitted.suffix, plain),
        ]
        if fitted.ellipsis:
            runs.append((ELLIPSIS, plain))
        return [(text, font) for text, font in runs if text]


__all__ = ["SlideshowExporter", "ExportResult", "export_filename"]
