"""Page geometry, image fitting, and caption fitting for slideshow export.

Everything here is pure: text widths come from a caller-supplied measuring
function so the same algorithm works against any font backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from slidelib.config.models import ExportSettings

ELLIPSIS = "…"
UNKNOWN_ARTIST = "Unknown artist"
UNKNOWN_TITLE = "(title unknown)"

TextMeasure = Callable[[str, str], float]
"""Return the width of ``text`` set in ``font`` at the caption size."""


@dataclass(frozen=True, slots=True)
class Rect:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class PageLayout:
    """Rectangles making up one slide page; the origin is the bottom-left corner.

    Attributes:
        width: Page width.
        height: Page height.
        frame: Bordered frame inset by the outer pad.
        content: Frame interior after padding.
        image_area: Region of the content above the caption band.
        caption: Caption band at the bottom of the content.
    """

    width: float
    height: float
    frame: Rect
    content: Rect
    image_area: Rect
    caption: Rect


def compute_layout(settings: ExportSettings) -> PageLayout:
    """Derive the page rectangles from export settings."""
    frame = Rect(
        x=settings.outer_pad,
        y=settings.outer_pad,
        width=settings.page_width - settings.outer_pad * 2,
        height=settings.page_height - settings.outer_pad * 2,
    )
    content = Rect(
        x=frame.x + settings.frame_pad_side,
        y=frame.y + settings.frame_pad_bottom,
        width=frame.width - settings.frame_pad_side * 2,
        height=frame.height - settings.frame_pad_top - settings.frame_pad_bottom,
    )
    image_area = Rect(
        x=content.x,
        y=content.y + settings.caption_height + settings.frame_gap,
        width=content.width,
        height=content.height - settings.caption_height - settings.frame_gap,
    )
    caption = Rect(x=content.x, y=content.y, width=content.width, height=settings.caption_height)
    return PageLayout(
        width=settings.page_width,
        height=settings.page_height,
        frame=frame,
        content=content,
        image_area=image_area,
        caption=caption,
    )


def fit_contain(
    source_width: float, source_height: float, max_width: float, max_height: float
) -> tuple[float, float]:
    """Scale a box uniformly so it fits entirely inside ``max_width`` x ``max_height``.

    Returns:
        tuple[float, float]: Scaled width and height; ``(0, 0)`` for degenerate sources.
    """
    if source_width <= 0 or source_height <= 0:
        return 0.0, 0.0
    scale = min(max_width / source_width, max_height / source_height)
    return source_width * scale, source_height * scale


def place_image(area: Rect, source_width: float, source_height: float) -> Rect:
    """Return the contain-fitted image rectangle centred inside ``area``."""
    width, height = fit_contain(source_width, source_height, area.width, area.height)
    return Rect(
        x=area.x + (area.width - width) / 2,
        y=area.y + (area.height - height) / 2,
        width=width,
        height=height,
    )


@dataclass(frozen=True, slots=True)
class CaptionParts:
    """Caption text split into plain prefix, emphasized title, and plain suffix."""

    prefix: str
    title: str
    suffix: str

    @property
    def text(self) -> str:
        return f"{self.prefix}{self.title}{self.suffix}"


@dataclass(frozen=True, slots=True)
class CaptionFit(CaptionParts):
    """Caption runs kept after fitting, and whether an ellipsis follows them."""

    ellipsis: bool = False


def build_caption_parts(
    *,
    artist: str = "",
    title: str = "",
    year: str = "",
    medium: str = "",
    size: str = "",
) -> CaptionParts:
    """Compose ``"<artist>, " <title> ", <year>. <medium>, <size>."``, skipping blanks."""
    artist = artist.strip() or UNKNOWN_ARTIST
    title = title.strip() or UNKNOWN_TITLE
    year = year.strip()
    tail = ", ".join(value for value in (medium.strip(), size.strip()) if value)
    suffix = f", {year}." if year else "."
    if tail:
        suffix = f"{suffix} {tail}."
    return CaptionParts(prefix=f"{artist}, ", title=title, suffix=suffix)


def split_kept(parts: CaptionParts, keep: int) -> CaptionParts:
    """Keep the first ``keep`` characters, filling prefix, then title, then suffix."""
    prefix = parts.prefix[:keep]
    keep -= len(prefix)
    title = parts.title[:keep]
    keep -= len(title)
    suffix = parts.suffix[:keep]
    return CaptionParts(prefix=prefix, title=title, suffix=suffix)


def measure_caption(
    parts: CaptionParts,
    measure: TextMeasure,
    *,
    plain_font: str,
    emphasis_font: str,
    ellipsis: bool = False,
) -> float:
    """Return the combined width of the caption runs, plus the ellipsis if requested."""
    width = 0.0
    if parts.prefix:
        width += measure(parts.prefix, plain_font)
    if parts.title:
        width += measure(parts.title, emphasis_font)
    if parts.suffix:
        width += measure(parts.suffix, plain_font)
    if ellipsis:
        width += measure(ELLIPSIS, plain_font)
    return width


def fit_caption(
    parts: CaptionParts,
    max_width: float,
    measure: TextMeasure,
    *,
    plain_font: str,
    emphasis_font: str,
) -> CaptionFit:
    """Return the longest prefix of the caption that fits ``max_width``.

    Kept lengths are tried from longest to shortest, each measured with a
    trailing ellipsis. Widths are not monotonic in the kept length once the
    cut crosses between faces, so every length is measured.
    """
    fonts = {"plain_font": plain_font, "emphasis_font": emphasis_font}
    if measure_caption(parts, measure, **fonts) <= max_width:
        return CaptionFit(parts.prefix, parts.title, parts.suffix, ellipsis=False)

    for keep in range(len(parts.text), -1, -1):
        candidate = split_kept(parts, keep)
        if measure_caption(candidate, measure, ellipsis=True, **fonts) <= max_width:
            return CaptionFit(candidate.prefix, candidate.title, candidate.suffix, ellipsis=True)
    return CaptionFit("", "", "", ellipsis=True)


__all__ = [
    "ELLIPSIS",
    "UNKNOWN_ARTIST",
    "UNKNOWN_TITLE",
    "Rect",
    "PageLayout",
    "CaptionParts",
    "CaptionFit",
    "TextMeasure",
    "compute_layout",
    "fit_contain",
    "place_image",
    "build_caption_parts",
    "split_kept",
    "measure_caption",
    "fit_caption",
]
