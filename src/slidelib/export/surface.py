"""Drawing surfaces used by the slideshow exporter."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, Optional, Protocol, Tuple

from PIL import Image, ImageOps
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from .layout import Rect

LOGGER = logging.getLogger(__name__)

Color = Tuple[float, float, float]


class DocumentSurface(Protocol):
    """Draw primitives and font metrics the exporter depends on."""

    def begin_page(self, width: float, height: float) -> None: ...

    def draw_frame(
        self, rect: Rect, *, fill: Color, stroke: Color, stroke_width: float, radius: float
    ) -> None: ...

    def draw_image(self, image: Any, rect: Rect) -> None: ...

    def image_size(self, image: Any) -> tuple[float, float]: ...

    def draw_text(self, text: str, x: float, y: float, *, font: str, size: float, color: Color) -> None: ...

    def text_width(self, text: str, font: str, size: float) -> float: ...

    def finish(self) -> bytes: ...


def load_image(path: Path) -> Optional[Image.Image]:
    """Decode an image for embedding, or return ``None`` if it cannot be read."""
    try:
        with Image.open(path) as opened:
            image = ImageOps.exif_transpose(opened)
            image.load()
            if image.mode not in ("RGB", "RGBA"):
                has_alpha = "A" in image.getbands() or "transparency" in image.info
                image = image.convert("RGBA" if has_alpha else "RGB")
            return image
    except Exception as exc:
        LOGGER.warning("Could not decode %s for export: %s", path, exc)
        return None


class ReportLabSurface:
    """PDF surface backed by a reportlab canvas."""

    def __init__(self) -> None:
        self._buffer = io.BytesIO()
        self._canvas = canvas.Canvas(self._buffer)
        self._page_open = False
        self.page_count = 0

    def begin_page(self, width: float, height: float) -> None:
        if self._page_open:
            self._canvas.showPage()
        self._canvas.setPageSize((width, height))
        self._page_open = True
        self.page_count += 1

    def draw_frame(
        self, rect: Rect, *, fill: Color, stroke: Color, stroke_width: float, radius: float
    ) -> None:
        self._canvas.setFillColorRGB(*fill)
        self._canvas.setStrokeColorRGB(*stroke)
        self._canvas.setLineWidth(stroke_width)
        self._canvas.roundRect(rect.x, rect.y, rect.width, rect.height, radius, stroke=1, fill=1)

    def draw_image(self, image: Any, rect: Rect) -> None:
        self._canvas.drawImage(
            ImageReader(image), rect.x, rect.y, width=rect.width, height=rect.height, mask="auto"
        )

    def image_size(self, image: Any) -> tuple[float, float]:
        width, height = image.size
        return float(width), float(height)

    def draw_text(self, text: str, x: float, y: float, *, font: str, size: float, color: Color) -> None:
        self._canvas.setFillColorRGB(*color)
        self._canvas.setFont(font, size)
        self._canvas.drawString(x, y, text)

    def text_width(self, text: str, font: str, size: float) -> float:
        return stringWidth(text, font, size)

    def finish(self) -> bytes:
        if self._page_open:
            self._canvas.showPage()
            self._page_open = False
        self._canvas.save()
        return self._buffer.getvalue()


__all__ = ["DocumentSurface", "ReportLabSurface", "load_image", "Color"]
