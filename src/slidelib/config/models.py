"""Configuration models describing SlideLib settings."""

from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SlideLibBaseModel(BaseModel):
    """Shared configuration for SlideLib Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class ArchiveSettings(SlideLibBaseModel):
    """Location of one archive and its derived stores.

    Relative paths are resolved against ``library.data_dir``; unset paths fall
    back to ``<data_dir>/archives/<key>/...``.

    Attributes:
        key: Stable identifier used in slideshow references.
        label: Human-readable archive name.
        library_dir: Directory holding the image files.
        metadata_file: JSON document storing per-item metadata.
        thumbs_dir: Directory holding generated thumbnails.
        purged_dir: Holding directory for purged files.
        purged_log: JSON document recording purged items.
        bundle_dir: Directory of field-bundle metadata catalogs.
        use_field_bundles: Whether blank records are filled from bundles.
    """

    key: str
    label: str = ""
    library_dir: Optional[str] = None
    metadata_file: Optional[str] = None
    thumbs_dir: Optional[str] = None
    purged_dir: Optional[str] = None
    purged_log: Optional[str] = None
    bundle_dir: Optional[str] = None
    use_field_bundles: bool = False

    @field_validator("key")
    @classmethod
    def _key_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("archive key must not be blank")
        return value


def _default_archives() -> List[ArchiveSettings]:
    return [
        ArchiveSettings(key="slide_library", label="Slide Library"),
        ArchiveSettings(
            key="excursions",
            label="Excursions",
            bundle_dir="field_bundle_archive",
            use_field_bundles=True,
        ),
    ]


class LibrarySettings(SlideLibBaseModel):
    """Settings shared by every archive.

    Attributes:
        data_dir: Root directory for archives, stores, and logs.
        default_archive: Archive used when a request names none or an unknown one.
        slideshows_file: JSON document storing slideshows across archives.
        archives: Configured archives.
    """

    data_dir: str = "~/.slidelib/data"
    default_archive: str = "slide_library"
    slideshows_file: str = "slideshows.json"
    archives: List[ArchiveSettings] = Field(default_factory=_default_archives)

    @model_validator(mode="after")
    def _check_archives(self) -> "LibrarySettings":
        keys = [archive.key for archive in self.archives]
        if not keys:
            raise ValueError("at least one archive must be configured")
        if len(set(keys)) != len(keys):
            raise ValueError("archive keys must be unique")
        if self.default_archive not in keys:
            raise ValueError(f"default_archive {self.default_archive!r} is not a configured archive")
        return self


class ThumbnailSettings(SlideLibBaseModel):
    """Thumbnail generation options.

    Attributes:
        max_edge: Longest edge of generated thumbnails in pixels.
        workers: Number of background generation threads.
        jpeg_quality: JPEG quality used when writing thumbnails.
    """

    max_edge: int = Field(default=360, gt=0)
    workers: int = Field(default=2, gt=0)
    jpeg_quality: int = Field(default=85, ge=1, le=95)


class ExportSettings(SlideLibBaseModel):
    """Page geometry and typography for slideshow export.

    Attributes:
        page_width: Page width in points.
        page_height: Page height in points.
        outer_pad: Margin between page edge and frame.
        frame_pad_top: Padding between frame top and content.
        frame_pad_side: Padding between frame sides and content.
        frame_pad_bottom: Padding between frame bottom and content.
        caption_height: Height of the caption band.
        frame_gap: Gap between the image area and the caption band.
        frame_radius: Corner radius of the frame.
        border_width: Frame border width.
        caption_font_size: Caption font size in points.
        caption_font: Font used for plain caption runs.
        caption_italic_font: Font used for the title run.
        frame_color: Frame fill colour as RGB fractions.
        border_color: Frame border colour as RGB fractions.
        caption_color: Caption text colour as RGB fractions.
    """

    page_width: float = 11 * 72
    page_height: float = 8.5 * 72
    outer_pad: float = 0
    frame_pad_top: float = 13.5
    frame_pad_side: float = 15
    frame_pad_bottom: float = 6
    caption_height: float = 18
    frame_gap: float = 2.25
    frame_radius: float = 6
    border_width: float = 0.75
    caption_font_size: float = 11
    caption_font: str = "Helvetica"
    caption_italic_font: str = "Helvetica-Oblique"
    frame_color: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    border_color: Tuple[float, float, float] = (0.07, 0.09, 0.16)
    caption_color: Tuple[float, float, float] = (0.82, 0.84, 0.86)


class LoggingSettings(SlideLibBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
        file: Log file name, relative to the data directory.
    """

    level: str = "WARNING"
    max_size_mb: int = 10
    backup_count: int = 5
    file: str = "slidelib.log"


class CLIOptions(SlideLibBaseModel):
    """CLI behavior defaults.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
    """

    quiet_default: bool = False


class SlideLibConfig(SlideLibBaseModel):
    """Top-level configuration struct for SlideLib."""

    library: LibrarySettings = Field(default_factory=LibrarySettings)
    thumbnails: ThumbnailSettings = Field(default_factory=ThumbnailSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "SlideLibBaseModel",
    "ArchiveSettings",
    "LibrarySettings",
    "ThumbnailSettings",
    "ExportSettings",
    "LoggingSettings",
    "CLIOptions",
    "SlideLibConfig",
]
