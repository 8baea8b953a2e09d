"""Shared fixtures for SlideLib tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

from slidelib.archives.registry import Archive, archive_from_settings
from slidelib.config.models import ArchiveSettings, LibrarySettings, SlideLibConfig


def write_image(path: Path, size: tuple[int, int] = (64, 48), color: str = "teal") -> Path:
    """Write a small PNG or JPEG depending on the suffix of ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    image = Image.new("RGB", size, color)
    fmt = "JPEG" if path.suffix.lower() in {".jpg", ".jpeg"} else "PNG"
    image.save(path, format=fmt)
    return path


@pytest.fixture
def image_factory() -> Callable[..., Path]:
    return write_image


@pytest.fixture
def archive(tmp_path: Path) -> Archive:
    built = archive_from_settings(ArchiveSettings(key="test", label="Test"), tmp_path / "data")
    built.ensure_directories()
    return built


@pytest.fixture
def library_config(tmp_path: Path) -> SlideLibConfig:
    return SlideLibConfig(
        library=LibrarySettings(
            data_dir=str(tmp_path / "data"),
            default_archive="main",
            archives=[
                ArchiveSettings(key="main", label="Main"),
                ArchiveSettings(key="other", label="Other"),
            ],
        )
    )
