"""Tests for the library facade: state reads, purge, and export."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Iterator

import pytest

from slidelib.archives.identity import encode_id
from slidelib.config.models import SlideLibConfig
from slidelib.errors import EmptyOrMissingSlideshowError, NotFoundError
from slidelib.library import Library, LibraryState
from slidelib.slideshows import DEFAULT_SLIDESHOW_ID, SlideRef


@pytest.fixture
def library(library_config: SlideLibConfig) -> Iterator[Library]:
    built = Library.from_config(library_config)
    try:
        yield built
    finally:
        built.close()


def _library_dir(library: Library, key: str) -> Path:
    return library.registry.get(key).library_dir


def test_build_state_lists_items_with_urls(
    library: Library, image_factory: Callable[..., Path]
) -> None:
    root = _library_dir(library, "main")
    image_factory(root / "Room 1" / "a b.png")
    image_factory(root / "c.jpg")

    state = library.build_state("main")

    assert state.active_archive == "main"
    assert [item.relative_path for item in state.items] == ["c.jpg", "Room 1/a b.png"]
    item = state.items[1]
    assert item.id == encode_id("Room 1/a b.png")
    assert item.url == "/library/main/Room%201/a%20b.png"
    assert item.title == "a b"
    assert item.title_kind == "derived"
    assert state.archives == [{"key": "main", "label": "Main"}, {"key": "other", "label": "Other"}]
    assert state.current_slideshow_id == DEFAULT_SLIDESHOW_ID


def test_unknown_archive_falls_back_to_default(
    library: Library, image_factory: Callable[..., Path]
) -> None:
    image_factory(_library_dir(library, "main") / "x.png")

    state = library.build_state("no-such-archive")

    assert state.active_archive == "main"
    assert len(state.items) == 1


def test_thumbnails_become_available_after_generation(
    library: Library, image_factory: Callable[..., Path]
) -> None:
    image_factory(_library_dir(library, "main") / "big.png", size=(900, 600))

    first = library.build_state("main")
    library.thumbnails.wait(timeout=10)
    second = library.build_state("main")

    assert first.items[0].thumb_url == ""
    assert second.items[0].thumb_url == f"/thumbs/main/{encode_id('big.png')}.jpg"


def test_slideshows_resolve_across_archives(
    library: Library, image_factory: Callable[..., Path]
) -> None:
    image_factory(_library_dir(library, "main") / "local.png")
    image_factory(_library_dir(library, "other") / "remote.png")
    library.toggle_slide(DEFAULT_SLIDESHOW_ID, library.ref_for_path("other", "remote.png"), True)
    library.toggle_slide(DEFAULT_SLIDESHOW_ID, library.ref_for_path("main", "local.png"), True)

    state = library.build_state("main")

    (show,) = state.slideshows
    assert [(item.archive, item.relative_path) for item in show.items] == [
        ("other", "remote.png"),
        ("main", "local.png"),
    ]
    assert [item.relative_path for item in state.items] == ["local.png"]


def test_vanished_references_are_hidden_but_kept(
    library: Library, image_factory: Callable[..., Path]
) -> None:
    path = image_factory(_library_dir(library, "main") / "gone.png")
    ref = library.ref_for_path("main", "gone.png")
    library.toggle_slide(DEFAULT_SLIDESHOW_ID, ref, True)
    path.unlink()

    state = library.build_state("main")

    assert state.slideshows[0].slides == []
    assert library.slideshows.load().slideshows[DEFAULT_SLIDESHOW_ID].slides == [ref]

    image_factory(path)
    assert library.build_state("main").slideshows[0].slides == [ref]


def test_update_item_round_trips_through_state(
    library: Library, image_factory: Callable[..., Path]
) -> None:
    image_factory(_library_dir(library, "main") / "work.png")
    library.build_state("main")
    item_id = encode_id("work.png")

    library.update_item("main", item_id, {"title": "", "artist": " Vermeer ", "tags": ["dutch"]})
    item = library.build_state("main").items[0]

    assert item.title == ""
    assert item.title_kind == "explicit"
    assert item.artist == "Vermeer"
    assert item.tags == ["dutch"]


def test_purge_moves_file_and_erases_references(
    library: Library, image_factory: Callable[..., Path]
) -> None:
    root = _library_dir(library, "main")
    image_factory(root / "sub" / "doomed.png")
    library.build_state("main")
    item_id = encode_id("sub/doomed.png")
    library.update_item("main", item_id, {"title": "Doomed", "artist": "Someone"})
    second = library.create_slideshow("Second")
    ref = SlideRef(archive="main", id=item_id)
    library.toggle_slide(DEFAULT_SLIDESHOW_ID, ref, True)
    library.toggle_slide(second, ref, True)
    archive = library.registry.get("main")
    library.thumbnails.wait(timeout=10)
    thumb = library.thumbnails.thumbnail_path(archive, "sub/doomed.png")
    assert thumb.exists()

    result = library.purge_item("main", item_id)

    assert result.purged_path == "sub/doomed.png"
    assert result.removed_from_slides == 2
    assert not (root / "sub" / "doomed.png").exists()
    assert (archive.purged_dir / "sub" / "doomed.png").exists()
    assert not thumb.exists()
    assert item_id not in library.store("main").load().metadata
    document = library.slideshows.load()
    assert all(ref not in show.slides for show in document.slideshows.values())

    log = json.loads(archive.purged_log.read_text(encoding="utf-8"))
    (entry,) = log["items"]
    assert entry["id"] == item_id
    assert entry["original_path"] == "sub/doomed.png"
    assert entry["purged_path"] == "sub/doomed.png"
    assert entry["metadata"]["title"] == {"kind": "explicit", "value": "Doomed"}
    assert entry["metadata"]["artist"] == "Someone"

    assert library.build_state("main").items == []
    with pytest.raises(NotFoundError):
        library.purge_item("main", item_id)


def test_purge_uses_override_and_avoids_collisions(
    library: Library, image_factory: Callable[..., Path]
) -> None:
    root = _library_dir(library, "main")
    archive = library.registry.get("main")
    item_id = encode_id("same.png")

    image_factory(root / "same.png")
    first = library.purge_item("main", item_id)
    image_factory(root / "same.png")
    second = library.purge_item("main", item_id, metadata_override={"title": "From form"})

    assert first.purged_path == "same.png"
    assert second.purged_path == "same-2.png"
    assert (archive.purged_dir / "same-2.png").exists()
    log = json.loads(archive.purged_log.read_text(encoding="utf-8"))
    assert [entry["purged_path"] for entry in log["items"]] == ["same.png", "same-2.png"]
    assert log["items"][1]["metadata"]["title"] == {"kind": "explicit", "value": "From form"}


def test_purge_rejects_malformed_ids(library: Library) -> None:
    with pytest.raises(NotFoundError):
        library.purge_item("main", "***")


def test_purge_through_alias_id_keeps_item_and_references(
    library: Library, image_factory: Callable[..., Path]
) -> None:
    root = _library_dir(library, "main")
    image_factory(root / "a.jpg")
    library.build_state("main")
    canonical = encode_id("a.jpg")
    alias = canonical[:-1] + ("d" if canonical[-1] == "c" else "c")
    library.update_item("main", canonical, {"artist": "Monet"})
    ref = SlideRef(archive="main", id=canonical)
    library.toggle_slide(DEFAULT_SLIDESHOW_ID, ref, True)

    with pytest.raises(NotFoundError):
        library.purge_item("main", alias)

    assert (root / "a.jpg").exists()
    assert library.store("main").get(canonical).artist == "Monet"
    assert library.slideshows.load().slideshows[DEFAULT_SLIDESHOW_ID].slides == [ref]


def test_export_current_slideshow_skips_vanished(
    library: Library, image_factory: Callable[..., Path]
) -> None:
    root = _library_dir(library, "main")
    image_factory(root / "keep.png", size=(120, 80))
    gone = image_factory(root / "gone.png")
    library.toggle_slide(DEFAULT_SLIDESHOW_ID, library.ref_for_path("main", "keep.png"), True)
    library.toggle_slide(DEFAULT_SLIDESHOW_ID, library.ref_for_path("main", "gone.png"), True)
    gone.unlink()

    result = library.export_slideshow()

    assert result.pages == 1
    assert result.data.startswith(b"%PDF")
    assert result.filename == "Current Slideshow.pdf"
    assert result.blank_images == []


def test_export_of_empty_or_unknown_slideshow_raises(library: Library) -> None:
    with pytest.raises(EmptyOrMissingSlideshowError):
        library.export_slideshow()
    with pytest.raises(EmptyOrMissingSlideshowError):
        library.export_slideshow("ss_unknown")


def test_scheduled_work_returns_futures(
    library: Library, image_factory: Callable[..., Path]
) -> None:
    image_factory(_library_dir(library, "other") / "bg.png")
    library.toggle_slide(DEFAULT_SLIDESHOW_ID, library.ref_for_path("other", "bg.png"), True)

    state = library.schedule_state("other").result(timeout=10)
    export = library.schedule_export(archive_key="other").result(timeout=10)

    assert isinstance(state, LibraryState)
    assert state.active_archive == "other"
    assert export.pages == 1


def test_state_serializes_to_json(library: Library, image_factory: Callable[..., Path]) -> None:
    image_factory(_library_dir(library, "main") / "j.png")

    payload = library.build_state().to_dict()

    assert json.loads(json.dumps(payload))["items"][0]["relative_path"] == "j.png"
    assert payload["slideshows"][0]["id"] == DEFAULT_SLIDESHOW_ID
