"""Tests for the slideshow index."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pytest

from slidelib.archives.models import Item
from slidelib.errors import ConflictError, NotFoundError, PersistenceError
from slidelib.slideshows import DEFAULT_SLIDESHOW_ID, SlideRef, SlideshowIndex
from slidelib.slideshows.models import DEFAULT_SLIDESHOW_NAME, UNTITLED_SLIDESHOW_NAME


def _index(tmp_path: Path) -> SlideshowIndex:
    known = {"main", "other"}
    return SlideshowIndex(
        tmp_path / "slideshows.json",
        normalize_archive=lambda key: key if key in known else "main",
    )


class _Provider:
    def __init__(self, *refs: SlideRef) -> None:
        self.items = {
            (ref.archive, ref.id): Item(
                id=ref.id,
                archive=ref.archive,
                relative_path=f"{ref.id}.jpg",
                url=f"/library/{ref.archive}/{ref.id}.jpg",
                modified_at=datetime.now(timezone.utc),
            )
            for ref in refs
        }

    def resolve_item(self, archive_key: str, item_id: str) -> Optional[Item]:
        return self.items.get((archive_key, item_id))


def test_fresh_document_has_current_default(tmp_path: Path) -> None:
    document = _index(tmp_path).load()

    assert list(document.slideshows) == [DEFAULT_SLIDESHOW_ID]
    assert document.slideshows[DEFAULT_SLIDESHOW_ID].name == DEFAULT_SLIDESHOW_NAME
    assert document.current_slideshow_id == DEFAULT_SLIDESHOW_ID


def test_create_makes_new_slideshow_current(tmp_path: Path) -> None:
    index = _index(tmp_path)

    slideshow_id = index.create("  Spring Lecture ")
    untitled_id = index.create("   ")

    document = index.load()
    assert re.fullmatch(r"ss_[0-9a-z]+_[0-9a-z]{6}", slideshow_id)
    assert document.slideshows[slideshow_id].name == "Spring Lecture"
    assert document.slideshows[untitled_id].name == UNTITLED_SLIDESHOW_NAME
    assert document.current_slideshow_id == untitled_id


def test_delete_reassigns_current_and_rejects_last(tmp_path: Path) -> None:
    index = _index(tmp_path)
    created = index.create("Temporary")

    current = index.delete(created)

    assert current == DEFAULT_SLIDESHOW_ID
    assert index.load().current_slideshow_id == DEFAULT_SLIDESHOW_ID
    with pytest.raises(ConflictError):
        index.delete(DEFAULT_SLIDESHOW_ID)
    with pytest.raises(NotFoundError):
        index.delete("ss_missing")


def test_delete_non_current_keeps_pointer(tmp_path: Path) -> None:
    index = _index(tmp_path)
    created = index.create("Keep me current")

    assert index.delete(DEFAULT_SLIDESHOW_ID) == created


def test_unknown_slideshow_operations_raise_not_found(tmp_path: Path) -> None:
    index = _index(tmp_path)
    ref = SlideRef(archive="main", id="YQ")

    with pytest.raises(NotFoundError):
        index.rename("nope", "x")
    with pytest.raises(NotFoundError):
        index.set_current("nope")
    with pytest.raises(NotFoundError):
        index.add("nope", ref)
    with pytest.raises(NotFoundError):
        index.replace_order("nope", [ref])


def test_add_and_remove_are_noops_when_nothing_changes(tmp_path: Path) -> None:
    index = _index(tmp_path)
    ref = SlideRef(archive="main", id="YQ")

    assert index.add(DEFAULT_SLIDESHOW_ID, ref) is True
    assert index.add(DEFAULT_SLIDESHOW_ID, ref) is False
    assert index.load().slideshows[DEFAULT_SLIDESHOW_ID].slides == [ref]

    assert index.remove(DEFAULT_SLIDESHOW_ID, ref) is True
    assert index.remove(DEFAULT_SLIDESHOW_ID, ref) is False
    assert index.load().slideshows[DEFAULT_SLIDESHOW_ID].slides == []


def test_toggle_sets_membership(tmp_path: Path) -> None:
    index = _index(tmp_path)
    ref = SlideRef(archive="other", id="Yg")

    assert index.toggle(DEFAULT_SLIDESHOW_ID, ref, True)
    assert not index.toggle(DEFAULT_SLIDESHOW_ID, ref, True)
    assert index.toggle(DEFAULT_SLIDESHOW_ID, ref, False)
    assert index.load().slideshows[DEFAULT_SLIDESHOW_ID].slides == []


def test_unknown_archive_keys_normalize_to_default(tmp_path: Path) -> None:
    index = _index(tmp_path)

    index.add(DEFAULT_SLIDESHOW_ID, SlideRef(archive="elsewhere", id="YQ"))
    index.add(DEFAULT_SLIDESHOW_ID, SlideRef(archive="", id="YQ"))

    assert index.load().slideshows[DEFAULT_SLIDESHOW_ID].slides == [SlideRef(archive="main", id="YQ")]


def test_same_id_in_different_archives_is_distinct(tmp_path: Path) -> None:
    index = _index(tmp_path)

    index.add(DEFAULT_SLIDESHOW_ID, SlideRef(archive="main", id="YQ"))
    index.add(DEFAULT_SLIDESHOW_ID, SlideRef(archive="other", id="YQ"))

    assert len(index.load().slideshows[DEFAULT_SLIDESHOW_ID].slides) == 2


def test_replace_order_drops_malformed_references(tmp_path: Path) -> None:
    index = _index(tmp_path)

    index.replace_order(
        DEFAULT_SLIDESHOW_ID,
        [
            {"archive": "other", "id": "Yg"},
            {"archive": "main"},
            SlideRef(archive="main", id="YQ"),
        ],
    )

    assert index.load().slideshows[DEFAULT_SLIDESHOW_ID].slides == [
        SlideRef(archive="other", id="Yg"),
        SlideRef(archive="main", id="YQ"),
    ]


def test_remove_everywhere_counts_removals(tmp_path: Path) -> None:
    index = _index(tmp_path)
    ref = SlideRef(archive="main", id="YQ")
    keep = SlideRef(archive="main", id="Yg")
    second = index.create("Second")
    index.add(DEFAULT_SLIDESHOW_ID, ref)
    index.add(DEFAULT_SLIDESHOW_ID, keep)
    index.add(second, ref)

    assert index.remove_everywhere(ref) == 2
    assert index.remove_everywhere(ref) == 0
    document = index.load()
    assert document.slideshows[DEFAULT_SLIDESHOW_ID].slides == [keep]
    assert document.slideshows[second].slides == []


def test_resolve_skips_vanished_refs_without_mutating(tmp_path: Path) -> None:
    index = _index(tmp_path)
    present = SlideRef(archive="main", id="YQ")
    remote = SlideRef(archive="other", id="Yw")
    vanished = SlideRef(archive="main", id="Yg")
    for ref in (present, vanished, remote):
        index.add(DEFAULT_SLIDESHOW_ID, ref)
    before = index.path.read_text(encoding="utf-8")

    resolved = index.resolve(_Provider(present, remote))

    assert len(resolved) == 1
    show = resolved[0]
    assert show.current is True
    assert show.slides == [present, remote]
    assert [item.id for item in show.items] == ["YQ", "Yw"]
    assert index.path.read_text(encoding="utf-8") == before
    assert index.load().slideshows[DEFAULT_SLIDESHOW_ID].slides == [present, vanished, remote]


def test_document_is_repaired_on_load(tmp_path: Path) -> None:
    index = _index(tmp_path)
    index.path.write_text(
        json.dumps(
            {
                "slideshows": {
                    "ss_a": {
                        "name": "  ",
                        "slides": [
                            {"archive": "main", "id": "YQ"},
                            "junk",
                            {"archive": "main"},
                            {"archive": "retired", "id": "Yg"},
                        ],
                    },
                    "broken": "not a slideshow",
                },
                "currentSlideshowId": "missing",
            }
        ),
        encoding="utf-8",
    )

    document = index.load()

    assert list(document.slideshows) == ["ss_a"]
    assert document.current_slideshow_id == "ss_a"
    assert document.slideshows["ss_a"].name == UNTITLED_SLIDESHOW_NAME
    assert document.slideshows["ss_a"].slides == [
        SlideRef(archive="main", id="YQ"),
        SlideRef(archive="main", id="Yg"),
    ]


def test_empty_document_gets_default_slideshow(tmp_path: Path) -> None:
    index = _index(tmp_path)
    index.path.write_text(json.dumps({"slideshows": {}}), encoding="utf-8")

    document = index.load()

    assert list(document.slideshows) == [DEFAULT_SLIDESHOW_ID]
    assert document.current_slideshow_id == DEFAULT_SLIDESHOW_ID


def test_corrupt_document_raises_persistence_error(tmp_path: Path) -> None:
    index = _index(tmp_path)
    index.path.write_text("[1, 2", encoding="utf-8")

    with pytest.raises(PersistenceError):
        index.load()
