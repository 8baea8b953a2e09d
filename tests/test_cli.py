"""Integration tests for the SlideLib CLI."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable

from click.testing import CliRunner

from slidelib.archives.identity import encode_id
from slidelib.cli import cli


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    """Return environment variables pointing HOME to a temp directory."""
    env = dict(os.environ)
    env["HOME"] = str(tmp_path / "home")
    env["SLIDELIB__LOGGING__LEVEL"] = "ERROR"
    env["COLUMNS"] = "200"
    return env


def _library_dir(tmp_path: Path, archive: str = "slide_library") -> Path:
    return tmp_path / "home" / ".slidelib" / "data" / "archives" / archive / "library"


def _invoke_json(runner: CliRunner, args: list[str], env: dict[str, Any]) -> Any:
    result = runner.invoke(cli, [*args, "--json"], env=env)
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "SlideLib manages image archives" in result.output
    for command in ("state", "item", "slideshow", "export", "config"):
        assert command in result.output


def test_state_lists_items(tmp_path: Path, image_factory: Callable[..., Path]) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    image_factory(_library_dir(tmp_path) / "first.png")

    payload = _invoke_json(runner, ["state"], env)

    assert payload["active_archive"] == "slide_library"
    assert [item["relative_path"] for item in payload["items"]] == ["first.png"]
    assert payload["current_slideshow_id"] == "default"

    table = runner.invoke(cli, ["state"], env=env)
    assert table.exit_code == 0
    assert "first.png" in table.output
    assert "items=1" in table.output


def test_state_table_shows_bracketed_names_literally(
    tmp_path: Path, image_factory: Callable[..., Path]
) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    image_factory(_library_dir(tmp_path) / "Study [/b] 2.jpg")
    item_id = encode_id("Study [/b] 2.jpg")
    _invoke_json(runner, ["item", "update", item_id, "--artist", "[bold]Anon"], env)

    created = _invoke_json(runner, ["slideshow", "create", "Room [/red]"], env)
    result = runner.invoke(cli, ["state"], env=env)

    assert result.exit_code == 0, result.output
    assert "Study [/b] 2.jpg" in result.output
    assert "[bold]Anon" in result.output
    assert "Room [/red]" in result.output
    assert created["id"] in result.output


def test_item_update_keeps_unspecified_fields(tmp_path: Path, image_factory: Callable[..., Path]) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    image_factory(_library_dir(tmp_path) / "piece.png")
    item_id = encode_id("piece.png")
    _invoke_json(runner, ["state"], env)

    _invoke_json(
        runner,
        ["item", "update", item_id, "--artist", "Turner", "--tag", "sea", "--tag", "sea"],
        env,
    )
    payload = _invoke_json(runner, ["item", "update", item_id, "--title", "Fighting Temeraire"], env)

    metadata = payload["metadata"]
    assert metadata["title"] == {"kind": "explicit", "value": "Fighting Temeraire"}
    assert metadata["artist"] == "Turner"
    assert metadata["tags"] == ["sea"]


def test_item_update_unknown_item_reports_not_found(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["item", "update", encode_id("nope.png"), "--title", "x", "--json"], env=env)

    assert result.exit_code == 1
    assert json.loads(result.output)["error"]["code"] == "not_found"


def test_slideshow_workflow_and_export(tmp_path: Path, image_factory: Callable[..., Path]) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    image_factory(_library_dir(tmp_path) / "one.png", size=(80, 60))
    image_factory(_library_dir(tmp_path, "excursions") / "two.png", size=(60, 80))

    created = _invoke_json(runner, ["slideshow", "create", "Week 3"], env)
    slideshow_id = created["id"]
    add = runner.invoke(
        cli,
        ["slideshow", "add", encode_id("one.png"), f"excursions:{encode_id('two.png')}"],
        env=env,
    )
    assert add.exit_code == 0, add.output
    assert "Added 2 slide(s)" in add.output

    listing = _invoke_json(runner, ["slideshow", "list"], env)
    shows = {show["id"]: show for show in listing["slideshows"]}
    assert listing["current_slideshow_id"] == slideshow_id
    assert shows[slideshow_id]["slides"] == [
        {"archive": "slide_library", "id": encode_id("one.png")},
        {"archive": "excursions", "id": encode_id("two.png")},
    ]

    output_dir = tmp_path / "out"
    output_dir.mkdir()
    exported = _invoke_json(runner, ["export", slideshow_id, "--output", str(output_dir)], env)
    pdf = Path(exported["path"])
    assert pdf == output_dir / "Week 3.pdf"
    assert pdf.read_bytes().startswith(b"%PDF")
    assert exported["pages"] == 2


def test_delete_last_slideshow_is_a_conflict(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["slideshow", "delete", "default", "--json"], env=env)

    assert result.exit_code == 1
    assert json.loads(result.output)["error"]["code"] == "conflict"


def test_export_empty_slideshow_fails(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["export", "--output", str(tmp_path / "x.pdf"), "--json"], env=env)

    assert result.exit_code == 1
    assert json.loads(result.output)["error"]["code"] == "empty_slideshow"
    assert not (tmp_path / "x.pdf").exists()


def test_item_purge_reports_removed_references(
    tmp_path: Path, image_factory: Callable[..., Path]
) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    image_factory(_library_dir(tmp_path) / "bye.png")
    item_id = encode_id("bye.png")
    assert runner.invoke(cli, ["slideshow", "add", item_id], env=env).exit_code == 0

    payload = _invoke_json(runner, ["item", "purge", item_id], env)

    assert payload["purged_path"] == "bye.png"
    assert payload["removed_from_slides"] == 1
    assert not (_library_dir(tmp_path) / "bye.png").exists()

    again = runner.invoke(cli, ["item", "purge", item_id, "--json"], env=env)
    assert again.exit_code == 1
    assert json.loads(again.output)["error"]["code"] == "not_found"


def test_broken_config_reports_config_error(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    config_path = tmp_path / "home" / ".slidelib" / "config.yaml"
    config_path.parent.mkdir(parents=True)
    config_path.write_text("thumbnails: [1, 2", encoding="utf-8")

    result = runner.invoke(cli, ["state", "--json"], env=env)

    assert result.exit_code == 1
    assert json.loads(result.output)["error"]["code"] == "config_error"
