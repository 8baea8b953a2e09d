"""Command line interface for the SlideLib project."""

from __future__ import annotations

import difflib
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from slidelib.archives.models import TEXT_FIELDS
from slidelib.config import ConfigError, ConfigManager, SlideLibConfig, resolve_with_precedence
from slidelib.errors import (
    ConflictError,
    EmptyOrMissingSlideshowError,
    InvalidIdError,
    NotFoundError,
    PersistenceError,
)
from slidelib.library import Library, LibraryState
from slidelib.runtime_logging import configure_logging
from slidelib.slideshows import SlideRef

console = Console()

_ERROR_CODES: tuple[tuple[type[Exception], str], ...] = (
    (NotFoundError, "not_found"),
    (InvalidIdError, "invalid_id"),
    (ConflictError, "conflict"),
    (EmptyOrMissingSlideshowError, "empty_slideshow"),
    (PersistenceError, "persistence_error"),
    (ConfigError, "config_error"),
)


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _fail(exc: Exception, *, json_output: bool, action: str) -> None:
    """Map an exception raised by a command body to its error code and emit it."""
    if isinstance(exc, click.ClickException):
        _handle_cli_error(exc.format_message(), code="cli_error", json_output=json_output, original=exc)
    for error_type, code in _ERROR_CODES:
        if isinstance(exc, error_type):
            _handle_cli_error(str(exc), code=code, json_output=json_output, original=exc)
    _handle_cli_error(
        f"Unexpected error while {action}: {exc}",
        code="internal_error",
        json_output=json_output,
        details={"exception": type(exc).__name__},
        original=exc,
    )


def _emit_message(message: Any, *, mode: str, quiet: bool) -> None:
    """Conditionally print CLI output according to quiet settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
    """

    if quiet and mode != "error":
        return

    console.print(message)


def _resolve_quiet(ctx: click.Context, quiet: bool, config: SlideLibConfig, json_output: bool) -> bool:
    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    if json_output:
        if explicit_quiet and quiet:
            raise click.ClickException("--json cannot be combined with --quiet.")
        return False
    return quiet if explicit_quiet else config.cli.quiet_default


def _load_config() -> SlideLibConfig:
    return ConfigManager().load()


@contextmanager
def _open_library(config: SlideLibConfig) -> Iterator[Library]:
    """Configure logging and yield a library that is closed on exit."""
    configure_logging(config.logging, Path(config.library.data_dir).expanduser())
    library = Library.from_config(config)
    try:
        yield library
    finally:
        library.close()


def _parse_ref(library: Library, value: str, archive: Optional[str]) -> SlideRef:
    """Parse ``ARCHIVE:ID`` or a bare ``ID`` resolved against ``archive``."""
    if ":" in value:
        archive_key, _, item_id = value.partition(":")
        return library.make_ref(archive_key, item_id.strip())
    return library.make_ref(archive, value.strip())


def _current_slideshow_id(library: Library, slideshow_id: Optional[str]) -> str:
    return slideshow_id or library.slideshows.load().current_slideshow_id


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a nested value within a dictionary for a dotted path.

    Args:
        target: Mapping to mutate in-place.
        path: Sequence of keys representing the nested location.
        value: Value to assign at the nested location.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """

    node = target
    for segment in path[:-1]:
        existing = node.get(segment)
        if existing is None:
            existing = {}
            node[segment] = existing
        elif not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


def _state_table(state: LibraryState) -> Table:
    table = Table(title=f"Archive: {escape(state.active_archive)}", show_lines=False)
    table.add_column("Path", overflow="fold")
    table.add_column("Title")
    table.add_column("Artist")
    table.add_column("Year")
    table.add_column("Tags")
    table.add_column("Thumb", justify="center")
    for item in state.items:
        title = escape(item.title)
        if item.title_kind != "explicit":
            title = f"[dim]{title}[/dim]"
        table.add_row(
            escape(item.relative_path),
            title,
            escape(item.artist),
            escape(item.year),
            escape(", ".join(item.tags)),
            "yes" if item.thumb_url else "-",
        )
    return table


def _slideshow_table(state: LibraryState) -> Table:
    table = Table(title="Slideshows")
    table.add_column("", width=1)
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Slides", justify="right")
    for show in state.slideshows:
        table.add_row(
            "*" if show.current else "", escape(show.id), escape(show.name), str(len(show.slides))
        )
    return table


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="slidelib")
def cli() -> None:
    """SlideLib manages image archives, their metadata, and exportable slideshows.

    Returns:
        None: This function is invoked for its side effects.
    """


@cli.command()
@click.option("--archive", "archive_key", type=str, help="Archive to reconcile and list.")
@click.option("--json", "json_output", is_flag=True, help="Emit the state as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def state(ctx: click.Context, archive_key: Optional[str], json_output: bool, quiet: bool) -> None:
    """Reconcile an archive with disk and display its items and slideshows.

    Args:
        ctx: Click context for parameter source inspection.
        archive_key: Archive to read; unknown keys fall back to the default archive.
        json_output: When True, emit JSON instead of tables.
        quiet: When True, suppress non-error output entirely.
    """
    try:
        config = _load_config()
        quiet_enabled = _resolve_quiet(ctx, quiet, config, json_output)
        with _open_library(config) as library:
            snapshot = library.build_state(archive_key)

        if json_output:
            console.print_json(data=snapshot.to_dict())
            return

        _emit_message(_state_table(snapshot), mode="detail", quiet=quiet_enabled)
        _emit_message(_slideshow_table(snapshot), mode="detail", quiet=quiet_enabled)
        _emit_message(
            f"[green]State summary for {escape(snapshot.active_archive)}: items={len(snapshot.items)}, "
            f"slideshows={len(snapshot.slideshows)}.[/green]",
            mode="summary",
            quiet=quiet_enabled,
        )
    except Exception as exc:
        _fail(exc, json_output=json_output, action="reading state")


@cli.group()
def item() -> None:
    """Edit or purge archive items."""


@item.command("update")
@click.argument("item_id")
@click.option("--archive", "archive_key", type=str, help="Archive holding the item.")
@click.option("--title", type=str, help="Explicit title; an empty string clears it.")
@click.option("--artist", type=str)
@click.option("--year", type=str)
@click.option("--medium", type=str)
@click.option("--gallery", type=str)
@click.option("--size", type=str)
@click.option("--tag", "tags", multiple=True, help="Tag to assign; repeat for several.")
@click.option("--clear-tags", is_flag=True, help="Remove all tags.")
@click.option("--json", "json_output", is_flag=True, help="Emit the stored record as JSON.")
def item_update(
    item_id: str,
    archive_key: Optional[str],
    title: Optional[str],
    artist: Optional[str],
    year: Optional[str],
    medium: Optional[str],
    gallery: Optional[str],
    size: Optional[str],
    tags: tuple[str, ...],
    clear_tags: bool,
    json_output: bool,
) -> None:
    """Update metadata for ITEM_ID, keeping fields that are not given."""
    try:
        config = _load_config()
        with _open_library(config) as library:
            current = library.store(archive_key).get(item_id)
            fields: dict[str, Any] = {}
            if current is not None:
                fields.update({name: getattr(current, name) for name in TEXT_FIELDS})
                fields["tags"] = list(current.tags)
            given = {"artist": artist, "year": year, "medium": medium, "gallery": gallery, "size": size}
            fields.update({name: value for name, value in given.items() if value is not None})
            if clear_tags:
                fields["tags"] = []
            if tags:
                fields["tags"] = list(tags)
            if title is not None:
                fields["title"] = title
            record = library.update_item(archive_key, item_id, fields)

        if json_output:
            console.print_json(data={"id": item_id, "metadata": record.model_dump(mode="json")})
            return
        console.print(f"[green]Updated {escape(Library.describe_id(item_id))}.[/green]")
    except Exception as exc:
        _fail(exc, json_output=json_output, action="updating an item")


@item.command("purge")
@click.argument("item_id")
@click.option("--archive", "archive_key", type=str, help="Archive holding the item.")
@click.option("--json", "json_output", is_flag=True, help="Emit the purge result as JSON.")
def item_purge(item_id: str, archive_key: Optional[str], json_output: bool) -> None:
    """Move ITEM_ID to the purge directory and drop every reference to it."""
    try:
        config = _load_config()
        with _open_library(config) as library:
            result = library.purge_item(archive_key, item_id)

        if json_output:
            console.print_json(
                data={
                    "id": item_id,
                    "purged_path": result.purged_path,
                    "removed_from_slides": result.removed_from_slides,
                }
            )
            return
        console.print(
            f"[green]Purged {escape(Library.describe_id(item_id))} to {escape(result.purged_path)} "
            f"({result.removed_from_slides} slideshow reference(s) removed).[/green]"
        )
    except Exception as exc:
        _fail(exc, json_output=json_output, action="purging an item")


@cli.group()
def slideshow() -> None:
    """Manage slideshows."""


@slideshow.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit slideshows as JSON.")
def slideshow_list(json_output: bool) -> None:
    """List slideshows with their resolvable slide counts."""
    try:
        config = _load_config()
        with _open_library(config) as library:
            snapshot = library.build_state()

        if json_output:
            payload = snapshot.to_dict()
            console.print_json(
                data={
                    "slideshows": payload["slideshows"],
                    "current_slideshow_id": payload["current_slideshow_id"],
                }
            )
            return
        console.print(_slideshow_table(snapshot))
    except Exception as exc:
        _fail(exc, json_output=json_output, action="listing slideshows")


@slideshow.command("create")
@click.argument("name", required=False)
@click.option("--json", "json_output", is_flag=True, help="Emit the new slideshow id as JSON.")
def slideshow_create(name: Optional[str], json_output: bool) -> None:
    """Create a slideshow named NAME and make it current."""
    try:
        config = _load_config()
        with _open_library(config) as library:
            slideshow_id = library.create_slideshow(name)

        if json_output:
            console.print_json(data={"id": slideshow_id})
            return
        console.print(f"[green]Created slideshow {escape(slideshow_id)}.[/green]")
    except Exception as exc:
        _fail(exc, json_output=json_output, action="creating a slideshow")


@slideshow.command("rename")
@click.argument("slideshow_id")
@click.argument("name")
def slideshow_rename(slideshow_id: str, name: str) -> None:
    """Rename SLIDESHOW_ID to NAME."""
    try:
        config = _load_config()
        with _open_library(config) as library:
            library.rename_slideshow(slideshow_id, name)
        console.print(f"[green]Renamed slideshow {escape(slideshow_id)}.[/green]")
    except Exception as exc:
        _fail(exc, json_output=False, action="renaming a slideshow")


@slideshow.command("delete")
@click.argument("slideshow_id")
@click.option("--json", "json_output", is_flag=True, help="Emit the new current id as JSON.")
def slideshow_delete(slideshow_id: str, json_output: bool) -> None:
    """Delete SLIDESHOW_ID; the last remaining slideshow cannot be deleted."""
    try:
        config = _load_config()
        with _open_library(config) as library:
            current_id = library.delete_slideshow(slideshow_id)

        if json_output:
            console.print_json(data={"deleted": slideshow_id, "current_slideshow_id": current_id})
            return
        console.print(
            f"[green]Deleted slideshow {escape(slideshow_id)}; "
            f"current is {escape(current_id)}.[/green]"
        )
    except Exception as exc:
        _fail(exc, json_output=json_output, action="deleting a slideshow")


@slideshow.command("use")
@click.argument("slideshow_id")
def slideshow_use(slideshow_id: str) -> None:
    """Make SLIDESHOW_ID the current slideshow."""
    try:
        config = _load_config()
        with _open_library(config) as library:
            library.set_current_slideshow(slideshow_id)
        console.print(f"[green]Current slideshow is {escape(slideshow_id)}.[/green]")
    except Exception as exc:
        _fail(exc, json_output=False, action="switching slideshows")


def _toggle_refs(
    refs: tuple[str, ...],
    *,
    slideshow_id: Optional[str],
    archive_key: Optional[str],
    selected: bool,
) -> None:
    config = _load_config()
    with _open_library(config) as library:
        target = _current_slideshow_id(library, slideshow_id)
        changed = 0
        for value in refs:
            ref = _parse_ref(library, value, archive_key)
            if library.toggle_slide(target, ref, selected):
                changed += 1
    verb = "Added" if selected else "Removed"
    console.print(f"[green]{verb} {changed} slide(s) in {escape(target)}.[/green]")


@slideshow.command("add")
@click.argument("refs", nargs=-1, required=True)
@click.option("--slideshow", "slideshow_id", type=str, help="Target slideshow (defaults to current).")
@click.option("--archive", "archive_key", type=str, help="Archive for bare item ids.")
def slideshow_add(refs: tuple[str, ...], slideshow_id: Optional[str], archive_key: Optional[str]) -> None:
    """Append REFS (ITEM_ID or ARCHIVE:ITEM_ID) to a slideshow."""
    try:
        _toggle_refs(refs, slideshow_id=slideshow_id, archive_key=archive_key, selected=True)
    except Exception as exc:
        _fail(exc, json_output=False, action="adding slides")


@slideshow.command("remove")
@click.argument("refs", nargs=-1, required=True)
@click.option("--slideshow", "slideshow_id", type=str, help="Target slideshow (defaults to current).")
@click.option("--archive", "archive_key", type=str, help="Archive for bare item ids.")
def slideshow_remove(
    refs: tuple[str, ...], slideshow_id: Optional[str], archive_key: Optional[str]
) -> None:
    """Remove REFS (ITEM_ID or ARCHIVE:ITEM_ID) from a slideshow."""
    try:
        _toggle_refs(refs, slideshow_id=slideshow_id, archive_key=archive_key, selected=False)
    except Exception as exc:
        _fail(exc, json_output=False, action="removing slides")


@slideshow.command("order")
@click.argument("slideshow_id")
@click.argument("refs", nargs=-1)
@click.option("--archive", "archive_key", type=str, help="Archive for bare item ids.")
def slideshow_order(slideshow_id: str, refs: tuple[str, ...], archive_key: Optional[str]) -> None:
    """Replace the slides of SLIDESHOW_ID with REFS, in the given order."""
    try:
        config = _load_config()
        with _open_library(config) as library:
            parsed = [_parse_ref(library, value, archive_key) for value in refs]
            library.reorder_slideshow(slideshow_id, parsed)
        console.print(f"[green]Stored {len(parsed)} slide(s) in {escape(slideshow_id)}.[/green]")
    except Exception as exc:
        _fail(exc, json_output=False, action="reordering slides")


@cli.command()
@click.argument("slideshow_id", required=False)
@click.option("--archive", "archive_key", type=str, help="Active archive for the export.")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=True, path_type=Path),
    help="Output file or directory (defaults to the current directory).",
)
@click.option("--json", "json_output", is_flag=True, help="Emit export details as JSON.")
def export(
    slideshow_id: Optional[str],
    archive_key: Optional[str],
    output: Optional[Path],
    json_output: bool,
) -> None:
    """Render SLIDESHOW_ID (the current slideshow by default) to a PDF file."""
    try:
        config = _load_config()
        with _open_library(config) as library:
            result = library.export_slideshow(slideshow_id, archive_key)

        destination = output or Path.cwd()
        if destination.is_dir():
            destination = destination / result.filename
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(result.data)

        if json_output:
            console.print_json(
                data={
                    "path": str(destination),
                    "pages": result.pages,
                    "blank_images": result.blank_images,
                }
            )
            return
        console.print(f"[green]Exported {result.pages} page(s) to {escape(str(destination))}.[/green]")
        for entry in result.blank_images:
            console.print(f"[yellow]  - no image for {escape(entry)}[/yellow]")
    except Exception as exc:
        _fail(exc, json_output=json_output, action="exporting a slideshow")


@cli.group()
def config() -> None:
    """Manage SlideLib configuration files and overrides.

    Returns:
        None: This function is invoked for its side effects.
    """


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="json"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'thumbnails.max_edge'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    file_data = manager.file_overrides()

    try:
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=SlideLibConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    diff = [
        line
        for line in difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
        if not line[1:].startswith("# Last updated:")
    ]

    if not any(line.startswith(("+", "-")) and not line.startswith(("+++", "---")) for line in diff):
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {escape('.'.join(segments))}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point.

    Returns:
        None: This function is invoked for its side effects.
    """
    cli()


if __name__ == "__main__":
    main()
