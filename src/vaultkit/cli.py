#!/usr/bin/env python3
"""
vk: CLI for vaultkit

Usage:
    vk stats                       # Vault-wide counts
    vk backlinks "Note"            # Who links here
    vk traverse "Note" --depth=3   # Follow outgoing links
    vk search "query"              # Line-level content search
    vk serve                       # Run the MCP server
"""

from __future__ import annotations

import difflib
import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, NoReturn

import click
from click.exceptions import UsageError

from . import __version__ as VAULTKIT_VERSION
from .config import (
    DEFAULT_LIMIT,
    DEFAULT_TRAVERSE_DEPTH,
    MAX_BATCH_NAMES,
    SIMILAR_NAME_MAX_DISTANCE,
)
from .models import FilterSpec

if TYPE_CHECKING:
    from .store import VaultStore


# ─────────────────────────────────────────────────────────────────────────────
# Output Formatting
# ─────────────────────────────────────────────────────────────────────────────


def format_table(rows: list[dict], columns: list[str], max_widths: dict | None = None) -> str:
    """Format rows as a simple table."""
    if not rows:
        return ""

    max_widths = max_widths or {}

    def cell(row: dict, col: str) -> str:
        val = row.get(col, "")
        if isinstance(val, list):
            val = ", ".join(str(v) for v in val)
        val = str(val)
        limit = max_widths.get(col, 50)
        if len(val) > limit:
            val = val[: limit - 3] + "..."
        return val

    cells = [{col: cell(row, col) for col in columns} for row in rows]
    widths = {col: max([len(col)] + [len(c[col]) for c in cells]) for col in columns}

    header = "  ".join(col.upper().ljust(widths[col]) for col in columns)
    separator = "  ".join("-" * widths[col] for col in columns)
    lines = [header, separator]
    for c in cells:
        lines.append("  ".join(c[col].ljust(widths[col]) for col in columns).rstrip())

    return "\n".join(lines)


def output(data, as_json: bool = False):
    """Output data as JSON or formatted text."""
    if as_json:
        click.echo(json.dumps(data, indent=2, default=str))
    else:
        click.echo(data)


def _page_footer(page: dict[str, Any]) -> str | None:
    """'Showing a-b of n' when the page doesn't hold everything."""
    shown = len(page["results"])
    if shown == page["total"]:
        return None
    if not shown:
        return f"Showing 0 of {page['total']} (offset {page['offset']})"
    start = page["offset"] + 1
    return f"Showing {start}-{start + shown - 1} of {page['total']}"


def _output_page(
    page: dict[str, Any],
    columns: list[str],
    as_json: bool,
    empty_message: str,
    max_widths: dict | None = None,
) -> None:
    if as_json:
        output(page, as_json=True)
        return
    if not page["results"]:
        click.echo(empty_message)
    else:
        click.echo(format_table(page["results"], columns, max_widths))
    footer = _page_footer(page)
    if footer:
        click.echo(footer)


def _handle_error(ctx: click.Context, message: str, exit_code: int = 1) -> NoReturn:
    """Print an error in the selected format and exit."""
    as_json = ctx.params.get("as_json", False)
    if as_json:
        click.echo(json.dumps({"error": message}), err=True)
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(exit_code)


def _check(ctx: click.Context, result: dict[str, Any]) -> dict[str, Any]:
    """Exit with the operation's error message if it reported one."""
    if "error" in result:
        _handle_error(ctx, result["error"])
    return result


# ─────────────────────────────────────────────────────────────────────────────
# Shared options
# ─────────────────────────────────────────────────────────────────────────────


def json_option(f: Callable) -> Callable:
    return click.option("--json", "as_json", is_flag=True, help="Output as JSON")(f)


def page_options(f: Callable) -> Callable:
    f = click.option(
        "--offset", default=0, show_default=True, help="Skip this many results"
    )(f)
    f = click.option(
        "--limit", "-n", default=DEFAULT_LIMIT, show_default=True, help="Max results"
    )(f)
    return f


def filter_options(f: Callable) -> Callable:
    """Add the shared note filters (--folder, --tag, --after, ...)."""
    options = [
        click.option("--folder", help="Only notes under this vault folder"),
        click.option(
            "--exclude-folder", "exclude_folders", multiple=True, help="Skip notes under folder"
        ),
        click.option("--exclude-pattern", help="Skip notes whose name matches this regex"),
        click.option("--tag", "tags", multiple=True, help="Only notes with any of these tags"),
        click.option(
            "--exclude-tag", "exclude_tags", multiple=True, help="Skip notes with any of these tags"
        ),
        click.option("--after", "modified_after", help="Modified on/after (ISO date)"),
        click.option("--before", "modified_before", help="Modified before (ISO date)"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _filter_spec(
    folder: str | None = None,
    exclude_folders: tuple[str, ...] = (),
    exclude_pattern: str | None = None,
    tags: tuple[str, ...] = (),
    exclude_tags: tuple[str, ...] = (),
    modified_after: str | None = None,
    modified_before: str | None = None,
) -> FilterSpec:
    return FilterSpec(
        folder=folder,
        exclude_folders=list(exclude_folders),
        exclude_pattern=exclude_pattern,
        tags=list(tags),
        exclude_tags=list(exclude_tags),
        modified_after=modified_after,
        modified_before=modified_before,
    )


def _get_store(ctx: click.Context) -> VaultStore:
    """Open the vault selected by --vault or configuration."""
    from .config import ConfigurationError, get_vault_root
    from .store import VaultStore

    vault = ctx.obj.get("vault") if ctx.obj else None
    try:
        root = Path(vault).expanduser() if vault else get_vault_root()
    except ConfigurationError as e:
        _handle_error(ctx, str(e))

    if not root.is_dir():
        _handle_error(ctx, f"Vault directory not found: {root}")
    return VaultStore(root)


def _check_batch(ctx: click.Context, names: tuple[str, ...]) -> None:
    if len(names) > MAX_BATCH_NAMES:
        _handle_error(ctx, f"Too many names ({len(names)}); the limit is {MAX_BATCH_NAMES}")


# ─────────────────────────────────────────────────────────────────────────────
# CLI group
# ─────────────────────────────────────────────────────────────────────────────


class SuggestingGroup(click.Group):
    """Click group that suggests the closest command for typos."""

    def resolve_command(self, ctx, args):
        try:
            return super().resolve_command(ctx, args)
        except UsageError as e:
            cmd_name = args[0] if args else ""
            if cmd_name and "No such command" in str(e):
                matches = difflib.get_close_matches(
                    cmd_name, self.list_commands(ctx), n=1, cutoff=0.6
                )
                if matches:
                    raise UsageError(
                        f"No such command '{cmd_name}'. Did you mean '{matches[0]}'?"
                    ) from e
            raise


@click.group(cls=SuggestingGroup)
@click.version_option(version=VAULTKIT_VERSION, prog_name="vk")
@click.option(
    "--vault",
    type=click.Path(file_okay=False),
    help="Vault directory (overrides VAULTKIT_VAULT_PATH and .vaultkit.yaml)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    envvar="VAULTKIT_QUIET",
    help="Suppress warnings, show only errors and essential output",
)
@click.pass_context
def cli(ctx: click.Context, vault: str | None, quiet: bool):
    """vk: query the link graph, tags and text of a markdown vault.

    \b
    Link structure:
      vk backlinks "Note"            # Notes linking to Note
      vk traverse "Note" --depth=3   # Outgoing links, breadth-first
      vk orphans                     # Notes nothing links to
      vk missing                     # Links to notes that don't exist

    \b
    Lookup and search:
      vk resolve "note name"         # Exact, then accent/dash-insensitive
      vk search "query" --mode=word
      vk tagged project --folder=work
      vk similar "Meeting Notes"     # Near-duplicate names

    \b
    Filters (most list commands):
      --folder, --exclude-folder, --exclude-pattern, --tag, --exclude-tag,
      --after, --before, --limit, --offset
    """
    from ._logging import set_quiet_mode

    ctx.ensure_object(dict)
    ctx.obj["vault"] = vault
    ctx.obj["quiet"] = quiet

    if quiet:
        set_quiet_mode(True)


# ─────────────────────────────────────────────────────────────────────────────
# Server
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.option("--watch", is_flag=True, help="Rebuild the index when notes change")
@click.pass_context
def serve(ctx: click.Context, watch: bool):
    """Run the MCP server over stdio.

    Without --watch, VAULTKIT_WATCH=1 also enables the file watcher.
    """
    from . import server

    server._store = _get_store(ctx)
    server.main(watch=watch or None)


# ─────────────────────────────────────────────────────────────────────────────
# Link structure
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@filter_options
@json_option
@click.pass_context
def stats(ctx: click.Context, as_json: bool, **filters):
    """Show note, tag, orphan and missing-link counts."""
    from .core import vault_stats

    result = vault_stats(_get_store(ctx).index, _filter_spec(**filters))
    if as_json:
        output(result, as_json=True)
        return

    click.echo(f"Total notes:   {result['total_notes']}")
    click.echo(f"Tagged:        {result['tagged']}")
    click.echo(f"Untagged:      {result['untagged']}")
    click.echo(f"Orphans:       {result['orphans']}")
    click.echo(f"Missing links: {result['missing_links']}")


@cli.command()
@click.argument("names", nargs=-1, required=True)
@filter_options
@page_options
@json_option
@click.pass_context
def backlinks(
    ctx: click.Context, names: tuple[str, ...], limit: int, offset: int, as_json: bool, **filters
):
    """Show notes that link to NAMES.

    \b
    Examples:
      vk backlinks "Project Plan"
      vk backlinks "Alpha" "Beta"      # Several at once (filters ignored)
    """
    from .core import find_backlinks, find_backlinks_batch

    _check_batch(ctx, names)
    index = _get_store(ctx).index

    if len(names) > 1:
        result = find_backlinks_batch(index, names)
        if as_json:
            output(result, as_json=True)
            return
        for entry in result["results"]:
            click.echo(f"{entry['name']} ({len(entry['backlinks'])})")
            for link in entry["backlinks"]:
                click.echo(f"  {link['name']}  {link['path']}")
        for error in result["errors"]:
            click.echo(f"Not found: {error['name']}", err=True)
        return

    result = _check(
        ctx, find_backlinks(index, names[0], _filter_spec(**filters), limit=limit, offset=offset)
    )
    if not as_json:
        click.echo(f"Backlinks to {result['note']}: {result['total']}")
    _output_page(result, ["name", "path"], as_json, "No backlinks.")


@cli.command()
@filter_options
@page_options
@json_option
@click.pass_context
def orphans(ctx: click.Context, limit: int, offset: int, as_json: bool, **filters):
    """List notes with no incoming links."""
    from .core import find_orphans

    result = find_orphans(_get_store(ctx).index, _filter_spec(**filters), limit, offset)
    _output_page(result, ["name", "path"], as_json, "No orphans.")


@cli.command()
@filter_options
@page_options
@json_option
@click.pass_context
def missing(ctx: click.Context, limit: int, offset: int, as_json: bool, **filters):
    """List linked notes that don't exist, most referenced first."""
    from .core import find_missing_notes

    result = find_missing_notes(_get_store(ctx).index, _filter_spec(**filters), limit, offset)
    _output_page(
        result,
        ["name", "count", "referenced_by"],
        as_json,
        "No missing notes.",
        max_widths={"referenced_by": 80},
    )


@cli.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--depth", "-d", default=DEFAULT_TRAVERSE_DEPTH, show_default=True, help="Max depth")
@click.option(
    "--exclude-folder", "exclude_folders", multiple=True, help="Don't enter notes under folder"
)
@click.option("--content", "include_content", is_flag=True, help="Include note content")
@json_option
@click.pass_context
def traverse(
    ctx: click.Context,
    names: tuple[str, ...],
    depth: int,
    exclude_folders: tuple[str, ...],
    include_content: bool,
    as_json: bool,
):
    """Follow outgoing links from NAMES breadth-first.

    \b
    Examples:
      vk traverse "Index"
      vk traverse "Alpha" "Beta" --depth=1 --exclude-folder=archive
    """
    from .core import traverse_links

    roots: str | list[str] = names[0] if len(names) == 1 else list(names)
    result = _check(
        ctx,
        traverse_links(
            _get_store(ctx).index,
            roots,
            depth=depth,
            exclude_folders=list(exclude_folders),
            include_content=include_content,
        ),
    )
    if as_json:
        output(result, as_json=True)
        return

    for note in result["notes"]:
        suffix = " (embed)" if note["link_type"] == "embed" else ""
        click.echo(f"{'  ' * note['depth']}{note['name']}{suffix}  [{note['path']}]")
        if include_content:
            for line in note["content"].splitlines():
                click.echo(f"{'  ' * (note['depth'] + 1)}| {line}")
    if result["missing"]:
        click.echo("")
        click.echo("Missing:")
        for entry in result["missing"]:
            click.echo(f"  {entry['name']}  <- {', '.join(entry['referenced_by'])}")


# ─────────────────────────────────────────────────────────────────────────────
# Lookup
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--metadata", "-m", is_flag=True, help="Show metadata only, not content")
@json_option
@click.pass_context
def resolve(ctx: click.Context, names: tuple[str, ...], metadata: bool, as_json: bool):
    """Resolve wikilink NAMES to notes.

    A single name prints the note; several print one row each.
    """
    from .core import resolve_note, resolve_notes

    _check_batch(ctx, names)
    index = _get_store(ctx).index

    if len(names) > 1:
        result = resolve_notes(index, names)
        if as_json:
            output(result, as_json=True)
            return
        if result["resolved"]:
            click.echo(format_table(result["resolved"], ["query", "name", "path", "match"]))
        for error in result["errors"]:
            click.echo(f"Not found: {error['name']}", err=True)
        return

    result = _check(ctx, resolve_note(index, names[0]))
    if as_json:
        output(result, as_json=True)
        return

    click.echo(f"# {result['name']}")
    click.echo(f"Path:  {result['path']}")
    click.echo(f"Match: {result['match']}")
    if result["tags"]:
        click.echo(f"Tags:  {', '.join(result['tags'])}")
    if not metadata:
        click.echo("")
        click.echo(result["content"])


@cli.command()
@click.argument("name")
@json_option
@click.pass_context
def frontmatter(ctx: click.Context, name: str, as_json: bool):
    """Print the parsed frontmatter of NAME as YAML."""
    import yaml

    from .core import read_frontmatter

    result = _check(ctx, read_frontmatter(_get_store(ctx).index, name))
    if as_json:
        output(result, as_json=True)
        return
    if not result["frontmatter"]:
        click.echo(f"{result['name']} has no frontmatter.")
        return
    click.echo(yaml.safe_dump(result["frontmatter"], sort_keys=False, allow_unicode=True).rstrip())


# ─────────────────────────────────────────────────────────────────────────────
# Search and listing
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.argument("query")
@click.option(
    "--mode",
    type=click.Choice(["substring", "word", "regex"]),
    default="substring",
    show_default=True,
    help="How QUERY is matched",
)
@click.option("--names", "include_names", is_flag=True, help="Also match note names")
@filter_options
@page_options
@json_option
@click.pass_context
def search(
    ctx: click.Context,
    query: str,
    mode: str,
    include_names: bool,
    limit: int,
    offset: int,
    as_json: bool,
    **filters,
):
    """Search note content line by line (case-insensitive).

    \b
    Examples:
      vk search "deploy"
      vk search "todo" --mode=word --folder=projects
      vk search "^## " --mode=regex
    """
    from .core import vault_search

    result = vault_search(
        _get_store(ctx).index,
        query,
        mode=mode,
        include_names=include_names,
        filters=_filter_spec(**filters),
        limit=limit,
        offset=offset,
    )
    if as_json:
        output(result, as_json=True)
        return

    if not result["results"]:
        click.echo("No matches.")
    for match in result["results"]:
        click.echo(f"{match['path']}:{match['line']}: {match['text']}")
    footer = _page_footer(result)
    if footer:
        click.echo(footer)


@cli.command()
@click.argument("tag")
@filter_options
@page_options
@json_option
@click.pass_context
def tagged(ctx: click.Context, tag: str, limit: int, offset: int, as_json: bool, **filters):
    """List notes tagged TAG (frontmatter or inline)."""
    from .core import find_by_tag

    result = find_by_tag(_get_store(ctx).index, tag, _filter_spec(**filters), limit, offset)
    _output_page(result, ["name", "path", "tags"], as_json, f"No notes tagged '{result['tag']}'.")


@cli.command()
@filter_options
@page_options
@json_option
@click.pass_context
def untagged(ctx: click.Context, limit: int, offset: int, as_json: bool, **filters):
    """List notes without any tags."""
    from .core import find_untagged

    result = find_untagged(_get_store(ctx).index, _filter_spec(**filters), limit, offset)
    _output_page(result, ["name", "path"], as_json, "Every note is tagged.")


@cli.command()
@click.argument("name")
@click.option(
    "--max-distance",
    default=SIMILAR_NAME_MAX_DISTANCE,
    show_default=True,
    help="Largest edit distance reported",
)
@filter_options
@page_options
@json_option
@click.pass_context
def similar(
    ctx: click.Context,
    name: str,
    max_distance: int,
    limit: int,
    offset: int,
    as_json: bool,
    **filters,
):
    """List notes whose names are a few edits away from NAME."""
    from .core import find_similar_names

    result = _check(
        ctx,
        find_similar_names(
            _get_store(ctx).index, name, max_distance, _filter_spec(**filters), limit, offset
        ),
    )
    _output_page(result, ["name", "distance", "path"], as_json, "No similar names.")


@cli.command()
@filter_options
@json_option
@click.pass_context
def tags(ctx: click.Context, as_json: bool, **filters):
    """List tags with usage counts."""
    from .core import list_tags

    result = list_tags(_get_store(ctx).index, _filter_spec(**filters))
    if as_json:
        output(result, as_json=True)
        return
    if not result["results"]:
        click.echo("No tags found.")
        return
    click.echo(format_table(result["results"], ["tag", "count"]))


@cli.command("list")
@filter_options
@page_options
@json_option
@click.pass_context
def list_cmd(ctx: click.Context, limit: int, offset: int, as_json: bool, **filters):
    """List notes, sorted by path."""
    from .core import list_notes

    result = list_notes(_get_store(ctx).index, _filter_spec(**filters), limit, offset)
    _output_page(result, ["path", "modified", "tags"], as_json, "No notes found.")


@cli.command()
@click.option(
    "--status",
    type=click.Choice(["open", "done", "all"]),
    default="open",
    show_default=True,
)
@filter_options
@page_options
@json_option
@click.pass_context
def tasks(ctx: click.Context, status: str, limit: int, offset: int, as_json: bool, **filters):
    """List checkbox tasks across the vault."""
    from .core import find_tasks

    result = find_tasks(_get_store(ctx).index, status, _filter_spec(**filters), limit, offset)
    if as_json:
        output(result, as_json=True)
        return
    if not result["results"]:
        click.echo("No tasks.")
    for task in result["results"]:
        box = "[x]" if task["checked"] else "[ ]"
        click.echo(f"{box} {task['text']}  ({task['path']}:{task['line']})")
    footer = _page_footer(result)
    if footer:
        click.echo(footer)


def main():
    """Entry point for vk CLI."""
    from ._logging import configure_logging

    configure_logging()
    cli()


if __name__ == "__main__":
    main()
