"""FastMCP server for vaultkit.

This module provides MCP protocol wrappers around the query operations.
All actual logic lives in core.py - this file just handles MCP serialization
and owns the long-lived VaultStore.
"""

import logging
import os
from typing import Literal

from fastmcp import FastMCP

from . import core
from .config import DEFAULT_LIMIT, DEFAULT_TRAVERSE_DEPTH, MAX_BATCH_NAMES, SIMILAR_NAME_MAX_DISTANCE
from .models import FilterSpec
from .store import VaultStore

log = logging.getLogger(__name__)

mcp = FastMCP(
    name="vaultkit",
    instructions=(
        "Read-only index of a markdown vault. Use traverse_links/find_backlinks for "
        "structure, vault_search for text, find_by_tag for tags. Note names are "
        "case-insensitive and tolerate -/_ and accent differences."
    ),
)


# ─────────────────────────────────────────────────────────────────────────────
# Module-level state (lazy initialization)
# ─────────────────────────────────────────────────────────────────────────────

_store: VaultStore | None = None


def get_store() -> VaultStore:
    """Get the server's VaultStore, creating it from configuration on first use.

    Raises:
        ConfigurationError: If no vault is configured.
    """
    global _store
    if _store is None:
        from .config import get_vault_root

        _store = VaultStore(get_vault_root())
    return _store


def _filters(
    folder: str | None = None,
    exclude_folders: list[str] | None = None,
    exclude_pattern: str | None = None,
    tags: list[str] | None = None,
    exclude_tags: list[str] | None = None,
    modified_after: str | None = None,
    modified_before: str | None = None,
) -> FilterSpec:
    return FilterSpec(
        folder=folder,
        exclude_folders=exclude_folders or [],
        exclude_pattern=exclude_pattern,
        tags=tags or [],
        exclude_tags=exclude_tags or [],
        modified_after=modified_after,
        modified_before=modified_before,
    )


def _batch_error(names: list[str]) -> dict | None:
    if len(names) > MAX_BATCH_NAMES:
        return {"error": f"Too many names ({len(names)}); the limit is {MAX_BATCH_NAMES}"}
    return None


# ─────────────────────────────────────────────────────────────────────────────
# Link structure tools
# ─────────────────────────────────────────────────────────────────────────────


@mcp.tool(
    name="traverse_links",
    description=(
        "Breadth-first traversal of outgoing links from one or more notes up to a depth. "
        "Returns each note with its depth and link type, plus links to missing notes."
    ),
)
async def traverse_links_tool(
    note_name: str | list[str],
    depth: int = DEFAULT_TRAVERSE_DEPTH,
    exclude_folders: list[str] | None = None,
    include_content: bool = False,
) -> dict:
    """Traverse links from one or several root notes."""
    return core.traverse_links(
        get_store().index,
        note_name,
        depth=depth,
        exclude_folders=exclude_folders,
        include_content=include_content,
    )


@mcp.tool(
    name="find_backlinks",
    description="Find notes that link to the given note.",
)
async def find_backlinks_tool(
    note_name: str,
    folder: str | None = None,
    exclude_folders: list[str] | None = None,
    exclude_pattern: str | None = None,
    tags: list[str] | None = None,
    exclude_tags: list[str] | None = None,
    modified_after: str | None = None,
    modified_before: str | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict:
    """Find backlinks to a note."""
    filters = _filters(
        folder, exclude_folders, exclude_pattern, tags, exclude_tags, modified_after, modified_before
    )
    return core.find_backlinks(get_store().index, note_name, filters, limit=limit, offset=offset)


@mcp.tool(
    name="find_backlinks_batch",
    description=f"Find backlinks for up to {MAX_BATCH_NAMES} notes in one call.",
)
async def find_backlinks_batch_tool(note_names: list[str]) -> dict:
    """Find backlinks for several notes."""
    error = _batch_error(note_names)
    if error:
        return error
    return core.find_backlinks_batch(get_store().index, note_names)


@mcp.tool(
    name="find_orphans",
    description="Find notes with no incoming links (orphans).",
)
async def find_orphans_tool(
    folder: str | None = None,
    exclude_folders: list[str] | None = None,
    exclude_pattern: str | None = None,
    tags: list[str] | None = None,
    exclude_tags: list[str] | None = None,
    modified_after: str | None = None,
    modified_before: str | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict:
    """Find orphan notes."""
    filters = _filters(
        folder, exclude_folders, exclude_pattern, tags, exclude_tags, modified_after, modified_before
    )
    return core.find_orphans(get_store().index, filters, limit=limit, offset=offset)


@mcp.tool(
    name="find_missing_notes",
    description="Find broken links: referenced notes that don't exist, most referenced first.",
)
async def find_missing_notes_tool(
    folder: str | None = None,
    exclude_folders: list[str] | None = None,
    exclude_pattern: str | None = None,
    tags: list[str] | None = None,
    exclude_tags: list[str] | None = None,
    modified_after: str | None = None,
    modified_before: str | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict:
    """Find missing link targets."""
    filters = _filters(
        folder, exclude_folders, exclude_pattern, tags, exclude_tags, modified_after, modified_before
    )
    return core.find_missing_notes(get_store().index, filters, limit=limit, offset=offset)


# ─────────────────────────────────────────────────────────────────────────────
# Resolution tools
# ─────────────────────────────────────────────────────────────────────────────


@mcp.tool(
    name="resolve_wikilink",
    description="Resolve a wikilink name to the actual note with content and frontmatter.",
)
async def resolve_wikilink_tool(name: str) -> dict:
    """Resolve one wikilink."""
    return core.resolve_note(get_store().index, name)


@mcp.tool(
    name="resolve_wikilinks_batch",
    description=f"Resolve up to {MAX_BATCH_NAMES} wikilink names; unresolved names are listed in errors.",
)
async def resolve_wikilinks_batch_tool(names: list[str]) -> dict:
    """Resolve several wikilinks."""
    error = _batch_error(names)
    if error:
        return error
    return core.resolve_notes(get_store().index, names)


@mcp.tool(
    name="read_frontmatter",
    description="Read and return parsed frontmatter for a given note.",
)
async def read_frontmatter_tool(note_name: str) -> dict:
    """Read a note's frontmatter."""
    return core.read_frontmatter(get_store().index, note_name)


# ─────────────────────────────────────────────────────────────────────────────
# Search tools
# ─────────────────────────────────────────────────────────────────────────────


@mcp.tool(
    name="vault_search",
    description=(
        "Case-insensitive search of note content, line by line. "
        "mode: substring (default), word (whole words) or regex."
    ),
)
async def vault_search_tool(
    query: str,
    mode: Literal["substring", "word", "regex"] = "substring",
    include_names: bool = False,
    folder: str | None = None,
    exclude_folders: list[str] | None = None,
    exclude_pattern: str | None = None,
    tags: list[str] | None = None,
    exclude_tags: list[str] | None = None,
    modified_after: str | None = None,
    modified_before: str | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict:
    """Search vault content."""
    filters = _filters(
        folder, exclude_folders, exclude_pattern, tags, exclude_tags, modified_after, modified_before
    )
    return core.vault_search(
        get_store().index,
        query,
        mode=mode,
        include_names=include_names,
        filters=filters,
        limit=limit,
        offset=offset,
    )


@mcp.tool(
    name="find_by_tag",
    description="Find notes carrying a tag (frontmatter or inline, case-insensitive, # optional).",
)
async def find_by_tag_tool(
    tag: str,
    folder: str | None = None,
    exclude_folders: list[str] | None = None,
    exclude_pattern: str | None = None,
    exclude_tags: list[str] | None = None,
    modified_after: str | None = None,
    modified_before: str | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict:
    """Find notes by tag."""
    filters = _filters(
        folder, exclude_folders, exclude_pattern, None, exclude_tags, modified_after, modified_before
    )
    return core.find_by_tag(get_store().index, tag, filters, limit=limit, offset=offset)


@mcp.tool(
    name="find_untagged",
    description="Find notes with no tags at all.",
)
async def find_untagged_tool(
    folder: str | None = None,
    exclude_folders: list[str] | None = None,
    exclude_pattern: str | None = None,
    tags: list[str] | None = None,
    exclude_tags: list[str] | None = None,
    modified_after: str | None = None,
    modified_before: str | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict:
    """Find untagged notes."""
    filters = _filters(
        folder, exclude_folders, exclude_pattern, tags, exclude_tags, modified_after, modified_before
    )
    return core.find_untagged(get_store().index, filters, limit=limit, offset=offset)


@mcp.tool(
    name="find_similar_names",
    description="Find notes whose names are within a few edits of the given name (likely duplicates).",
)
async def find_similar_names_tool(
    name: str,
    max_distance: int = SIMILAR_NAME_MAX_DISTANCE,
    folder: str | None = None,
    exclude_folders: list[str] | None = None,
    exclude_pattern: str | None = None,
    tags: list[str] | None = None,
    exclude_tags: list[str] | None = None,
    modified_after: str | None = None,
    modified_before: str | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict:
    """Find near-duplicate note names."""
    filters = _filters(
        folder, exclude_folders, exclude_pattern, tags, exclude_tags, modified_after, modified_before
    )
    return core.find_similar_names(
        get_store().index, name, max_distance, filters, limit=limit, offset=offset
    )


@mcp.tool(
    name="list_tags",
    description="List all tags with usage counts.",
)
async def list_tags_tool(
    folder: str | None = None,
    exclude_folders: list[str] | None = None,
    exclude_pattern: str | None = None,
    tags: list[str] | None = None,
    exclude_tags: list[str] | None = None,
    modified_after: str | None = None,
    modified_before: str | None = None,
) -> dict:
    """List tags."""
    filters = _filters(
        folder, exclude_folders, exclude_pattern, tags, exclude_tags, modified_after, modified_before
    )
    return core.list_tags(get_store().index, filters)


@mcp.tool(
    name="list_notes",
    description="List notes matching folder, tag, name-pattern and date filters.",
)
async def list_notes_tool(
    folder: str | None = None,
    exclude_folders: list[str] | None = None,
    exclude_pattern: str | None = None,
    tags: list[str] | None = None,
    exclude_tags: list[str] | None = None,
    modified_after: str | None = None,
    modified_before: str | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict:
    """List notes."""
    filters = _filters(
        folder, exclude_folders, exclude_pattern, tags, exclude_tags, modified_after, modified_before
    )
    return core.list_notes(get_store().index, filters, limit=limit, offset=offset)


@mcp.tool(
    name="find_tasks",
    description="List checkbox tasks across the vault. status: open (default), done or all.",
)
async def find_tasks_tool(
    status: Literal["open", "done", "all"] = "open",
    folder: str | None = None,
    exclude_folders: list[str] | None = None,
    exclude_pattern: str | None = None,
    tags: list[str] | None = None,
    exclude_tags: list[str] | None = None,
    modified_after: str | None = None,
    modified_before: str | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict:
    """List tasks."""
    filters = _filters(
        folder, exclude_folders, exclude_pattern, tags, exclude_tags, modified_after, modified_before
    )
    return core.find_tasks(get_store().index, status, filters, limit=limit, offset=offset)


# ─────────────────────────────────────────────────────────────────────────────
# Vault tools
# ─────────────────────────────────────────────────────────────────────────────


@mcp.tool(
    name="vault_stats",
    description="Return vault-wide statistics: total notes, tagged, untagged, orphans, missing.",
)
async def vault_stats_tool(
    folder: str | None = None,
    exclude_folders: list[str] | None = None,
    exclude_pattern: str | None = None,
    tags: list[str] | None = None,
    exclude_tags: list[str] | None = None,
    modified_after: str | None = None,
    modified_before: str | None = None,
) -> dict:
    """Vault statistics."""
    filters = _filters(
        folder, exclude_folders, exclude_pattern, tags, exclude_tags, modified_after, modified_before
    )
    return core.vault_stats(get_store().index, filters)


@mcp.tool(
    name="rebuild_index",
    description="Re-scan the vault from disk and replace the index.",
)
async def rebuild_index_tool() -> dict:
    """Rebuild the index."""
    index = get_store().rebuild()
    return {
        "total_notes": len(index.documents),
        "missing_links": len(index.broken),
        "built_at": index.built_at.isoformat(),
    }


def main(watch: bool | None = None):
    """Run the MCP server.

    Args:
        watch: Rebuild the index when notes change. Defaults to the
            VAULTKIT_WATCH environment variable.
    """
    from ._logging import configure_logging
    from .watcher import VaultWatcher

    configure_logging()

    store = get_store()
    log.info("Building graph from: %s", store.root)
    index = store.index
    log.info(
        "Graph ready: %d notes, %d missing links", len(index.documents), len(index.broken)
    )

    if watch is None:
        watch = os.environ.get("VAULTKIT_WATCH", "").lower() in ("1", "true", "yes")

    watcher = None
    if watch:
        watcher = VaultWatcher(store)
        watcher.start()

    try:
        mcp.run()
    finally:
        if watcher is not None:
            watcher.stop()


if __name__ == "__main__":
    main()
