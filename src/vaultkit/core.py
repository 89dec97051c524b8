"""Query operations over a vault GraphIndex.

This module contains the logic used by both the MCP server and the CLI.

Design principles:
- Every operation takes the GraphIndex explicitly; there is no module state.
- Results are plain JSON-serialisable dicts.
- "Not found" is reported as an `error` field, never raised.
- List results share the page envelope {total, offset, limit, results}.
"""

from collections.abc import Iterable
from typing import Any

from . import search as _search
from .config import DEFAULT_LIMIT, DEFAULT_TRAVERSE_DEPTH, SIMILAR_NAME_MAX_DISTANCE
from .filters import compile_filter, filter_documents, paginate
from .graph import GraphIndex, name_sort_key, normalize, resolve, resolve_with_match
from .models import FilterSpec
from .traversal import traverse


def _not_found(name: str) -> dict[str, str]:
    return {"error": f"Note '{name}' not found"}


# ─────────────────────────────────────────────────────────────────────────────
# Resolution
# ─────────────────────────────────────────────────────────────────────────────


def resolve_note(index: GraphIndex, name: str) -> dict[str, Any]:
    """Resolve a wikilink name to its note, with content and frontmatter."""
    doc, match = resolve_with_match(index, name)
    if doc is None:
        return _not_found(name)
    return {
        "name": doc.name,
        "path": doc.path,
        "match": match,
        "content": doc.content,
        "frontmatter": doc.frontmatter,
        "tags": doc.tags,
        "headings": [h.model_dump() for h in doc.headings],
    }


def resolve_notes(index: GraphIndex, names: Iterable[str]) -> dict[str, Any]:
    """Resolve several names; unresolved ones are listed under `errors`."""
    resolved: list[dict[str, Any]] = []
    errors: list[dict[str, str]] = []
    for name in names:
        doc, match = resolve_with_match(index, name)
        if doc is None:
            errors.append({"name": name, "reason": "not found"})
            continue
        resolved.append(
            {"query": name, "name": doc.name, "path": doc.path, "match": match, "tags": doc.tags}
        )
    return {"resolved": resolved, "errors": errors}


def read_frontmatter(index: GraphIndex, name: str) -> dict[str, Any]:
    """Return a note's parsed frontmatter ({} when it has none)."""
    doc = resolve(index, name)
    if doc is None:
        return _not_found(name)
    return {"name": doc.name, "path": doc.path, "frontmatter": doc.frontmatter or {}}


# ─────────────────────────────────────────────────────────────────────────────
# Link structure
# ─────────────────────────────────────────────────────────────────────────────


def _backlink_target(index: GraphIndex, name: str) -> tuple[str, str] | None:
    """Key and display name for a backlink query.

    The exact key wins, whether it names a note or only a broken link target;
    fuzzy matching applies when neither exists.
    """
    key = normalize(name)
    if key in index.documents:
        return key, index.documents[key].name
    if key in index.broken:
        return key, key
    doc = resolve(index, name)
    if doc is not None:
        return doc.key, doc.name
    return None


def _backlink_entries(
    index: GraphIndex, key: str, filters: FilterSpec | None = None
) -> list[dict[str, str]]:
    compiled = compile_filter(filters)
    sources = [index.documents[k] for k in index.backlink_keys(key) if k in index.documents]
    return [
        {"name": doc.name, "path": doc.path}
        for doc in sorted(sources, key=lambda d: name_sort_key(d.name))
        if compiled.matches(doc)
    ]


def find_backlinks(
    index: GraphIndex,
    name: str,
    filters: FilterSpec | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    """Notes that link to `name`, sorted by name."""
    target = _backlink_target(index, name)
    if target is None:
        return _not_found(name)
    key, display = target
    return {"note": display, **paginate(_backlink_entries(index, key, filters), limit, offset)}


def find_backlinks_batch(index: GraphIndex, names: Iterable[str]) -> dict[str, Any]:
    """Backlinks for several notes at once; unknown names go to `errors`."""
    results: list[dict[str, Any]] = []
    errors: list[dict[str, str]] = []
    for name in names:
        target = _backlink_target(index, name)
        if target is None:
            errors.append({"name": name, "reason": "not found"})
            continue
        key, display = target
        results.append({"name": display, "backlinks": _backlink_entries(index, key)})
    return {"results": results, "errors": errors}


def find_orphans(
    index: GraphIndex,
    filters: FilterSpec | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    """Notes nothing links to, sorted by name."""
    orphans = [
        doc
        for doc in filter_documents(index.documents.values(), filters)
        if index.is_orphan(doc.key)
    ]
    orphans.sort(key=lambda d: name_sort_key(d.name))
    return paginate(
        [{"name": d.name, "path": d.path, "tags": d.tags} for d in orphans], limit, offset
    )


def find_missing_notes(
    index: GraphIndex,
    filters: FilterSpec | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    """Broken link targets with their referrers, most referenced first.

    Filters apply to the referring notes: a target is listed when at least one
    referrer passes.
    """
    compiled = compile_filter(filters)
    missing: list[dict[str, Any]] = []
    for target_key, source_keys in index.broken.items():
        referrers = [
            index.documents[k].name
            for k in source_keys
            if k in index.documents and compiled.matches(index.documents[k])
        ]
        if not referrers:
            continue
        missing.append(
            {
                "name": target_key,
                "referenced_by": sorted(referrers, key=name_sort_key),
                "count": len(referrers),
            }
        )
    missing.sort(key=lambda m: (-m["count"], m["name"]))
    return paginate(missing, limit, offset)


def traverse_links(
    index: GraphIndex,
    roots: str | list[str],
    depth: int = DEFAULT_TRAVERSE_DEPTH,
    exclude_folders: list[str] | None = None,
    include_content: bool = False,
) -> dict[str, Any]:
    """BFS from one or more notes; see traversal.traverse."""
    return traverse(
        index,
        roots,
        depth,
        exclude_folders=exclude_folders,
        include_content=include_content,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Search and listing
# ─────────────────────────────────────────────────────────────────────────────


def vault_search(
    index: GraphIndex,
    query: str,
    mode: _search.SearchMode = "substring",
    include_names: bool = False,
    filters: FilterSpec | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    """Line-level content search; see search.search_content."""
    return _search.search_content(
        index,
        query,
        mode=mode,
        include_names=include_names,
        filters=filters,
        limit=limit,
        offset=offset,
    )


def find_by_tag(
    index: GraphIndex,
    tag: str,
    filters: FilterSpec | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    return {"tag": tag.strip().lstrip("#"), **_search.find_by_tag(index, tag, filters, limit, offset)}


def find_untagged(
    index: GraphIndex,
    filters: FilterSpec | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    return _search.find_untagged(index, filters, limit, offset)


def find_similar_names(
    index: GraphIndex,
    name: str,
    max_distance: int = SIMILAR_NAME_MAX_DISTANCE,
    filters: FilterSpec | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    """Near-duplicate note names by edit distance."""
    if max_distance < 0:
        return {"error": f"max_distance must be >= 0, got {max_distance}"}
    return {
        "query": name,
        **_search.similar_names(index, name, max_distance, filters, limit, offset),
    }


def list_tags(index: GraphIndex, filters: FilterSpec | None = None) -> dict[str, Any]:
    """All tags with usage counts, most used first."""
    tags = _search.tag_counts(index, filters)
    return {"total": len(tags), "results": tags}


def list_notes(
    index: GraphIndex,
    filters: FilterSpec | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    """Notes passing the filters, sorted by path."""
    docs = sorted(filter_documents(index.documents.values(), filters), key=lambda d: d.path)
    return paginate(
        [
            {"name": d.name, "path": d.path, "tags": d.tags, "modified": d.modified.isoformat()}
            for d in docs
        ],
        limit,
        offset,
    )


def find_tasks(
    index: GraphIndex,
    status: _search.TaskStatus = "open",
    filters: FilterSpec | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    return _search.find_tasks(index, status, filters, limit, offset)


def vault_stats(index: GraphIndex, filters: FilterSpec | None = None) -> dict[str, int]:
    """Counts over the (optionally filtered) notes.

    `missing_links` counts distinct broken targets referenced by those notes.
    """
    docs = filter_documents(index.documents.values(), filters)
    keys = {doc.key for doc in docs}

    tagged = sum(1 for doc in docs if doc.tags)
    orphans = sum(1 for doc in docs if index.is_orphan(doc.key))
    if len(keys) == len(index.documents):
        missing = len(index.broken)
    else:
        missing = sum(1 for sources in index.broken.values() if sources & keys)

    return {
        "total_notes": len(docs),
        "tagged": tagged,
        "untagged": len(docs) - tagged,
        "orphans": orphans,
        "missing_links": missing,
    }
