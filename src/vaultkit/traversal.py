"""Breadth-first link traversal from one or more root notes."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import Any, Literal

from .filters import folder_prefix
from .graph import GraphIndex, name_sort_key, normalize, resolve
from .models import Document

LinkType = Literal["wikilink", "embed"]


def _outgoing(doc: Document) -> list[tuple[str, LinkType]]:
    """Distinct target keys in link order, each with the type of its first occurrence."""
    edges: dict[str, LinkType] = {}
    for link in doc.links:
        key = normalize(link.target)
        if key and key not in edges:
            edges[key] = "embed" if link.embed else "wikilink"
    return list(edges.items())


def _node(doc: Document, depth: int, link_type: LinkType | None, include_content: bool) -> dict:
    node: dict[str, Any] = {
        "name": doc.name,
        "path": doc.path,
        "depth": depth,
        "link_type": link_type,
        "tags": doc.tags,
        "frontmatter_tags": list(doc.frontmatter_tags),
        "inline_tags": list(doc.inline_tags),
        "frontmatter": doc.frontmatter,
    }
    if include_content:
        node["content"] = doc.content
    return node


def traverse(
    index: GraphIndex,
    roots: str | Iterable[str],
    max_depth: int,
    exclude_folders: Iterable[str] | None = None,
    include_content: bool = False,
) -> dict[str, Any]:
    """Walk outgoing links breadth-first from every root at once.

    All roots start at depth 0 and share one visited set, so a note reachable
    from several roots appears once, at its smallest depth. Notes at
    `max_depth` are reported but not expanded. Links to notes that don't exist
    are collected in `missing` and otherwise ignored.

    Args:
        index: Graph snapshot to walk.
        roots: One note name, or a list of names (resolved exactly, then fuzzily).
        max_depth: Non-negative expansion limit.
        exclude_folders: Vault folders whose notes are treated as absent.
            Roots are always kept.
        include_content: Add each note's full text to its entry.

    Returns:
        {root|roots, depth, notes, missing}, or {error, notes: [], missing: []}
        when a root can't be resolved.
    """
    single = isinstance(roots, str)
    root_names = [roots] if single else list(roots)

    if max_depth < 0:
        return {"error": f"depth must be >= 0, got {max_depth}", "notes": [], "missing": []}
    if not root_names:
        return {"error": "At least one root note is required", "notes": [], "missing": []}

    resolved: list[Document] = []
    for name in root_names:
        doc = resolve(index, name)
        if doc is None:
            return {"error": f"Note '{name}' not found", "notes": [], "missing": []}
        if doc.key not in {d.key for d in resolved}:
            resolved.append(doc)

    excluded = tuple(folder_prefix(f) for f in exclude_folders or () if f and f.strip("/ "))

    def is_excluded(doc: Document) -> bool:
        return any(doc.path.startswith(prefix) for prefix in excluded)

    visited: dict[str, tuple[int, LinkType | None]] = {}
    missing: dict[str, set[str]] = {}
    queue: deque[tuple[str, int]] = deque()

    for doc in resolved:
        visited[doc.key] = (0, None)
        queue.append((doc.key, 0))

    while queue:
        key, depth = queue.popleft()
        if depth >= max_depth:
            continue
        source = index.documents[key]
        for target_key, link_type in _outgoing(source):
            target = index.get(target_key)
            if target is None:
                missing.setdefault(target_key, set()).add(source.name)
                continue
            if target_key in visited or is_excluded(target):
                continue
            visited[target_key] = (depth + 1, link_type)
            queue.append((target_key, depth + 1))

    notes = [
        _node(index.documents[key], depth, link_type, include_content)
        for key, (depth, link_type) in visited.items()
    ]
    notes.sort(key=lambda n: (n["depth"], *name_sort_key(n["name"])))

    missing_result = [
        {"name": name, "referenced_by": sorted(sources, key=name_sort_key)}
        for name, sources in sorted(missing.items())
    ]

    result: dict[str, Any] = {}
    if single:
        result["root"] = resolved[0].name
    else:
        result["roots"] = [doc.name for doc in resolved]
    result.update({"depth": max_depth, "notes": notes, "missing": missing_result})
    return result
