"""Content, tag and name-similarity search over a GraphIndex.

All searches are exact (no scoring): candidates pass through the shared
filter, are ordered by the rule documented on each function, then paged.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any, Literal

from .config import DEFAULT_LIMIT, NAME_MATCH_MARKER, SIMILAR_NAME_MAX_DISTANCE
from .filters import filter_documents, normalize_tag, paginate
from .graph import GraphIndex, name_sort_key, normalize
from .models import Document, FilterSpec
from .parser import split_lines

log = logging.getLogger(__name__)

SearchMode = Literal["substring", "word", "regex"]
TaskStatus = Literal["open", "done", "all"]


def _doc_summary(doc: Document) -> dict[str, Any]:
    return {"name": doc.name, "path": doc.path, "tags": doc.tags}


def _by_name(docs: list[Document]) -> list[Document]:
    return sorted(docs, key=lambda d: name_sort_key(d.name))


def _compile_query(query: str, mode: SearchMode) -> re.Pattern[str] | None:
    """Compile the query for its mode. None when a regex query is invalid."""
    if mode == "regex":
        try:
            return re.compile(query, re.IGNORECASE)
        except re.error as e:
            log.warning("Invalid search regex %r (%s); no results", query, e)
            return None
    escaped = re.escape(query)
    if mode == "word":
        return re.compile(rf"(?<!\w){escaped}(?!\w)", re.IGNORECASE)
    return re.compile(escaped, re.IGNORECASE)


def search_content(
    index: GraphIndex,
    query: str,
    mode: SearchMode = "substring",
    include_names: bool = False,
    filters: FilterSpec | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    """Find matching lines across the vault, case-insensitively.

    Args:
        query: Text to find. Blank queries match nothing.
        mode: "substring" (default), "word" (whole-token match) or "regex".
        include_names: Also emit one line-0 match per note whose name
            contains the query, ahead of that note's content matches.

    Returns:
        Page of {file, path, line, text} in index order, then line order.
    """
    pattern = _compile_query(query, mode) if query.strip() else None
    if pattern is None:
        return paginate([], limit, offset)

    matches: list[dict[str, Any]] = []
    for doc in filter_documents(index.documents.values(), filters):
        if include_names and pattern.search(doc.name):
            matches.append(
                {
                    "file": doc.name,
                    "path": doc.path,
                    "line": 0,
                    "text": f"{NAME_MATCH_MARKER} {doc.name}",
                }
            )
        for line_no, line in enumerate(split_lines(doc.content), start=1):
            if pattern.search(line):
                matches.append(
                    {"file": doc.name, "path": doc.path, "line": line_no, "text": line.strip()}
                )

    return paginate(matches, limit, offset)


def find_by_tag(
    index: GraphIndex,
    tag: str,
    filters: FilterSpec | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    """Notes whose effective tags include `tag` (case-insensitive, # optional), by name."""
    wanted = normalize_tag(tag)
    if not wanted:
        return paginate([], limit, offset)

    docs = [
        doc
        for doc in filter_documents(index.documents.values(), filters)
        if wanted in {normalize_tag(t) for t in doc.tags}
    ]
    return paginate([_doc_summary(d) for d in _by_name(docs)], limit, offset)


def find_untagged(
    index: GraphIndex,
    filters: FilterSpec | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    """Notes with neither frontmatter nor inline tags, by name."""
    docs = [doc for doc in filter_documents(index.documents.values(), filters) if not doc.tags]
    return paginate(
        [{"name": d.name, "path": d.path} for d in _by_name(docs)], limit, offset
    )


def tag_counts(index: GraphIndex, filters: FilterSpec | None = None) -> list[dict[str, Any]]:
    """Every tag with the number of notes carrying it, most used first."""
    counts: Counter[str] = Counter()
    for doc in filter_documents(index.documents.values(), filters):
        counts.update({normalize_tag(t) for t in doc.tags} - {""})
    return [
        {"tag": tag, "count": count}
        for tag, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


def find_tasks(
    index: GraphIndex,
    status: TaskStatus = "open",
    filters: FilterSpec | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    """Checkbox items across the vault in index order, then line order."""
    tasks: list[dict[str, Any]] = []
    for doc in filter_documents(index.documents.values(), filters):
        for box in doc.checkboxes:
            if status == "open" and box.checked:
                continue
            if status == "done" and not box.checked:
                continue
            tasks.append(
                {
                    "file": doc.name,
                    "path": doc.path,
                    "line": box.line,
                    "text": box.text,
                    "checked": box.checked,
                    "indent": box.indent,
                }
            )
    return paginate(tasks, limit, offset)


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit-cost insertion, deletion and substitution."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Keep the row as short as possible
    if len(a) > len(b):
        a, b = b, a

    prev = list(range(len(a) + 1))
    for i, ch_b in enumerate(b, start=1):
        cur = [i]
        for j, ch_a in enumerate(a, start=1):
            cost = 0 if ch_a == ch_b else 1
            cur.append(min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + cost))
        prev = cur
    return prev[-1]


def similar_names(
    index: GraphIndex,
    name: str,
    max_distance: int = SIMILAR_NAME_MAX_DISTANCE,
    filters: FilterSpec | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    """Notes whose names are within `max_distance` edits of `name`.

    Distances are computed on normalised (trimmed, lowercased) names. The note
    named exactly `name` is left out.

    Returns:
        Page of {name, path, distance}, closest first, ties by name.
    """
    query = normalize(name)
    matches: list[dict[str, Any]] = []
    for doc in filter_documents(index.documents.values(), filters):
        if doc.key == query:
            continue
        # Length gap is a lower bound on the distance
        if abs(len(doc.key) - len(query)) > max_distance:
            continue
        distance = levenshtein(query, doc.key)
        if distance <= max_distance:
            matches.append({"name": doc.name, "path": doc.path, "distance": distance})

    matches.sort(key=lambda m: (m["distance"], *name_sort_key(m["name"])))
    return paginate(matches, limit, offset)
