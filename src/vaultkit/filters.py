"""Shared document filters and result pagination.

Every list-producing query runs its candidates through the same compiled
filter, then pages the ordered result with `paginate`. Malformed filter input
(a regex that doesn't compile, a date that doesn't parse) makes the filter
match nothing instead of raising.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeVar

from .config import DEFAULT_LIMIT
from .models import Document, FilterSpec

log = logging.getLogger(__name__)

T = TypeVar("T")


def folder_prefix(folder: str) -> str:
    """Normalise a vault folder to exactly one trailing slash: 'a/b' -> 'a/b/'."""
    return folder.strip().strip("/") + "/"


def normalize_tag(tag: str) -> str:
    """Compare tags case-insensitively and without a leading #."""
    return tag.strip().lstrip("#").lower()


def _tag_set(tags: Iterable[str]) -> frozenset[str]:
    return frozenset(t for t in (normalize_tag(tag) for tag in tags) if t)


def parse_date(value: str) -> datetime:
    """Parse an ISO date or datetime. Naive values are taken as UTC.

    Raises:
        ValueError: If the value isn't ISO-8601.
    """
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


@dataclass(frozen=True)
class CompiledFilter:
    """A FilterSpec with patterns compiled and dates parsed.

    `rejects_all` is set when any input was malformed.
    """

    folder: str | None = None
    exclude_folders: tuple[str, ...] = ()
    exclude_re: re.Pattern[str] | None = None
    tags: frozenset[str] = frozenset()
    exclude_tags: frozenset[str] = frozenset()
    modified_after: datetime | None = None
    modified_before: datetime | None = None
    rejects_all: bool = False

    def matches(self, doc: Document) -> bool:
        if self.rejects_all:
            return False
        if self.folder and not doc.path.startswith(self.folder):
            return False
        if any(doc.path.startswith(prefix) for prefix in self.exclude_folders):
            return False
        if self.exclude_re is not None and self.exclude_re.search(doc.name):
            return False
        if self.modified_after is not None or self.modified_before is not None:
            modified = _ensure_aware(doc.modified)
            if self.modified_after is not None and modified < self.modified_after:
                return False
            if self.modified_before is not None and modified >= self.modified_before:
                return False
        if self.tags or self.exclude_tags:
            doc_tags = _tag_set(doc.tags)
            if self.tags and not (doc_tags & self.tags):
                return False
            if self.exclude_tags and doc_tags & self.exclude_tags:
                return False
        return True


MATCH_ALL = CompiledFilter()


def compile_filter(spec: FilterSpec | None) -> CompiledFilter:
    """Compile a FilterSpec once so it can be applied to many documents."""
    if spec is None or spec.is_empty():
        return MATCH_ALL

    rejects_all = False

    exclude_re = None
    if spec.exclude_pattern:
        try:
            exclude_re = re.compile(spec.exclude_pattern, re.IGNORECASE)
        except re.error as e:
            log.warning("Invalid exclude_pattern %r (%s); matching no notes", spec.exclude_pattern, e)
            rejects_all = True

    bounds: dict[str, datetime | None] = {"modified_after": None, "modified_before": None}
    for field_name in bounds:
        raw = getattr(spec, field_name)
        if not raw:
            continue
        try:
            bounds[field_name] = parse_date(raw)
        except ValueError:
            log.warning("Invalid %s %r; matching no notes", field_name, raw)
            rejects_all = True

    folder = folder_prefix(spec.folder) if spec.folder and spec.folder.strip("/ ") else None
    exclude_folders = tuple(
        folder_prefix(f) for f in spec.exclude_folders if f and f.strip("/ ")
    )

    return CompiledFilter(
        folder=folder,
        exclude_folders=exclude_folders,
        exclude_re=exclude_re,
        tags=_tag_set(spec.tags),
        exclude_tags=_tag_set(spec.exclude_tags),
        modified_after=bounds["modified_after"],
        modified_before=bounds["modified_before"],
        rejects_all=rejects_all,
    )


def filter_documents(documents: Iterable[Document], spec: FilterSpec | None) -> list[Document]:
    """Keep the documents passing every active predicate, preserving order."""
    compiled = compile_filter(spec)
    return [doc for doc in documents if compiled.matches(doc)]


def paginate(
    items: Sequence[T], limit: int = DEFAULT_LIMIT, offset: int = 0
) -> dict[str, Any]:
    """Slice an ordered result into the standard page envelope.

    Returns:
        {total, offset, limit, results}; total counts the whole sequence.
    """
    limit = max(0, limit)
    offset = max(0, offset)
    return {
        "total": len(items),
        "offset": offset,
        "limit": limit,
        "results": list(items[offset : offset + limit]),
    }
