"""Link graph construction and note name resolution.

The GraphIndex is built in one pass from a collection of Documents and is
never modified afterwards. A rebuild produces a brand new GraphIndex (see
store.py); queries hold on to whichever snapshot they started with.
"""

from __future__ import annotations

import logging
import unicodedata
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

from .models import Document

log = logging.getLogger(__name__)

MatchKind = Literal["exact", "fuzzy"]


def normalize(name: str) -> str:
    """Index key for a note name: trimmed and lowercased."""
    return name.strip().lower()


def fuzzy_key(name: str) -> str:
    """Tolerant key: drops dashes, underscores and diacritics.

    "Café_Notes" and "cafe-notes" both reduce to "cafenotes".
    """
    key = normalize(name).replace("-", "").replace("_", "")
    key = unicodedata.normalize("NFD", key)
    return key.encode("ascii", "ignore").decode("ascii")


def name_sort_key(name: str) -> tuple[str, str]:
    """Ordering used for every name-sorted result."""
    return (name.casefold(), name)


@dataclass(frozen=True)
class GraphIndex:
    """Immutable snapshot of the vault's link graph.

    Attributes:
        documents: key -> Document, in load order.
        forward: key -> distinct target keys in first-link order (every document
            has an entry, targets may or may not exist).
        backward: target key -> keys of documents linking to it.
        broken: target key with no document -> keys of documents linking to it.
    """

    documents: dict[str, Document] = field(default_factory=dict)
    forward: dict[str, tuple[str, ...]] = field(default_factory=dict)
    backward: dict[str, frozenset[str]] = field(default_factory=dict)
    broken: dict[str, frozenset[str]] = field(default_factory=dict)
    root: str | None = None
    built_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def get(self, key: str) -> Document | None:
        return self.documents.get(key)

    def backlink_keys(self, key: str) -> frozenset[str]:
        return self.backward.get(key, frozenset())

    def is_orphan(self, key: str) -> bool:
        return not self.backward.get(key)


def build_index(documents: Iterable[Document], root: str | None = None) -> GraphIndex:
    """Build the link graph for a set of documents.

    Two documents whose names normalise to the same key: the later one wins
    and keeps the earlier one's position in iteration order.

    Args:
        documents: Already-parsed documents (order doesn't affect the graph).
        root: Vault root, recorded for display only.

    Returns:
        A complete GraphIndex.
    """
    docs: dict[str, Document] = {}
    for doc in documents:
        key = doc.key
        previous = docs.get(key)
        if previous is not None:
            log.warning(
                "Duplicate note name '%s': %s replaces %s", doc.name, doc.path, previous.path
            )
        docs[key] = doc

    forward: dict[str, tuple[str, ...]] = {}
    backward_sets: dict[str, set[str]] = {}
    broken_sets: dict[str, set[str]] = {}

    for source_key, doc in docs.items():
        targets: dict[str, None] = {}
        for link in doc.links:
            target_key = normalize(link.target)
            if target_key:
                targets.setdefault(target_key, None)
        forward[source_key] = tuple(targets)

        for target_key in targets:
            backward_sets.setdefault(target_key, set()).add(source_key)
            if target_key not in docs:
                broken_sets.setdefault(target_key, set()).add(source_key)

    index = GraphIndex(
        documents=docs,
        forward=forward,
        backward={k: frozenset(v) for k, v in backward_sets.items()},
        broken={k: frozenset(v) for k, v in broken_sets.items()},
        root=root,
    )
    log.info("Graph built: %d notes, %d missing link targets", len(docs), len(index.broken))
    return index


def resolve_with_match(index: GraphIndex, name: str) -> tuple[Document | None, MatchKind | None]:
    """Resolve a note name, reporting which stage matched.

    1. Exact: normalised key lookup.
    2. Fuzzy: first document (in index order) whose fuzzy key equals the query's.
    """
    doc = index.get(normalize(name))
    if doc is not None:
        return doc, "exact"

    target = fuzzy_key(name)
    if not target:
        return None, None
    for candidate in index.documents.values():
        if fuzzy_key(candidate.name) == target:
            return candidate, "fuzzy"
    return None, None


def resolve(index: GraphIndex, name: str) -> Document | None:
    """Resolve a note name exactly, then fuzzily. None if nothing matches."""
    doc, _ = resolve_with_match(index, name)
    return doc
