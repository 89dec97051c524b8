"""Long-lived owner of the current GraphIndex snapshot.

Callers keep a reference to the VaultStore; the snapshot behind it is replaced
wholesale on rebuild. A new index is always built completely before it is
published with a single attribute assignment, so readers see either the old
or the new snapshot, never a partial one. Rebuilds are serialised; reads take
no lock.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from pathlib import Path

from .graph import GraphIndex, build_index
from .models import Document
from .vault import load_documents

log = logging.getLogger(__name__)

DocumentLoader = Callable[[Path], Iterable[Document]]


class VaultStore:
    """Holds the vault's GraphIndex and rebuilds it on demand."""

    def __init__(self, root: Path | str, loader: DocumentLoader = load_documents) -> None:
        self.root = Path(root)
        self._loader = loader
        self._index: GraphIndex | None = None
        self._rebuild_lock = threading.Lock()

    @classmethod
    def from_documents(cls, documents: Iterable[Document], root: Path | str = ".") -> "VaultStore":
        """Store over a fixed in-memory document set (rebuild re-reads the same set)."""
        docs = list(documents)
        return cls(root, loader=lambda _root: docs)

    @property
    def index(self) -> GraphIndex:
        """Current snapshot, built on first access."""
        index = self._index
        if index is None:
            index = self._build_if_missing()
        return index

    @property
    def is_built(self) -> bool:
        return self._index is not None

    def _build_if_missing(self) -> GraphIndex:
        with self._rebuild_lock:
            if self._index is None:
                self._index = self._build()
            return self._index

    def _build(self) -> GraphIndex:
        start = time.perf_counter()
        index = build_index(self._loader(self.root), root=str(self.root))
        log.info(
            "Indexed %s in %.2fs", self.root, time.perf_counter() - start
        )
        return index

    def rebuild(self) -> GraphIndex:
        """Re-read the vault and publish a fresh snapshot.

        Queries that already hold the previous snapshot keep using it.
        """
        with self._rebuild_lock:
            index = self._build()
            self._index = index
        return index
