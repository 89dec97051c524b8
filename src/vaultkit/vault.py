"""Vault discovery and note loading.

Walks the vault directory, applies the exclusion rules and turns every
readable markdown file into a Document. Files that can't be read are logged
and left out; the index builder only ever sees valid documents.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from .config import NOTE_SUFFIX, get_exclusions
from .models import Document
from .parser import (
    extract_checkboxes,
    extract_frontmatter,
    extract_headings,
    extract_inline_tags,
    extract_links,
    frontmatter_tags,
)

log = logging.getLogger(__name__)


def _is_excluded(rel_path: str, prefixes: Iterable[str]) -> bool:
    return any(rel_path.startswith(prefix) for prefix in prefixes)


def scan_vault(
    vault_root: Path,
    excluded_dirs: Iterable[str] | None = None,
    excluded_prefixes: Iterable[str] | None = None,
) -> list[Path]:
    """List every note file in the vault.

    Symlinks are followed only while their real path stays inside the vault.
    Each real directory is walked once, so symlink cycles terminate.

    Args:
        vault_root: Vault directory.
        excluded_dirs: Directory names to skip anywhere (defaults from config).
        excluded_prefixes: Vault-relative prefixes to skip (defaults from config).

    Returns:
        Note paths (as found, not resolved), sorted by vault-relative path.
    """
    root = Path(vault_root)
    if not root.is_dir():
        return []

    if excluded_dirs is None or excluded_prefixes is None:
        default_dirs, default_prefixes = get_exclusions()
    skip_dirs = frozenset(excluded_dirs) if excluded_dirs is not None else default_dirs
    prefixes = tuple(excluded_prefixes) if excluded_prefixes is not None else default_prefixes
    real_root = root.resolve()

    results: list[tuple[str, Path]] = []
    seen_dirs: set[Path] = set()

    def walk(directory: Path, rel_dir: str) -> None:
        real_dir = directory.resolve()
        if real_dir in seen_dirs:
            return
        seen_dirs.add(real_dir)

        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError as e:
            log.warning("Cannot list %s: %s", directory, e)
            return

        for entry in entries:
            full_path = Path(entry.path)
            try:
                real_path = full_path.resolve(strict=True)
            except (OSError, RuntimeError):
                # Dangling or looping symlink
                continue
            if real_path != real_root and not real_path.is_relative_to(real_root):
                log.debug("Skipping %s: resolves outside the vault", full_path)
                continue

            rel_path = f"{rel_dir}{entry.name}"
            if real_path.is_dir():
                if entry.name in skip_dirs or _is_excluded(f"{rel_path}/", prefixes):
                    continue
                walk(full_path, f"{rel_path}/")
            elif real_path.is_file() and entry.name.endswith(NOTE_SUFFIX):
                if not _is_excluded(rel_path, prefixes):
                    results.append((rel_path, full_path))

    walk(root, "")
    results.sort(key=lambda item: item[0])
    return [path for _, path in results]


def read_document(path: Path, vault_root: Path) -> Document:
    """Read and parse one note.

    Raises:
        OSError: If the file can't be read or stat'ed.
        UnicodeDecodeError: If the file isn't valid UTF-8.
    """
    content = path.read_text(encoding="utf-8")
    modified = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
    metadata = extract_frontmatter(content)

    try:
        rel_path = path.relative_to(vault_root).as_posix()
    except ValueError:
        rel_path = path.as_posix()

    return Document(
        name=path.stem,
        path=rel_path,
        content=content,
        frontmatter=metadata,
        links=extract_links(content),
        frontmatter_tags=frontmatter_tags(metadata),
        inline_tags=extract_inline_tags(content),
        headings=extract_headings(content),
        checkboxes=extract_checkboxes(content),
        modified=modified,
    )


def load_documents(vault_root: Path) -> list[Document]:
    """Scan the vault and parse every readable note, in vault path order."""
    root = Path(vault_root)
    documents: list[Document] = []
    for path in scan_vault(root):
        try:
            documents.append(read_document(path, root))
        except (OSError, UnicodeDecodeError) as e:
            log.warning("Skipping unreadable note %s: %s", path, e)
    return documents
