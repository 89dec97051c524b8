"""Shared test fixtures for the vaultkit test suite.

Design:
- make_doc: builds an in-memory Document by running the real parser
- scenario_index: small hand-checked graph used across query tests
- vault_root: on-disk vault in a temp directory, with VAULTKIT_VAULT_PATH set
- runner: CliRunner for CLI tests
"""

from datetime import UTC, datetime
from pathlib import Path

import pytest
from click.testing import CliRunner

from vaultkit.graph import GraphIndex, build_index
from vaultkit.models import Document
from vaultkit.parser import (
    extract_checkboxes,
    extract_frontmatter,
    extract_headings,
    extract_inline_tags,
    extract_links,
    frontmatter_tags,
)

DEFAULT_MODIFIED = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def make_doc(
    name: str,
    content: str = "",
    path: str | None = None,
    modified: datetime = DEFAULT_MODIFIED,
) -> Document:
    """Build a Document the same way the vault loader does, minus the disk."""
    metadata = extract_frontmatter(content)
    return Document(
        name=name,
        path=path or f"{name}.md",
        content=content,
        frontmatter=metadata,
        links=extract_links(content),
        frontmatter_tags=frontmatter_tags(metadata),
        inline_tags=extract_inline_tags(content),
        headings=extract_headings(content),
        checkboxes=extract_checkboxes(content),
        modified=modified,
    )


def write_note(root: Path, rel_path: str, content: str) -> Path:
    """Write a note under root, creating folders as needed."""
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    """CLI runner with isolated environment."""
    return CliRunner()


@pytest.fixture
def scenario_docs() -> list[Document]:
    """Five notes with a cycle, a broken link and an orphan.

    - A links B; B links A (cycle)
    - C links B and the missing note "Ghost"
    - D embeds Ghost and is tagged #draft
    - Orphan has no links in or out
    """
    return [
        make_doc(
            "A",
            "---\ntags: [project, alpha]\n---\nSee [[B]] for details.\n",
            path="projects/A.md",
            modified=datetime(2024, 1, 10, tzinfo=UTC),
        ),
        make_doc(
            "B",
            "Back to [[A|the start]].\n- [ ] write intro\n- [x] outline\n",
            path="projects/B.md",
            modified=datetime(2024, 3, 1, tzinfo=UTC),
        ),
        make_doc(
            "C",
            "Links: [[B#Heading]] and [[Ghost]].\n",
            path="archive/C.md",
            modified=datetime(2023, 12, 31, tzinfo=UTC),
        ),
        make_doc(
            "D",
            "Diagram: ![[Ghost]] #draft\n",
            path="D.md",
            modified=datetime(2024, 6, 1, tzinfo=UTC),
        ),
        make_doc("Orphan", "Nothing links here.\n", path="misc/Orphan.md"),
    ]


@pytest.fixture
def scenario_index(scenario_docs) -> GraphIndex:
    return build_index(scenario_docs, root="/vault")


@pytest.fixture
def vault_root(tmp_path: Path, monkeypatch) -> Path:
    """Create an on-disk vault and point configuration at it.

    Layout:
        Home.md            links [[Plan]] and the missing [[Nowhere]]
        projects/Plan.md   tagged #work, links back to [[Home]]
        notes/Café Notes.md
        .obsidian/ignored.md (excluded dir)
    """
    root = tmp_path / "vault"
    root.mkdir()
    write_note(root, "Home.md", "# Home\n\nStart at [[Plan]]. Also [[Nowhere]].\n")
    write_note(
        root,
        "projects/Plan.md",
        "---\ntags: work\nstatus: active\n---\nThe plan #work\n\nBack [[Home]].\n- [ ] ship it\n",
    )
    write_note(root, "notes/Café Notes.md", "Coffee thoughts.\n")
    write_note(root, ".obsidian/ignored.md", "[[Home]]\n")

    monkeypatch.delenv("VAULT_PATH", raising=False)
    monkeypatch.setenv("VAULTKIT_VAULT_PATH", str(root))
    return root


@pytest.fixture(autouse=True)
def _isolate_config(tmp_path_factory, monkeypatch):
    """Keep a developer's .vaultkit.yaml or vault env vars out of the tests."""
    monkeypatch.delenv("VAULTKIT_VAULT_PATH", raising=False)
    monkeypatch.delenv("VAULT_PATH", raising=False)
    monkeypatch.delenv("VAULTKIT_WATCH", raising=False)
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))
