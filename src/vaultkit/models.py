"""Pydantic models for vault documents and query filters."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LinkRef(BaseModel):
    """A single [[wikilink]] or ![[embed]] occurrence."""

    model_config = ConfigDict(frozen=True)

    target: str  # Link name as written, trimmed
    anchor: str | None = None  # [[target#anchor]]
    alias: str | None = None  # [[target|alias]]
    line: int  # 1-based line in the file
    embed: bool = False  # True for ![[...]]


class Heading(BaseModel):
    """A markdown ATX heading."""

    model_config = ConfigDict(frozen=True)

    level: int
    text: str
    line: int


class Checkbox(BaseModel):
    """A task list item (- [ ] / - [x])."""

    model_config = ConfigDict(frozen=True)

    checked: bool
    text: str
    line: int
    indent: int = 0


class Document(BaseModel):
    """A parsed note. Read-only once built."""

    model_config = ConfigDict(frozen=True)

    name: str  # Display name (file stem)
    path: str  # POSIX path relative to the vault root
    content: str
    frontmatter: dict[str, Any] | None = None
    links: list[LinkRef] = Field(default_factory=list)  # Textual order, duplicates kept
    frontmatter_tags: list[str] = Field(default_factory=list)
    inline_tags: list[str] = Field(default_factory=list)
    headings: list[Heading] = Field(default_factory=list)
    checkboxes: list[Checkbox] = Field(default_factory=list)
    modified: datetime

    @property
    def key(self) -> str:
        """Normalised lookup key (lowercase, trimmed name)."""
        return self.name.strip().lower()

    @property
    def tags(self) -> list[str]:
        """Effective tags: frontmatter tags, then unseen inline tags."""
        if not self.inline_tags:
            return list(self.frontmatter_tags)
        seen = set(self.frontmatter_tags)
        result = list(self.frontmatter_tags)
        for tag in self.inline_tags:
            if tag not in seen:
                seen.add(tag)
                result.append(tag)
        return result


class FilterSpec(BaseModel):
    """Predicates shared by every list-producing query.

    Every field is optional; an unset field never rejects a document.
    """

    folder: str | None = None  # Only notes under this vault folder
    exclude_folders: list[str] = Field(default_factory=list)
    exclude_pattern: str | None = None  # Case-insensitive regex on the note name
    tags: list[str] = Field(default_factory=list)  # Match any
    exclude_tags: list[str] = Field(default_factory=list)  # Reject any
    modified_after: str | None = None  # ISO date/datetime, inclusive
    modified_before: str | None = None  # ISO date/datetime, exclusive

    def is_empty(self) -> bool:
        return not (
            self.folder
            or self.exclude_folders
            or self.exclude_pattern
            or self.tags
            or self.exclude_tags
            or self.modified_after
            or self.modified_before
        )
