"""Markdown parsing for vault notes."""

from .markdown import (
    extract_checkboxes,
    extract_frontmatter,
    extract_headings,
    extract_inline_tags,
    extract_links,
    frontmatter_tags,
    split_lines,
    strip_frontmatter,
)

__all__ = [
    "extract_checkboxes",
    "extract_frontmatter",
    "extract_headings",
    "extract_inline_tags",
    "extract_links",
    "frontmatter_tags",
    "split_lines",
    "strip_frontmatter",
]
