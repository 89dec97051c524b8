"""Markdown extraction: wikilinks, tags, headings, checkboxes, frontmatter."""

import logging
import re
from datetime import date, datetime
from typing import Any

import frontmatter
import yaml

from ..models import Checkbox, Heading, LinkRef

log = logging.getLogger(__name__)

# [[target]], [[target#anchor]], [[target|alias]], [[target#anchor|alias]],
# optionally prefixed by ! for embeds
LINK_PATTERN = re.compile(r"(!?)\[\[([^\]#|]+)(?:#([^\]|]+))?(?:\|([^\]]+))?\]\]")
HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$")
CHECKBOX_PATTERN = re.compile(r"^(\s*)- \[([ xX])\]\s+(.+)$")
# #tag preceded by start-of-line or whitespace, followed by whitespace or end
TAG_PATTERN = re.compile(r"(?:^|(?<=\s))#([a-zA-Z][\w/\-]*)(?=\s|$)")
FRONTMATTER_PATTERN = re.compile(r"^---\r?\n(.*?\r?\n)?---\r?\n", re.DOTALL)
_LINE_SPLIT = re.compile(r"\r?\n")


def split_lines(content: str) -> list[str]:
    """Split on LF or CRLF, matching the line numbers reported everywhere else."""
    return _LINE_SPLIT.split(content)


def extract_links(content: str) -> list[LinkRef]:
    """Extract wikilinks and embeds in textual order, duplicates kept."""
    links: list[LinkRef] = []
    for line_no, line in enumerate(split_lines(content), start=1):
        for match in LINK_PATTERN.finditer(line):
            target = match.group(2).strip()
            if not target:
                continue
            links.append(
                LinkRef(
                    target=target,
                    anchor=match.group(3) or None,
                    alias=match.group(4) or None,
                    line=line_no,
                    embed=match.group(1) == "!",
                )
            )
    return links


def extract_headings(content: str) -> list[Heading]:
    headings: list[Heading] = []
    for line_no, line in enumerate(split_lines(content), start=1):
        match = HEADING_PATTERN.match(line)
        if match:
            headings.append(
                Heading(level=len(match.group(1)), text=match.group(2).strip(), line=line_no)
            )
    return headings


def extract_checkboxes(content: str) -> list[Checkbox]:
    checkboxes: list[Checkbox] = []
    for line_no, line in enumerate(split_lines(content), start=1):
        match = CHECKBOX_PATTERN.match(line)
        if match:
            checkboxes.append(
                Checkbox(
                    checked=match.group(2) in ("x", "X"),
                    text=match.group(3).strip(),
                    line=line_no,
                    indent=len(match.group(1)),
                )
            )
    return checkboxes


def strip_frontmatter(content: str) -> str:
    return FRONTMATTER_PATTERN.sub("", content, count=1)


def extract_inline_tags(content: str) -> list[str]:
    """Extract #tags from the body, skipping frontmatter and heading lines.

    Returns:
        Unique tags without the leading #, in order of first appearance.
    """
    seen: set[str] = set()
    tags: list[str] = []
    for line in split_lines(strip_frontmatter(content)):
        if HEADING_PATTERN.match(line.lstrip()):
            continue
        for match in TAG_PATTERN.finditer(line):
            tag = match.group(1)
            if tag not in seen:
                seen.add(tag)
                tags.append(tag)
    return tags


def _plain(value: Any) -> Any:
    """Convert YAML scalars that JSON can't carry (dates) to strings."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_plain(v) for v in value]
    return value


def extract_frontmatter(content: str) -> dict[str, Any] | None:
    """Parse the leading YAML block.

    Returns:
        The metadata mapping with JSON-safe values, or None when the block is
        absent, empty, not a mapping, or not valid YAML.
    """
    if not FRONTMATTER_PATTERN.match(content):
        return None
    try:
        post = frontmatter.loads(content)
    except (yaml.YAMLError, ValueError) as e:
        log.debug("Ignoring invalid frontmatter: %s", e)
        return None

    metadata = post.metadata
    if not isinstance(metadata, dict) or not metadata:
        return None
    return _plain(metadata)


def frontmatter_tags(metadata: dict[str, Any] | None) -> list[str]:
    """Normalise the `tags` field, which may be a list or a comma-separated string."""
    if not metadata:
        return []

    raw = metadata.get("tags")
    if isinstance(raw, str):
        values = raw.split(",")
    elif isinstance(raw, list):
        values = [str(v) for v in raw if v is not None]
    else:
        return []

    tags: list[str] = []
    for value in values:
        tag = value.strip().lstrip("#")
        if tag and tag not in tags:
            tags.append(tag)
    return tags
