"""Utility functions for Inkwell.

Key functions:
    validate_entry_id: Check that a string can name an entry.
    entry_section: Directory part of an entry id.
    ancestor_sections: Every categorisation directory above an entry id.
    in_section: Whether an entry id lives under a directory prefix.
    titleize_id: Turn the last segment of an id into a title.
    slugify: Convert tag names to URL-safe path segments.
    to_utc: Normalize datetimes (and YAML/ISO values) to aware UTC.
    join_root_url: Join a base URL with a path.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone

from .errors import InvalidEntryIdError

_TITLE_BREAK_RE = re.compile(r"^\w|_\w|[A-Z]")


def validate_entry_id(entry_id: str) -> str:
    """Check that an id can name an entry and return it unchanged.

    Ids are slash-delimited like relative POSIX paths. Each segment is a
    categorisation directory except the last one.

    Raises:
        InvalidEntryIdError: If the id is empty, absolute, has empty or dot
            segments, or contains a backslash.
    """
    if not isinstance(entry_id, str) or not entry_id:
        raise InvalidEntryIdError(str(entry_id), "id is empty")
    if "\\" in entry_id:
        raise InvalidEntryIdError(entry_id, "backslashes are not allowed")
    if entry_id.startswith("/") or entry_id.endswith("/"):
        raise InvalidEntryIdError(entry_id, "leading or trailing slash")
    for segment in entry_id.split("/"):
        if not segment:
            raise InvalidEntryIdError(entry_id, "empty path segment")
        if segment in (".", ".."):
            raise InvalidEntryIdError(entry_id, "relative path segment")
        if segment.startswith((".", "_")):
            raise InvalidEntryIdError(entry_id, "hidden path segment")
    return entry_id


def normalize_prefix(prefix: str | None) -> str:
    """Strip surrounding slashes from a section prefix ('' means everything)."""
    return (prefix or "").strip("/")


def entry_section(entry_id: str) -> str:
    """Return the directory part of an id ('' for top-level entries).

    Examples:
        >>> entry_section("blog/weddings/anotherPatheticWedding")
        'blog/weddings'
    """
    head, _, _ = entry_id.rpartition("/")
    return head


def ancestor_sections(entry_id: str) -> list[str]:
    """Return every categorisation directory containing an id, outermost first.

    Examples:
        >>> ancestor_sections("a/b/post")
        ['a', 'a/b']
    """
    parts = entry_id.split("/")[:-1]
    return ["/".join(parts[: i + 1]) for i in range(len(parts))]


def in_section(entry_id: str, section: str, recursive: bool = True) -> bool:
    """Check whether an id lives under a section prefix.

    Prefixes match whole segments, so 'a' contains 'a/1' but not 'ab/1'.
    """
    section = normalize_prefix(section)
    if recursive:
        return not section or entry_id.startswith(section + "/")
    return entry_section(entry_id) == section


def titleize_id(entry_id: str) -> str:
    """Build a human title from the last segment of an entry id.

    Underscores and capital letters start new words.

    Examples:
        >>> titleize_id("blog/my_first_post")
        'My First Post'

        >>> titleize_id("blog/weddings/anotherPatheticWedding")
        'Another Pathetic Wedding'
    """
    name = entry_id.rsplit("/", 1)[-1]
    titled = _TITLE_BREAK_RE.sub(lambda m: " " + m.group(0)[-1].upper(), name)
    return " ".join(titled.replace("-", " ").split()) or "Untitled"


def slugify(name: str) -> str:
    """Convert a tag or title to a URL-friendly slug.

    Args:
        name: Text to convert.

    Returns:
        Lower-case slug made of letters, digits and hyphens.
    """
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", name)
    return cleaned.strip("-").lower() or "untitled"


def to_utc(value: date | str | int | float | None) -> datetime | None:
    """Normalize a timestamp to an aware UTC datetime.

    Accepts datetimes (naive values are taken as UTC), dates, ISO 8601
    strings and POSIX timestamps. None passes through.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip())
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_rfc822(value: datetime) -> str:
    """Format a datetime the way RSS 2.0 expects."""
    return to_utc(value).strftime("%a, %d %b %Y %H:%M:%S +0000")


def format_iso8601(value: datetime) -> str:
    """Format a datetime the way Atom expects."""
    return to_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


def join_root_url(root_url: str, path: str) -> str:
    """Safely join a root URL and a path, avoiding double slashes.

    Args:
        root_url: Base URL (e.g., https://example.com/blog).
        path: Path beginning with or without a leading slash.

    Returns:
        Combined URL with proper slash handling.

    Examples:
        >>> join_root_url('https://example.com', '/about')
        'https://example.com/about'

        >>> join_root_url('https://example.com/', 'about')
        'https://example.com/about'
    """
    if not root_url:
        return path if path.startswith("/") else f"/{path}"
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"
