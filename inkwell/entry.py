"""Entry model for Inkwell.

An entry is one unit of content, either a prose post or a list of links,
stored under a slash-delimited id whose directories categorise it.

Key classes:
- Entry: Dataclass holding an entry's content and metadata.

Key functions:
- entry_sort_key: Reverse-chronological ordering with ties broken by id.
- sort_entries: Sort entries with entry_sort_key.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .utils import entry_section, titleize_id, to_utc, validate_entry_id

ENTRY_KIND = "entry"
LINK_KIND = "link"
ENTRY_KINDS = (ENTRY_KIND, LINK_KIND)

# YAML keys mapped onto Entry attributes; everything else lands in metadata.
_KNOWN_KEYS = (
    "title",
    "author",
    "created",
    "modified",
    "summary",
    "content",
    "tags",
    "type",
    "links",
)


@dataclass
class Entry:
    """A weblog entry.

    Attributes:
        id: Slash-delimited identifier, e.g. 'blog/weddings/ours'.
        title: Human-readable title.
        author: Username of the author.
        created: Creation time (aware, UTC).
        content: Markdown body.
        summary: Optional short summary.
        tags: Tags attached to the entry.
        kind: 'entry' for prose, 'link' for link lists.
        links: Links of a link entry, each a mapping with 'title' and 'url'.
        modified: Time of the last edit, if known.
        metadata: Any other keys found in the stored document.
    """

    id: str
    title: str = ""
    author: str = ""
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    content: str = ""
    summary: str = ""
    tags: list[str] = field(default_factory=list)
    kind: str = ENTRY_KIND
    links: list[dict[str, Any]] = field(default_factory=list)
    modified: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.created = to_utc(self.created)
        self.modified = to_utc(self.modified)
        if self.kind not in ENTRY_KINDS:
            raise ValueError(
                f"Unknown entry type '{self.kind}' (expected one of {', '.join(ENTRY_KINDS)})"
            )

    @property
    def section(self) -> str:
        """Categorisation directory of the entry ('' at top level)."""
        return entry_section(self.id)

    @property
    def name(self) -> str:
        """Last segment of the id."""
        return self.id.rsplit("/", 1)[-1]

    @property
    def is_link(self) -> bool:
        return self.kind == LINK_KIND

    @classmethod
    def new(cls, entry_id: str, author: str = "", kind: str = ENTRY_KIND) -> Entry:
        """Create a blank entry titled after its id."""
        validate_entry_id(entry_id)
        return cls(id=entry_id, title=titleize_id(entry_id), author=author, kind=kind)

    @classmethod
    def from_dict(
        cls, entry_id: str, data: dict[str, Any], default_created: datetime | None = None
    ) -> Entry:
        """Build an entry from a stored YAML document.

        Args:
            entry_id: Id the document was stored under.
            data: Mapping loaded from the document.
            default_created: Creation time for documents without one. The
                current time is used when this is None as well.

        Returns:
            Entry instance. Missing titles fall back to the titleized id.
        """
        tags = data.get("tags") or []
        if isinstance(tags, str):
            tags = tags.split()
        created = data.get("created")
        if created is None:
            created = default_created
        return cls(
            id=entry_id,
            title=str(data.get("title") or titleize_id(entry_id)),
            author=str(data.get("author") or ""),
            created=created if created is not None else datetime.now(timezone.utc),
            content=str(data.get("content") or ""),
            summary=str(data.get("summary") or ""),
            tags=[str(tag) for tag in tags],
            kind=str(data.get("type") or ENTRY_KIND),
            links=list(data.get("links") or []),
            modified=data.get("modified"),
            metadata={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain mapping suitable for yaml.safe_dump.

        Timestamps are written as ISO 8601 strings so documents survive a
        round trip regardless of the YAML loader's timestamp handling.
        """
        data: dict[str, Any] = {
            "title": self.title,
            "author": self.author,
            "created": self.created.isoformat(),
        }
        if self.modified is not None:
            data["modified"] = self.modified.isoformat()
        if self.kind != ENTRY_KIND:
            data["type"] = self.kind
        if self.summary:
            data["summary"] = self.summary
        if self.tags:
            data["tags"] = list(self.tags)
        if self.links:
            data["links"] = [dict(link) for link in self.links]
        data["content"] = self.content
        data.update(self.metadata)
        return data


def entry_sort_key(entry: Entry) -> tuple[float, str]:
    """Newest first; identical timestamps fall back to ascending id."""
    return (-entry.created.timestamp(), entry.id)


def sort_entries(entries: Iterable[Entry]) -> list[Entry]:
    """Return entries in reverse-chronological order."""
    return sorted(entries, key=entry_sort_key)
