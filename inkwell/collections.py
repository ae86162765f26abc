from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence

from .entry import Entry, sort_entries
from .utils import in_section


class EntryCollection(Sequence[Entry]):
    """Lightweight helper for working with lists of Entries in templates and code.

    The order given at construction is kept; pages hand their entries over
    already sorted newest first.
    """

    def __init__(self, entries: Iterable[Entry]):
        self._entries = list(entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return EntryCollection(self._entries[item])
        return self._entries[item]

    def in_section(self, section: str, recursive: bool = True) -> EntryCollection:
        return EntryCollection(e for e in self._entries if in_section(e.id, section, recursive))

    def with_tag(self, tag: str) -> EntryCollection:
        return EntryCollection(e for e in self._entries if tag in e.tags)

    def links(self) -> EntryCollection:
        return EntryCollection(e for e in self._entries if e.is_link)

    def posts(self) -> EntryCollection:
        return EntryCollection(e for e in self._entries if not e.is_link)

    def sorted(self) -> EntryCollection:
        """Newest first, identical timestamps ordered by id."""
        return EntryCollection(sort_entries(self._entries))

    def latest(self, count: int = 5) -> EntryCollection:
        return EntryCollection(self.sorted()[:count])

    def by_day(self) -> list[tuple[str, EntryCollection]]:
        """Group consecutive entries by creation day, keeping order.

        Returns:
            (YYYY-MM-DD, entries) pairs, the way index pages print date headers.
        """
        groups: list[tuple[str, list[Entry]]] = []
        for entry in self._entries:
            day = entry.created.strftime("%Y-%m-%d")
            if groups and groups[-1][0] == day:
                groups[-1][1].append(entry)
            else:
                groups.append((day, [entry]))
        return [(day, EntryCollection(items)) for day, items in groups]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"EntryCollection({len(self._entries)} entries)"


class TagCollection(Mapping[str, EntryCollection]):
    """Mapping of tag name to EntryCollection with convenience helpers."""

    def __init__(self, mapping: dict[str, Iterable[Entry]]):
        self._mapping = {k: EntryCollection(v) for k, v in sorted(mapping.items())}

    @classmethod
    def from_entries(cls, entries: Iterable[Entry]) -> TagCollection:
        tags: dict[str, list[Entry]] = {}
        for entry in entries:
            for tag in entry.tags:
                tags.setdefault(tag, []).append(entry)
        return cls(tags)

    def __getitem__(self, key: str) -> EntryCollection:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TagCollection({len(self._mapping)} tags)"
