"""Output mapping for Inkwell.

Given the templates of a weblog and its entries, the mapper computes every
page a regeneration pass must render and the ordered entries feeding each.

A full pass pairs every template with the pages its kind produces. An update
pass anchored at one entry keeps only the pages whose entry set can contain
that entry:

- entry:    the anchor's own page.
- index:    the section page, if the anchor ranks inside the window.
- feed:     same as index.
- section:  every directory page above the anchor.
- tags:     one page per tag of the anchor.
- yearly, monthly, daily: the period page containing the anchor.
- page:     never (standalone pages carry no entries).

Entry sets are always computed from the complete entry list, so an update pass
writes the same bytes a full pass would for the pages it touches.

Key classes:
- ChangeScope: 'full' or 'update' anchored at an entry id.
- Page: A template paired with its output path and entry subset.

Key functions:
- compute_affected_pages: Compute the pages for a scope.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from .entry import Entry, sort_entries
from .errors import EntryNotFoundError
from .templates import PAGE_KIND, Template
from .utils import ancestor_sections, in_section, slugify, validate_entry_id

logger = logging.getLogger(__name__)

FULL = "full"
UPDATE = "update"


@dataclass(frozen=True)
class ChangeScope:
    """What a regeneration pass has to cover.

    Attributes:
        mode: 'full' or 'update'.
        entry_id: Anchor entry of an update pass.
    """

    mode: str = FULL
    entry_id: str | None = None

    def __post_init__(self) -> None:
        if self.mode == FULL:
            if self.entry_id is not None:
                raise ValueError("A full scope has no anchor entry")
        elif self.mode == UPDATE:
            if self.entry_id is None:
                raise ValueError("An update scope needs an anchor entry id")
            validate_entry_id(self.entry_id)
        else:
            raise ValueError(f"Unknown change scope '{self.mode}'")

    @classmethod
    def full(cls) -> ChangeScope:
        return cls(FULL)

    @classmethod
    def update(cls, entry_id: str) -> ChangeScope:
        return cls(UPDATE, entry_id)

    @classmethod
    def coerce(cls, value: Any) -> ChangeScope:
        """Accept a ChangeScope, 'full', or ('update', entry_id)."""
        if isinstance(value, ChangeScope):
            return value
        if value == FULL:
            return cls.full()
        if isinstance(value, (tuple, list)) and len(value) == 2 and value[0] == UPDATE:
            return cls.update(value[1])
        raise ValueError(f"Cannot interpret {value!r} as a change scope")

    @property
    def is_full(self) -> bool:
        return self.mode == FULL

    def __str__(self) -> str:
        return FULL if self.is_full else f"{UPDATE} {self.entry_id}"


@dataclass(frozen=True)
class Page:
    """One output artifact of a pass.

    Attributes:
        template: Template rendering the page.
        output_path: Path relative to the site output; also the page id.
        entries: Entries feeding the page, newest first.
        section: Section directory for index, feed and section pages.
        tag: Tag name for tag pages.
        period: (year,), (year, month) or (year, month, day) for archives.
    """

    template: Template
    output_path: str
    entries: tuple[Entry, ...] = ()
    section: str | None = None
    tag: str | None = None
    period: tuple[int, ...] | None = None

    @property
    def page_id(self) -> str:
        return self.output_path

    @property
    def category(self) -> str:
        return self.template.kind

    @property
    def entry(self) -> Entry | None:
        """The single entry of an entry page."""
        if self.template.kind == "entry" and self.entries:
            return self.entries[0]
        return None


PageBuilder = Callable[[Template, Sequence[Entry], "Entry | None"], Iterator[Page]]


def _join(*parts: str) -> str:
    return posixpath.join(*[p for p in parts if p])


def _within(section: str, root: str) -> bool:
    return not root or section == root or section.startswith(root + "/")


def _scoped(template: Template, entries: Sequence[Entry]) -> list[Entry]:
    return [e for e in entries if in_section(e.id, template.section)]


def _aggregate_pages(template, entries, anchor):
    scoped = _scoped(template, entries)
    window = scoped if template.window is None else scoped[: template.window]
    if anchor is not None and all(e.id != anchor.id for e in window):
        return
    yield Page(
        template,
        _join(template.section, template.output_name),
        tuple(window),
        section=template.section,
    )


def _entry_pages(template, entries, anchor):
    for entry in _scoped(template, entries):
        if anchor is not None and entry.id != anchor.id:
            continue
        yield Page(template, entry.id + template.suffix, (entry,), section=entry.section)


def _section_pages(template, entries, anchor):
    scoped = _scoped(template, entries)
    if anchor is not None:
        sources: Iterable[Entry] = [e for e in scoped if e.id == anchor.id]
    else:
        sources = scoped
    sections = sorted(
        {s for e in sources for s in ancestor_sections(e.id) if _within(s, template.section)}
    )
    for section in sections:
        members = tuple(e for e in scoped if in_section(e.id, section))
        yield Page(
            template, _join(section, "index" + template.suffix), members, section=section
        )


def _tag_pages(template, entries, anchor):
    scoped = _scoped(template, entries)
    if anchor is not None:
        sources: Iterable[Entry] = [e for e in scoped if e.id == anchor.id]
    else:
        sources = scoped
    for tag in sorted({t for e in sources for t in e.tags}):
        members = tuple(e for e in scoped if tag in e.tags)
        yield Page(
            template,
            _join(template.section, "tags", slugify(tag) + template.suffix),
            members,
            tag=tag,
        )


_PERIOD_LENGTH = {"yearly": 1, "monthly": 2, "daily": 3}


def period_of(entry: Entry, kind: str) -> tuple[int, ...]:
    created = entry.created
    return (created.year, created.month, created.day)[: _PERIOD_LENGTH[kind]]


def _period_path(template: Template, period: tuple[int, ...]) -> str:
    year = f"{period[0]:04d}"
    if len(period) == 1:
        return _join(template.section, year, "index" + template.suffix)
    month = f"{period[1]:02d}"
    if len(period) == 2:
        return _join(template.section, year, month, "index" + template.suffix)
    return _join(template.section, year, month, f"{period[2]:02d}" + template.suffix)


def _archive_pages(template, entries, anchor):
    scoped = _scoped(template, entries)
    if anchor is not None:
        sources: Iterable[Entry] = [e for e in scoped if e.id == anchor.id]
    else:
        sources = scoped
    periods = sorted({period_of(e, template.kind) for e in sources}, reverse=True)
    for period in periods:
        members = tuple(e for e in scoped if period_of(e, template.kind) == period)
        yield Page(template, _period_path(template, period), members, period=period)


def _standalone_pages(template, entries, anchor):
    if anchor is not None:
        return
    yield Page(template, _join(template.section, template.output_name))


_BUILDERS: dict[str, PageBuilder] = {
    "index": _aggregate_pages,
    "feed": _aggregate_pages,
    "entry": _entry_pages,
    "section": _section_pages,
    "tags": _tag_pages,
    "yearly": _archive_pages,
    "monthly": _archive_pages,
    "daily": _archive_pages,
    PAGE_KIND: _standalone_pages,
}


def compute_affected_pages(
    templates: Iterable[Template],
    entries: Iterable[Entry],
    scope: ChangeScope | str | tuple,
) -> list[Page]:
    """Compute the pages a pass must render.

    Args:
        templates: Templates in tree order.
        entries: Every entry in the store.
        scope: Change scope of the pass.

    Returns:
        Pages in template order, then in each kind's page order. Each output
        path appears once; when two templates claim the same path, the first
        one wins.

    Raises:
        EntryNotFoundError: If an update scope names an entry that is not
            among the entries.
    """
    scope = ChangeScope.coerce(scope)
    ordered = sort_entries(entries)
    anchor = None
    if not scope.is_full:
        anchor = next((e for e in ordered if e.id == scope.entry_id), None)
        if anchor is None:
            raise EntryNotFoundError(scope.entry_id)

    templates = list(templates)
    pages: list[Page] = []
    # Ownership of output paths always comes from the full mapping, so an
    # update pass writes a contested path with the same template a full pass would.
    claimed: dict[str, tuple] = {}
    for template in templates:
        for page in _builder(template)(template, ordered, None):
            if page.output_path in claimed:
                logger.warning(
                    "Template %s also writes %s, already produced by %s; skipping",
                    template.path,
                    page.output_path,
                    claimed[page.output_path][0],
                )
                continue
            claimed[page.output_path] = _identity(page)
            pages.append(page)
    if anchor is None:
        return pages

    return [
        page
        for template in templates
        for page in _builder(template)(template, ordered, anchor)
        if claimed.get(page.output_path) == _identity(page)
    ]


def _identity(page: Page) -> tuple:
    """Distinguish pages of one template that map to the same output path."""
    return (page.template.path, page.section, page.tag, page.period)


def _builder(template: Template) -> PageBuilder:
    return _BUILDERS.get(template.kind, _standalone_pages)
