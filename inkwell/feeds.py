"""Feed output plugins for Inkwell.

Feed templates are markers: a file such as ``skel/index.xml.rss`` is empty
and only tells the weblog to write an RSS feed of that page's entries to
``index.xml``. The plugin generates the whole document itself.

Output is a pure function of the page's entries and the weblog settings; the
feed's own date is the newest entry's date, never the current time, so
rebuilding an unchanged weblog produces identical feeds.

Classes:
    FeedOutput: Base class for feed plugins.
    RSSOutput: RSS 2.0 ('.rss').
    AtomOutput: Atom 1.0 ('.atom').
    OkayNewsOutput: YAML news feed ('.okaynews').
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import yaml
from markupsafe import escape

from .registry import PluginDescriptor, PluginRole
from .renderers import render_entry
from .utils import format_iso8601, format_rfc822, join_root_url

if TYPE_CHECKING:
    from .entry import Entry
    from .regenerate import PageContext


class FeedOutput(ABC):
    """Abstract base class for feed output plugins.

    Attributes:
        title: Weblog title.
        link: Weblog base URL.
        description: Weblog description.
        entry_suffix: Suffix of entry pages, used to build entry links.
    """

    extension: str = ""

    def __init__(
        self,
        title: str = "",
        link: str = "",
        description: str = "",
        entry_suffix: str = ".html",
    ):
        self.title = title
        self.link = link or ""
        self.description = description
        self.entry_suffix = entry_suffix

    @classmethod
    def from_weblog(cls, weblog: Any, config: Any = None) -> FeedOutput:
        return cls(
            title=weblog.title,
            link=weblog.link,
            description=weblog.config.get("description") or "",
            entry_suffix=weblog.entry_suffix,
        )

    def matches(self, extension: str) -> bool:
        return extension == self.extension

    def entry_url(self, entry: Entry) -> str:
        return join_root_url(self.link, entry.id + self.entry_suffix)

    def page_url(self, context: PageContext) -> str:
        return join_root_url(self.link, context.page.output_path)

    def feed_title(self, context: PageContext) -> str:
        page = context.page
        if page.tag:
            return f"{self.title}: {page.tag}"
        if page.section:
            return f"{self.title}: {page.section}"
        return self.title

    @abstractmethod
    def generate(self, context: PageContext) -> str:
        """Generate the feed document for one page."""
        ...

    def render(self, context: PageContext) -> bytes:
        return self.generate(context).encode("utf-8")


class RSSOutput(FeedOutput):
    """Generates RSS 2.0 feeds."""

    extension = "rss"

    def generate(self, context: PageContext) -> str:
        items = []
        for entry in context.entries:
            link = escape(self.entry_url(entry))
            description = entry.summary or str(render_entry(entry))
            parts = [
                "<item>",
                f"<title>{escape(entry.title)}</title>",
                f"<link>{link}</link>",
                f'<guid isPermaLink="true">{link}</guid>',
            ]
            if entry.author:
                parts.append(f"<author>{escape(entry.author)}</author>")
            parts.extend(f"<category>{escape(tag)}</category>" for tag in entry.tags)
            parts.append(f"<description>{escape(description)}</description>")
            parts.append(f"<pubDate>{format_rfc822(entry.created)}</pubDate>")
            parts.append("</item>")
            items.append("".join(parts))

        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{escape(self.feed_title(context))}</title>",
            f"<link>{escape(self.link or '/')}</link>",
            f"<description>{escape(self.description or self.title)}</description>",
        ]
        if context.entries:
            rss.append(
                f"<lastBuildDate>{format_rfc822(context.entries[0].created)}</lastBuildDate>"
            )
        rss.extend(items)
        rss.append("</channel></rss>")
        return "\n".join(rss) + "\n"


class AtomOutput(FeedOutput):
    """Generates Atom 1.0 feeds."""

    extension = "atom"

    def generate(self, context: PageContext) -> str:
        feed_url = escape(self.page_url(context))
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<feed xmlns="http://www.w3.org/2005/Atom">',
            f"<title>{escape(self.feed_title(context))}</title>",
            f'<link rel="self" href="{feed_url}"/>',
            f'<link rel="alternate" href="{escape(self.link or "/")}"/>',
            f"<id>{feed_url}</id>",
        ]
        if context.entries:
            newest = max(e.modified or e.created for e in context.entries)
            lines.append(f"<updated>{format_iso8601(newest)}</updated>")
        for entry in context.entries:
            url = escape(self.entry_url(entry))
            parts = [
                "<entry>",
                f"<title>{escape(entry.title)}</title>",
                f'<link href="{url}"/>',
                f"<id>{url}</id>",
                f"<published>{format_iso8601(entry.created)}</published>",
                f"<updated>{format_iso8601(entry.modified or entry.created)}</updated>",
            ]
            if entry.author:
                parts.append(f"<author><name>{escape(entry.author)}</name></author>")
            parts.extend(f'<category term="{escape(tag)}"/>' for tag in entry.tags)
            if entry.summary:
                parts.append(f"<summary>{escape(entry.summary)}</summary>")
            parts.append(f'<content type="html">{escape(str(render_entry(entry)))}</content>')
            parts.append("</entry>")
            lines.append("".join(parts))
        lines.append("</feed>")
        return "\n".join(lines) + "\n"


class OkayNewsOutput(FeedOutput):
    """Generates a YAML news feed: one channel mapping plus a list of items."""

    extension = "okaynews"

    def generate(self, context: PageContext) -> str:
        channel: dict[str, Any] = {
            "title": self.feed_title(context),
            "link": self.link,
            "description": self.description or self.title,
        }
        if context.entries:
            channel["updated"] = format_iso8601(context.entries[0].created)
        items = []
        for entry in context.entries:
            item: dict[str, Any] = {
                "title": entry.title,
                "link": self.entry_url(entry),
                "created": format_iso8601(entry.created),
            }
            if entry.author:
                item["author"] = entry.author
            if entry.tags:
                item["tags"] = list(entry.tags)
            if entry.summary:
                item["summary"] = entry.summary
            if entry.is_link:
                item["links"] = [dict(link) for link in entry.links]
            item["content"] = entry.content
            items.append(item)
        return yaml.safe_dump(
            {"channel": channel, "items": items}, sort_keys=False, allow_unicode=True
        )


PLUGINS = [
    PluginDescriptor(PluginRole.OUTPUT, "rss", RSSOutput.from_weblog, extensions=("rss",)),
    PluginDescriptor(PluginRole.OUTPUT, "atom", AtomOutput.from_weblog, extensions=("atom",)),
    PluginDescriptor(
        PluginRole.OUTPUT, "okaynews", OkayNewsOutput.from_weblog, extensions=("okaynews",)
    ),
]
