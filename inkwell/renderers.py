"""Markdown rendering for Inkwell.

Entry bodies and Markdown templates are converted to HTML with mistune.
Fenced code blocks with a language are highlighted with Pygments.

Key classes:
- HighlightRenderer: mistune HTML renderer with heading anchors and highlighting.

Key functions:
- render_markdown: Convert Markdown text to HTML.
- render_entry: Convert an entry body (prose or link list) to HTML.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import mistune
from markupsafe import Markup, escape

if TYPE_CHECKING:
    from .entry import Entry

MARKDOWN_PLUGINS = ["strikethrough", "footnotes", "table", "url"]


def generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text.

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = text.lower().strip()
    slug = re.sub(r"<[^>]+>", "", slug)
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


class HighlightRenderer(mistune.HTMLRenderer):
    """Markdown renderer with heading anchors and syntax highlighting."""

    def __init__(self):
        super().__init__(escape=False)
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = generate_heading_id(text)

        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id

        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a code block with Pygments syntax highlighting.

        Args:
            code: The code content.
            info: Language identifier (e.g., 'python', 'ruby').

        Returns:
            HTML string with highlighted code.
        """
        if info:
            from pygments import highlight
            from pygments.formatters import HtmlFormatter
            from pygments.lexers import get_lexer_by_name
            from pygments.util import ClassNotFound

            try:
                lexer = get_lexer_by_name(info.split()[0], stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(nowrap=False, cssclass="highlight")
                return highlight(code, lexer, formatter)
        escaped = code.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        lang_class = f' class="language-{info}"' if info else ""
        return f"<pre><code{lang_class}>{escaped}</code></pre>\n"


def render_markdown(text: str | None) -> Markup:
    """Convert Markdown to HTML.

    A fresh renderer is used per call so heading ids never leak between
    documents, which keeps output identical across passes.

    Args:
        text: Markdown source; None renders as empty.

    Returns:
        Markup-safe HTML.
    """
    if not text:
        return Markup("")
    markdown = mistune.create_markdown(renderer=HighlightRenderer(), plugins=MARKDOWN_PLUGINS)
    return Markup(markdown(str(text)))


def render_entry(entry: Entry) -> Markup:
    """Render an entry body to HTML.

    Link entries become a list of links followed by their Markdown body.
    """
    html = render_markdown(entry.content)
    if not entry.is_link:
        return html
    items = []
    for link in entry.links:
        url = escape(str(link.get("url", "")))
        title = escape(str(link.get("title") or link.get("url", "")))
        items.append(f'<li><a href="{url}">{title}</a></li>')
    return Markup(f'<ul class="links">{"".join(items)}</ul>\n') + html


def pygments_css(selector: str = ".highlight") -> str:
    """Return Pygments CSS styles for highlighted code blocks."""
    from pygments.formatters import HtmlFormatter

    return HtmlFormatter().get_style_defs(selector)
