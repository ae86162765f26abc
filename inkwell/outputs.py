"""Template output plugins for Inkwell.

Key classes:
- JinjaOutput: Renders '.jinja' templates with Jinja2.
- MarkdownOutput: Renders '.md' templates with Jinja2, then converts the
  result from Markdown to HTML.

Templates see these variables: ``weblog``, ``page``, ``template``,
``entries`` (newest first), ``entry`` (entry pages), ``section``, ``tag``,
``period`` and ``tags``. Globals ``url_for`` and ``pygments_css`` and the
filters ``markdown``, ``entry_html``, ``rfc822`` and ``isodate`` are installed as well.
Files in skel starting with '_' can be used as layouts and partials.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from .registry import PluginDescriptor, PluginRole
from .renderers import pygments_css, render_entry, render_markdown
from .utils import format_iso8601, format_rfc822, join_root_url

if TYPE_CHECKING:
    from .regenerate import PageContext


class JinjaOutput:
    """Renders Jinja2 templates from the skel directory.

    Attributes:
        skel_dir: Directory holding templates, layouts and partials.
        root_url: Base URL used by ``url_for``.
        env: Jinja2 environment.
    """

    extensions = ("jinja",)

    def __init__(self, skel_dir: Path, root_url: str = "", strict: bool = False):
        """Initialize the output plugin.

        Args:
            skel_dir: Directory with templates.
            root_url: Optional base URL for links.
            strict: Fail on undefined template variables.
        """
        self.skel_dir = skel_dir
        self.root_url = root_url or ""
        options: dict[str, Any] = {}
        if strict:
            options["undefined"] = StrictUndefined
        self.env = Environment(
            loader=FileSystemLoader(str(skel_dir)),
            autoescape=select_autoescape(["html", "xml", "html.jinja", "xml.jinja", "html.md"]),
            keep_trailing_newline=True,
            **options,
        )
        self._install_globals()

    @classmethod
    def from_weblog(cls, weblog: Any, config: Any = None):
        config = config if isinstance(config, dict) else {}
        return cls(
            weblog.skel_path,
            root_url=weblog.link,
            strict=bool(config.get("strict", False)),
        )

    def _install_globals(self) -> None:
        """Install global variables and filters in the Jinja environment."""
        self.env.globals["url_for"] = self._url_for
        self.env.globals["pygments_css"] = pygments_css
        self.env.filters["markdown"] = render_markdown
        self.env.filters["entry_html"] = render_entry
        self.env.filters["rfc822"] = format_rfc822
        self.env.filters["isodate"] = format_iso8601

    def _url_for(self, path: str) -> str:
        """Generate a URL for a site path, applying the weblog link if configured."""
        if path.startswith(("http://", "https://", "//")):
            return path
        return join_root_url(self.root_url, path)

    def matches(self, extension: str) -> bool:
        return extension in self.extensions

    def render_text(self, context: PageContext) -> str:
        template = self.env.get_template(context.template.path)
        return template.render(**context.variables())

    def render(self, context: PageContext) -> bytes:
        return self.render_text(context).encode("utf-8")


class MarkdownOutput(JinjaOutput):
    """Renders Markdown templates: Jinja2 first, then Markdown to HTML."""

    extensions = ("md",)

    def render(self, context: PageContext) -> bytes:
        return str(render_markdown(self.render_text(context))).encode("utf-8")


PLUGINS = [
    PluginDescriptor(
        PluginRole.OUTPUT, "jinja", JinjaOutput.from_weblog, extensions=JinjaOutput.extensions
    ),
    PluginDescriptor(
        PluginRole.OUTPUT,
        "markdown",
        MarkdownOutput.from_weblog,
        extensions=MarkdownOutput.extensions,
    ),
]
