"""Template discovery for Inkwell.

Templates live in the weblog's skel directory. A template's file name
decides everything about it::

    skel/index.html.jinja      kind 'index', renderer '.jinja', writes index.html
    skel/entry.html.jinja      kind 'entry', one page per entry: <id>.html
    skel/blog/index.xml.rss    kind 'index' aggregating the 'blog' section
    skel/monthly.html.jinja    kind 'monthly', one page per month: YYYY/MM/index.html

The first dot-separated segment is the page kind (the page category that
publish plugins watch), the last is the extension that selects the output
plugin, and the directory is the section of entries the template covers.
Names starting with '_' or '.' are partials and layouts, not templates.

Key classes:
- Template: Immutable descriptor of one template.
- TemplateTree: Loads the ordered list of templates from a skel directory.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

AGGREGATE_KINDS = ("index", "feed")
ARCHIVE_KINDS = ("yearly", "monthly", "daily")
KNOWN_KINDS = AGGREGATE_KINDS + ARCHIVE_KINDS + ("entry", "section", "tags")
PAGE_KIND = "page"


@dataclass(frozen=True)
class Template:
    """A named rendering unit.

    Attributes:
        path: Path relative to the skel directory, e.g. 'blog/index.html.jinja'.
        kind: Page category ('index', 'entry', ..., or 'page' for standalone).
        extension: Renderer extension without the dot, e.g. 'jinja'.
        section: Directory of the template inside skel; the entry section it covers.
        output_name: File name without the renderer extension, e.g. 'index.html'.
        window: Maximum number of entries for aggregate pages, None for no limit.
        source: Absolute path of the template file, when loaded from disk.
    """

    path: str
    kind: str
    extension: str
    section: str = ""
    output_name: str = ""
    window: int | None = None
    source: Path | None = None

    @classmethod
    def from_path(
        cls, rel_path: str, source: Path | None = None, window: int | None = None
    ) -> Template:
        """Build a descriptor from a template path relative to skel.

        Raises:
            ValueError: If the file name has no renderer extension.
        """
        directory, _, filename = rel_path.rpartition("/")
        parts = filename.split(".")
        if len(parts) < 2 or not parts[0] or not parts[-1]:
            raise ValueError(f"Template '{rel_path}' has no renderer extension")
        kind = parts[0] if parts[0] in KNOWN_KINDS else PAGE_KIND
        return cls(
            path=rel_path,
            kind=kind,
            extension=parts[-1],
            section=directory,
            output_name=".".join(parts[:-1]),
            window=window,
            source=source,
        )

    @property
    def suffix(self) -> str:
        """Output name with the leading kind removed, e.g. '.html'."""
        return self.output_name[len(self.output_name.split(".")[0]):]

    def __str__(self) -> str:
        return self.path


class TemplateTree:
    """Reads the templates of a weblog from its skel directory.

    Attributes:
        skel_dir: Directory holding the templates.
        windows: Window sizes keyed by template path or by kind.
        defaults: Fallback window sizes keyed by kind.
    """

    def __init__(
        self,
        skel_dir: Path,
        windows: Mapping[str, Any] | None = None,
        defaults: Mapping[str, int] | None = None,
    ):
        self.skel_dir = skel_dir
        self.windows = dict(windows or {})
        self.defaults = dict(defaults or {})

    def window_for(self, rel_path: str, kind: str) -> int | None:
        """Resolve the entry window of a template.

        Only index and feed templates are windowed. A template-specific
        setting beats a per-kind setting, which beats the defaults.
        """
        if kind not in AGGREGATE_KINDS:
            return None
        for key in (rel_path, kind):
            if key in self.windows:
                value = self.windows[key]
                return None if value is None else int(value)
        value = self.defaults.get(kind)
        return None if value is None else int(value)

    def iter_files(self) -> list[Path]:
        """Return template files in a stable order, skipping partials."""
        if not self.skel_dir.is_dir():
            return []
        files = []
        for path in sorted(self.skel_dir.rglob("*")):
            if path.is_dir():
                continue
            rel = path.relative_to(self.skel_dir)
            if any(part.startswith(("_", ".")) for part in rel.parts):
                continue
            files.append(path)
        return files

    def load(self) -> list[Template]:
        """Load every template descriptor, ordered by relative path."""
        templates = []
        for path in self.iter_files():
            rel_path = path.relative_to(self.skel_dir).as_posix()
            try:
                template = Template.from_path(rel_path, source=path)
            except ValueError as exc:
                logger.warning("Skipping %s: %s", path, exc)
                continue
            window = self.window_for(rel_path, template.kind)
            templates.append(replace(template, window=window))
        return templates
