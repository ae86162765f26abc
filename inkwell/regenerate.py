"""Regeneration engine for Inkwell.

A regeneration pass turns a change scope into written pages:

1. Resolve the weblog's templates.
2. Ask the mapper which pages the scope affects.
3. For each page, look up the output plugin for its template, render, and
   write the bytes through the site-output sink.
4. Hand the pages that were written to the publish dispatcher.

A page whose plugin is missing, whose renderer raises or whose write fails is
recorded and skipped; every other page of the pass is still processed. The
report returned at the end lists all of them.

Key classes:
- PageContext: What an output plugin gets to render one page.
- PageFailure: One page that could not be produced.
- RegenerationReport: Outcome of a pass.
- Regenerator: Runs passes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from .collections import EntryCollection, TagCollection
from .dispatch import Notification, PublishDispatcher, PublishFailure
from .entry import Entry
from .errors import (
    InkwellError,
    PluginLookupError,
    RegenerationError,
    RenderError,
    WriteError,
    format_error_message,
)
from .mapper import ChangeScope, Page, compute_affected_pages
from .protocols import SiteOutputSink
from .registry import PluginRegistry
from .templates import Template

logger = logging.getLogger(__name__)


@dataclass
class PageContext:
    """Input handed to an output plugin's render method.

    Attributes:
        page: Page being rendered.
        entries: The page's entries, newest first.
        weblog: Weblog the page belongs to (may be None in tests).
        tags: Every tag of the pass's entries, mapped to its entries.
    """

    page: Page
    entries: EntryCollection
    weblog: Any = None
    tags: TagCollection | None = None

    @property
    def template(self) -> Template:
        return self.page.template

    @property
    def entry(self) -> Entry | None:
        return self.page.entry

    @property
    def page_id(self) -> str:
        return self.page.page_id

    def variables(self) -> dict[str, Any]:
        """Template variables for text-based renderers."""
        return {
            "weblog": self.weblog,
            "page": self.page,
            "template": self.page.template,
            "entries": self.entries,
            "entry": self.page.entry,
            "section": self.page.section,
            "tag": self.page.tag,
            "period": self.page.period,
            "tags": self.tags if self.tags is not None else TagCollection({}),
        }


@dataclass(frozen=True)
class PageFailure:
    """A page that could not be produced.

    Attributes:
        page_id: Output path of the page.
        template: Relative path of the template.
        error: PluginLookupError, RenderError or WriteError.
    """

    page_id: str
    template: str
    error: InkwellError


@dataclass
class RegenerationReport:
    """Outcome of one regeneration pass.

    Attributes:
        scope: Scope the pass ran with.
        written: Pages written, in render order.
        failures: Pages that failed, in render order.
        notifications: Publish calls that succeeded.
        publish_failures: Publish calls that raised.
    """

    scope: ChangeScope
    written: list[Page] = field(default_factory=list)
    failures: list[PageFailure] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)
    publish_failures: list[PublishFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures and not self.publish_failures

    @property
    def failure_count(self) -> int:
        return len(self.failures) + len(self.publish_failures)

    @property
    def written_ids(self) -> list[str]:
        return [page.page_id for page in self.written]

    @property
    def failed_ids(self) -> list[str]:
        return [failure.page_id for failure in self.failures]

    def summary(self) -> str:
        text = (
            f"Regenerated ({self.scope}): {len(self.written)} page(s) written, "
            f"{len(self.notifications)} notification(s) dispatched"
        )
        if not self.ok:
            text += f", {self.failure_count} failure(s)"
        return text

    def raise_for_failures(self) -> None:
        """Raise RegenerationError if any page or publish call failed."""
        if not self.ok:
            raise RegenerationError(self)


class Regenerator:
    """Runs regeneration passes for one weblog.

    Attributes:
        registry: Loaded plugins; provides the entry store and renderers.
        sink: Destination of rendered pages.
        weblog: Weblog passed on to renderers.
        workers: Number of threads rendering pages (1 renders in-line).
        publish_concurrently: Let different publish plugins run in parallel.
    """

    def __init__(
        self,
        registry: PluginRegistry,
        sink: SiteOutputSink,
        templates: Sequence[Template] | Callable[[], Sequence[Template]],
        weblog: Any = None,
        workers: int = 1,
        publish_concurrently: bool = False,
    ):
        self.registry = registry
        self.sink = sink
        self._templates = templates
        self.weblog = weblog
        self.workers = max(1, int(workers))
        self.publish_concurrently = publish_concurrently

    def templates(self) -> list[Template]:
        if callable(self._templates):
            return list(self._templates())
        return list(self._templates)

    def regenerate(self, scope: ChangeScope | str | tuple = "full") -> RegenerationReport:
        """Run one pass.

        Args:
            scope: 'full', ('update', entry_id) or a ChangeScope.

        Returns:
            Report of pages written, failures and notifications.

        Raises:
            EntryNotFoundError: If an update scope names a missing entry.
            ConfigurationError: If no storage plugin is loaded.
        """
        scope = ChangeScope.coerce(scope)
        store = self.registry.storage
        if not scope.is_full:
            store.load(scope.entry_id)

        entries = store.list("", recursive=True)
        pages = compute_affected_pages(self.templates(), entries, scope)
        tags = TagCollection.from_entries(entries)
        logger.info("Regenerating %d page(s) for %s", len(pages), scope)

        if self.workers > 1 and len(pages) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                outcomes = list(pool.map(lambda p: self.render_page(p, tags), pages))
        else:
            outcomes = [self.render_page(page, tags) for page in pages]

        report = RegenerationReport(scope)
        for page, failure in zip(pages, outcomes):
            if failure is None:
                report.written.append(page)
            else:
                report.failures.append(failure)

        dispatcher = PublishDispatcher(
            self.registry.publishers, concurrent=self.publish_concurrently
        )
        dispatched = dispatcher.dispatch(report.written)
        report.notifications = dispatched.notifications
        report.publish_failures = dispatched.failures
        logger.info(report.summary())
        return report

    def render_page(self, page: Page, tags: TagCollection | None = None) -> PageFailure | None:
        """Render and write one page.

        Returns:
            None when the page was written, otherwise the failure.
        """
        template = page.template
        try:
            plugin = self.registry.output_for(template)
        except PluginLookupError as exc:
            logger.error("Cannot render %s: %s", page.page_id, exc)
            return PageFailure(page.page_id, template.path, exc)

        context = PageContext(page, EntryCollection(page.entries), self.weblog, tags)
        try:
            data = plugin.render(context)
        except Exception as exc:
            error = RenderError(page.page_id, template.path, format_error_message(exc), exc)
            logger.error("Rendering %s failed: %s", page.page_id, error.message)
            return PageFailure(page.page_id, template.path, error)
        if not isinstance(data, bytes):
            error = RenderError(
                page.page_id,
                template.path,
                f"renderer returned {type(data).__name__}, expected bytes",
            )
            logger.error("Rendering %s failed: %s", page.page_id, error.message)
            return PageFailure(page.page_id, template.path, error)

        try:
            self.sink.write(page.output_path, data)
        except WriteError as exc:
            logger.error("Writing %s failed: %s", page.page_id, exc)
            return PageFailure(page.page_id, template.path, exc)
        logger.debug("Wrote %s (%d bytes)", page.page_id, len(data))
        return None
