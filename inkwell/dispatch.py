"""Publish notification for Inkwell.

After a pass has written its pages, every publish plugin is told about each
written page whose category it watches. A plugin hears about a page at most
once per pass, and a failing plugin never stops the others.

Key classes:
- PublishEvent: (category, page id) pair delivered to a plugin.
- PublishFailure: One failed plugin invocation.
- DispatchResult: Notifications sent and failures collected by one dispatch.
- PublishDispatcher: Delivers events to the registered publish plugins.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import PublishError, format_error_message

if TYPE_CHECKING:
    from .mapper import Page
    from .registry import PublishRegistration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishEvent:
    """A written page, as seen by publish plugins."""

    category: str
    page_id: str


@dataclass(frozen=True)
class Notification:
    """A delivered publish call."""

    plugin: str
    event: PublishEvent


@dataclass(frozen=True)
class PublishFailure:
    """A publish call that raised.

    Attributes:
        plugin: Registered name of the publish plugin.
        event: Event the plugin was handling.
        error: The PublishError wrapping the plugin's exception.
    """

    plugin: str
    event: PublishEvent
    error: PublishError

    def __str__(self) -> str:
        return str(self.error)


@dataclass
class DispatchResult:
    notifications: list[Notification] = field(default_factory=list)
    failures: list[PublishFailure] = field(default_factory=list)

    def extend(self, other: DispatchResult) -> None:
        self.notifications.extend(other.notifications)
        self.failures.extend(other.failures)


def events_for(pages: Iterable[Page]) -> list[PublishEvent]:
    """Turn written pages into publish events, dropping exact repeats."""
    events = []
    seen: set[PublishEvent] = set()
    for page in pages:
        event = PublishEvent(page.category, page.page_id)
        if event not in seen:
            seen.add(event)
            events.append(event)
    return events


class PublishDispatcher:
    """Delivers publish events to registered plugins.

    Attributes:
        registrations: Publish plugins with their watch sets, in load order.
        concurrent: Run different plugins on separate threads. Calls to any
            one plugin stay sequential.
    """

    def __init__(
        self, registrations: Sequence[PublishRegistration], concurrent: bool = False
    ):
        self.registrations = list(registrations)
        self.concurrent = concurrent

    def dispatch(self, pages: Iterable[Page]) -> DispatchResult:
        """Notify every interested plugin about the written pages.

        Args:
            pages: Pages written by the pass, in render order.

        Returns:
            Every notification delivered and every failure, ordered by plugin
            registration order, then by page order.
        """
        events = events_for(pages)
        result = DispatchResult()
        if not events or not self.registrations:
            return result

        if self.concurrent and len(self.registrations) > 1:
            with ThreadPoolExecutor(max_workers=len(self.registrations)) as pool:
                partials = list(
                    pool.map(lambda reg: self._notify(reg, events), self.registrations)
                )
        else:
            partials = [self._notify(reg, events) for reg in self.registrations]

        for partial in partials:
            result.extend(partial)
        logger.info(
            "Dispatched %d notification(s), %d failure(s)",
            len(result.notifications),
            len(result.failures),
        )
        return result

    def _notify(
        self, registration: PublishRegistration, events: Sequence[PublishEvent]
    ) -> DispatchResult:
        result = DispatchResult()
        delivered: set[str] = set()
        for event in events:
            if event.category not in registration.watch or event.page_id in delivered:
                continue
            delivered.add(event.page_id)
            try:
                registration.plugin.publish(event.page_id)
            except Exception as exc:
                error = PublishError(registration.name, event.page_id, exc)
                logger.error(
                    "Publish plugin %s failed on %s: %s",
                    registration.name,
                    event.page_id,
                    format_error_message(exc),
                )
                result.failures.append(PublishFailure(registration.name, event, error))
                continue
            result.notifications.append(Notification(registration.name, event))
        return result
