"""Protocol definitions for Inkwell.

This module defines the capability contracts every plugin role must meet.
The regeneration engine only talks to these interfaces, so storage backends,
renderers, publishers and output sinks can be swapped without touching it.

Roles:
- EntryStore: storage plugins that persist entries.
- OutputPlugin: renderers bound to template extensions.
- PublishPlugin: handlers notified when pages they watch are written.
- SiteOutputSink: destination for rendered page bytes.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .entry import Entry
    from .regenerate import PageContext


@runtime_checkable
class EntryStore(Protocol):
    """Protocol for storage plugins.

    Implementations own the entries exclusively; the engine only holds
    read-only references during a pass.
    """

    @abstractmethod
    def load(self, entry_id: str) -> Entry:
        """Load one entry.

        Args:
            entry_id: Slash-delimited entry id.

        Returns:
            The stored entry.

        Raises:
            EntryNotFoundError: If nothing is stored under the id.
        """
        ...

    @abstractmethod
    def save(self, entry_id: str, entry: Entry) -> None:
        """Persist an entry atomically.

        Either the new content is fully visible afterwards or the old
        content remains.

        Raises:
            WriteError: On underlying I/O failure.
        """
        ...

    @abstractmethod
    def list(self, prefix: str = "", recursive: bool = True) -> list[Entry]:
        """List entries under a section prefix, newest first.

        Args:
            prefix: Section directory; empty lists every entry.
            recursive: Include nested sections.

        Returns:
            Entries ordered by creation time descending, ties by id ascending.
        """
        ...

    @abstractmethod
    def delete(self, entry_id: str) -> None:
        """Delete an entry. Deleting a missing entry is not an error."""
        ...


@runtime_checkable
class OutputPlugin(Protocol):
    """Protocol for output (renderer) plugins."""

    @abstractmethod
    def matches(self, extension: str) -> bool:
        """Check if this plugin renders templates with the given extension.

        Args:
            extension: Template extension without the dot (e.g. 'jinja').
        """
        ...

    @abstractmethod
    def render(self, context: PageContext) -> bytes:
        """Render one page.

        Args:
            context: Page, template and entries to render.

        Returns:
            The rendered bytes.
        """
        ...


@runtime_checkable
class PublishPlugin(Protocol):
    """Protocol for publish plugins.

    Implementations are constructed with the weblog and their own
    configuration mapping, which is opaque to the engine.
    """

    @abstractmethod
    def watch(self) -> set[str]:
        """Return the page categories this plugin wants to hear about."""
        ...

    @abstractmethod
    def publish(self, page_id: str) -> None:
        """Handle a page that was written during a regeneration pass."""
        ...


@runtime_checkable
class SiteOutputSink(Protocol):
    """Protocol for the destination of rendered pages."""

    @abstractmethod
    def write(self, path: str, data: bytes) -> None:
        """Persist bytes under a relative output path, atomically.

        Raises:
            WriteError: If the data could not be persisted.
        """
        ...
