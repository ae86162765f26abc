"""Error kinds raised by Inkwell.

Every error carries the context it was raised in as attributes, so callers
(the CLI, editor integrations) can report them without parsing messages.

Error hierarchy:
- InkwellError: base for everything below.
- EntryNotFoundError: no entry stored under an id.
- InvalidEntryIdError: an id that cannot name an entry.
- WriteError: persisting an entry or a rendered page failed.
- ConfigurationError / PluginLookupError: broken weblog or plugin setup.
- RenderError: an output plugin failed on one page.
- PublishError: a publish plugin failed on one page.
- RegenerationError: aggregate report of a pass with failures.
- RegenerationLockedError: another pass holds the weblog lock.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .regenerate import RegenerationReport


class InkwellError(Exception):
    """Base class for all Inkwell errors."""


class EntryNotFoundError(InkwellError, LookupError):
    """No entry exists under the requested id.

    Attributes:
        entry_id: The id that was looked up.
    """

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"No entry found with id '{entry_id}'")


class InvalidEntryIdError(InkwellError, ValueError):
    """An entry id that is empty, absolute or escapes the entry tree."""

    def __init__(self, entry_id: str, reason: str):
        self.entry_id = entry_id
        self.reason = reason
        super().__init__(f"Invalid entry id '{entry_id}': {reason}")


class WriteError(InkwellError):
    """Persisting data to the entry store or the site output failed.

    Attributes:
        path: Target that could not be written.
        original_error: The underlying OS error.
    """

    def __init__(self, path: Path | str, original_error: Exception | None = None):
        self.path = path
        self.original_error = original_error
        detail = f": {original_error}" if original_error else ""
        super().__init__(f"Could not write {path}{detail}")


class ConfigurationError(InkwellError):
    """The weblog configuration or plugin setup is unusable."""


class PluginLookupError(ConfigurationError):
    """No output plugin is registered for a template.

    Attributes:
        extension: Template extension that was looked up.
        category: Page category that was looked up, if any.
        template: Relative template path, when known.
    """

    def __init__(
        self,
        extension: str | None = None,
        category: str | None = None,
        template: str | None = None,
    ):
        self.extension = extension
        self.category = category
        self.template = template
        wanted = []
        if extension:
            wanted.append(f"extension '.{extension}'")
        if category:
            wanted.append(f"category '{category}'")
        target = " or ".join(wanted) or "template"
        where = f" (template {template})" if template else ""
        super().__init__(f"No output plugin registered for {target}{where}")


class RenderError(InkwellError):
    """An output plugin raised while rendering one page.

    Attributes:
        page_id: Identifier of the page being rendered.
        template: Relative path of the template in use.
        original_error: The exception raised by the plugin.
    """

    def __init__(
        self,
        page_id: str,
        template: str,
        message: str,
        original_error: Exception | None = None,
    ):
        self.page_id = page_id
        self.template = template
        self.message = message
        self.original_error = original_error
        super().__init__(f"{page_id} ({template}): {message}")


class PublishError(InkwellError):
    """A publish plugin failed while being notified about a page.

    Attributes:
        plugin: Registered name of the publish plugin.
        page_id: Page the notification was about.
        original_error: The exception raised by the plugin.
    """

    def __init__(
        self,
        plugin: str,
        page_id: str,
        original_error: Exception | None = None,
    ):
        self.plugin = plugin
        self.page_id = page_id
        self.original_error = original_error
        detail = format_error_message(original_error) if original_error else "failed"
        super().__init__(f"publish plugin '{plugin}' on {page_id}: {detail}")


class RegenerationError(InkwellError):
    """A regeneration pass finished with failures.

    Attributes:
        report: The full pass report, including the pages that succeeded.
    """

    def __init__(self, report: RegenerationReport):
        self.report = report
        lines = [f"Regeneration finished with {report.failure_count} failure(s):"]
        for failure in report.failures:
            lines.append(f"  page {failure.page_id}: {failure.error}")
        for failure in report.publish_failures:
            lines.append(f"  {failure}")
        super().__init__("\n".join(lines))


class RegenerationLockedError(InkwellError):
    """Another regeneration pass currently holds the weblog lock."""

    def __init__(self, lock_path: Path):
        self.lock_path = lock_path
        super().__init__(
            f"Weblog is locked by another regeneration ({lock_path}); "
            "remove the file if no other pass is running."
        )


def format_error_message(exc: BaseException) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    error_type = type(exc).__name__
    error_msg = str(exc)

    # Jinja2 errors read better without the class name
    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TemplateSyntaxError":
        lineno = getattr(exc, "lineno", None)
        message = getattr(exc, "message", error_msg)
        return f"Template syntax error on line {lineno}: {message}"
    if isinstance(exc, InkwellError):
        return error_msg

    return f"{error_type}: {error_msg}"
