"""Change watcher for Inkwell.

Watches a weblog's entry and skel directories and regenerates as files
change:
- An edited entry file triggers an update pass for that entry.
- A changed template, layout or partial triggers a full pass.
- Deleted or moved entries trigger a full pass, since pages that listed them
  must be rebuilt too.

Key classes:
- Watcher: Runs passes in response to file system events.
- _ChangeHandler: File system event handler feeding the watcher.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .errors import InkwellError
from .mapper import ChangeScope
from .regenerate import RegenerationReport

logger = logging.getLogger(__name__)


class Watcher:
    """Regenerates a weblog when its sources change.

    Attributes:
        weblog: Weblog being watched.
        on_report: Called with each pass's report.
        on_error: Called with errors that stopped a pass.
    """

    def __init__(
        self,
        weblog: Any,
        on_report: Callable[[RegenerationReport], None] | None = None,
        on_error: Callable[[InkwellError], None] | None = None,
    ):
        self.weblog = weblog
        self.on_report = on_report
        self.on_error = on_error
        self._observer: Observer | None = None
        self._lock = threading.Lock()
        self._last_signature: dict[str, tuple] = {}

    def start(self) -> None:  # pragma: no cover - integration path
        self._start_observer()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def _start_observer(self) -> None:
        handler = _ChangeHandler(self)
        observer = Observer()
        for folder in (self.weblog.entry_path, self.weblog.skel_path):
            if folder.exists():
                observer.schedule(handler, str(folder), recursive=True)
        observer.start()
        self._observer = observer

    def scope_for(self, path: Path, deleted: bool = False) -> ChangeScope | None:
        """Work out which pass a changed file needs.

        Returns:
            An update scope for an edited entry, a full scope for template
            changes and removed entries, or None for files that do not matter.
        """
        store = self.weblog.storage
        id_for = getattr(store, "id_for", None)
        entry_id = id_for(path) if id_for is not None else None
        if entry_id is not None:
            return ChangeScope.full() if deleted else ChangeScope.update(entry_id)
        try:
            path.relative_to(self.weblog.skel_path)
        except ValueError:
            return None
        return ChangeScope.full()

    def _signature(self, path: Path) -> tuple | None:
        try:
            stat = path.stat()
        except OSError:
            return None
        return (stat.st_mtime_ns, stat.st_size)

    def handle(self, path: Path, deleted: bool = False) -> RegenerationReport | None:
        """Regenerate for one changed file, skipping repeated events."""
        scope = self.scope_for(path, deleted)
        if scope is None:
            return None
        signature = None if deleted else self._signature(path)
        key = str(path)
        if signature is not None and self._last_signature.get(key) == signature:
            return None
        with self._lock:
            try:
                report = self.weblog.regenerate(scope)
            except InkwellError as exc:
                logger.error("Regeneration after change to %s failed: %s", path, exc)
                if self.on_error:
                    self.on_error(exc)
                return None
            if signature is not None:
                self._last_signature[key] = signature
        if self.on_report:
            self.on_report(report)
        return report


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: Watcher):
        super().__init__()
        self.watcher = watcher

    def on_any_event(self, event):
        if event.is_directory or event.event_type in ("opened", "closed_no_write"):
            return
        if event.event_type == "moved":
            self.watcher.handle(Path(event.src_path), deleted=True)
            self.watcher.handle(Path(event.dest_path))
            return
        deleted = event.event_type == "deleted"
        self.watcher.handle(Path(event.src_path), deleted=deleted)
