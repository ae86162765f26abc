"""Entry storage for Inkwell.

The filesystem backend stores every entry as its own YAML document. An
entry's id maps directly onto its path below the entry directory, so
directories categorise entries::

    entries/
        index.yaml              -> id 'index'
        blog/hello.yaml         -> id 'blog/hello'
        blog/links/week1.yaml   -> id 'blog/links/week1'

Files and directories whose names start with '.' or '_' are ignored.

Key classes:
- FilesysStorage: EntryStore implementation over YAML files.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from .entry import Entry, sort_entries
from .errors import ConfigurationError, EntryNotFoundError, WriteError
from .registry import PluginDescriptor, PluginRole
from .sink import atomic_write
from .utils import in_section, normalize_prefix, validate_entry_id

logger = logging.getLogger(__name__)

ENTRY_SUFFIX = ".yaml"


class FilesysStorage:
    """Stores entries as YAML files below a directory.

    Attributes:
        entry_dir: Root directory of the entry tree.
    """

    def __init__(self, entry_dir: Path):
        self.entry_dir = entry_dir

    @classmethod
    def from_weblog(cls, weblog: Any, config: Any = None) -> FilesysStorage:
        """Plugin factory: store entries in the weblog's entry directory.

        A mapping config may override the directory with ``path`` (relative
        paths are taken from the weblog root).
        """
        if config is not None and not isinstance(config, dict):
            raise ConfigurationError("filesys storage config must be a mapping")
        entry_dir = weblog.entry_path
        if config and config.get("path"):
            entry_dir = weblog.root / config["path"]
        return cls(entry_dir)

    def path_for(self, entry_id: str) -> Path:
        """Return the file an entry id is stored in."""
        validate_entry_id(entry_id)
        return self.entry_dir.joinpath(*entry_id.split("/")).with_suffix(ENTRY_SUFFIX)

    def id_for(self, path: Path) -> str | None:
        """Return the entry id stored in a file, or None for non-entry files."""
        try:
            rel = path.relative_to(self.entry_dir)
        except ValueError:
            return None
        if path.suffix != ENTRY_SUFFIX:
            return None
        if any(part.startswith((".", "_")) for part in rel.parts):
            return None
        return rel.with_suffix("").as_posix()

    def load(self, entry_id: str) -> Entry:
        path = self.path_for(entry_id)
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise EntryNotFoundError(entry_id) from None
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Entry {path} is not valid YAML: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Entry {path} must contain a YAML mapping")
        # Entries without a timestamp date from their file, so repeated loads agree.
        default_created = None
        if data.get("created") is None:
            default_created = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        return Entry.from_dict(entry_id, data, default_created=default_created)

    def save(self, entry_id: str, entry: Entry) -> None:
        path = self.path_for(entry_id)
        entry.id = entry_id
        try:
            payload = yaml.safe_dump(
                entry.to_dict(), sort_keys=False, allow_unicode=True
            )
        except yaml.YAMLError as exc:
            raise WriteError(path, exc) from exc
        atomic_write(path, payload.encode("utf-8"))
        logger.debug("Saved entry %s to %s", entry_id, path)

    def list(self, prefix: str = "", recursive: bool = True) -> list[Entry]:
        prefix = normalize_prefix(prefix)
        base = self.entry_dir.joinpath(*prefix.split("/")) if prefix else self.entry_dir
        if not base.is_dir():
            return []
        candidates = base.rglob(f"*{ENTRY_SUFFIX}") if recursive else base.glob(f"*{ENTRY_SUFFIX}")
        entries = []
        for path in candidates:
            if not path.is_file():
                continue
            entry_id = self.id_for(path)
            if entry_id is None or not in_section(entry_id, prefix, recursive):
                continue
            entries.append(self.load(entry_id))
        return sort_entries(entries)

    def delete(self, entry_id: str) -> None:
        path = self.path_for(entry_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise WriteError(path, exc) from exc
        logger.debug("Deleted entry %s", entry_id)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"FilesysStorage({self.entry_dir})"


PLUGINS = [
    PluginDescriptor(PluginRole.STORAGE, "filesys", FilesysStorage.from_weblog),
]
