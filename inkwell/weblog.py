"""Weblog configuration and entry point for Inkwell.

A weblog is a directory holding an ``inkwell.yaml`` file together with its
entry tree, skel (templates) and output directories. The Weblog class loads
the configuration, builds the plugin registry and runs regeneration passes
under an exclusive lock.

Key functions:
- load_config: Loads configuration from inkwell.yaml.

Key classes:
- Weblog: Paths, settings, plugins and passes of one weblog.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError, RegenerationLockedError
from .mapper import ChangeScope
from .protocols import EntryStore
from .registry import DEFAULT_REQUIRES, PluginRegistry, load_plugins
from .regenerate import RegenerationReport, Regenerator
from .sink import FileSink
from .templates import Template, TemplateTree

logger = logging.getLogger(__name__)

CONFIG_FILE = "inkwell.yaml"
LOCK_FILE = ".inkwell.lock"

DEFAULT_CONFIG: dict[str, Any] = {
    "title": "",
    "link": "",
    "description": "",
    "authors": {},
    "entry_path": "entries",
    "skel_path": "skel",
    "output_path": "htdocs",
    "lib_path": "lib",
    "entry_suffix": ".html",
    "lastn": 10,
    "feed_size": 15,
    "windows": {},
    "workers": 1,
    "publish_concurrently": False,
    "requires": None,
    "post_upgen": False,
}


def load_config(weblog_root: Path) -> dict[str, Any]:
    """Load weblog configuration from inkwell.yaml.

    Args:
        weblog_root: Root directory of the weblog.

    Returns:
        Dictionary containing configuration values, with defaults applied.

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping.
    """
    config_path = weblog_root / CONFIG_FILE
    config = DEFAULT_CONFIG.copy()
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"{config_path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"{config_path}: expected a mapping of settings")
        config.update(loaded)
    return config


class Weblog:
    """One weblog on disk.

    Attributes:
        root: Weblog root directory.
        config: Settings from inkwell.yaml merged onto DEFAULT_CONFIG.
    """

    def __init__(self, root: Path, config: dict[str, Any] | None = None):
        self.root = Path(root)
        self.config = DEFAULT_CONFIG.copy()
        if config:
            self.config.update(config)
        self._registry: PluginRegistry | None = None

    @classmethod
    def load(cls, path: Path | str) -> Weblog:
        """Load a weblog from its root directory or its inkwell.yaml.

        Raises:
            ConfigurationError: If the path does not exist or the config is broken.
        """
        path = Path(path).resolve()
        if path.is_file():
            root = path.parent
        elif path.is_dir():
            root = path
        else:
            raise ConfigurationError(f"No weblog found at {path}")
        return cls(root, load_config(root))

    @property
    def title(self) -> str:
        return str(self.config.get("title") or "")

    @property
    def link(self) -> str:
        return str(self.config.get("link") or "")

    @property
    def authors(self) -> dict[str, Any]:
        return dict(self.config.get("authors") or {})

    def expand_path(self, value: str | os.PathLike) -> Path:
        """Resolve a configured path against the weblog root."""
        path = Path(os.path.expanduser(str(value)))
        return path if path.is_absolute() else self.root / path

    @property
    def entry_path(self) -> Path:
        return self.expand_path(self.config["entry_path"])

    @property
    def skel_path(self) -> Path:
        return self.expand_path(self.config["skel_path"])

    @property
    def output_path(self) -> Path:
        return self.expand_path(self.config["output_path"])

    @property
    def lib_path(self) -> Path:
        return self.expand_path(self.config["lib_path"])

    @property
    def entry_suffix(self) -> str:
        """Suffix of entry pages, e.g. '.html'.

        Taken from the entry template in skel, preferring a top-level one.
        The ``entry_suffix`` setting applies when there is no entry template.
        """
        entry_templates = [t for t in self.templates() if t.kind == "entry"]
        candidates = [t for t in entry_templates if not t.section] or entry_templates
        if candidates:
            return candidates[0].suffix
        return str(self.config.get("entry_suffix") or ".html")

    @property
    def lock_path(self) -> Path:
        return self.root / LOCK_FILE

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    @property
    def registry(self) -> PluginRegistry:
        """Plugins listed under ``requires``, loaded on first use."""
        if self._registry is None:
            requires = self.config.get("requires")
            if requires is not None and not isinstance(requires, list):
                raise ConfigurationError("'requires' must be a list of plugin modules")
            self._registry = load_plugins(
                self, DEFAULT_REQUIRES if requires is None else requires, self.lib_path
            )
        return self._registry

    @property
    def storage(self) -> EntryStore:
        return self.registry.storage

    def templates(self) -> list[Template]:
        tree = TemplateTree(
            self.skel_path,
            windows=self.config.get("windows") or {},
            defaults={"index": self.config.get("lastn"), "feed": self.config.get("feed_size")},
        )
        return tree.load()

    def regenerator(self) -> Regenerator:
        return Regenerator(
            self.registry,
            FileSink(self.output_path),
            self.templates,
            weblog=self,
            workers=int(self.config.get("workers") or 1),
            publish_concurrently=bool(self.config.get("publish_concurrently")),
        )

    @contextmanager
    def locked(self) -> Iterator[Path]:
        """Hold the weblog lock file for the duration of the block.

        Raises:
            RegenerationLockedError: If another pass holds the lock.
        """
        lock_path = self.lock_path
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError as exc:
            raise RegenerationLockedError(lock_path) from exc
        try:
            os.write(fd, str(os.getpid()).encode("ascii"))
            os.close(fd)
            yield lock_path
        finally:
            lock_path.unlink(missing_ok=True)

    def regenerate(self, scope: ChangeScope | str | tuple = "full") -> RegenerationReport:
        """Run a regeneration pass while holding the weblog lock.

        Args:
            scope: 'full', ('update', entry_id) or a ChangeScope.

        Returns:
            Report of the pass.

        Raises:
            RegenerationLockedError: If another pass is running.
            EntryNotFoundError: If an update scope names a missing entry.
            ConfigurationError: If the plugins cannot be loaded.
        """
        scope = ChangeScope.coerce(scope)
        with self.locked():
            return self.regenerator().regenerate(scope)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"Weblog({str(self.root)!r})"
