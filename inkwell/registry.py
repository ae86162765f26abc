"""Plugin registry for Inkwell.

Plugins come in three roles: storage, output and publish. Each plugin module
exposes a module-level ``PLUGINS`` list of PluginDescriptor objects; importing
a module registers nothing by itself. The weblog's ``requires`` list decides
which descriptors get instantiated and added to a PluginRegistry.

Key classes:
- PluginRole: The three capability roles.
- PluginDescriptor: Role, name, constructor and bindings of one plugin.
- PluginRegistry: Lookup tables used by the regeneration engine.

Key functions:
- load_plugins: Build a registry from a weblog's ``requires`` configuration.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any

from .errors import ConfigurationError, PluginLookupError

if TYPE_CHECKING:
    from .protocols import EntryStore, OutputPlugin, PublishPlugin
    from .templates import Template

logger = logging.getLogger(__name__)

DEFAULT_REQUIRES = ["inkwell.storage", "inkwell.outputs", "inkwell.feeds"]


class PluginRole(str, Enum):
    STORAGE = "storage"
    OUTPUT = "output"
    PUBLISH = "publish"


@dataclass(frozen=True)
class PluginDescriptor:
    """Everything the registry needs to know to load one plugin.

    Attributes:
        role: Capability role of the plugin.
        name: Short name, used in ``module:name`` requires and in reports.
        factory: Called as ``factory(weblog, config)`` to build the instance.
        extensions: Template extensions an output plugin offers to render.
        categories: Page categories an output plugin offers to render.
    """

    role: PluginRole
    name: str
    factory: Callable[[Any, Any], Any]
    extensions: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()


@dataclass(frozen=True)
class PublishRegistration:
    """A loaded publish plugin and the page categories it watches."""

    name: str
    plugin: PublishPlugin
    watch: frozenset[str]


class PluginRegistry:
    """Tracks loaded plugins by role.

    Output plugins are looked up by template extension first and by page
    category second. Publish plugins keep their registration order.
    Registration happens once at startup; nothing is ever unregistered.
    """

    def __init__(self) -> None:
        self._storage: EntryStore | None = None
        self._storage_name: str | None = None
        self._by_extension: dict[str, tuple[str, OutputPlugin]] = {}
        self._by_category: dict[str, tuple[str, OutputPlugin]] = {}
        self._publishers: list[PublishRegistration] = []

    def register(
        self, descriptor: PluginDescriptor, weblog: Any = None, config: Any = None
    ) -> Any:
        """Instantiate a plugin from its descriptor and register it.

        Args:
            descriptor: Plugin to load.
            weblog: Weblog handed to the plugin constructor.
            config: Plugin-specific configuration, opaque to the registry.

        Returns:
            The plugin instance.
        """
        try:
            plugin = descriptor.factory(weblog, config)
        except ConfigurationError:
            raise
        except Exception as exc:
            raise ConfigurationError(
                f"Could not start {descriptor.role.value} plugin '{descriptor.name}': {exc}"
            ) from exc

        if descriptor.role is PluginRole.STORAGE:
            self.add_storage(descriptor.name, plugin)
        elif descriptor.role is PluginRole.OUTPUT:
            self.add_output(
                descriptor.name, plugin, descriptor.extensions, descriptor.categories
            )
        else:
            self.add_publisher(descriptor.name, plugin)
        return plugin

    def add_storage(self, name: str, store: EntryStore) -> None:
        if self._storage is not None:
            raise ConfigurationError(
                f"Storage plugin '{self._storage_name}' is already loaded; "
                f"cannot also load '{name}'"
            )
        self._storage = store
        self._storage_name = name

    def add_output(
        self,
        name: str,
        plugin: OutputPlugin,
        extensions: Iterable[str] = (),
        categories: Iterable[str] = (),
    ) -> None:
        """Bind an output plugin to template extensions and page categories.

        Only extensions the plugin itself ``matches`` are bound.
        """
        for extension in extensions:
            extension = extension.lstrip(".")
            if not plugin.matches(extension):
                logger.warning(
                    "Output plugin '%s' declares extension '.%s' but does not match it",
                    name,
                    extension,
                )
                continue
            if extension in self._by_extension:
                logger.info(
                    "Output plugin '%s' replaces '%s' for '.%s' templates",
                    name,
                    self._by_extension[extension][0],
                    extension,
                )
            self._by_extension[extension] = (name, plugin)
        for category in categories:
            self._by_category[category] = (name, plugin)

    def add_publisher(self, name: str, plugin: PublishPlugin) -> None:
        watch = frozenset(plugin.watch())
        self._publishers.append(PublishRegistration(name, plugin, watch))

    @property
    def storage(self) -> EntryStore:
        if self._storage is None:
            raise ConfigurationError("No storage plugin is loaded")
        return self._storage

    @property
    def publishers(self) -> list[PublishRegistration]:
        return list(self._publishers)

    @property
    def extensions(self) -> list[str]:
        return sorted(self._by_extension)

    def output_for_extension(self, extension: str) -> OutputPlugin:
        try:
            return self._by_extension[extension.lstrip(".")][1]
        except KeyError:
            raise PluginLookupError(extension=extension) from None

    def output_for_category(self, category: str) -> OutputPlugin:
        try:
            return self._by_category[category][1]
        except KeyError:
            raise PluginLookupError(category=category) from None

    def output_for(self, template: Template) -> OutputPlugin:
        """Resolve the output plugin for a template.

        Raises:
            PluginLookupError: If neither the template's extension nor its
                page category has a registered plugin.
        """
        found = self._by_extension.get(template.extension) or self._by_category.get(
            template.kind
        )
        if found is None:
            raise PluginLookupError(
                extension=template.extension,
                category=template.kind,
                template=template.path,
            )
        return found[1]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return (
            f"PluginRegistry(storage={self._storage_name}, "
            f"outputs={self.extensions}, publishers={len(self._publishers)})"
        )


def parse_requirement(item: Any) -> tuple[str, str | None, Any]:
    """Split one ``requires`` item into (module, plugin name, config).

    Accepted forms::

        inkwell.outputs                      # every plugin in the module
        inkwell.publishers:ping              # one plugin, no config
        {inkwell.publishers:ping: [urls]}    # one plugin with its config
    """
    config = None
    if isinstance(item, dict):
        if len(item) != 1:
            raise ConfigurationError(
                f"Plugin requirement must have exactly one key, got {sorted(item)}"
            )
        ((item, config),) = item.items()
    if not isinstance(item, str) or not item.strip():
        raise ConfigurationError(f"Invalid plugin requirement: {item!r}")
    module_name, _, plugin_name = item.strip().partition(":")
    return module_name, plugin_name or None, config


def import_plugin_module(module_name: str, lib_dir: Path | None = None) -> ModuleType:
    """Import a plugin module, preferring a file in the weblog's lib directory.

    Raises:
        ConfigurationError: If the module cannot be imported.
    """
    if lib_dir is not None:
        candidate = lib_dir.joinpath(*module_name.split(".")).with_suffix(".py")
        if candidate.exists():
            spec = importlib.util.spec_from_file_location(
                f"inkwell_lib_{module_name.replace('.', '_')}", candidate
            )
            module = importlib.util.module_from_spec(spec)
            try:
                spec.loader.exec_module(module)
            except Exception as exc:
                raise ConfigurationError(
                    f"Could not load plugin module {candidate}: {exc}"
                ) from exc
            return module
    try:
        return importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(
            f"Could not import plugin module '{module_name}': {exc}"
        ) from exc


def module_descriptors(module: ModuleType) -> list[PluginDescriptor]:
    descriptors = getattr(module, "PLUGINS", None)
    if not descriptors:
        raise ConfigurationError(
            f"Module '{module.__name__}' does not declare any PLUGINS"
        )
    return list(descriptors)


def load_plugins(
    weblog: Any,
    requires: Iterable[Any] | None = None,
    lib_dir: Path | None = None,
) -> PluginRegistry:
    """Build a registry from a ``requires`` list.

    Args:
        weblog: Weblog handed to every plugin constructor.
        requires: Plugin requirements; defaults to DEFAULT_REQUIRES.
        lib_dir: Optional directory searched for weblog-local plugin modules.

    Returns:
        Registry with every required plugin loaded, in order.

    Raises:
        ConfigurationError: For unknown modules, unknown plugin names or
            plugins that fail to start.
    """
    registry = PluginRegistry()
    for item in DEFAULT_REQUIRES if requires is None else requires:
        module_name, plugin_name, config = parse_requirement(item)
        module = import_plugin_module(module_name, lib_dir)
        descriptors = module_descriptors(module)
        if plugin_name is not None:
            descriptors = [d for d in descriptors if d.name == plugin_name]
            if not descriptors:
                raise ConfigurationError(
                    f"Module '{module_name}' has no plugin named '{plugin_name}'"
                )
        for descriptor in descriptors:
            logger.debug("Loading %s plugin %s:%s", descriptor.role.value, module_name, descriptor.name)
            registry.register(descriptor, weblog, config)
    return registry
