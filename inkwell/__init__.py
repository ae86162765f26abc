"""Inkwell file-system weblog.

Entries are YAML files in a directory tree, templates in a skel directory
say which pages exist, and plugins render the pages and announce them.

Architecture:
- Entry Store: loads and saves entries by slash-delimited id.
- Plugin Registry: storage, output and publish plugins from ``requires``.
- Output Mapper: decides which pages a change affects.
- Regeneration Engine: renders and writes those pages.
- Publish Dispatcher: tells publish plugins which pages were written.

The main entry point is the CLI module; ``Weblog`` is the library entry point.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
