"""Site output for Inkwell.

Rendered pages are written through a sink. The filesystem sink writes each
page to a temporary file beside its target and swaps it in with os.replace,
so readers never observe a half-written page.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path, PurePosixPath

from .errors import WriteError


def atomic_write(target: Path, data: bytes) -> None:
    """Write bytes to a file atomically.

    Args:
        target: Destination file. Parent directories are created.
        data: Content to write.

    Raises:
        WriteError: If any step of the write fails. The previous content of
            the target, if any, is left untouched.
    """
    tmp_name = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
        )
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
        tmp_name = None
    except OSError as exc:
        raise WriteError(target, exc) from exc
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass


class FileSink:
    """Writes rendered pages below an output directory.

    Attributes:
        root: Output directory (the weblog's htdocs).
    """

    def __init__(self, root: Path):
        self.root = root

    def resolve(self, path: str) -> Path:
        """Map a relative output path to a file below the root.

        Raises:
            WriteError: If the path is absolute or escapes the root.
        """
        rel = PurePosixPath(path)
        if rel.is_absolute() or ".." in rel.parts or not rel.parts:
            raise WriteError(path, ValueError("output path must stay inside the site root"))
        return self.root.joinpath(*rel.parts)

    def write(self, path: str, data: bytes) -> None:
        atomic_write(self.resolve(path), data)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"FileSink({self.root})"
