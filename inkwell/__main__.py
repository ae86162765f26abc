"""Entry point for the Inkwell CLI.

Allows running ``python -m inkwell``.
"""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
