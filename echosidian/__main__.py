"""Entry point for running Echosidian as a module or CLI command.

Usage:
    # Run as a module
    python -m echosidian sync

    # After pip install, run as a command
    echosidian watch
"""

from __future__ import annotations

import sys

from .echosidian import main


def cli() -> None:
    """CLI entry point registered as the `echosidian` console script."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
