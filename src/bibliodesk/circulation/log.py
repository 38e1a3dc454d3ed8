"""Logging setup using Rich for console output."""

import logging

from rich.logging import RichHandler

_configured = False


def configure_logging(level: str = "WARNING") -> None:
    """Install a Rich handler on the root logger.

    Calling this more than once only updates the level.
    """
    global _configured
    root = logging.getLogger()
    root.setLevel(level.upper())

    if _configured:
        return

    handler = RichHandler(show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    _configured = True
