"""Process-wide logging setup for the entry points.

Library modules only call ``logging.getLogger(__name__)``; handlers and the
level are installed here by ``create_app`` and the MCP server's ``main``.
"""

from __future__ import annotations

import logging
import sys


_LOGGER_INITIALIZED = False


def configure_logging(level: str = "INFO") -> None:
    """Configure logging once per process; later calls are no-ops."""

    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    _LOGGER_INITIALIZED = True
