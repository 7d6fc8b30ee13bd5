"""Logging configuration for the query service.

Module loggers emit `key=value` lines. Raw query payloads reach the log only when a query is
rejected, and Airtable error text only when a read fails.
"""

from __future__ import annotations

import logging

# HTTP client and server loggers that would otherwise log every request.
_QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "uvicorn.access")


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler at `level` (a name such as `"DEBUG"`)."""

    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
