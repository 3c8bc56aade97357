"""Logging setup for the leadbridge web service and its CLI commands."""

from __future__ import annotations

import logging

# Client libraries that log each outgoing request, filters and query strings included.
_REQUEST_LOGGERS = ("httpx", "openai")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Configure the root logger for ``leadbridge serve`` and the lookup commands.

    Store and extraction requests are only logged by the client libraries at WARNING
    or above, whatever ``level`` is. ``force=True`` replaces handlers an embedding
    server installed first.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in _REQUEST_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
