"""Logging setup for the tokengate service."""

from __future__ import annotations

import logging

from tokengate.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Attach a single stream handler to the ``tokengate`` logger tree.

    Calling this more than once only updates the level.
    """
    root = logging.getLogger("tokengate")
    root.setLevel((level or settings.log_level).upper())
    if not any(getattr(h, "_tokengate", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._tokengate = True  # type: ignore[attr-defined]
        root.addHandler(handler)
