"""Root logger setup for the command line entry point."""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError

LOG_LEVEL_ENV = "LEDGERLINK_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _resolve_level(level: int | str | None) -> int:
    raw = level if level is not None else os.getenv(LOG_LEVEL_ENV, "")
    if isinstance(raw, int):
        return raw
    if not raw.strip():
        return logging.INFO
    resolved = logging.getLevelName(raw.strip().upper())
    if not isinstance(resolved, int):
        raise ConfigurationError(f"Unknown log level {raw!r}", variable=LOG_LEVEL_ENV)
    return resolved


def configure_logging(*, level: int | str | None = None, force: bool = False) -> None:
    """Configure the root logger.

    ``level`` falls back to ``LEDGERLINK_LOG_LEVEL`` and then INFO. SQL statement
    logging stays at WARNING unless the root level is DEBUG.
    """

    resolved = _resolve_level(level)
    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if resolved <= logging.DEBUG else logging.WARNING
    )
