"""Logging for oramem: one stderr handler on the ``oramem`` logger, ``[tag] message`` lines."""

from __future__ import annotations

import logging
import os
import sys
import threading

LOG_LEVEL_ENV = "ORAMEM_LOG_LEVEL"

_lock = threading.Lock()
_handler: logging.Handler | None = None


class _TagFormatter(logging.Formatter):
    """Prefix each line with the logger tag (``oramem.oracle`` -> ``[oracle]``)."""

    def format(self, record: logging.LogRecord) -> str:
        tag = record.name.removeprefix("oramem.")
        return f"[{tag}] {super().format(record)}"


def _resolve_level(verbose: bool) -> int:
    if verbose:
        return logging.DEBUG
    name = os.environ.get(LOG_LEVEL_ENV, "").upper()
    level = logging.getLevelName(name) if name else logging.WARNING
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(verbose: bool = False) -> None:
    """Attach the stderr handler to the ``oramem`` logger once.

    The level is DEBUG when *verbose*, else ``$ORAMEM_LOG_LEVEL`` (default
    WARNING). Records do not propagate to the root logger, so an embedding
    application's own logging setup is left alone.
    """
    global _handler
    with _lock:
        if _handler is not None:
            return
        logger = logging.getLogger("oramem")
        logger.setLevel(_resolve_level(verbose))
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(_TagFormatter())
        logger.addHandler(_handler)
        logger.propagate = False


def get_logger(tag: str) -> logging.Logger:
    """Return the ``oramem.<tag>`` logger, setting up the handler on first use."""
    setup_logging()
    return logging.getLogger(f"oramem.{tag}")
