"""Handler setup for the ``bank2ofx`` logger tree.

Modules inside the package log through ``get_logger("bank2ofx.<module>")`` and
never install handlers. Until the CLI (or an embedding program) calls
:func:`configure_logging`, records go nowhere; afterwards they are written by
one stderr handler whose level comes from the call or ``BANK2OFX_LOG_LEVEL``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "bank2ofx"
_LEVEL_ENV = "BANK2OFX_LOG_LEVEL"
_DEFAULT_FMT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv(_LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    # Unknown names fall back to INFO.
    numeric = logging.getLevelNamesMapping().get(name)
    return numeric if numeric is not None else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Send ``bank2ofx`` records to ``stream`` (stderr by default).

    ``level`` may be a number, a numeric string or a level name; when omitted
    ``BANK2OFX_LOG_LEVEL`` is consulted, then ``INFO``. Repeat calls are no-ops
    until :func:`reset_logging`.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    resolved = _parse_level(level)
    pkg = logging.getLogger(_PKG_LOGGER_NAME)
    for h in [h for h in pkg.handlers if isinstance(h, logging.NullHandler)]:
        pkg.removeHandler(h)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FMT))
    pkg.addHandler(handler)
    pkg.setLevel(resolved)
    # The handler above is the only sink; keep records off the root logger.
    pkg.propagate = False

    _CONFIGURED = True


def reset_logging() -> None:
    """Undo :func:`configure_logging`; used by the test suite."""

    global _CONFIGURED
    pkg = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(pkg.handlers):
        pkg.removeHandler(h)
    pkg.setLevel(logging.NOTSET)
    pkg.propagate = True
    _CONFIGURED = False


def get_logger(name: str) -> logging.Logger:
    pkg = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "reset_logging"]
