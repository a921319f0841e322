"""Logging for the Layered Lexicon package.

Every module logs under ``layered_lexicon.<module>``. Table stores log each
committed write at DEBUG, as do selection fallbacks. The engine logs each
accepted training call and each generated sentence at INFO. Failing event
listeners are logged at ERROR with their traceback.
"""

from __future__ import annotations

import logging
from typing import Optional

_DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: int = logging.INFO, handler: Optional[logging.Handler] = None) -> None:
    """Configure root logging with a consistent format.

    The CLI calls this with WARNING, or DEBUG under ``--verbose``.
    """
    logging.basicConfig(level=level, format=_DEFAULT_FORMAT, handlers=[handler] if handler else None)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a package module, e.g. ``layered_lexicon.engine``."""
    return logging.getLogger(name)
