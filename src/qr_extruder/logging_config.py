"""
Logging setup for command-line and web entry points.

Library modules only create module-level loggers; this is called once by
whichever entry point runs.
"""

import logging
import sys
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    verbose: bool = False,
    level: Optional[int] = None,
    fmt: str = DEFAULT_FORMAT
) -> None:
    """
    Configure the root logger with a single stderr handler.

    Args:
        verbose: If True, log at DEBUG instead of WARNING
        level: Explicit level, overrides verbose
        fmt: Log record format
    """
    if level is None:
        level = logging.DEBUG if verbose else logging.WARNING

    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
