"""Logging for winedoc.

The CLI configures the root logger once; library modules only fetch named
loggers. Image references pass through ``mask_path`` before they are
logged so local user names stay out of log files.
"""

import logging
import re
import sys

_HOME_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"/Users/[^/]+/"), "/Users/***/"),
    (re.compile(r"C:\\Users\\[^\\]+\\"), r"C:\\Users\\***\\"),
    (re.compile(r"/home/[^/]+/"), "/home/***/"),
]


def setup_logging(level: str = "INFO") -> None:
    """Attach a stdout handler to the root logger.

    Does nothing when the root logger already has handlers, so repeated CLI
    invocations in one process are left alone.

    Args:
        level: Level name such as ``DEBUG`` or ``WARNING``; unknown names
            fall back to ``INFO``.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a winedoc module (pass ``__name__``)."""
    return logging.getLogger(name)


def mask_path(image_ref: str) -> str:
    """Hide the user name segment of a file path before it is logged.

    Args:
        image_ref: Local path or URL of an image.

    Returns:
        The reference with home directory owners replaced by ``***``.
    """
    masked = image_ref
    for pattern, replacement in _HOME_PATTERNS:
        masked = pattern.sub(replacement, masked)
    return masked
