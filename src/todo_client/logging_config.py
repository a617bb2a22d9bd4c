"""Root logger configuration for the client and its shell."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(value: str | int | None) -> int:
    """Map a level name such as ``"debug"`` to its numeric value."""

    if isinstance(value, int):
        return value
    if not value:
        return logging.INFO
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    level: str | int | None = "INFO",
    log_file: Optional[Path] = None,
    *,
    console: bool = True,
) -> int:
    """Configure logging and return the effective level.

    The shell passes ``console=False`` so log lines do not interleave with the
    rendered task table; a log file is then the only sink.
    """
    # Load .env first so LOG_LEVEL / LOG_FILE set there are honoured by callers
    load_dotenv()

    log_level = resolve_level(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = []

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if console or not handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)
    logging.getLogger("todo_client").setLevel(log_level)

    # Request lines from httpx are only interesting when debugging
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
    else:
        logging.getLogger("httpx").setLevel(log_level)
        logging.getLogger("httpcore").setLevel(log_level)

    return log_level


__all__ = ["LOG_FORMAT", "configure_logging", "resolve_level"]
