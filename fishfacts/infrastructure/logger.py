"""
Run logging for fact extraction.

Every run writes a facts_<timestamp>.log under settings.log_dir and echoes
the same records to the terminal through rich. Level comes from LOG_LEVEL.
"""

import logging
from datetime import datetime
from pathlib import Path

from rich.logging import RichHandler
from rich.console import Console

from fishfacts.config.settings import settings


# Summary tables and status spinners print here too, so they interleave with log lines
_shared_console = Console()


def get_shared_console() -> Console:
    """Console shared by the log handler and the CLI tables."""
    return _shared_console


def _init_logging():
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"facts_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root_logger.addHandler(file_handler)

    root_logger.addHandler(RichHandler(
        level=level,
        console=_shared_console,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    ))

    # The SDK logs every HTTP request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(f"Run log: {log_file}")


_init_logging()


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
