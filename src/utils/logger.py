import atexit
import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from utils.config import LOG_FILE


class CenteredFormatter(logging.Formatter):
    longest_name_length = 12

    def __init__(self, fmt=None, datefmt=None, style="%", initial_width=12):
        super().__init__(fmt, datefmt, style)
        CenteredFormatter.longest_name_length = initial_width

    def format(self, record):
        CenteredFormatter.longest_name_length = max(
            CenteredFormatter.longest_name_length, len(record.name)
        )
        width = CenteredFormatter.longest_name_length
        record.name = record.name.center(width)
        return super().format(record)


_file_console: Optional[Console] = None


def _shared_console() -> Optional[Console]:
    """One file-backed console for every logger; None logs to the terminal."""
    global _file_console
    if LOG_FILE and _file_console is None:
        log_file = open(LOG_FILE, "a", encoding="utf-8")
        atexit.register(log_file.close)
        _file_console = Console(file=log_file, width=120)
    return _file_console


def _make_handler(log_level: int) -> RichHandler:
    # the TUI owns the terminal, so logs are diverted to a file when one is set
    handler = RichHandler(
        console=_shared_console(),
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        log_time_format="[%X]",
    )
    handler.setFormatter(CenteredFormatter("[%(name)s]  %(message)s"))
    handler.setLevel(log_level)
    return handler


def get_logger(name=None) -> logging.Logger:
    """
    Returns a logger with a RichHandler attached; DEBUG level if $DEBUG is set.
    """
    if name is None:
        name = "storefront"
    logger = logging.getLogger(name)
    log_level = logging.DEBUG if os.getenv("DEBUG") else logging.INFO
    logger.setLevel(log_level)

    if not logger.handlers:
        logger.addHandler(_make_handler(log_level))
        logger.propagate = False
        logger.debug(f"Logger for '{name}' initialized.")

    return logger
