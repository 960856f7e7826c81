"""
Logging setup: coloured console output plus an optional plain log file.
"""
import logging
from typing import Optional

from colorama import Fore, Style, init

init(autoreset=True)

LEVEL_COLORS = {
    logging.DEBUG: Fore.CYAN,
    logging.INFO: Fore.WHITE,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.MAGENTA,
}

CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class ColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno, "")
        return f"{color}{message}{Style.RESET_ALL}"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Configure the root logger once for the whole bot."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler()
    console.setFormatter(ColorFormatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root.addHandler(file_handler)

    # aiohttp access noise
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
