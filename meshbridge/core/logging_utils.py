import logging
import os
import sys


def supports_color() -> bool:
    """
    Returns True if the running system's terminal supports color, and False otherwise.
    """
    if os.environ.get("FORCE_COLOR", "").lower() in ("1", "true", "yes"):
        return True
    if os.environ.get("NO_COLOR", "").lower() in ("1", "true", "yes"):
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


class CustomFormatter(logging.Formatter):
    """Colored logging formatter, plain when the terminal has no color"""

    red = "\x1b[31;20m"
    white = "\x1b[38;5;255m"
    dark_grey = "\x1b[38;5;244m"
    orange = "\x1b[38;5;208m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"
    fmt = "%(asctime)s | %(levelname)8s | %(name)s: %(message)s"

    FORMATS = {
        logging.DEBUG: dark_grey + fmt + reset,
        logging.INFO: white + fmt + reset,
        logging.WARNING: orange + fmt + reset,
        logging.ERROR: red + fmt + reset,
        logging.CRITICAL: bold_red + fmt + reset,
    }

    def __init__(self, use_color: bool = None):
        super().__init__()
        self.use_color = supports_color() if use_color is None else use_color

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno) if self.use_color else self.fmt
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


def create_console_handler(level=logging.DEBUG):
    # stdout carries the progress transcript; logs go to stderr
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(CustomFormatter())
    return handler


def env_level(name: str, default: int = logging.WARNING) -> int:
    levels = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warn": logging.WARNING,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }
    value = os.environ.get(name)
    if value is None:
        return default
    return levels.get(value.strip().lower(), default)


def setup_logging(level=None, handlers=None):
    """Setup logging for the meshbridge package.

    ``MESHBRIDGE_LOG_LEVEL`` wins over the level passed in.
    """
    if level is None:
        level = logging.WARNING
    level = env_level("MESHBRIDGE_LOG_LEVEL", level)

    if handlers is None:
        handlers = [create_console_handler(level)]

    logging.basicConfig(encoding="utf-8", level=level, handlers=handlers, force=True)
    logging.getLogger("meshbridge").setLevel(level)


def set_level(level: int) -> None:
    """Change the level after setup, e.g. when the config asks for debug output."""
    logging.getLogger().setLevel(level)
    logging.getLogger("meshbridge").setLevel(level)
    for handler in logging.getLogger().handlers:
        handler.setLevel(level)
