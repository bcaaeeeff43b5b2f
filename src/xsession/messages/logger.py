"""
Logging configuration for xsession - readable, color-coded output.

SessionLogger wraps a standard library logger with colorama colors so that
connection attempts, handshakes and pool activity are easy to follow in a
terminal. Loggers are named ``xsession.<component>[.<instance>]``; the
instance part (a pool name, a session id) is shown in white before the
message.
"""
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import colorama

# Initialize colorama for cross-platform color support
colorama.init()

LOG_DIR_ENV = "XSESSION_LOG_DIR"

# Components whose logger names carry an instance suffix
_INSTANCE_COMPONENTS = ("xsession.pool.", "xsession.session.")


class ColorFormatter(logging.Formatter):
    """Custom formatter with colors"""

    COLORS = {
        "INFO": colorama.Fore.BLUE,
        "WARNING": colorama.Fore.YELLOW,
        "ERROR": colorama.Fore.RED,
        "DEBUG": colorama.Fore.BLUE,
        "START": colorama.Fore.BLUE,
        "OK": colorama.Fore.GREEN,
    }

    def format(self, record):
        # xsession.pool.orders -> [orders]
        record.instance = ""
        for prefix in _INSTANCE_COMPONENTS:
            if record.name.startswith(prefix):
                instance = record.name[len(prefix):]
                white = colorama.Fore.WHITE
                reset = colorama.Style.RESET_ALL
                record.instance = f"{white}[{instance}]{reset} "
                break

        if record.levelname in self.COLORS:
            color = self.COLORS[record.levelname]
            record.levelname = f"{color}{record.levelname}{colorama.Style.RESET_ALL}"

        if hasattr(record, "color_prefix"):
            color = self.COLORS.get(record.color_prefix, "")
            record.msg = f"{color}{record.msg}{colorama.Style.RESET_ALL}"

        return super().format(record)


class SessionLogger:
    """
    Central logging class for xsession.

    Writes colored, human-readable lines to stdout. When the
    ``XSESSION_LOG_DIR`` environment variable points at a directory, the
    same lines are also appended to ``xsession.log`` inside it.

    Credentials never reach the logger: callers log endpoints, mechanism
    names and statement ids only.
    """

    class Style:
        """ANSI color codes for endpoints"""

        CYAN = colorama.Fore.CYAN
        GREEN = colorama.Fore.GREEN
        YELLOW = colorama.Fore.YELLOW
        RESET = colorama.Style.RESET_ALL

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.style = self.Style()

        # Only set up handlers if they haven't been set up already
        if not self.logger.handlers:
            self.logger.setLevel(logging.INFO)
            fmt = "%(asctime)s  %(instance)s%(message)s"

            log_dir = os.environ.get(LOG_DIR_ENV)
            if log_dir:
                path = Path(log_dir)
                path.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(
                    path / "xsession.log", encoding="utf-8"
                )
                file_handler.setLevel(logging.DEBUG)
                file_handler.setFormatter(ColorFormatter(fmt, datefmt="%H:%M:%S"))
                self.logger.addHandler(file_handler)

            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(logging.DEBUG)
            console_handler.setFormatter(ColorFormatter(fmt, datefmt="%H:%M:%S"))
            self.logger.addHandler(console_handler)

            # Prevent logs from being passed to root logger
            self.logger.propagate = False

    def info(self, msg: str, color_prefix: Optional[str] = None) -> None:
        """Log info message with optional color prefix"""
        extra = {"color_prefix": color_prefix} if color_prefix else None
        self.logger.info(msg, extra=extra)

    def start(self, msg: str) -> None:
        """Log start message"""
        self.info(f"START {msg}", color_prefix="START")

    def success(self, msg: str) -> None:
        """Log success message in green"""
        self.info(f"OK {msg}", color_prefix="OK")

    def error(self, msg: str) -> None:
        """Log error message in red"""
        self.logger.error(msg)

    def warning(self, msg: str) -> None:
        """Log warning message in yellow"""
        self.logger.warning(msg)

    def debug(self, msg: str) -> None:
        """Log debug message in blue"""
        self.logger.debug(msg)

    def endpoint(self, address: str, color: str = None) -> str:
        """Format an endpoint address with color"""
        if not color:
            color = self.style.CYAN
        return f"{color}{address}{self.style.RESET}"


def get_logger(name: str) -> SessionLogger:
    """Get a configured logger instance."""
    return SessionLogger(name)
