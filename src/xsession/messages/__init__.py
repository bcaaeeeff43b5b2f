"""
Message utilities for xsession.

- Logger: Human-readable output formatting with colors
"""
from xsession.messages.logger import SessionLogger, get_logger

__all__ = ["SessionLogger", "get_logger"]
