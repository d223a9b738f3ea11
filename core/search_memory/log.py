"""The log engine."""

import sys
from loguru import logger

from search_memory.env import get_env


def get_log_level():
    """Return the global LOG level."""
    return get_env("SEARCH_MEMORY_LOG_LEVEL").upper()


class SearchMemoryLogEngine:
    """
    The log engine.

    Engine to filter the logs in the terminal according to the level of severity.

    Attributes
    ----------
    LOG_LEVEL: str
        Level of logging set in the `SEARCH_MEMORY_LOG_LEVEL` environment variable.
    """

    def __init__(self):
        self.LOG_LEVEL = get_log_level()
        self.default_log()

    def show_log_level(self, record):
        """Allows to show stuff in the log based on the global setting."""
        return record["level"].no >= logger.level(self.LOG_LEVEL).no

    def default_log(self):
        """Set the same debug level to all the project dependencies."""

        fmt = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> <level>{level}:</level> <cyan>[{name}]</cyan> {message}"

        logger.remove()
        logger.add(
            sys.stdout,
            colorize=True,
            format=fmt,
            backtrace=True,
            diagnose=True,
            filter=self.show_log_level,
        )

    def __call__(self, msg, level="DEBUG"):
        """Alias of self.log()"""
        self.log(msg, level)

    def debug(self, msg):
        """Logs a DEBUG message"""
        self.log(msg, level="DEBUG")

    def info(self, msg):
        """Logs an INFO message"""
        self.log(msg, level="INFO")

    def warning(self, msg):
        """Logs a WARNING message"""
        self.log(msg, level="WARNING")

    def error(self, msg):
        """Logs an ERROR message"""
        self.log(msg, level="ERROR")

    def critical(self, msg):
        """Logs a CRITICAL message"""
        self.log(msg, level="CRITICAL")

    def log(self, msg, level="DEBUG"):
        """
        Log a message

        Args:
            msg: Message to be logged.
            level (str): Logging level.
        """

        # depth=2 reports the caller of debug()/info()/... instead of this module
        logger.opt(depth=2).log(level, msg)


# logger instance
log = SearchMemoryLogEngine()
