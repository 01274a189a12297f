"""
Centralized logging configuration for GAQ.

Provides structured logging with color output and separate loggers
for different subsystems (queue, token, membership, storage, chain).
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import colorlog


class GAQLogger:
    """Centralized logger for GAQ components"""

    _initialized = False
    _log_dir: Optional[Path] = None

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = True,
    ):
        """
        Setup logging configuration.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR)
            log_dir: Directory for log files. If None, uses ./logs
            log_to_file: Whether to write logs to file
        """
        if cls._initialized:
            return

        if log_to_file:
            cls._log_dir = Path(log_dir) if log_dir else Path("logs")
            cls._log_dir.mkdir(exist_ok=True, parents=True)

        root_logger = logging.getLogger("gaq")
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        # Console handler with colors
        console_handler = colorlog.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_formatter = colorlog.ColoredFormatter(
            "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
        console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)

        if log_to_file and cls._log_dir:
            file_handler = logging.FileHandler(cls._log_dir / "gaq.log")
            file_handler.setLevel(level)
            file_formatter = logging.Formatter(
                "%(asctime)s [%(name)s] %(levelname)-8s %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            file_handler.setFormatter(file_formatter)
            root_logger.addHandler(file_handler)

        cls._initialized = True

    @classmethod
    def reset(cls):
        """Drop configured handlers so setup() can run again."""
        root_logger = logging.getLogger("gaq")
        for handler in list(root_logger.handlers):
            handler.close()
            root_logger.removeHandler(handler)
        cls._initialized = False
        cls._log_dir = None

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Get a logger for a specific subsystem.

        Implicit setup logs to the console only; file logging is opt-in
        through setup_logging().

        Args:
            name: Subsystem name (e.g., 'queue', 'token', 'storage')

        Returns:
            Logger instance
        """
        if not cls._initialized:
            cls.setup(log_to_file=False)

        return logging.getLogger(f"gaq.{name}")


# Convenience functions
def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific subsystem"""
    return GAQLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = True,
):
    """Setup logging configuration, replacing any implicit console-only setup"""
    GAQLogger.reset()
    GAQLogger.setup(level=level, log_dir=log_dir, log_to_file=log_to_file)
