# subtile_ocr/log_manager.py
"""
Log management component.

Handles logger setup, file handlers, and log output routing for a run.
"""

import logging
import sys
from pathlib import Path
from typing import TextIO

PACKAGE_LOGGER = "subtile_ocr"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class LogManager:
    """Manages logging setup and cleanup for a conversion run."""

    @staticmethod
    def setup_run_log(
        level: int | str = logging.WARNING,
        log_path: Path | None = None,
        stream: TextIO | None = None,
    ) -> tuple[logging.Logger, list[logging.Handler]]:
        """
        Sets up logging for a run.

        Args:
            level: Level of the package logger (name or number)
            log_path: Optional file receiving every message, DEBUG included
            stream: Console stream, stderr by default

        Returns:
            Tuple of (logger, handlers)
            - logger: The package logger
            - handlers: Handlers added, needed for cleanup
        """
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                level = logging.WARNING

        logger = logging.getLogger(PACKAGE_LOGGER)
        logger.setLevel(logging.DEBUG if log_path else level)

        # Remove any existing handlers
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)

        handlers: list[logging.Handler] = []

        console = logging.StreamHandler(stream if stream is not None else sys.stderr)
        console.setLevel(level)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        handlers.append(console)

        if log_path:
            log_path = Path(log_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
            handlers.append(file_handler)

        for handler in handlers:
            logger.addHandler(handler)
        logger.propagate = False

        return logger, handlers

    @staticmethod
    def cleanup_log(logger: logging.Logger, handlers: list[logging.Handler]):
        """
        Cleans up logger and handler resources.

        Args:
            logger: Logger instance to clean up
            handlers: Handlers returned by setup_run_log
        """
        for handler in handlers:
            handler.close()
            logger.removeHandler(handler)
        logger.propagate = True
