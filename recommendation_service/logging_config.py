"""
Logging Configuration Module

This module provides thread-safe logging configuration for the recommendation
service. Refresh work runs on background threads, so records are funneled
through a queue and written by a single listener.
"""

import logging
import logging.handlers
import sys
from queue import Queue
from typing import Optional


class ThreadSafeLoggingConfig:
    """Thread-safe logging configuration with queue-based logging."""

    def __init__(self):
        self._log_listener: Optional[logging.handlers.QueueListener] = None
        self._log_queue: Optional[Queue] = None
        self._queue_handler: Optional[logging.handlers.QueueHandler] = None

    def setup_logging(self, debug: bool = False) -> None:
        """
        Configure thread-safe logging for the service.

        All threads write to a queue handler; a QueueListener drains the queue
        into a stdout handler so lines from concurrent refreshes never interleave.

        Args:
            debug: Whether to enable debug logging
        """
        self.stop()
        self._log_queue = Queue()
        self._queue_handler = logging.handlers.QueueHandler(self._log_queue)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s")
        )

        self._log_listener = logging.handlers.QueueListener(
            self._log_queue, console_handler, respect_handler_level=True
        )
        self._log_listener.start()

        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.addHandler(self._queue_handler)
        root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    def stop(self) -> None:
        """Stop the logging listener and cleanup."""
        if self._log_listener:
            self._log_listener.stop()
            self._log_listener = None
        if self._queue_handler:
            logging.getLogger().removeHandler(self._queue_handler)
            self._queue_handler = None
        if self._log_queue:
            self._log_queue = None


# Global logging configuration instance
logging_config = ThreadSafeLoggingConfig()


def setup_logging(debug: bool = False) -> None:
    """
    Setup thread-safe logging configuration.

    Args:
        debug: Whether to enable debug logging
    """
    logging_config.setup_logging(debug)


def stop_logging() -> None:
    """Stop the logging listener and cleanup."""
    logging_config.stop()


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
