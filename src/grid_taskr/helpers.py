"""Helper utilities for logging and multiprocessing setup."""

import functools
import logging
import multiprocessing
import os
import sys

DEFAULT_LOG_FORMAT = (
    "[%(name)s:%(levelname)s:%(process)d:%(threadName)s] @ %(asctime)s %(message)s"
)


def configure_logging(
    log,
    level=logging.INFO,
    handler_filters=None,
    fmt_str=DEFAULT_LOG_FORMAT,
):
    """Configure logging with proper formatting and filters."""
    log.propagate = False
    log.setLevel(level)
    formatter = logging.Formatter(fmt_str)
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(level)

    if handler_filters is not None:
        for _filter in handler_filters:
            handler.addFilter(_filter)

    for old_handler in log.handlers[:]:
        log.removeHandler(old_handler)
        old_handler.close()

    log.addHandler(handler)


def get_logger(name=None, configurer=None, log_level=logging.INFO, custom_logger=None):
    """Get a configured logger instance."""
    if custom_logger:
        return custom_logger
    if not configurer:
        configurer = functools.partial(configure_logging, level=log_level)
    name = name or "grid_taskr"
    logger = logging.getLogger(name)
    configurer(logger)
    return logger


def set_log_level(level, prefix="grid_taskr"):
    """Set ``level`` on every configured grid_taskr logger and its handlers."""
    if isinstance(level, str):
        requested, level = level, logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {requested}")

    for name, log in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(log, logging.Logger) or not name.startswith(prefix):
            continue
        log.setLevel(level)
        for handler in log.handlers:
            handler.setLevel(level)
    return level


class MultiprocessingHelper:
    """
    Static helper class for multiprocessing context and worker sizing.
    """

    DEFAULT_START_METHOD = "spawn"

    @staticmethod
    def get_context(method=None):
        """
        Return a multiprocessing context, ``spawn`` unless told otherwise.

        A dedicated context is used instead of changing the global start
        method so that importing grid_taskr has no process-wide side effects.
        >>> MultiprocessingHelper.get_context().get_start_method()
        'spawn'
        """
        return multiprocessing.get_context(
            method or MultiprocessingHelper.DEFAULT_START_METHOD
        )

    @staticmethod
    @functools.lru_cache(maxsize=1)
    def cpu_count():
        """Number of parallel execution units usable by this process."""
        if hasattr(os, "sched_getaffinity"):
            return max(1, len(os.sched_getaffinity(0)))
        return os.cpu_count() or 1

    @staticmethod
    def default_max_workers(requested=None):
        """
        Resolve a pool size.

        ``None`` means one worker per available execution unit. Explicit
        values are honoured as given, so callers may oversubscribe.
        """
        if requested is None:
            return MultiprocessingHelper.cpu_count()
        if requested < 1:
            raise ValueError("max_workers must be greater than 0")
        return requested
