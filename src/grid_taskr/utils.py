"""Utility functions shared across grid_taskr."""

import collections
import functools
import logging
import time
from typing import Any, Callable, Generic, TypeVar, overload

from .helpers import get_logger

logger = get_logger(__name__)


def humanize_bytes(
    num_bytes: int, precision: int = 2, units: tuple[str, ...] = ("B", "KB", "MB", "GB")
) -> str:
    """
    Convert a byte count into a human-friendly string with units.

    >>> humanize_bytes(80000)
    '78.12 KB'
    >>> humanize_bytes(2048)
    '2 KB'
    """
    if num_bytes < 0:
        raise ValueError("num_bytes must be non-negative")
    if num_bytes == 0:
        return "0 B"
    idx = 0
    value = float(num_bytes)
    while value >= 1024 and idx < len(units) - 1:
        value /= 1024
        idx += 1
    if value.is_integer():
        return f"{int(value)} {units[idx]}"
    else:
        return f"{value:.{precision}f} {units[idx]}"


T = TypeVar("T")


class reify(Generic[T]):
    """
    Acts similar to a property, except the result will be
    set as an attribute on the instance instead of recomputed
    each access.
    """

    def __init__(self, fn: Callable[..., T]) -> None:
        self.fn = fn
        self.__name__ = getattr(fn, "__name__", "<unknown>")
        self.__doc__ = getattr(fn, "__doc__", None)
        self.__module__ = getattr(fn, "__module__", "") or ""
        self.__qualname__ = getattr(fn, "__qualname__", "") or ""

    @overload
    def __get__(self, instance: None, owner: type) -> "reify[T]": ...

    @overload
    def __get__(self, instance: Any, owner: type) -> T: ...

    def __get__(self, instance: Any, owner: type) -> "T | reify[T]":
        if instance is None:
            return self

        fn = self.fn
        val = fn(instance)
        setattr(instance, fn.__name__, val)
        return val


class EventEmitter:
    @reify
    def _listeners(self):
        return collections.defaultdict(list)

    def on(self, event, handler=None):
        """Register an event handler for the given event."""
        if handler:
            if handler not in self._listeners[event]:
                self._listeners[event].append(handler)
            return handler

        @functools.wraps(self.on)
        def decorator(func):
            self.on(event, func)
            return func

        return decorator

    def once(self, event, handler):
        @functools.wraps(handler)
        def once_handler(*args, **kwargs):
            self.remove(event, once_handler)
            return handler(*args, **kwargs)

        self.on(event, once_handler)

    def remove(self, event, handler):
        try:
            self._listeners[event].remove(handler)
        except ValueError:
            pass

    def emit(self, event, *args, **kwargs):
        for handler in list(self._listeners[event]):
            handler(*args, **kwargs)


def log_execution_time(func=None, *, loglvl=logging.INFO):
    """
    Decorator to log the execution time of a function.

    >>> @log_execution_time
    ... def foo():
    ...     return 42
    >>> foo()
    42
    """
    if func is None:
        return functools.partial(log_execution_time, loglvl=loglvl)

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed = time.perf_counter() - start
            logger.log(loglvl, "%s executed in %.4f seconds", func.__qualname__, elapsed)

    return wrapper
