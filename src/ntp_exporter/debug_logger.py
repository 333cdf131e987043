"""
Debug logging utility for the NTP exporter.

Traces NTP queries and scrapes with their inputs, outputs and timing.
Toggled with the NTP_EXPORTER_DEBUG environment variable or `--debug`.
"""

import functools
import logging
import os
import time
from typing import Any, Callable

import numpy as np

DEBUG_ENABLED = os.environ.get('NTP_EXPORTER_DEBUG', 'false').lower() == 'true'

logger = logging.getLogger('ntp_exporter.debug')


def enable_debug():
    """Enable call tracing globally."""
    global DEBUG_ENABLED
    DEBUG_ENABLED = True
    logger.setLevel(logging.DEBUG)
    logger.info("Debug tracing enabled")


def disable_debug():
    """Disable call tracing globally."""
    global DEBUG_ENABLED
    DEBUG_ENABLED = False
    logger.setLevel(logging.NOTSET)


def is_debug_enabled() -> bool:
    return DEBUG_ENABLED


def format_value(value: Any, max_len: int = 100) -> str:
    """
    Format a value for a trace line.

    Long sequences and arrays are shortened to their length and endpoints.
    """
    if isinstance(value, np.ndarray):
        if value.size <= 10:
            return f"array({value.tolist()})"
        return f"array(len={value.size}, min={value.min():.6f}, max={value.max():.6f})"

    if isinstance(value, (list, tuple)) and len(value) > 10:
        return f"{type(value).__name__}(len={len(value)}, first={value[0]}, last={value[-1]})"

    value_str = str(value)
    if len(value_str) > max_len:
        return value_str[:max_len] + "..."
    return value_str


def debug_log_call(func: Callable) -> Callable:
    """
    Decorator that logs a call's arguments, result or exception and duration.

    Only logs while DEBUG_ENABLED is True; otherwise the call goes straight through.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if not DEBUG_ENABLED:
            return func(*args, **kwargs)

        func_name = f"{func.__module__}.{func.__qualname__}"
        # Methods: skip 'self'
        is_method = '.' in func.__qualname__ and '<locals>' not in func.__qualname__
        shown_args = [format_value(a) for a in (args[1:] if is_method else args)]
        shown_kwargs = {k: format_value(v) for k, v in kwargs.items()}
        logger.debug(f"→ CALL: {func_name} args={shown_args} kwargs={shown_kwargs}")

        start_time = time.monotonic()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            elapsed = time.monotonic() - start_time
            logger.debug(f"✗ EXCEPTION: {func_name} after {elapsed:.4f}s: {type(e).__name__}: {e}")
            raise

        elapsed = time.monotonic() - start_time
        logger.debug(f"← RETURN: {func_name} took {elapsed:.4f}s result={format_value(result)}")
        return result

    return wrapper


class DebugTimer:
    """
    Context manager for timing a block.

    Usage:
        with DebugTimer("scrape pool.ntp.org"):
            engine.measure()
    """

    def __init__(self, name: str):
        self.name = name
        self.start_time = None
        self.elapsed = None

    def __enter__(self):
        if DEBUG_ENABLED:
            logger.debug(f"⏱ START: {self.name}")
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.monotonic() - self.start_time
        if DEBUG_ENABLED:
            if exc_type is None:
                logger.debug(f"⏱ END: {self.name} (took {self.elapsed:.4f}s)")
            else:
                logger.debug(f"⏱ FAILED: {self.name} (after {self.elapsed:.4f}s)")
