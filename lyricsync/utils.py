"""Utility functions for LyricSync."""

import asyncio
import os
import logging
from typing import Any, Callable, Optional

from .exceptions import FileSystemError

logger = logging.getLogger(__name__)

def ensure_dir_exists(dir_path: str) -> None:
    """
    Ensures that a directory exists. Creates it if it doesn't.

    Args:
        dir_path: The path to the directory.

    Raises:
        FileSystemError: If the directory cannot be created due to permissions
                         or if the path exists but is not a directory.
    """
    if not dir_path:
        raise ValueError("Directory path cannot be empty.")
    try:
        if not os.path.exists(dir_path):
            os.makedirs(dir_path)
            logger.info(f"Created directory: {dir_path}")
        elif not os.path.isdir(dir_path):
            raise FileSystemError(f"Path exists but is not a directory: {dir_path}")
    except OSError as e:
        logger.error(f"Error creating or accessing directory {dir_path}: {e}", exc_info=True)
        raise FileSystemError(f"Could not create or access directory {dir_path}: {e}") from e

def format_time_lrc(seconds: float) -> str:
    """
    Formats seconds into the LRC time tag body mm:ss.xx.

    Args:
        seconds: Time in seconds.

    Returns:
        Formatted time string, e.g. '01:05.30'.
    """
    if seconds < 0:
        seconds = 0.0
    centiseconds = round(seconds * 100)
    mins = centiseconds // 6000
    centiseconds %= 6000
    secs = centiseconds // 100
    centiseconds %= 100
    return f"{mins:02d}:{secs:02d}.{centiseconds:02d}"


class Debouncer:
    """
    Trailing-edge debounce on the running event loop.

    Each call restarts the delay; only the last call's arguments reach
    ``func`` once ``delay`` seconds pass without another call.
    """

    def __init__(self, func: Callable[..., Any], delay: float = 0.3):
        self.func = func
        self.delay = delay
        self._handle: Optional[asyncio.TimerHandle] = None

    def __call__(self, *args: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire, args)

    def _fire(self, args: tuple) -> None:
        self._handle = None
        self.func(*args)

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
