"""Loads lyric sources through the cache and tracks the load state."""

import logging
from typing import Any, List, Mapping, Optional, Union

from .cache import LyricCache, cache_key_for
from .exceptions import LyricSyncError
from .models import Line, LyricState, ParseOptions
from .parser import parse_lyric, resolve_options

logger = logging.getLogger(__name__)


class LyricLoader:
    """
    Parses lyric sources, consulting a cache first, and keeps the result.

    The state ends in LOADED when lines were found, EMPTY when the source
    holds no lyrics and ERROR when parsing failed outright. A load that is
    overtaken by a newer one, or that finishes after ``close()``, leaves the
    loader untouched.
    """

    def __init__(self, cache: Optional[LyricCache] = None, base_time: float = 0.0):
        self.cache = cache
        self.base_time = base_time
        self.state = LyricState.IDLE
        self.lines: List[Line] = []
        self.error: Optional[Exception] = None
        self._generation = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def set_base_time(self, seconds: float) -> None:
        """Sets the offset applied to the next parse."""
        self.base_time = seconds

    def _effective_options(self, options: Union[ParseOptions, Mapping[str, Any], None]) -> ParseOptions:
        resolved = resolve_options(options)
        return resolve_options({"base_time": self.base_time, "word_split": resolved.word_split})

    @staticmethod
    def _signature(source: Any) -> Optional[str]:
        if not isinstance(source, (str, list, tuple)):
            return None
        try:
            return cache_key_for(source)
        except (TypeError, ValueError) as e:
            logger.warning(f"Source cannot be signed, skipping cache: {e}")
            return None

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    def _finish(self, lines: List[Line]) -> None:
        self.lines = lines
        self.error = None
        self.state = LyricState.LOADED if lines else LyricState.EMPTY

    async def load(self, source: Any, options: Union[ParseOptions, Mapping[str, Any], None] = None) -> List[Line]:
        """
        Loads ``source`` and makes its lines current.

        Args:
            source: Markup text or a structured line list.
            options: Parse options; the loader's own base time replaces theirs.

        Returns:
            The parsed (or cached) lines.

        Raises:
            LyricSyncError: If the source could not be parsed (e.g. invalid options).
        """
        if self._closed:
            raise LyricSyncError("Loader is closed.")
        self._generation += 1
        generation = self._generation
        self.state = LyricState.LOADING

        try:
            effective = self._effective_options(options)
            key = self._signature(source)
            if key is not None and self.cache is not None:
                cached = await self.cache.get(key)
                if cached is not None:
                    logger.debug(f"Cache hit, {len(cached)} lines.")
                    if self._is_current(generation):
                        self._finish(cached)
                    return cached

            lines = parse_lyric(source, effective)
            logger.info(f"Parsed {len(lines)} lyric lines.")
            if key is not None and self.cache is not None:
                await self.cache.set(key, lines)
        except LyricSyncError as e:
            logger.error(f"Failed to load lyrics: {e}")
            if self._is_current(generation):
                self.error = e
                self.state = LyricState.ERROR
            raise

        if self._is_current(generation):
            self._finish(lines)
        else:
            logger.debug("Discarding result of a superseded lyric load.")
        return lines

    def close(self) -> None:
        """Discards the loader; loads still in flight will not touch its state."""
        self._closed = True
        self._generation += 1
