"""Drives line matching and scrolling from a polled media time source."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

from .matcher import ALIGN_CENTER, ALIGN_TOP, match_lyric, scroll_offset
from .models import Line, MatchResult, ScrollOptions, SegmentTransition
from .segments import SegmentRouter, SegmentSource, normalize_segments
from .utils import format_time_lrc

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 0.05  # seconds between ticks


class TimeSource(ABC):
    """Abstract base class for the media element the lyrics follow."""

    @abstractmethod
    def current_position(self) -> float:
        """Returns the playback position in seconds, relative to the loaded source."""
        pass

    @abstractmethod
    def set_position(self, seconds: float) -> None:
        """Seeks the loaded source to ``seconds``."""
        pass

    @abstractmethod
    def play(self) -> None:
        pass

    @abstractmethod
    def load(self, source_ref: str) -> None:
        """Replaces the loaded media with ``source_ref``."""
        pass


class Viewport(ABC):
    """Abstract base class for the scrollable container showing the lines."""

    @abstractmethod
    def container_size(self) -> float:
        pass

    @abstractmethod
    def get_scroll_offset(self) -> float:
        pass

    @abstractmethod
    def set_scroll_offset(self, offset: float) -> None:
        pass


class LyricSync:
    """
    Keeps the active lyric line in step with a playing time source.

    Each tick reads the viewport size, lets the segment router follow the
    timeline, matches the line and scrolls the viewport when the offset
    changed. ``start()`` runs ticks every ``interval`` seconds on the event
    loop until ``stop()``; a failing tick is logged and polling goes on.
    Replacing the lines restarts the loop so it never matches against a
    stale list.
    """

    def __init__(
        self,
        time_source: TimeSource,
        lines: Sequence[Line],
        segments: Optional[SegmentSource] = None,
        viewport: Optional[Viewport] = None,
        line_size: float = 50.0,
        align: str = "center",
        interval: float = DEFAULT_INTERVAL,
        on_line_change: Optional[Callable[[MatchResult], None]] = None,
        on_play_state: Optional[Callable[[bool], None]] = None,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if align not in (ALIGN_CENTER, ALIGN_TOP):
            raise ValueError(f"Unknown align '{align}'. Choose 'center' or 'top'.")
        self.time_source = time_source
        self.lines: List[Line] = list(lines)
        self.router = SegmentRouter(normalize_segments(segments)) if segments is not None else None
        self.viewport = viewport
        self.line_size = line_size
        self.align = align
        self.interval = interval
        self.on_line_change = on_line_change
        self.on_play_state = on_play_state

        self.current_index = -1
        self.current_time = 0.0
        self.container_size = 0.0
        self.scroll = 0.0
        self.playing = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _apply_transition(self, transition: SegmentTransition) -> None:
        logger.info(f"Switching media to segment {transition.index}: {transition.segment.source_ref}")
        self.time_source.load(transition.segment.source_ref)
        self.time_source.set_position(transition.relative_offset)
        self.time_source.play()

    def tick(self) -> MatchResult:
        """Runs one synchronization step and returns the current match."""
        if self.viewport is not None:
            self.container_size = self.viewport.container_size()

        relative = self.time_source.current_position()
        absolute = self.router.absolute_position(relative) if self.router else relative
        if self.router is not None:
            transition = self.router.evaluate(absolute)
            if transition is not None:
                self._apply_transition(transition)
        self.current_time = absolute

        result = match_lyric(absolute, self.lines)
        if result.index != self.current_index:
            self.current_index = result.index
            logger.debug(f"Active line {result.index} at {format_time_lrc(absolute)}")
            if self.on_line_change is not None:
                self.on_line_change(result)

        if self.viewport is not None:
            options = ScrollOptions(container_size=self.container_size, line_size=self.line_size, align=self.align)
            offset = scroll_offset(result.index, options)
            self.scroll = offset
            if self.viewport.get_scroll_offset() != offset:
                self.viewport.set_scroll_offset(offset)
        return result

    async def _run(self) -> None:
        while True:
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Lyric sync tick failed: {e}", exc_info=True)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Starts polling on the running event loop. Does nothing if already running."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug(f"Lyric sync started, polling every {self.interval * 1000:.0f} ms.")

    def stop(self) -> None:
        """Cancels the polling loop. Safe to call repeatedly."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.debug("Lyric sync stopped.")

    async def close(self) -> None:
        """Stops polling and waits for the loop task to finish."""
        task = self._task
        self.stop()
        if task is not None:
            await asyncio.wait({task})

    def set_lines(self, lines: Sequence[Line]) -> None:
        """Replaces the line list, restarting the loop if it was running."""
        was_running = self.running
        self.stop()
        self.lines = list(lines)
        self.current_index = -1
        if was_running:
            self.start()

    def seek(self, absolute: float) -> None:
        """Moves playback to an absolute timeline position."""
        if self.router is not None:
            transition = self.router.evaluate(absolute)
            if transition is not None:
                self._apply_transition(transition)
            else:
                self.time_source.set_position(max(0.0, self.router.relative_position(absolute)))
        else:
            self.time_source.set_position(absolute)
        self.tick()

    def seek_to_line(self, index: int) -> None:
        """Moves playback to the start of line ``index``; out-of-range indices are ignored."""
        if index < 0 or index >= len(self.lines):
            return
        self.seek(self.lines[index].time)

    def handle_play_state(self, is_playing: bool) -> None:
        """Records a play/pause notification from the time source."""
        self.playing = is_playing
        if self.on_play_state is not None:
            self.on_play_state(is_playing)
