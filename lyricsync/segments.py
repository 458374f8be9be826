"""Routes absolute timeline positions across concatenated media segments."""

import logging
import math
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from .models import AudioSegment, SegmentTransition
from .utils import format_time_lrc

logger = logging.getLogger(__name__)

SegmentSource = Union[str, Sequence[Union[AudioSegment, Mapping[str, Any]]]]


def _segment_from_mapping(data: Mapping[str, Any]) -> AudioSegment:
    source_ref = data.get("source_ref", data.get("src"))
    if not source_ref:
        raise ValueError(f"Segment is missing its source: {data!r}")
    start = data.get("start_time", data.get("startTime", 0.0))
    end = data.get("end_time", data.get("endTime", math.inf))
    return AudioSegment(source_ref=str(source_ref), start_time=float(start), end_time=float(end))


def normalize_segments(source: SegmentSource) -> List[AudioSegment]:
    """
    Turns a media source description into an ordered list of segments.

    A single source reference spans the whole timeline. A sequence keeps
    its order; items may be AudioSegment objects or mappings using
    'src'/'source_ref', 'startTime'/'start_time' and 'endTime'/'end_time'.

    Raises:
        ValueError: If a segment has no source or non-numeric bounds.
    """
    if isinstance(source, str):
        return [AudioSegment(source_ref=source)]
    segments = []
    for item in source:
        segments.append(item if isinstance(item, AudioSegment) else _segment_from_mapping(item))
    return segments


class SegmentRouter:
    """
    Tracks which segment of a multi-source timeline is active.

    The only state is the active segment; ``locate`` is a pure lookup and
    ``evaluate`` moves the active segment when the position leaves it.
    """

    def __init__(self, segments: Sequence[AudioSegment]):
        self.segments: List[AudioSegment] = list(segments)
        self.current_index = 0 if self.segments else -1

    @property
    def current(self) -> Optional[AudioSegment]:
        if self.current_index == -1:
            return None
        return self.segments[self.current_index]

    def locate(self, position: float) -> Optional[Tuple[int, AudioSegment]]:
        """
        Returns the first segment (in list order) whose inclusive range holds
        ``position``, so a position on a shared boundary belongs to the
        earlier segment.
        """
        for index, segment in enumerate(self.segments):
            if segment.contains(position):
                return index, segment
        return None

    def evaluate(self, position: float) -> Optional[SegmentTransition]:
        """
        Activates the segment holding ``position``.

        Returns:
            A SegmentTransition if the active segment changed, otherwise None.
            When no segment holds the position the active one is kept.
        """
        located = self.locate(position)
        if located is None:
            return None
        index, segment = located
        if index == self.current_index:
            return None
        self.current_index = index
        offset = position - segment.start_time
        logger.debug(
            f"Switching to segment {index} ({segment.source_ref}) at "
            f"{format_time_lrc(position)}, offset {offset:.3f}s"
        )
        return SegmentTransition(segment=segment, index=index, relative_offset=offset)

    def absolute_position(self, relative: float) -> float:
        """Maps a position inside the active segment onto the whole timeline."""
        current = self.current
        return relative + (current.start_time if current else 0.0)

    def relative_position(self, absolute: float) -> float:
        """Maps a timeline position onto the active segment's own clock."""
        current = self.current
        return absolute - (current.start_time if current else 0.0)
