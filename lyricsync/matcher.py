"""Maps a playback time to the active lyric line and its scroll position."""

import math
from typing import Sequence

from .models import Line, MatchResult, ScrollOptions

ALIGN_CENTER = "center"
ALIGN_TOP = "top"


def match_lyric(query_time: float, lines: Sequence[Line]) -> MatchResult:
    """
    Finds the line active at ``query_time``.

    Binary search for the greatest index whose time is <= query_time. When
    several lines share that time, the highest index wins. ``lines`` must be
    sorted ascending by time and is never modified.

    Args:
        query_time: Playback position in seconds.
        lines: Lines sorted by time.

    Returns:
        MatchResult with index -1 and no line if nothing has started yet.
    """
    left, right = 0, len(lines) - 1
    found = -1
    while left <= right:
        mid = (left + right) // 2
        if lines[mid].time <= query_time:
            found = mid
            left = mid + 1
        else:
            right = mid - 1
    if found == -1:
        return MatchResult()
    return MatchResult(index=found, line=lines[found])


def scroll_offset(index: int, options: ScrollOptions) -> float:
    """
    Computes the scroll offset that brings line ``index`` into place.

    'top' aligns the line with the top of the container; 'center' keeps it
    in the middle and never scrolls above zero.
    """
    if index == -1:
        return 0
    if options.align == ALIGN_TOP:
        return index * options.line_size
    if options.align != ALIGN_CENTER:
        raise ValueError(f"Unknown align '{options.align}'. Choose 'center' or 'top'.")
    half_container = options.container_size / 2
    half_line = options.line_size / 2
    return max(0, index * options.line_size - half_container + half_line)


def visible_count(container_size: float, line_size: float) -> int:
    """Number of whole lines that fit into the container."""
    if line_size <= 0:
        raise ValueError(f"line_size must be positive, got {line_size}")
    return math.floor(container_size / line_size)
