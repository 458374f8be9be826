"""Data models for LyricSync."""

import enum
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


def _as_seconds(value: Any, name: str) -> float:
    """Coerces a numeric field to float, rejecting bools and non-numbers."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"'{name}' must be a number, got {type(value).__name__}")
    return float(value)


@dataclass
class Word:
    """A timed token inside a line, used for karaoke-style highlighting."""
    time: float
    duration: float
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"time": self.time, "duration": self.duration, "text": self.text}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Word":
        if isinstance(data, Word):
            return Word(data.time, data.duration, data.text)
        return cls(
            time=_as_seconds(data["time"], "time"),
            duration=_as_seconds(data.get("duration", 0.0), "duration"),
            text=str(data["text"]),
        )


@dataclass
class Line:
    """
    One timestamped lyric line.

    Attributes:
        time: Start time in seconds.
        text: The trimmed, non-empty line text.
        duration: Optional duration in seconds (structured sources only).
        translate: Optional translated text paired with this line.
        words: Optional word-level timing.
    """
    time: float
    text: str
    duration: Optional[float] = None
    translate: Optional[str] = None
    words: Optional[List[Word]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serializes the line, leaving out optional fields that are not set."""
        data: Dict[str, Any] = {"time": self.time, "text": self.text}
        if self.duration is not None:
            data["duration"] = self.duration
        if self.translate is not None:
            data["translate"] = self.translate
        if self.words is not None:
            data["words"] = [w.to_dict() for w in self.words]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Line":
        """
        Builds a Line from the structured input shape.

        Raises:
            KeyError: If 'time' or 'text' is missing.
            TypeError: If a field has the wrong type.
        """
        text = data["text"]
        if not isinstance(text, str):
            raise TypeError(f"'text' must be a string, got {type(text).__name__}")
        duration = data.get("duration")
        translate = data.get("translate")
        words = data.get("words")
        return cls(
            time=_as_seconds(data["time"], "time"),
            text=text,
            duration=None if duration is None else _as_seconds(duration, "duration"),
            translate=None if translate is None else str(translate),
            words=None if words is None else [Word.from_dict(w) for w in words],
        )


@dataclass(frozen=True)
class ParseOptions:
    """Options controlling how a lyric source is parsed."""
    base_time: float = 0.0
    word_split: bool = False


@dataclass(frozen=True)
class MatchResult:
    """Result of matching a playback time against a list of lines."""
    index: int = -1
    line: Optional[Line] = None

    @property
    def found(self) -> bool:
        return self.index != -1


@dataclass(frozen=True)
class ScrollOptions:
    """Viewport geometry used to compute the scroll offset of the active line."""
    container_size: float
    line_size: float
    align: str = "center"


@dataclass(frozen=True)
class AudioSegment:
    """
    A contiguous range of the absolute timeline backed by one media source.

    Both ends are inclusive. An end time of infinity marks the last (or only)
    segment.
    """
    source_ref: str
    start_time: float = 0.0
    end_time: float = math.inf

    def contains(self, position: float) -> bool:
        return self.start_time <= position <= self.end_time


@dataclass(frozen=True)
class SegmentTransition:
    """Signals that playback moved into a different segment."""
    segment: AudioSegment
    index: int
    relative_offset: float


@dataclass
class CacheEntry:
    """A cached parse result. Times are epoch milliseconds."""
    key: str
    payload: List[Line] = field(default_factory=list)
    stored_at: float = 0.0
    ttl: Optional[float] = None

    def is_expired(self, now: float, default_ttl: float) -> bool:
        ttl = self.ttl or default_ttl
        return now - self.stored_at > ttl

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "data": [line.to_dict() for line in self.payload],
            "timestamp": self.stored_at,
            "expiration": self.ttl,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CacheEntry":
        expiration = data.get("expiration")
        return cls(
            key=str(data.get("key", "")),
            payload=[Line.from_dict(item) for item in data["data"]],
            stored_at=_as_seconds(data["timestamp"], "timestamp"),
            ttl=None if expiration is None else _as_seconds(expiration, "expiration"),
        )


class LyricState(enum.Enum):
    """Lifecycle state of a lyric load."""
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    EMPTY = "empty"
    ERROR = "error"
