"""Shared fixtures and fakes for LyricSync tests."""

from typing import List, Optional

import pytest

from lyricsync.models import Line
from lyricsync.storage import MemoryBackend, StorageBackend, WriteStatus
from lyricsync.sync import TimeSource, Viewport


class FakeClock:
    """Settable epoch-millisecond clock."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeTimeSource(TimeSource):
    """Media element stand-in recording every command it receives."""

    def __init__(self, position: float = 0.0, source_ref: Optional[str] = None):
        self.position = position
        self.source_ref = source_ref
        self.calls: List[tuple] = []

    def current_position(self) -> float:
        return self.position

    def set_position(self, seconds: float) -> None:
        self.position = seconds
        self.calls.append(("set_position", seconds))

    def play(self) -> None:
        self.calls.append(("play",))

    def load(self, source_ref: str) -> None:
        self.source_ref = source_ref
        self.calls.append(("load", source_ref))


class FakeViewport(Viewport):
    def __init__(self, size: float = 200.0):
        self.size = size
        self.offset = 0.0
        self.writes: List[float] = []

    def container_size(self) -> float:
        return self.size

    def get_scroll_offset(self) -> float:
        return self.offset

    def set_scroll_offset(self, offset: float) -> None:
        self.offset = offset
        self.writes.append(offset)


class BrokenBackend(StorageBackend):
    """Backend whose every operation raises."""

    name = "broken"

    async def get(self, key):
        raise RuntimeError("read failed")

    async def set(self, key, value):
        raise RuntimeError("write failed")

    async def remove(self, key):
        raise RuntimeError("remove failed")

    async def keys(self, prefix=""):
        raise RuntimeError("keys failed")

    async def clear(self):
        raise RuntimeError("clear failed")


class RefusingBackend(MemoryBackend):
    """Memory backend that always reports the given write status."""

    def __init__(self, status: WriteStatus):
        super().__init__()
        self.status = status
        self.attempts = 0

    async def set(self, key, value):
        self.attempts += 1
        return self.status


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_lines():
    return [
        Line(time=1.0, text="first"),
        Line(time=3.0, text="second"),
        Line(time=5.0, text="third"),
        Line(time=8.0, text="fourth"),
    ]
