"""Tests for the sync module."""
import asyncio
import math

import pytest

from conftest import FakeTimeSource, FakeViewport
from lyricsync.models import AudioSegment, Line
from lyricsync.sync import LyricSync

SEGMENTS = [
    AudioSegment("part1.mp3", 0.0, 4.0),
    AudioSegment("part2.mp3", 4.0, math.inf),
]


class TestTick:
    """Tests for a single synchronization step."""

    def test_matches_current_position(self, sample_lines):
        source = FakeTimeSource(position=3.5)
        sync = LyricSync(source, sample_lines)
        result = sync.tick()
        assert result.index == 1
        assert sync.current_index == 1
        assert sync.current_time == 3.5

    def test_line_change_callback_only_on_change(self, sample_lines):
        changes = []
        source = FakeTimeSource(position=1.0)
        sync = LyricSync(source, sample_lines, on_line_change=changes.append)
        sync.tick()
        source.position = 2.0
        sync.tick()
        source.position = 3.0
        sync.tick()
        assert [c.index for c in changes] == [0, 1]
        assert changes[1].line is sample_lines[1]

    def test_before_first_line(self, sample_lines):
        changes = []
        sync = LyricSync(FakeTimeSource(position=0.2), sample_lines, on_line_change=changes.append)
        assert sync.tick().index == -1
        assert changes == []

    def test_scrolls_only_when_offset_changes(self, sample_lines):
        viewport = FakeViewport(size=100.0)
        source = FakeTimeSource(position=5.0)
        sync = LyricSync(source, sample_lines, viewport=viewport, line_size=50.0)
        sync.tick()
        sync.tick()
        # index 2: 2*50 - 50 + 25
        assert viewport.writes == [75.0]
        source.position = 8.0
        sync.tick()
        assert viewport.writes == [75.0, 125.0]

    def test_top_alignment(self, sample_lines):
        viewport = FakeViewport(size=100.0)
        sync = LyricSync(FakeTimeSource(position=3.0), sample_lines, viewport=viewport, align="top")
        sync.tick()
        assert viewport.offset == 50.0

    def test_refreshes_viewport_size(self, sample_lines):
        viewport = FakeViewport(size=100.0)
        sync = LyricSync(FakeTimeSource(position=8.0), sample_lines, viewport=viewport, line_size=50.0)
        sync.tick()
        assert sync.container_size == 100.0
        viewport.size = 300.0
        sync.tick()
        assert sync.container_size == 300.0
        # 3*50 - 150 + 25
        assert viewport.offset == 25.0

    def test_segment_switch(self):
        lines = [Line(1.0, "a"), Line(4.2, "b")]
        source = FakeTimeSource(position=2.0)
        sync = LyricSync(source, lines, segments=SEGMENTS)
        sync.tick()
        assert source.calls == []

        # the first file has run past its segment end
        source.position = 4.5
        result = sync.tick()
        assert source.calls == [("load", "part2.mp3"), ("set_position", 0.5), ("play",)]
        assert result.index == 1
        assert sync.current_time == 4.5

        # now relative to part2
        source.calls.clear()
        source.position = 1.0
        sync.tick()
        assert sync.current_time == 5.0
        assert source.calls == []

    def test_single_source_string(self, sample_lines):
        source = FakeTimeSource(position=9.0)
        sync = LyricSync(source, sample_lines, segments="song.mp3")
        assert sync.tick().index == 3
        assert source.calls == []

    def test_rejects_non_positive_interval(self, sample_lines):
        with pytest.raises(ValueError):
            LyricSync(FakeTimeSource(), sample_lines, interval=0)

    def test_rejects_unknown_align(self, sample_lines):
        with pytest.raises(ValueError):
            LyricSync(FakeTimeSource(), sample_lines, align="bottom")

    def test_scroll_tracks_last_offset(self, sample_lines):
        viewport = FakeViewport(size=100.0)
        source = FakeTimeSource(position=5.0)
        sync = LyricSync(source, sample_lines, viewport=viewport, line_size=50.0)
        assert sync.scroll == 0.0
        sync.tick()
        assert sync.scroll == 75.0
        source.position = 8.0
        sync.tick()
        assert sync.scroll == 125.0


class TestSeek:
    """Tests for seeking."""

    def test_seek_without_segments(self, sample_lines):
        source = FakeTimeSource()
        sync = LyricSync(source, sample_lines)
        sync.seek(5.5)
        assert source.calls == [("set_position", 5.5)]
        assert sync.current_index == 2

    def test_seek_within_current_segment(self):
        source = FakeTimeSource()
        sync = LyricSync(source, [Line(1.0, "a")], segments=SEGMENTS)
        sync.seek(3.0)
        assert source.calls == [("set_position", 3.0)]

    def test_seek_into_other_segment(self):
        source = FakeTimeSource()
        sync = LyricSync(source, [Line(1.0, "a"), Line(6.0, "b")], segments=SEGMENTS)
        sync.seek(6.0)
        assert source.calls == [("load", "part2.mp3"), ("set_position", 2.0), ("play",)]
        assert sync.current_index == 1

    def test_seek_to_line(self, sample_lines):
        source = FakeTimeSource()
        sync = LyricSync(source, sample_lines)
        sync.seek_to_line(3)
        assert source.position == 8.0
        assert sync.current_index == 3

    def test_seek_to_line_out_of_range(self, sample_lines):
        source = FakeTimeSource()
        sync = LyricSync(source, sample_lines)
        sync.seek_to_line(-1)
        sync.seek_to_line(4)
        assert source.calls == []


class TestPlayState:
    """Tests for play/pause notifications."""

    def test_forwards_to_callback(self, sample_lines):
        states = []
        sync = LyricSync(FakeTimeSource(), sample_lines, on_play_state=states.append)
        sync.handle_play_state(True)
        sync.handle_play_state(False)
        assert states == [True, False]
        assert sync.playing is False


class TestPollingLoop:
    """Tests for the repeating task."""

    @pytest.mark.asyncio
    async def test_polls_until_stopped(self, sample_lines):
        source = FakeTimeSource(position=1.0)
        sync = LyricSync(source, sample_lines, interval=0.01)
        sync.start()
        assert sync.running
        await asyncio.sleep(0.05)
        assert sync.current_index == 0
        source.position = 5.0
        await asyncio.sleep(0.05)
        assert sync.current_index == 2
        await sync.close()
        assert not sync.running

        source.position = 8.0
        await asyncio.sleep(0.03)
        assert sync.current_index == 2

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_task(self, sample_lines):
        sync = LyricSync(FakeTimeSource(), sample_lines, interval=0.01)
        sync.start()
        task = sync._task
        sync.start()
        assert sync._task is task
        await sync.close()

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, sample_lines):
        sync = LyricSync(FakeTimeSource(), sample_lines, interval=0.01)
        sync.stop()
        sync.start()
        sync.stop()
        sync.stop()
        await sync.close()
        assert not sync.running

    @pytest.mark.asyncio
    async def test_set_lines_restarts_loop(self, sample_lines):
        source = FakeTimeSource(position=3.0)
        sync = LyricSync(source, sample_lines, interval=0.01)
        sync.start()
        await asyncio.sleep(0.03)
        old_task = sync._task
        assert sync.current_index == 1

        sync.set_lines([Line(0.0, "x")])
        assert sync._task is not old_task
        assert sync.running
        await asyncio.sleep(0.03)
        assert sync.current_index == 0
        await sync.close()

    @pytest.mark.asyncio
    async def test_set_lines_when_stopped_stays_stopped(self, sample_lines):
        sync = LyricSync(FakeTimeSource(), sample_lines)
        sync.set_lines([])
        assert not sync.running
        assert sync.current_index == -1

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_loop(self, sample_lines):
        changes = []

        def on_line_change(result):
            changes.append(result.index)
            if len(changes) == 1:
                raise RuntimeError("display update failed")

        source = FakeTimeSource(position=1.5)
        sync = LyricSync(source, sample_lines, interval=0.01, on_line_change=on_line_change)
        sync.start()
        await asyncio.sleep(0.03)
        assert sync.running
        source.position = 3.5
        await asyncio.sleep(0.03)
        assert sync.running
        assert changes == [0, 1]
        await sync.close()
        assert not sync.running
