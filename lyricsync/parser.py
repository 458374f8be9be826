"""Parses lyric sources (structured lists or LRC markup) into timed lines."""

import logging
import re
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from .models import Line, ParseOptions, Word
from .exceptions import ParseOptionsError

logger = logging.getLogger(__name__)

LRC_LINE_PATTERN = re.compile(r"\[(\d{2}):(\d{2})\.(\d{1,3})\](.*)")
WORD_CHAR_PATTERN = re.compile(r"[\u4e00-\u9fa5a-zA-Z0-9]")

TRANSLATION_WINDOW = 0.1  # seconds
MIN_LINE_SPAN = 0.5
DEFAULT_LINE_SPAN = 2.0


def resolve_options(options: Union[ParseOptions, Mapping[str, Any], None]) -> ParseOptions:
    """
    Normalizes parse options into a ParseOptions instance.

    Accepts a ParseOptions, a mapping using either snake_case or camelCase
    keys ('base_time'/'baseTime', 'word_split'/'wordSplit'), or None.

    Raises:
        ParseOptionsError: If a value has the wrong type.
    """
    if options is None:
        return ParseOptions()
    if isinstance(options, ParseOptions):
        base_time, word_split = options.base_time, options.word_split
    elif isinstance(options, Mapping):
        base_time = options.get("base_time", options.get("baseTime", 0.0))
        word_split = options.get("word_split", options.get("wordSplit", False))
    else:
        raise ParseOptionsError(f"Unsupported options type: {type(options).__name__}")

    if base_time is None:
        base_time = 0.0
    if isinstance(base_time, bool) or not isinstance(base_time, (int, float)):
        raise ParseOptionsError(f"base_time must be a number of seconds, got {base_time!r}")
    if word_split is None:
        word_split = False
    if not isinstance(word_split, bool):
        raise ParseOptionsError(f"word_split must be a bool, got {word_split!r}")
    return ParseOptions(base_time=float(base_time), word_split=word_split)


def parse_timestamp(minutes: str, seconds: str, fraction: str, base_time: float = 0.0) -> float:
    """Converts the captured parts of an [mm:ss.fff] tag into seconds."""
    return int(minutes) * 60 + int(seconds) + int(fraction.ljust(3, "0")) / 1000 + base_time


def split_words(text: str) -> List[str]:
    """
    Splits text into word tokens by character class.

    A run of CJK ideographs or ASCII letters/digits forms one token; every
    other character (spaces and punctuation included) is a token of its own.
    """
    tokens: List[str] = []
    current = ""
    for char in text:
        if WORD_CHAR_PATTERN.match(char):
            current += char
            continue
        if current:
            tokens.append(current)
            current = ""
        tokens.append(char)
    if current:
        tokens.append(current)
    return tokens


def distribute_word_timing(start: float, span: float, text: str) -> List[Word]:
    """
    Spreads a line's span across its words in proportion to character length.

    This is an approximation: it knows nothing about how the words are sung,
    only how long they are on paper.

    Args:
        start: Line start time in seconds.
        span: Total time to distribute, in seconds.
        text: The trimmed line text.

    Returns:
        Words whose times accumulate from ``start`` and whose durations sum to ``span``.
    """
    total_length = len(text)
    words: List[Word] = []
    elapsed = 0.0
    for token in split_words(text):
        duration = span * (len(token) / total_length)
        words.append(Word(time=start + elapsed, duration=duration, text=token))
        elapsed += duration
    return words


def _parse_structured(items: Sequence[Any], options: ParseOptions) -> List[Line]:
    lines: List[Line] = []
    skipped = 0
    for item in items:
        if not item:
            skipped += 1
            continue
        try:
            line = Line.from_dict(item.to_dict() if isinstance(item, Line) else item)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.debug(f"Skipping malformed structured lyric item {item!r}: {e}")
            skipped += 1
            continue
        if not line.text.strip():
            skipped += 1
            continue
        line.time += options.base_time
        lines.append(line)

    lines.sort(key=lambda line: line.time)
    logger.debug(f"Parsed {len(lines)} structured lines ({skipped} skipped).")
    return lines


def _match_timed(raw: str) -> Optional[Tuple[float, str]]:
    match = LRC_LINE_PATTERN.search(raw)
    if not match:
        return None
    minutes, seconds, fraction, text = match.groups()
    return parse_timestamp(minutes, seconds, fraction), text


def _parse_markup(source: str, options: ParseOptions) -> List[Line]:
    # (time, raw text) for every non-blank line carrying a time tag
    timed: List[Tuple[float, str]] = []
    for raw in source.split("\n"):
        if not raw.strip():
            continue
        parsed = _match_timed(raw)
        if parsed is not None:
            timed.append((parsed[0] + options.base_time, parsed[1]))

    lines: List[Line] = []
    i = 0
    while i < len(timed):
        time, raw_text = timed[i]
        text = raw_text.strip()
        if not text:
            i += 1
            continue
        line = Line(time=time, text=text)

        if i + 1 < len(timed):
            next_time, next_text = timed[i + 1]
            if abs(next_time - time) < TRANSLATION_WINDOW:
                translation = next_text.strip()
                if translation:
                    line.translate = translation
                i += 1

        if options.word_split:
            span = DEFAULT_LINE_SPAN
            if i + 1 < len(timed):
                span = max(MIN_LINE_SPAN, timed[i + 1][0] - time)
            line.words = distribute_word_timing(time, span, text)

        lines.append(line)
        i += 1

    lines.sort(key=lambda line: line.time)
    logger.debug(f"Parsed {len(lines)} lines from {len(timed)} timed markup lines.")
    return lines


def parse_lyric(source: Any, options: Union[ParseOptions, Mapping[str, Any], None] = None) -> List[Line]:
    """
    Parses a lyric source into a time-ordered list of lines.

    Args:
        source: Either LRC-style markup text, or a list of line-like items
                (Line objects or mappings with at least 'time' and 'text').
        options: Parse options (base time offset, word splitting).

    Returns:
        Lines sorted ascending by time. Malformed or empty lines are skipped;
        an unsupported source type yields an empty list.

    Raises:
        ParseOptionsError: If the options carry values of the wrong type.
    """
    resolved = resolve_options(options)
    if isinstance(source, str):
        return _parse_markup(source, resolved)
    if isinstance(source, (list, tuple)):
        return _parse_structured(source, resolved)
    logger.debug(f"Unsupported lyric source type {type(source).__name__}; returning no lines.")
    return []
