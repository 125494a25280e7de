"""Decomposition of over-budget content into numbered thread segments."""

from __future__ import annotations

from dataclasses import dataclass

from postguard.errors import SegmentationError

DEFAULT_NUMBERING_RESERVE = 6
DEFAULT_MAX_SEGMENTS = 25

SENTENCE_TERMINATORS = ".!?"
WORD_BOUNDARIES = " \n-"
# A boundary split is only taken past this fraction of the limit; earlier
# ones would produce very short segments.
MIN_SPLIT_FRACTION = 0.6


@dataclass(frozen=True)
class Segment:
    """One message of a thread.  ``ordinal`` is 1-based."""

    ordinal: int
    total: int
    body: str

    @property
    def suffix(self) -> str:
        if self.total <= 1:
            return ""
        return numbering_suffix(self.ordinal, self.total)

    @property
    def text(self) -> str:
        return self.body + self.suffix


def numbering_suffix(ordinal: int, total: int) -> str:
    return f" {ordinal}/{total}"


def _sentence_split(text: str, limit: int) -> int:
    """Index just past the last terminator followed by whitespace, or -1."""
    for pos in range(min(limit, len(text) - 1) - 1, -1, -1):
        if text[pos] in SENTENCE_TERMINATORS and text[pos + 1].isspace():
            return pos + 1
    return -1


def _word_split(text: str, limit: int) -> int:
    for pos in range(limit - 1, -1, -1):
        if text[pos] in WORD_BOUNDARIES:
            return pos + 1
    return -1


def _split_point(text: str, limit: int) -> int:
    threshold = limit * MIN_SPLIT_FRACTION
    point = _sentence_split(text, limit)
    if point > threshold:
        return point
    point = _word_split(text, limit)
    if point > threshold:
        return point
    return limit


def _chunk(text: str, limit: int) -> list[str]:
    chunks: list[str] = []
    remaining = text
    while len(remaining) > limit:
        point = _split_point(remaining, limit)
        chunk = remaining[:point].strip()
        if chunk:
            chunks.append(chunk)
        remaining = remaining[point:].strip()
    if remaining:
        chunks.append(remaining)
    return chunks


def split_content(
    text: str,
    platform_budget: int,
    numbering_reserve: int = DEFAULT_NUMBERING_RESERVE,
    max_segments: int = DEFAULT_MAX_SEGMENTS,
) -> list[Segment]:
    """Split *text* into segments whose ``text`` fits *platform_budget*.

    Content that already fits is returned as a single unnumbered segment.
    Otherwise boundaries are chosen in order of preference: after a sentence
    terminator, after a space, newline or hyphen, then a hard cut.  Every
    segment of a multi-segment result carries a ``" k/N"`` suffix; if that
    suffix is wider than *numbering_reserve* the split is redone with a
    reserve that fits it.

    Raises:
        ValueError: If the budget leaves no room after the reserve.
        SegmentationError: If more than *max_segments* segments are needed.
    """
    text = text.strip()
    if len(text) <= platform_budget:
        return [Segment(1, 1, text)]

    reserve = numbering_reserve
    while True:
        limit = platform_budget - reserve
        if limit <= 0:
            raise ValueError(
                f"platform_budget ({platform_budget}) must exceed the numbering reserve ({reserve})"
            )
        chunks = _chunk(text, limit)
        needed = len(numbering_suffix(len(chunks), len(chunks)))
        if needed <= reserve:
            break
        reserve = needed

    if len(chunks) > max_segments:
        raise SegmentationError(needed=len(chunks), max_segments=max_segments)

    total = len(chunks)
    return [Segment(index, total, body) for index, body in enumerate(chunks, start=1)]
