"""Segment Splitter

Partitions a line into formatting-homogeneous segments and rebuilds the
inter-word spacing lost when glyph runs are positioned individually.
"""

from typing import List, Sequence

from constants.layout import HORIZONTAL_GAP_THRESHOLD, SEGMENT_FONT_SIZE_TOLERANCE
from models.layout_types import FormattedSegment, Fragment, Line


def needs_space_between(
    left: Fragment,
    right: Fragment,
    gap_threshold: float = HORIZONTAL_GAP_THRESHOLD,
) -> bool:
    """True when the horizontal gap between two fragments reads as a space"""
    return right.x - (left.x + left.width) > gap_threshold


def join_fragment_text(
    fragments: Sequence[Fragment],
    gap_threshold: float = HORIZONTAL_GAP_THRESHOLD,
) -> str:
    """Concatenate fragment texts, inserting one space across each wide gap"""
    parts: List[str] = []
    previous = None
    for fragment in fragments:
        if previous is not None and needs_space_between(previous, fragment, gap_threshold):
            parts.append(' ')
        parts.append(fragment.text)
        previous = fragment
    return ''.join(parts)


def _same_format(anchor: Fragment, fragment: Fragment, font_size_tolerance: float) -> bool:
    return (
        anchor.style == fragment.style
        and abs(anchor.font_size - fragment.font_size) < font_size_tolerance
    )


def split_segments(
    line: Line,
    gap_threshold: float = HORIZONTAL_GAP_THRESHOLD,
    font_size_tolerance: float = SEGMENT_FONT_SIZE_TOLERANCE,
) -> List[FormattedSegment]:
    """
    Split a line into segments of identical style flags and font size.

    Fragments are re-sorted by x first. A segment's font size is that of its
    first fragment; a fragment whose size differs from it by the tolerance or
    more starts a new segment. The space owed to a gap between two segments is
    carried as `leading_space` on the later one so that inline markup can be
    wrapped around the segment text alone.
    """
    segments: List[FormattedSegment] = []
    current: List[Fragment] = []
    leading_space = False

    for fragment in line.x_sorted:
        if current and _same_format(current[0], fragment, font_size_tolerance):
            current.append(fragment)
            continue

        if current:
            segments.append(_build_segment(current, leading_space, gap_threshold))
            leading_space = needs_space_between(current[-1], fragment, gap_threshold)
        current = [fragment]

    if current:
        segments.append(_build_segment(current, leading_space, gap_threshold))

    return segments


def _build_segment(
    fragments: List[Fragment],
    leading_space: bool,
    gap_threshold: float,
) -> FormattedSegment:
    return FormattedSegment(
        fragments=tuple(fragments),
        style=fragments[0].style,
        text=join_fragment_text(fragments, gap_threshold),
        leading_space=leading_space,
    )
