"""Paragraph Merger

Decides where paragraphs start and flushes each paragraph into exactly one
classified `Block`.

A paragraph is anchored on its first line: the x of that line's leftmost
fragment and its font size. Later lines are compared with the anchor, not
with the line directly above them.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

from constants.layout import (
    FONT_SIZE_SHIFT_THRESHOLD,
    INDENT_SHIFT_THRESHOLD,
    LINE_THRESHOLD,
    PARAGRAPH_GAP_MULTIPLIER,
)
from models.layout_types import Block, FormattedSegment, Fragment, Line
from processors.block_classifier import classify_block
from processors.inline_formatter import format_segments, plain_segments
from processors.line_assembler import assemble_lines
from processors.segment_splitter import split_segments

if TYPE_CHECKING:
    from engine.config import LayoutOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParagraphAnchor:
    """Position and font of a paragraph's first line"""
    x: float
    y: float
    font_size: float

    @classmethod
    def from_line(cls, line: Line) -> 'ParagraphAnchor':
        first = line.first
        return cls(x=first.x, y=line.y, font_size=first.font_size)


@dataclass
class Paragraph:
    """Accumulated lines of one paragraph, in line order"""
    anchor: ParagraphAnchor
    lines: List[Line] = field(default_factory=list)
    segments: List[FormattedSegment] = field(default_factory=list)

    @property
    def first_fragment(self) -> Fragment:
        return self.lines[0].first


def is_new_paragraph(
    lines: Sequence[Line],
    i: int,
    anchor: Optional[ParagraphAnchor],
    paragraph_gap: float = LINE_THRESHOLD * PARAGRAPH_GAP_MULTIPLIER,
    indent_shift_threshold: float = INDENT_SHIFT_THRESHOLD,
    font_size_shift_threshold: float = FONT_SIZE_SHIFT_THRESHOLD,
) -> bool:
    """
    True when line `i` starts a new paragraph.

    The first line always does. Any later line does when its vertical gap to
    the previous line exceeds `paragraph_gap`, or when its left x or font size
    moved away from the running paragraph's anchor by more than the shift
    thresholds.
    """
    if i == 0 or anchor is None:
        return True

    line = lines[i]
    vertical_gap = abs(lines[i - 1].y - line.y)
    if vertical_gap > paragraph_gap:
        return True

    first = line.first
    if abs(first.x - anchor.x) > indent_shift_threshold:
        return True

    if abs(first.font_size - anchor.font_size) > font_size_shift_threshold:
        return True

    return False


def merge_paragraphs(lines: Sequence[Line], options: Optional['LayoutOptions'] = None) -> List[Paragraph]:
    """Group lines into paragraphs and split each line into segments"""
    if options is None:
        from engine.config import LayoutOptions
        options = LayoutOptions()

    paragraphs: List[Paragraph] = []
    current: Optional[Paragraph] = None

    for i, line in enumerate(lines):
        anchor = current.anchor if current is not None else None
        if is_new_paragraph(
            lines,
            i,
            anchor,
            paragraph_gap=options.paragraph_gap,
            indent_shift_threshold=options.indent_shift_threshold,
            font_size_shift_threshold=options.font_size_shift_threshold,
        ):
            current = Paragraph(anchor=ParagraphAnchor.from_line(line))
            paragraphs.append(current)

        current.lines.append(line)
        current.segments.extend(
            split_segments(
                line,
                gap_threshold=options.horizontal_gap_threshold,
                font_size_tolerance=options.segment_font_size_tolerance,
            )
        )

    return paragraphs


def flush_paragraph(paragraph: Paragraph, options: Optional['LayoutOptions'] = None) -> Block:
    """Classify an accumulated paragraph into its block"""
    first = paragraph.first_fragment
    style = paragraph.segments[0].style if paragraph.segments else first.style
    return classify_block(
        plain_text=plain_segments(paragraph.segments),
        formatted_text=format_segments(paragraph.segments),
        x=paragraph.anchor.x,
        y=paragraph.anchor.y,
        font_size=paragraph.anchor.font_size,
        style=style,
        font_name=first.font_name,
        options=options,
    )


def build_block_sequence(
    fragments: Sequence[Fragment],
    options: Optional['LayoutOptions'] = None,
) -> Tuple[Block, ...]:
    """
    Run line assembly, segment splitting, paragraph merging and
    classification over one page's finalized fragments.

    A pure function of its input: the same fragments always give the same
    blocks.
    """
    if options is None:
        from engine.config import LayoutOptions
        options = LayoutOptions()

    lines = assemble_lines(fragments, line_threshold=options.line_threshold)
    paragraphs = merge_paragraphs(lines, options)
    blocks = tuple(flush_paragraph(paragraph, options) for paragraph in paragraphs)

    logger.debug(
        f"Built {len(blocks)} blocks from {len(lines)} lines "
        f"({len(fragments)} fragments)"
    )
    return blocks
