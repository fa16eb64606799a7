"""Inline Formatter

Turns segment style flags into inline markdown while preserving the original
run boundaries.
"""

import re
from typing import Iterable

from models.layout_types import FormattedSegment, StyleFlags

UNDERLINE_OPEN = "<u>"
UNDERLINE_CLOSE = "</u>"
STRIKETHROUGH_MARKER = "~~"

_UNDERLINE_TAG = re.compile(r'</?u>')
# Outermost first so that *** is not read as ** followed by *
_EMPHASIS_PAIRS = (
    re.compile(r'~~(.+?)~~'),
    re.compile(r'\*\*\*(.+?)\*\*\*'),
    re.compile(r'\*\*(.+?)\*\*'),
    re.compile(r'\*(.+?)\*'),
)


def format_segment(text: str, style: StyleFlags) -> str:
    """
    Wrap one segment's text in emphasis markers.

    Unstyled text is returned unchanged. Styled text is trimmed inside the
    markers and its surrounding whitespace is kept outside them, because
    markdown does not accept `** bold**`.
    """
    if not style.any():
        return text

    core = text.strip()
    if not core:
        return text

    start = len(text) - len(text.lstrip())
    prefix, suffix = text[:start], text[start + len(core):]

    if style.is_bold and style.is_italic:
        core = f"***{core}***"
    elif style.is_bold:
        core = f"**{core}**"
    elif style.is_italic:
        core = f"*{core}*"

    if style.is_underlined:
        core = f"{UNDERLINE_OPEN}{core}{UNDERLINE_CLOSE}"

    if style.is_strikethrough:
        core = f"{STRIKETHROUGH_MARKER}{core}{STRIKETHROUGH_MARKER}"

    return f"{prefix}{core}{suffix}"


def format_segments(segments: Iterable[FormattedSegment]) -> str:
    """Concatenate formatted segments in line order"""
    return ''.join(
        (' ' if segment.leading_space else '') + format_segment(segment.text, segment.style)
        for segment in segments
    )


def plain_segments(segments: Iterable[FormattedSegment]) -> str:
    """Same concatenation as `format_segments` without any markup"""
    return ''.join(
        (' ' if segment.leading_space else '') + segment.text
        for segment in segments
    )


def strip_inline_markup(text: str) -> str:
    """Remove the markers produced by `format_segment`"""
    text = _UNDERLINE_TAG.sub('', text)
    for pattern in _EMPHASIS_PAIRS:
        text = pattern.sub(r'\1', text)
    return text
