import pytest

from models.layout_types import FormattedSegment, StyleFlags
from processors.inline_formatter import (
    format_segment,
    format_segments,
    plain_segments,
    strip_inline_markup,
)


def _segment(make_fragment, text, leading_space=False, **style):
    fragment = make_fragment(text, **style)
    return FormattedSegment(
        fragments=(fragment,),
        style=fragment.style,
        text=text,
        leading_space=leading_space,
    )


def test_unstyled_text_is_unchanged():
    assert format_segment("  keep  spacing ", StyleFlags()) == "  keep  spacing "


@pytest.mark.parametrize("style, expected", [
    (StyleFlags(is_bold=True), "**word**"),
    (StyleFlags(is_italic=True), "*word*"),
    (StyleFlags(is_bold=True, is_italic=True), "***word***"),
    (StyleFlags(is_underlined=True), "<u>word</u>"),
    (StyleFlags(is_strikethrough=True), "~~word~~"),
    (StyleFlags(is_bold=True, is_underlined=True, is_strikethrough=True), "~~<u>**word**</u>~~"),
])
def test_wrapping_order(style, expected):
    assert format_segment("word", style) == expected


def test_whitespace_stays_outside_markers():
    assert format_segment(" bold ", StyleFlags(is_bold=True)) == " **bold** "


def test_blank_styled_text_is_not_wrapped():
    assert format_segment("   ", StyleFlags(is_bold=True)) == "   "


def test_segments_join_with_reconstructed_space(make_fragment):
    segments = [
        _segment(make_fragment, "Hello", is_bold=True),
        _segment(make_fragment, "world", leading_space=True),
    ]
    assert format_segments(segments) == "**Hello** world"
    assert plain_segments(segments) == "Hello world"


def test_strip_inline_markup():
    assert strip_inline_markup("~~<u>***x***</u>~~ and **y** or *z*") == "x and y or z"


def test_strip_leaves_plain_text_alone():
    assert strip_inline_markup("3 * 4 = 12") == "3 * 4 = 12"
