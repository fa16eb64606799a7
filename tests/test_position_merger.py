import asyncio

import pytest

from builders.markdown_builder import MarkdownDocumentBuilder
from extractors.markdown_extractor import emit_pages
from models.layout_types import (
    BlockSequence,
    BulletKind,
    CodeKind,
    HeadingKind,
    ListContext,
    NumberedKind,
    PageContent,
    PositionedImage,
    QuoteKind,
)
from processors.position_merger import (
    PageBuilderSink,
    PositionMerger,
    SinkEmissionError,
    emission_text,
    merge_by_position,
)


def _image(y, filename="img.png"):
    return PositionedImage(data=b"\x89PNG\r\n\x1a\n", filename=filename, y=y)


def _emit(sink, blocks, images=()):
    return asyncio.run(PositionMerger(sink).emit(blocks, images))


def test_image_above_block_is_emitted_first(make_block, recording_sink):
    _emit(recording_sink, [make_block("Below", y=650)], [_image(700)])
    assert recording_sink.calls == [("add_image", "img.png"), ("add_paragraph", "Below")]


def test_merge_sorts_by_descending_y(make_block):
    items = merge_by_position(
        [make_block("low", y=100), make_block("high", y=800)],
        [_image(500, "mid.png")],
    )
    assert [item.y for item in items] == [800, 500, 100]


def test_ties_keep_input_order_with_blocks_first(make_block):
    first = make_block("first", y=400)
    second = make_block("second", y=400)
    image = _image(400)
    assert merge_by_position([first, second], [image]) == [first, second, image]


def test_non_list_block_closes_list(make_block, recording_sink):
    blocks = [
        make_block("a", y=700, kind=BulletKind()),
        make_block("b", y=680, kind=BulletKind()),
        make_block("after", y=600),
    ]
    _emit(recording_sink, blocks)
    assert recording_sink.calls == [
        ("add_bullet_item", "a", 0),
        ("add_bullet_item", "b", 0),
        ("append_raw", ""),
        ("add_paragraph", "after"),
    ]


def test_open_list_is_closed_at_end_of_page(make_block, recording_sink):
    _emit(recording_sink, [make_block("only", y=700, kind=BulletKind())])
    assert recording_sink.names == ["add_bullet_item", "append_raw"]


def test_switching_list_type_needs_no_separator(make_block, recording_sink):
    blocks = [
        make_block("dot", y=700, kind=BulletKind()),
        make_block("1. one", y=680, kind=NumberedKind()),
    ]
    _emit(recording_sink, blocks)
    assert recording_sink.calls == [
        ("add_bullet_item", "dot", 0),
        ("add_numbered_item", "one", 0),
        ("append_raw", ""),
    ]


def test_image_closes_list(make_block, recording_sink):
    _emit(recording_sink, [make_block("item", y=700, kind=BulletKind())], [_image(600)])
    assert recording_sink.names == ["add_bullet_item", "append_raw", "add_image"]


def test_block_operations(make_block, recording_sink):
    blocks = [
        make_block("**Title**", y=800, kind=HeadingKind(level=2), plain_text="Title"),
        make_block("> Quoted", y=700, kind=QuoteKind()),
        make_block("x = 1", y=600, kind=CodeKind(lang="python")),
        make_block(" Buy milk", y=500, kind=BulletKind(), indent_level=1),
    ]
    count = _emit(recording_sink, blocks)
    assert recording_sink.calls == [
        ("add_heading", "Title", 2),
        ("add_block_quote", "Quoted"),
        ("add_code_block", "x = 1", "python"),
        ("add_bullet_item", "Buy milk", 1),
        ("append_raw", ""),
    ]
    assert count == 5


def test_blank_blocks_are_skipped(make_block, recording_sink):
    _emit(recording_sink, [make_block("   ", y=700)])
    assert recording_sink.calls == []


def test_emission_text_strips_one_more_bullet_marker(make_block):
    assert emission_text(make_block(" - nested dash", y=0, kind=BulletKind())) == "nested dash"
    assert emission_text(make_block("2) two", y=0, kind=NumberedKind())) == "two"


class _FailingSink:
    def __init__(self, inner):
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def add_paragraph(self, text):
        raise ConnectionError("sink down")


def test_sink_failure_reports_emitted_count(make_block, recording_sink):
    blocks = [
        make_block("Title", y=800, kind=HeadingKind(level=1)),
        make_block("body", y=700),
    ]
    with pytest.raises(SinkEmissionError) as excinfo:
        _emit(_FailingSink(recording_sink), blocks)

    assert excinfo.value.operations_emitted == 1
    assert isinstance(excinfo.value.cause, ConnectionError)
    assert recording_sink.names == ["add_heading"]


def test_list_context_flags_are_exclusive():
    context = ListContext()
    context.enter_bullet()
    context.enter_numbered()
    assert context.in_numbered and not context.in_bullet
    context.enter_bullet()
    assert context.in_bullet and not context.in_numbered
    assert context.close()
    assert not context.close()
    assert not context.is_open


def test_builders_satisfy_sink_protocol(recording_sink):
    assert isinstance(MarkdownDocumentBuilder(), PageBuilderSink)
    assert isinstance(recording_sink, PageBuilderSink)


def test_empty_pages_are_skipped(make_block, recording_sink):
    empty = PageContent(page_number=1, blocks=BlockSequence())
    assert empty.is_empty
    assert asyncio.run(emit_pages([empty], recording_sink)) == 0
    assert recording_sink.calls == []

    page = PageContent(page_number=2, blocks=BlockSequence(blocks=(make_block("body", y=700),)))
    assert not page.is_empty
    assert asyncio.run(emit_pages([empty, page], recording_sink)) == 1
    assert recording_sink.names == ["add_paragraph"]
