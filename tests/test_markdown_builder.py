import asyncio

from builders.markdown_builder import MarkdownDocumentBuilder


def test_headings_are_clamped_to_six_levels():
    builder = MarkdownDocumentBuilder()
    builder.add_heading("Intro", 1)
    builder.add_heading("Deep", 9)
    assert builder.render() == "# Intro\n\n###### Deep\n"


def test_nested_bullets():
    builder = MarkdownDocumentBuilder()
    builder.add_bullet_item("a")
    builder.add_bullet_item("b", 1)
    assert builder.render() == "- a\n  - b\n"


def test_numbering_restarts_after_list_separator():
    builder = MarkdownDocumentBuilder()
    builder.add_numbered_item("a")
    builder.add_numbered_item("b")
    builder.append_raw("")
    builder.add_numbered_item("c")
    assert builder.render() == "1. a\n2. b\n\n1. c\n"


def test_numbering_per_level():
    builder = MarkdownDocumentBuilder()
    builder.add_numbered_item("a", 0)
    builder.add_numbered_item("b", 1)
    builder.add_numbered_item("c", 1)
    builder.add_numbered_item("d", 0)
    builder.add_numbered_item("e", 1)
    assert builder.render() == "1. a\n   1. b\n   2. c\n2. d\n   1. e\n"


def test_paragraph_after_list_is_separated():
    builder = MarkdownDocumentBuilder()
    builder.add_bullet_item("item")
    builder.add_paragraph("text")
    assert builder.render() == "- item\n\ntext\n"


def test_quote_and_code():
    builder = MarkdownDocumentBuilder()
    builder.add_block_quote("line one\nline two")
    builder.add_code_block("x = 1", "python")
    assert builder.render() == "> line one\n> line two\n\n```python\nx = 1\n```\n"


def test_images_are_linked_and_written(tmp_path):
    assets = tmp_path / "assets"
    builder = MarkdownDocumentBuilder(assets_dir=str(assets))
    asyncio.run(builder.add_image(b"data", "pic.png"))

    assert builder.render() == "![pic.png](assets/pic.png)\n"
    assert builder.image_filenames == ["pic.png"]
    assert (assets / "pic.png").read_bytes() == b"data"


def test_images_stay_in_memory_without_assets_dir():
    builder = MarkdownDocumentBuilder()
    asyncio.run(builder.add_image(b"data", "pic.png"))
    assert builder.images == {"pic.png": b"data"}


def test_empty_document_renders_empty():
    assert MarkdownDocumentBuilder().render() == ""


def test_clear():
    builder = MarkdownDocumentBuilder()
    builder.add_numbered_item("a")
    builder.clear()
    builder.add_numbered_item("b")
    assert builder.render() == "1. b\n"
