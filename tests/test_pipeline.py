"""End-to-end capture, hydration and emission over generated PDFs"""

import asyncio
import os

import pytest

from builders.remote_page_builder import RemotePageBuilder
from engine import EngineConfig, PageRange, PDFEngine
from engine.config import RemotePageConfig
from extractors.markdown_extractor import (
    convert_documents,
    convert_pdf_to_markdown,
    extract_blocks,
    extract_document_pages,
    publish_pdf,
)
from utils.image_utils import document_id


def test_capture_page_classifies_title_and_body(sample_pdf):
    with PDFEngine(sample_pdf, EngineConfig(enable_image_processor=False)) as engine:
        blocks, image_events = engine.text_processor.capture_page(0)

    assert blocks.ok
    title, body = blocks.blocks
    assert title.kind.type == "heading"
    assert title.kind.level == 2
    assert title.plain_text == "Title"
    assert title.y == pytest.approx(700)
    assert title.font_size == pytest.approx(24)

    assert body.kind.type == "paragraph"
    assert body.text == "Hello world"
    assert body.y == pytest.approx(650)

    assert [event.name for event in image_events] == ["Im1"]


def test_image_is_hydrated_at_its_ctm_position(sample_pdf):
    pages, skipped = extract_document_pages(sample_pdf)

    assert skipped == []
    (image,) = pages[0].images
    assert image.filename == f"pdf_image_0_{document_id(sample_pdf)}.png"
    assert image.mime_type == "image/png"
    assert image.y == pytest.approx(500)
    assert (image.width, image.height) == (pytest.approx(100), pytest.approx(50))


def test_small_images_are_skipped(sample_pdf):
    config = EngineConfig(image_processor_options={"min_image_size": 60})
    pages, _ = extract_document_pages(sample_pdf, config=config)
    assert pages[0].images == ()


def test_markdown_follows_reading_order(pdf_factory):
    path = pdf_factory(extra_page=True)
    result = convert_pdf_to_markdown(path)
    markdown = result.markdown

    assert result.pages == 2
    assert result.skipped_pages == []
    assert len(result.images) == 1
    assert markdown.index("## Title") < markdown.index("Hello world") < markdown.index(result.images[0])
    assert "- Second page item" in markdown


def test_assets_are_written(sample_pdf, tmp_path):
    assets = tmp_path / "out" / "assets"
    result = convert_pdf_to_markdown(sample_pdf, assets_dir=str(assets))
    assert os.listdir(assets) == result.images


def test_page_range_limits_extraction(pdf_factory):
    path = pdf_factory(extra_page=True)
    sequences = extract_blocks(path, PageRange.single_page(2))

    assert len(sequences) == 1
    (item,) = sequences[0].blocks
    assert item.kind.type == "bullet"
    assert item.plain_text.strip() == "Second page item"


def test_batch_isolates_failing_documents(pdf_factory, tmp_path):
    good = pdf_factory("good.pdf", with_image=False)
    missing = str(tmp_path / "missing.pdf")
    out = tmp_path / "out"

    batch = convert_documents([missing, good], output_dir=str(out))

    assert not batch.ok
    assert missing in batch.failed
    assert batch.converted[good].pages == 1
    assert "## Title" in (out / "good.md").read_text(encoding="utf-8")


class _Response:
    def __init__(self, payload):
        self.status_code = 200
        self.content = b"{}"
        self._payload = payload

    def json(self):
        return self._payload

    def raise_for_status(self):
        pass


class _Session:
    def __init__(self, payloads):
        self.headers = {}
        self.requests = []
        self._payloads = list(payloads)

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        return _Response(self._payloads.pop(0))


def test_publish_pdf_uploads_images_then_creates_page(sample_pdf):
    session = _Session([{"url": "https://cdn.example/img.png"}, {"id": "page-1"}])
    config = RemotePageConfig(base_url="https://pages.example", token="t", workspace_id="ws")
    builder = RemotePageBuilder(config, session=session)

    page_id = asyncio.run(publish_pdf(sample_pdf, builder, "Sample"))

    assert page_id == "page-1"
    assert [url.rsplit("/", 1)[-1] for _, url, _ in session.requests] == ["attachment", "pages"]
    content = session.requests[1][2]["json"]["content"]
    assert [block["type"] for block in content] == ["heading", "paragraph", "image"]


def test_engine_reports_geometry_and_status(sample_pdf):
    with PDFEngine(sample_pdf) as engine:
        assert engine.get_page_count() == 1
        assert engine.get_page_dimensions(0) == (612.0, 792.0)
        with pytest.raises(IndexError):
            engine.get_page_dimensions(1)

        events = engine.text_processor.capture_page(0)[1]
        image_processor = engine.image_processor
        image_processor.hydrate_images(0, events)
        image_processor.hydrate_images(0, events)
        assert image_processor.get_cache_stats()["cached_images"] == 1

        status = engine.get_status()
        assert status["is_open"]
        assert set(status["processors"]) == {"text", "image"}

    assert not engine.is_open
    assert image_processor.get_cache_stats()["cached_images"] == 0
    with pytest.raises(RuntimeError):
        engine.get_page_count()


def test_missing_file_is_rejected(tmp_path):
    with pytest.raises(FileNotFoundError):
        PDFEngine(str(tmp_path / "nope.pdf"))
