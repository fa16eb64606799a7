"""
PDF Structure Extractor

Rebuilds document structure (headings, lists, quotes, code, paragraphs and
images) from PDF pages and hands it to a page-builder sink.

Uses PDFEngine + TextProcessor/ImageProcessor for capture and PositionMerger
for emission.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from builders.markdown_builder import MarkdownDocumentBuilder
from builders.remote_page_builder import RemotePageBuilder
from engine import EngineConfig, PageRange, PDFEngine
from models.layout_types import BlockSequence, PageContent
from processors.position_merger import PageBuilderSink, PositionMerger
from utils.validation import ResourceGuard

DEFAULT_ASSETS_DIRNAME = "assets"

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    """Outcome of converting one document to markdown"""
    markdown: str
    pages: int
    images: List[str] = field(default_factory=list)
    skipped_pages: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'markdown': self.markdown,
            'pages': self.pages,
            'images': list(self.images),
            'skipped_pages': list(self.skipped_pages),
        }


@dataclass
class BatchConversionResult:
    """Per-document results of `convert_documents`; failures hold the error message"""
    converted: Dict[str, ConversionResult] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def extract_page_blocks(engine: PDFEngine, page_index: int) -> Optional[PageContent]:
    """
    Capture one page into blocks and hydrated images.

    A page whose capture raises is logged and reported as None so the caller
    can skip it; nothing partial is returned for that page.
    """
    page_num = page_index + 1
    try:
        blocks, image_events = engine.text_processor.capture_page(page_index)
        images = []
        if engine.has_image_processor:
            images = engine.image_processor.hydrate_images(page_index, image_events)
    except Exception as e:
        logger.error(f"Page {page_num}: capture failed, skipping page: {e}", exc_info=True)
        return None

    if not blocks.ok:
        logger.debug(f"Page {page_num}: {len(blocks.errors)} fragment(s) dropped during capture")

    return PageContent(page_number=page_num, blocks=blocks, images=tuple(images))


def extract_document_pages(
    file_path: str,
    page_range: Optional[PageRange] = None,
    config: Optional[EngineConfig] = None,
) -> Tuple[List[PageContent], List[int]]:
    """
    Capture every page of the range.

    Returns:
        Tuple of (captured pages in page order, skipped page numbers)

    Raises:
        PdfValidationError: If the document cannot be opened
        ProcessingTimeoutError: If the configured time budget is spent
        MemoryLimitError: If the process grows past its memory budget
    """
    config = config or EngineConfig.default()
    pages: List[PageContent] = []
    skipped: List[int] = []

    with ResourceGuard(max_time_seconds=config.timeout_seconds) as guard:
        with PDFEngine(file_path, config=config) as engine:
            page_numbers = engine.get_page_numbers(page_range)
            logger.info(
                f"Processing PDF: {engine.get_page_count()} total pages, "
                f"extracting {len(page_numbers)} page(s)"
            )

            for page_num in page_numbers:
                guard.check_limits()
                content = extract_page_blocks(engine, page_num - 1)
                if content is None:
                    skipped.append(page_num)
                    continue
                pages.append(content)

    logger.info(f"Extraction complete: {len(pages)} pages captured, {len(skipped)} skipped")
    return pages, skipped


def extract_blocks(
    file_path: str,
    page_range: Optional[PageRange] = None,
    config: Optional[EngineConfig] = None,
) -> List[BlockSequence]:
    """Classified blocks per captured page, without image hydration"""
    config = config or EngineConfig(enable_image_processor=False)
    pages, _ = extract_document_pages(file_path, page_range, config)
    return [page.blocks for page in pages]


async def emit_pages(pages: Iterable[PageContent], sink: PageBuilderSink) -> int:
    """
    Emit pages to a sink in page order. Returns the number of operations issued.

    Raises:
        SinkEmissionError: If the sink fails; emission stops at that page
    """
    merger = PositionMerger(sink)
    for page in pages:
        if page.is_empty:
            logger.debug(f"Page {page.page_number}: nothing to emit")
            continue
        await merger.emit(page.blocks.blocks, page.images)
    return merger.operations_emitted


def convert_pdf_to_markdown(
    file_path: str,
    page_range: Optional[PageRange] = None,
    config: Optional[EngineConfig] = None,
    assets_dir: Optional[str] = None,
) -> ConversionResult:
    """
    Convert a PDF to markdown.

    Args:
        file_path: Path to PDF file
        page_range: Pages to convert (all pages if None)
        config: Engine configuration (defaults if None)
        assets_dir: Directory to write extracted images to (kept in memory only if None)

    Returns:
        ConversionResult with the markdown, page count, image filenames and skipped pages
    """
    pages, skipped = extract_document_pages(file_path, page_range, config)

    builder = MarkdownDocumentBuilder(assets_dir=assets_dir)
    operations = asyncio.run(emit_pages(pages, builder))

    logger.info(
        f"Converted {Path(file_path).name}: {len(pages)} pages, "
        f"{len(builder.images)} images, {operations} operations"
    )
    return ConversionResult(
        markdown=builder.render(),
        pages=len(pages),
        images=builder.image_filenames,
        skipped_pages=skipped,
    )


async def publish_pdf(
    file_path: str,
    builder: RemotePageBuilder,
    page_name: str,
    parent_page_id: Optional[str] = None,
    page_range: Optional[PageRange] = None,
    config: Optional[EngineConfig] = None,
) -> str:
    """
    Convert a PDF into a remote page and return the new page id.

    Raises:
        SinkEmissionError: If an image upload fails during emission
        RemotePageError: If the page cannot be created
    """
    pages, skipped = await asyncio.to_thread(extract_document_pages, file_path, page_range, config)
    if skipped:
        logger.warning(f"{Path(file_path).name}: pages {skipped} skipped")

    await emit_pages(pages, builder)
    return await asyncio.to_thread(builder.create_page, page_name, parent_page_id)


def convert_documents(
    paths: Iterable[str],
    output_dir: Optional[str] = None,
    config: Optional[EngineConfig] = None,
) -> BatchConversionResult:
    """
    Convert several PDFs, one document at a time.

    A document that fails is logged and recorded in `failed`; the remaining
    documents are still converted. With `output_dir`, each document's markdown
    is written to `<output_dir>/<stem>.md` and its images to
    `<output_dir>/assets/`.
    """
    batch = BatchConversionResult()
    assets_dir = os.path.join(output_dir, DEFAULT_ASSETS_DIRNAME) if output_dir else None
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    for path in paths:
        try:
            result = convert_pdf_to_markdown(path, config=config, assets_dir=assets_dir)
            if output_dir:
                target = os.path.join(output_dir, f"{Path(path).stem}.md")
                with open(target, 'w', encoding='utf-8') as f:
                    f.write(result.markdown)
                logger.debug(f"Wrote {target}")
        except Exception as e:
            logger.error(f"Failed to convert {path}: {e}")
            batch.failed[path] = str(e)
            continue

        batch.converted[path] = result

    logger.info(f"Batch complete: {len(batch.converted)} converted, {len(batch.failed)} failed")
    return batch
