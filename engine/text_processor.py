"""Text Processor for PDFEngine

Runs the pdfminer interpreter over one page at a time, feeding every text
show operation into a fresh `FragmentCollector` and classifying the captured
fragments into a `BlockSequence`.
"""

import logging
from typing import TYPE_CHECKING, List, Optional, Tuple

from pdfminer.pdfinterp import PDFPageInterpreter, PDFResourceManager
from pdfminer.pdfpage import PDFPage

from engine.base_processor import BaseProcessor
from engine.config import LayoutOptions
from models.layout_types import BlockSequence
from processors.capture_device import FragmentCaptureDevice, ImageRenderEvent
from processors.fragment_capture import FragmentCollector

if TYPE_CHECKING:
    from engine.pdf_engine import PDFEngine

logger = logging.getLogger(__name__)


class TextProcessor(BaseProcessor):
    """
    Text capture processor for PDFEngine.

    Each call to `capture_page` owns its collector and device, so nothing
    leaks from one page into the next.
    """

    name = "text"

    def __init__(self, engine: 'PDFEngine', options: Optional[LayoutOptions] = None):
        super().__init__(engine, options or LayoutOptions())
        self._rsrcmgr: Optional[PDFResourceManager] = None

    def initialize(self) -> None:
        """Share one resource manager (font cache) across the document's pages"""
        super().initialize()
        self._rsrcmgr = PDFResourceManager()

    def cleanup(self) -> None:
        self._rsrcmgr = None
        super().cleanup()

    def capture_page(self, page_index: int) -> Tuple[BlockSequence, List[ImageRenderEvent]]:
        """
        Capture and classify one page.

        Args:
            page_index: 0-based page index

        Returns:
            Tuple of (classified blocks with capture errors, image render events)

        Raises:
            RuntimeError: If the processor is not initialized
            IndexError: If the page does not exist
        """
        self.ensure_ready()

        page_num = page_index + 1
        collector = FragmentCollector(page_num)
        rsrcmgr = self._rsrcmgr or PDFResourceManager()

        with open(self.engine.file_path, 'rb') as fp:
            pdfminer_page = next(iter(PDFPage.get_pages(fp, pagenos=[page_index])), None)
            if pdfminer_page is None:
                raise IndexError(f"Page index {page_index} not found in document")

            device = FragmentCaptureDevice(rsrcmgr, collector, page_num)
            try:
                interpreter = PDFPageInterpreter(rsrcmgr, device)
                interpreter.process_page(pdfminer_page)
            finally:
                device.close()

        blocks = collector.build_blocks(self.options)
        logger.debug(
            f"Page {page_num}: captured {len(collector)} fragments, "
            f"{len(blocks.blocks)} blocks, {len(device.image_events)} images"
        )
        return blocks, device.image_events
