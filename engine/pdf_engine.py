"""
PDF engine: one open document and the processors that read it.

pdfplumber supplies the page list and page geometry, pikepdf gives object
level access for image hydration, and the text processor re-reads pages with
the pdfminer interpreter.

Usage:
    >>> config = EngineConfig(enable_image_processor=False)
    >>> with PDFEngine('document.pdf', config=config) as engine:
    ...     blocks, _ = engine.text_processor.capture_page(0)
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pdfplumber
import pikepdf

from engine.base_processor import BaseProcessor, ProcessorRegistry
from engine.config import EngineConfig, PageRange
from utils.validation import PdfValidationError, comprehensive_pdf_validation

logger = logging.getLogger(__name__)


class PDFEngine:
    """
    Context manager owning a document's handles and processors.

    Nothing is opened until `__enter__`; leaving the context closes every
    handle and stops the processors, also when an exception is propagating.
    """

    def __init__(self, file_path: str, config: Optional[EngineConfig] = None):
        """
        Raises:
            FileNotFoundError: If `file_path` does not exist
            PdfValidationError: If `config` does not validate
        """
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"PDF file not found: {file_path}")

        self.file_path = file_path
        self.config = config or EngineConfig.default()
        if not self.config.validate():
            raise PdfValidationError("Invalid engine configuration")

        self._plumber = None
        self._pike = None
        self._processors = ProcessorRegistry()
        self._page_count: Optional[int] = None
        self._file_size_mb: Optional[float] = None

    def __enter__(self) -> 'PDFEngine':
        """
        Raises:
            PdfValidationError: If the file fails validation or cannot be opened
        """
        name = Path(self.file_path).name
        try:
            if self.config.validate_on_open:
                self._validate()
            self._plumber = pdfplumber.open(self.file_path)
            self._pike = pikepdf.open(self.file_path)
        except PdfValidationError:
            self.close()
            raise
        except Exception as e:
            logger.error(f"Cannot open {name}: {e}")
            self.close()
            raise PdfValidationError(f"Failed to open PDF: {e}") from e

        self._page_count = len(self._plumber.pages)
        self._file_size_mb = os.path.getsize(self.file_path) / (1024 * 1024)

        try:
            self._start_processors()
        except Exception:
            self.close()
            raise

        logger.info(f"Opened {name}: {self._page_count} pages, {self._file_size_mb:.2f} MB")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _validate(self) -> None:
        report = comprehensive_pdf_validation(self.file_path, self.config.max_file_size_mb)
        for warning in report['warnings']:
            logger.warning(f"{Path(self.file_path).name}: {warning}")
        if not report['is_valid']:
            raise PdfValidationError("; ".join(report['errors']))

    def _start_processors(self) -> None:
        processors: List[BaseProcessor] = []
        if self.config.enable_text_processor:
            from engine.text_processor import TextProcessor
            processors.append(TextProcessor(self, self.config.get_layout_options()))
        if self.config.enable_image_processor:
            from engine.image_processor import ImageProcessor
            processors.append(ImageProcessor(self, self.config.get_image_options()))

        for processor in processors:
            self._processors.register(processor)
        self._processors.initialize_all()

    def close(self) -> None:
        """Stop processors and close both document handles. Idempotent."""
        self._processors.cleanup_all()
        for attr in ('_plumber', '_pike'):
            handle = getattr(self, attr)
            if handle is None:
                continue
            try:
                handle.close()
            except Exception as e:
                logger.warning(f"Closing {type(handle).__name__} failed: {e}")
            setattr(self, attr, None)

    @property
    def is_open(self) -> bool:
        return self._plumber is not None and self._pike is not None

    def _require_open(self) -> None:
        if not self.is_open:
            raise RuntimeError("PDFEngine is closed; use it as a context manager")

    # --- document information ---

    def get_page_count(self) -> int:
        self._require_open()
        return self._page_count

    def get_file_size_mb(self) -> float:
        self._require_open()
        return self._file_size_mb

    def get_page_numbers(self, page_range: Optional[PageRange] = None) -> List[int]:
        """1-based page numbers of `page_range` inside the document; empty when the range misses it"""
        self._require_open()
        return (page_range or PageRange.all_pages()).to_page_numbers(self._page_count)

    def get_page_dimensions(self, page_index: int) -> Tuple[float, float]:
        """
        Width and height in points of a 0-based page.

        Raises:
            IndexError: If the page does not exist
        """
        self._require_open()
        if not 0 <= page_index < self._page_count:
            raise IndexError(f"Page index {page_index} outside 0-{self._page_count - 1}")
        page = self._plumber.pages[page_index]
        return float(page.width), float(page.height)

    # --- handles and processors ---

    @property
    def pdfplumber_document(self):
        self._require_open()
        return self._plumber

    @property
    def pikepdf_document(self) -> pikepdf.Pdf:
        self._require_open()
        return self._pike

    def _processor(self, name: str):
        processor = self._processors.get(name)
        if processor is None:
            raise RuntimeError(f"The {name} processor is disabled or the engine is not open")
        return processor

    @property
    def text_processor(self):
        return self._processor('text')

    @property
    def image_processor(self):
        return self._processor('image')

    @property
    def has_image_processor(self) -> bool:
        processor = self._processors.get('image')
        return processor is not None and processor.is_initialized

    def get_status(self) -> Dict[str, Any]:
        return {
            'is_open': self.is_open,
            'file_path': self.file_path,
            'page_count': self._page_count,
            'file_size_mb': self._file_size_mb,
            'processors': self._processors.processor_names,
            'config': self.config.to_dict(),
        }

    def __repr__(self) -> str:
        state = f"{self._page_count} pages" if self.is_open else "closed"
        return f"PDFEngine({Path(self.file_path).name}, {state})"
