"""
Page processors owned by a PDFEngine.

A processor works on one page at a time but keeps per-document state (a font
cache, decoded images) between pages. The engine starts its processors once
the document is open and stops them, newest first, when it closes.
"""

import logging
from abc import ABC
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional

if TYPE_CHECKING:
    from engine.pdf_engine import PDFEngine

logger = logging.getLogger(__name__)


class BaseProcessor(ABC):
    """Per-document processor with a start/stop lifecycle"""

    name = "processor"

    def __init__(self, engine: 'PDFEngine', options: Optional[Any] = None):
        self.engine = engine
        self.options = options
        self._ready = False

    def initialize(self) -> None:
        """Set up per-document state. Subclasses extend and call up."""
        if self._ready:
            logger.debug(f"{self.name} processor started twice, ignoring")
            return
        self._ready = True

    def cleanup(self) -> None:
        """Drop per-document state; safe to call more than once"""
        self._ready = False

    @property
    def is_initialized(self) -> bool:
        return self._ready

    def ensure_ready(self) -> None:
        """
        Raises:
            RuntimeError: If the processor was never started or is detached
        """
        if not self._ready or self.engine is None:
            raise RuntimeError(f"{type(self).__name__} used outside an open PDFEngine")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({'ready' if self._ready else 'stopped'})"


class ProcessorRegistry:
    """Processors keyed by name; iteration follows registration order"""

    def __init__(self):
        self._processors: Dict[str, BaseProcessor] = {}

    def register(self, processor: BaseProcessor, name: Optional[str] = None) -> None:
        key = name or processor.name
        if key in self._processors:
            logger.warning(f"Replacing registered processor '{key}'")
            del self._processors[key]
        self._processors[key] = processor

    def get(self, name: str) -> Optional[BaseProcessor]:
        return self._processors.get(name)

    def initialize_all(self) -> None:
        """Start every processor; the first failure propagates"""
        for key, processor in self._processors.items():
            logger.debug(f"Starting {key} processor")
            processor.initialize()

    def cleanup_all(self) -> None:
        """Stop processors newest first, logging and skipping failures"""
        for key in reversed(list(self._processors)):
            try:
                self._processors[key].cleanup()
            except Exception as e:
                logger.warning(f"Stopping {key} processor failed: {e}")

    @property
    def processor_names(self) -> List[str]:
        return list(self._processors)

    def __iter__(self) -> Iterator[BaseProcessor]:
        return iter(self._processors.values())

    def __len__(self) -> int:
        return len(self._processors)

    def __repr__(self) -> str:
        return f"ProcessorRegistry({', '.join(self._processors) or 'empty'})"
