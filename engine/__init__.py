"""
PDF Processing Engine

Core engine module coordinating per-page layout capture.
Contains the PDFEngine class, its configuration and its processors.
"""

__version__ = "1.0.0"

from engine.pdf_engine import PDFEngine
from engine.config import (
    EngineConfig,
    ImageProcessorOptions,
    LayoutOptions,
    PageRange,
    ProcessorOptions,
    RemotePageConfig,
)
from engine.base_processor import BaseProcessor, ProcessorRegistry
from engine.text_processor import TextProcessor
from engine.image_processor import ImageProcessor

__all__ = [
    'PDFEngine',
    'EngineConfig',
    'ProcessorOptions',
    'LayoutOptions',
    'ImageProcessorOptions',
    'RemotePageConfig',
    'PageRange',
    'BaseProcessor',
    'ProcessorRegistry',
    'TextProcessor',
    'ImageProcessor',
]
