"""
Layout Reconstruction Components

Turns a page's render events into classified blocks and emits them in reading
order:

- FragmentCaptureDevice: PDFMiner device producing text and image render events
- FragmentCollector: Append-only fragment buffer, finalized once per page
- assemble_lines / split_segments: Baseline clustering and style segmentation
- build_block_sequence: Paragraph merging and block classification
- PositionMerger: Block/image interleaving onto a page-builder sink

These differ from utils/ which contains pure, stateless helpers.
"""

from processors.fragment_capture import FragmentCollector, TextRenderEvent, infer_text_style
from processors.capture_device import FragmentCaptureDevice, ImageRenderEvent
from processors.line_assembler import assemble_lines
from processors.segment_splitter import split_segments, join_fragment_text, needs_space_between
from processors.inline_formatter import format_segment, format_segments, strip_inline_markup
from processors.block_classifier import (
    classify_block,
    code_block_score,
    detect_code_language,
    heading_level,
    list_indent_level,
)
from processors.paragraph_merger import build_block_sequence, is_new_paragraph, merge_paragraphs
from processors.position_merger import (
    PageBuilderSink,
    PositionMerger,
    SinkEmissionError,
    merge_by_position,
)

__version__ = "1.0.0"
__all__ = [
    'FragmentCollector',
    'TextRenderEvent',
    'infer_text_style',
    'FragmentCaptureDevice',
    'ImageRenderEvent',
    'assemble_lines',
    'split_segments',
    'join_fragment_text',
    'needs_space_between',
    'format_segment',
    'format_segments',
    'strip_inline_markup',
    'classify_block',
    'code_block_score',
    'detect_code_language',
    'heading_level',
    'list_indent_level',
    'build_block_sequence',
    'is_new_paragraph',
    'merge_paragraphs',
    'PageBuilderSink',
    'PositionMerger',
    'SinkEmissionError',
    'merge_by_position',
]
