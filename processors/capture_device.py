"""Fragment Capture Device

PDFMiner device that turns a page's content stream into render events.

Each text show operation (Tj, TJ, ', ") becomes one `TextRenderEvent` handed
to a `FragmentCollector`; each image XObject or inline image becomes an
`ImageRenderEvent` kept for hydration with pikepdf.

Coordinates are MediaBox-relative without any extra work here: the
interpreter's initial page CTM already translates by the MediaBox origin.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from pdfminer.pdfdevice import PDFTextDevice
from pdfminer.pdffont import PDFUnicodeNotDefined
from pdfminer.pdfinterp import PDFResourceManager
from pdfminer.utils import apply_matrix_pt

from processors.fragment_capture import FragmentCollector, TextRenderEvent
from utils.font_mapping import font_style_from_descriptor
from utils.pdf_transforms import (
    calculate_image_bbox_pdf_coords,
    effective_font_size,
    image_placement,
)

logger = logging.getLogger(__name__)

IDENTITY_MATRIX = (1, 0, 0, 1, 0, 0)


@dataclass
class ImageRenderEvent:
    """An image painted on the page, positioned by the CTM in force"""
    name: str
    ctm: Tuple[float, float, float, float, float, float]
    objid: Optional[int] = None  # Indirect object id of the image stream, if any
    genno: Optional[int] = None

    @property
    def placement(self) -> Tuple[float, float, float, float]:
        """(x, y, width, height); y is the CTM translation (bottom edge)"""
        return image_placement(self.ctm)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return calculate_image_bbox_pdf_coords(self.ctm)


@dataclass
class _GlyphRun:
    """Glyphs of one show operation"""
    chars: List[str] = field(default_factory=list)
    start: Optional[Tuple[float, float]] = None
    end_x: float = 0.0
    font_size: float = 0.0

    def add(self, text: str, origin: Tuple[float, float], end_x: float, font_size: float) -> None:
        if self.start is None:
            self.start = origin
            self.font_size = font_size
        self.chars.append(text)
        self.end_x = end_x

    @property
    def text(self) -> str:
        return ''.join(self.chars)


class FragmentCaptureDevice(PDFTextDevice):
    """
    Capture device feeding a `FragmentCollector`.

    `PDFTextDevice` walks the glyphs of every string and advances the text
    line matrix; this device only records where each glyph landed. One show
    operation yields one event whose baseline starts at the first glyph origin
    (rise applied) and whose width runs to the end of the last glyph.
    """

    def __init__(self, rsrcmgr: PDFResourceManager, collector: FragmentCollector, page_num: int):
        super().__init__(rsrcmgr)
        self.collector = collector
        self.page_num = page_num
        self.image_events: List[ImageRenderEvent] = []
        self.undefined_glyphs = 0
        self._ctm_stack: List[Tuple[float, ...]] = []
        self._run: Optional[_GlyphRun] = None

    def begin_figure(self, name, bbox, matrix):
        """Save the CTM; the Form XObject interpreter replaces it while drawing"""
        self._ctm_stack.append(tuple(self.ctm) if self.ctm is not None else IDENTITY_MATRIX)

    def end_figure(self, name):
        if self._ctm_stack:
            self.set_ctm(self._ctm_stack.pop())

    def render_string(self, textstate, seq, ncs, graphicstate):
        font = textstate.font
        if font is None:
            logger.debug(f"Page {self.page_num}: text shown without a font, skipped")
            return

        self._run = _GlyphRun()
        try:
            super().render_string(textstate, seq, ncs, graphicstate)
            run = self._run
        finally:
            self._run = None

        if run.start is None or not run.text:
            return

        descriptor = getattr(font, 'descriptor', None) or {}
        self.collector.record_event(TextRenderEvent(
            text=run.text,
            baseline_x=run.start[0],
            baseline_y=run.start[1],
            font_size=run.font_size,
            font_name=str(getattr(font, 'fontname', '') or ''),
            width=max(0.0, run.end_x - run.start[0]),
            rendering_mode=textstate.render,
            rise=textstate.rise,
            font_weight=descriptor.get('FontWeight'),
            font_style=font_style_from_descriptor(
                getattr(font, 'flags', None),
                getattr(font, 'italic_angle', None),
            ),
        ))

    def render_char(self, matrix, font, fontsize, scaling, rise, cid, ncs, graphicstate):
        try:
            text = font.to_unichr(cid)
        except PDFUnicodeNotDefined:
            self.undefined_glyphs += 1
            text = ''

        adv = font.char_width(cid) * fontsize * scaling
        if self._run is not None:
            origin = apply_matrix_pt(matrix, (0, rise))
            end_x, _ = apply_matrix_pt(matrix, (adv, rise))
            size = effective_font_size(fontsize, matrix) if self._run.start is None else 0.0
            self._run.add(text, origin, end_x, size)
        return adv

    def render_image(self, name, stream):
        image_name = name.decode('latin-1', errors='ignore') if isinstance(name, bytes) else str(name)
        image_name = image_name.lstrip('/')
        ctm = tuple(self.ctm) if self.ctm is not None else IDENTITY_MATRIX

        self.image_events.append(ImageRenderEvent(
            name=image_name,
            ctm=ctm,
            objid=getattr(stream, 'objid', None),
            genno=getattr(stream, 'genno', None),
        ))
        logger.debug(f"Page {self.page_num}: image '{image_name}' at {ctm}")

    def end_page(self, page):
        if self.undefined_glyphs:
            logger.debug(
                f"Page {self.page_num}: {self.undefined_glyphs} glyph(s) without a Unicode mapping"
            )
