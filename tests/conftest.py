import pikepdf
import pytest
from pikepdf import Dictionary, Name

from models.layout_types import Block, Fragment, ParagraphKind, StyleFlags


@pytest.fixture
def make_fragment():
    """Factory for fragments; width defaults to 6 points per character"""
    def _make(text, x=0.0, y=700.0, font_size=12.0, width=None, font_name="Helvetica", **style):
        return Fragment(
            text=text,
            x=x,
            y=y,
            font_size=font_size,
            font_name=font_name,
            width=len(text) * 6.0 if width is None else width,
            **style,
        )
    return _make


@pytest.fixture
def make_block():
    def _make(text, y, kind=None, plain_text=None, x=0.0, font_size=12.0, indent_level=0, style=None):
        return Block(
            text=text,
            plain_text=text if plain_text is None else plain_text,
            x=x,
            y=y,
            font_size=font_size,
            kind=kind or ParagraphKind(),
            style=style or StyleFlags(),
            indent_level=indent_level,
        )
    return _make


class RecordingSink:
    """Page-builder sink that records every call"""

    def __init__(self):
        self.calls = []

    def add_heading(self, text, level):
        self.calls.append(("add_heading", text, level))

    def add_paragraph(self, text):
        self.calls.append(("add_paragraph", text))

    def add_bullet_item(self, text, level=0):
        self.calls.append(("add_bullet_item", text, level))

    def add_numbered_item(self, text, level=0):
        self.calls.append(("add_numbered_item", text, level))

    def add_block_quote(self, text):
        self.calls.append(("add_block_quote", text))

    def add_code_block(self, text, lang=""):
        self.calls.append(("add_code_block", text, lang))

    async def add_image(self, data, filename):
        self.calls.append(("add_image", filename))

    def append_raw(self, text):
        self.calls.append(("append_raw", text))

    @property
    def names(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def recording_sink():
    return RecordingSink()


# 2x2 RGB pixels: red, green, blue, white
RGB_PIXELS = bytes([255, 0, 0, 0, 255, 0, 0, 0, 255, 255, 255, 255])


def write_sample_pdf(path, with_image=True, extra_page=False):
    """
    One page with a bold 24pt title at y=700, a 12pt body line at y=650 and,
    optionally, a 2x2 RGB image painted 100x50pt at (72, 500).
    """
    pdf = pikepdf.new()
    regular = pdf.make_indirect(Dictionary(
        Type=Name.Font, Subtype=Name.Type1, BaseFont=Name('/Helvetica'),
    ))
    bold = pdf.make_indirect(Dictionary(
        Type=Name.Font, Subtype=Name.Type1, BaseFont=Name('/Helvetica-Bold'),
    ))
    resources = Dictionary(Font=Dictionary(F1=regular, F2=bold))

    content = (
        b"BT /F2 24 Tf 72 700 Td (Title) Tj ET\n"
        b"BT /F1 12 Tf 72 650 Td (Hello world) Tj ET\n"
    )
    if with_image:
        image = pikepdf.Stream(pdf, RGB_PIXELS)
        image[Name.Type] = Name.XObject
        image[Name.Subtype] = Name.Image
        image[Name.Width] = 2
        image[Name.Height] = 2
        image[Name.ColorSpace] = Name.DeviceRGB
        image[Name.BitsPerComponent] = 8
        resources[Name.XObject] = Dictionary(Im1=image)
        content += b"q 100 0 0 50 72 500 cm /Im1 Do Q\n"

    page = pdf.add_blank_page(page_size=(612, 792))
    page.obj[Name.Resources] = resources
    page.obj[Name.Contents] = pikepdf.Stream(pdf, content)

    if extra_page:
        second = pdf.add_blank_page(page_size=(612, 792))
        second.obj[Name.Resources] = Dictionary(Font=Dictionary(F1=regular))
        second.obj[Name.Contents] = pikepdf.Stream(pdf, b"BT /F1 12 Tf 72 700 Td (- Second page item) Tj ET\n")

    pdf.save(str(path))
    return str(path)


@pytest.fixture
def pdf_factory(tmp_path):
    """Writes sample PDFs into the test's temporary directory"""
    def _write(name="sample.pdf", **kwargs):
        return write_sample_pdf(tmp_path / name, **kwargs)
    return _write


@pytest.fixture
def sample_pdf(pdf_factory):
    return pdf_factory()
