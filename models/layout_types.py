"""
Pydantic models for layout-based block reconstruction.

Fragments are the positioned, styled text runs captured from the page renderer.
Lines, segments and blocks are derived from them in a single pass per page.
Coordinates are PDF user space relative to the MediaBox origin (higher y is
higher on the page).
"""

from dataclasses import dataclass
from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class Fragment(BaseModel):
    """One positioned, styled run of text as emitted by the renderer"""
    model_config = ConfigDict(frozen=True)

    text: str
    x: float  # Baseline start
    y: float
    font_size: float
    font_name: str = ""
    width: float = 0.0  # Baseline length
    is_bold: bool = False
    is_italic: bool = False
    is_underlined: bool = False
    is_strikethrough: bool = False

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def style(self) -> 'StyleFlags':
        return StyleFlags(
            is_bold=self.is_bold,
            is_italic=self.is_italic,
            is_underlined=self.is_underlined,
            is_strikethrough=self.is_strikethrough,
        )


class StyleFlags(BaseModel):
    """Inline emphasis flags shared by a segment or a block"""
    model_config = ConfigDict(frozen=True)

    is_bold: bool = False
    is_italic: bool = False
    is_underlined: bool = False
    is_strikethrough: bool = False

    def any(self) -> bool:
        return self.is_bold or self.is_italic or self.is_underlined or self.is_strikethrough


class Line(BaseModel):
    """Fragments clustered by near-identical baseline"""
    model_config = ConfigDict(frozen=True)

    y: float  # Baseline of the first fragment
    fragments: Tuple[Fragment, ...]

    @property
    def x_sorted(self) -> Tuple[Fragment, ...]:
        return tuple(sorted(self.fragments, key=lambda f: f.x))

    @property
    def first(self) -> Fragment:
        """Leftmost fragment of the line"""
        return min(self.fragments, key=lambda f: f.x)


class FormattedSegment(BaseModel):
    """Contiguous run of fragments within a line sharing identical formatting"""
    model_config = ConfigDict(frozen=True)

    fragments: Tuple[Fragment, ...]
    style: StyleFlags
    text: str  # Fragment texts joined with reconstructed spacing
    leading_space: bool = False  # Gap before this segment exceeded the spacing threshold

    @property
    def font_size(self) -> float:
        return self.fragments[0].font_size


# --- Block kinds (closed union, discriminated on `type`) ---

class HeadingKind(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["heading"] = "heading"
    level: int = Field(ge=1, le=6)


class BulletKind(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["bullet"] = "bullet"


class NumberedKind(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["numbered"] = "numbered"


class QuoteKind(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["quote"] = "quote"


class CodeKind(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["code"] = "code"
    lang: str = ""


class ParagraphKind(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["paragraph"] = "paragraph"


BlockKind = Annotated[
    Union[HeadingKind, BulletKind, NumberedKind, QuoteKind, CodeKind, ParagraphKind],
    Field(discriminator="type"),
]


class Block(BaseModel):
    """Classified paragraph-level unit of content"""
    model_config = ConfigDict(frozen=True)

    text: str  # Inline markdown applied, list marker stripped
    plain_text: str  # Same content without inline markup
    x: float
    y: float
    font_size: float
    font_name: str = ""
    kind: BlockKind
    style: StyleFlags = StyleFlags()
    indent_level: int = 0


class PositionedImage(BaseModel):
    """Decoded image placed on a page"""
    model_config = ConfigDict(frozen=True)

    data: bytes
    filename: str
    x: float = 0.0
    y: float = 0.0  # CTM translation, bottom edge of the image
    width: float = 0.0
    height: float = 0.0
    page_number: Optional[int] = None
    mime_type: str = "image/unknown"


PositionedItem = Union[Block, PositionedImage]


class CaptureError(BaseModel):
    """A dropped render event, kept as a value rather than raised"""
    model_config = ConfigDict(frozen=True)

    reason: str
    text: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None


class BlockSequence(BaseModel):
    """Immutable result of classifying one page's captured fragments"""
    model_config = ConfigDict(frozen=True)

    blocks: Tuple[Block, ...] = ()
    errors: Tuple[CaptureError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


class PageContent(BaseModel):
    """Blocks and images for one page, ready for positional merging"""
    model_config = ConfigDict(frozen=True)

    page_number: int
    blocks: BlockSequence
    images: Tuple[PositionedImage, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.blocks.blocks and not self.images


@dataclass
class ListContext:
    """List continuation state for one merge pass. The two flags are exclusive."""
    in_bullet: bool = False
    in_numbered: bool = False

    def enter_bullet(self) -> None:
        self.in_numbered = False
        self.in_bullet = True

    def enter_numbered(self) -> None:
        self.in_bullet = False
        self.in_numbered = True

    def close(self) -> bool:
        """Close any open list. Returns True if a list was open."""
        was_open = self.in_bullet or self.in_numbered
        self.in_bullet = False
        self.in_numbered = False
        return was_open

    @property
    def is_open(self) -> bool:
        return self.in_bullet or self.in_numbered


__all__ = [
    'Fragment',
    'StyleFlags',
    'Line',
    'FormattedSegment',
    'HeadingKind',
    'BulletKind',
    'NumberedKind',
    'QuoteKind',
    'CodeKind',
    'ParagraphKind',
    'BlockKind',
    'Block',
    'PositionedImage',
    'PositionedItem',
    'CaptureError',
    'BlockSequence',
    'PageContent',
    'ListContext',
]
