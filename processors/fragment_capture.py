"""Fragment Capture

Append-only buffer for text-render events coming from the page renderer.
Nothing is classified here: the collector records fragments, drops malformed
ones as `CaptureError` values, and sorts the buffer into reading order once.
"""

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Tuple, Union

from pydantic import ValidationError

from models.layout_types import BlockSequence, CaptureError, Fragment, StyleFlags
from utils.font_mapping import (
    is_bold_font_name,
    is_bold_weight,
    is_italic_font_name,
    is_italic_style,
    normalize_font_name,
)

if TYPE_CHECKING:
    from engine.config import LayoutOptions

logger = logging.getLogger(__name__)

STRIKETHROUGH_RENDERING_MODE = 3


@dataclass
class TextRenderEvent:
    """One text show operation as reported by the renderer."""
    text: Optional[str]
    baseline_x: float
    baseline_y: float
    font_size: float
    font_name: str = ""
    width: float = 0.0
    rendering_mode: int = 0
    rise: float = 0.0
    font_weight: Optional[Union[int, float, str]] = None  # Descriptor /FontWeight when present
    font_style: Optional[str] = None  # "italic" / "oblique" when the descriptor says so


def infer_text_style(
    font_name: str,
    rendering_mode: int = 0,
    font_weight: Optional[Union[int, float, str]] = None,
    font_style: Optional[str] = None,
) -> StyleFlags:
    """Infer emphasis flags from font name, weight/style metadata and rendering mode."""
    return StyleFlags(
        is_bold=is_bold_font_name(font_name) or is_bold_weight(font_weight),
        is_italic=is_italic_font_name(font_name) or is_italic_style(font_style),
        is_underlined=False,  # Underlines are drawn as paths, not carried by the text event
        is_strikethrough=rendering_mode == STRIKETHROUGH_RENDERING_MODE,
    )


def _is_finite(*values: float) -> bool:
    try:
        return all(math.isfinite(v) for v in values)
    except TypeError:
        return False


class FragmentCollector:
    """
    Two-phase fragment buffer for a single page.

    `record()` only accumulates. `finalize()` sorts the buffer by
    (y descending, x ascending) exactly once and closes the collector;
    later calls return the cached result.
    """

    def __init__(self, page_num: Optional[int] = None):
        self.page_num = page_num
        self._fragments: List[Fragment] = []
        self._errors: List[CaptureError] = []
        self._finalized: Optional[Tuple[Fragment, ...]] = None

    def record(self, fragment: Fragment) -> bool:
        """
        Append a fragment. Returns False when the fragment was dropped.

        Raises:
            RuntimeError: If the collector was already finalized
        """
        if self._finalized is not None:
            raise RuntimeError("FragmentCollector already finalized")

        if fragment.text is None:
            return self._drop("null text", None, fragment.x, fragment.y)

        if not _is_finite(fragment.x, fragment.y, fragment.font_size, fragment.width):
            return self._drop("non-finite geometry", fragment.text, fragment.x, fragment.y)

        self._fragments.append(fragment)
        return True

    def record_event(self, event: TextRenderEvent) -> bool:
        """Build a fragment from a renderer event and record it."""
        if event.text is None:
            return self._drop("null text", None, event.baseline_x, event.baseline_y)

        style = infer_text_style(
            event.font_name,
            rendering_mode=event.rendering_mode,
            font_weight=event.font_weight,
            font_style=event.font_style,
        )
        try:
            fragment = Fragment(
                text=event.text,
                x=event.baseline_x,
                y=event.baseline_y,
                font_size=event.font_size,
                font_name=normalize_font_name(event.font_name),
                width=event.width,
                is_bold=style.is_bold,
                is_italic=style.is_italic,
                is_underlined=style.is_underlined,
                is_strikethrough=style.is_strikethrough,
            )
        except ValidationError as e:
            return self._drop(f"invalid event: {e.error_count()} field error(s)", event.text,
                              None, None)

        return self.record(fragment)

    def _drop(self, reason: str, text: Optional[str], x, y) -> bool:
        x_value = x if isinstance(x, (int, float)) and _is_finite(x) else None
        y_value = y if isinstance(y, (int, float)) and _is_finite(y) else None
        self._errors.append(CaptureError(reason=reason, text=text, x=x_value, y=y_value))
        logger.warning(f"Page {self.page_num}: dropped fragment {text!r} ({reason})")
        return False

    def finalize(self) -> Tuple[Fragment, ...]:
        """Return the captured fragments in reading order."""
        if self._finalized is None:
            self._finalized = tuple(sorted(self._fragments, key=lambda f: (-f.y, f.x)))
            self._fragments = []
            logger.debug(
                f"Page {self.page_num}: finalized {len(self._finalized)} fragments "
                f"({len(self._errors)} dropped)"
            )
        return self._finalized

    @property
    def errors(self) -> Tuple[CaptureError, ...]:
        return tuple(self._errors)

    @property
    def is_finalized(self) -> bool:
        return self._finalized is not None

    def __len__(self) -> int:
        return len(self._finalized) if self._finalized is not None else len(self._fragments)

    def build_blocks(self, options: Optional['LayoutOptions'] = None) -> BlockSequence:
        """
        Finalize (if needed) and classify the page.

        Classification is a pure function of the finalized buffer, so repeated
        calls yield identical sequences.
        """
        from processors.paragraph_merger import build_block_sequence

        fragments = self.finalize()
        blocks = build_block_sequence(fragments, options)
        return BlockSequence(blocks=blocks, errors=self.errors)
