"""
Font style inference for PDF Content Extraction
Derives bold/italic emphasis from PDF font names and descriptor metadata
"""

import re
from functools import lru_cache
from typing import Optional, Union

BOLD_NAME_MARKERS = ('bold', 'heavy', 'black', 'semibold', 'demibold')
ITALIC_NAME_MARKERS = ('italic', 'oblique', 'slanted')
BOLD_WEIGHT_THRESHOLD = 700

# Font descriptor /Flags bit 7 (PDF 32000-1, table 123)
ITALIC_FLAG = 1 << 6


@lru_cache(maxsize=256)
def normalize_font_name(font_name: str) -> str:
    """Normalize font name by removing PDF subset prefixes and quoting.

    Removes the random 6-character subset tag (``ABCDEF+``) so that fonts from
    different subsets are treated as identical.
    """
    if not font_name:
        return ""

    base_name = font_name.strip().strip('\'"').lstrip('/')
    base_name = re.sub(r'^[A-Z]{6}\+', '', base_name)
    return base_name


@lru_cache(maxsize=256)
def is_bold_font_name(font_name: str) -> bool:
    """Check the font name for a heavy-weight marker"""
    if not font_name:
        return False
    lowered = normalize_font_name(font_name).lower()
    return any(marker in lowered for marker in BOLD_NAME_MARKERS)


@lru_cache(maxsize=256)
def is_italic_font_name(font_name: str) -> bool:
    """Check the font name for a slanted-style marker"""
    if not font_name:
        return False
    lowered = normalize_font_name(font_name).lower()
    return any(marker in lowered for marker in ITALIC_NAME_MARKERS)


def is_bold_weight(font_weight: Optional[Union[int, float, str]]) -> bool:
    """Numeric font weight (descriptor /FontWeight or CSS-style) of 700 or more"""
    if font_weight is None:
        return False
    try:
        return float(font_weight) >= BOLD_WEIGHT_THRESHOLD
    except (TypeError, ValueError):
        return str(font_weight).lower() == 'bold'


def is_italic_style(font_style: Optional[str]) -> bool:
    """Font style metadata names an italic or oblique face"""
    if not font_style:
        return False
    lowered = str(font_style).lower()
    return 'italic' in lowered or 'oblique' in lowered


def font_style_from_descriptor(flags: Optional[int], italic_angle: Optional[float]) -> Optional[str]:
    """Translate descriptor /Flags and /ItalicAngle into a style name"""
    try:
        if flags is not None and int(flags) & ITALIC_FLAG:
            return "italic"
        if italic_angle is not None and abs(float(italic_angle)) > 0.5:
            return "oblique"
    except (TypeError, ValueError):
        pass
    return None
