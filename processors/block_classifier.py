"""Block Classifier

Assigns each merged paragraph exactly one block kind using ordered heuristics:
bullet, numbered, code, heading, quote, then plain paragraph as the default.
Classification never fails; the worst case is a paragraph.

Markers and patterns are matched against the unformatted trimmed text, never
against the markdown produced by the inline formatter.
"""

import logging
import re
from typing import TYPE_CHECKING, Optional

from constants.layout import (
    BULLET_MARKERS,
    CODE_INDENT_THRESHOLD,
    CODE_SCORE_THRESHOLD,
    DEFAULT_HEADING_LEVEL,
    HEADING_LEVEL_THRESHOLDS,
    LIST_INDENT_SIZE,
    MAX_LIST_LEVEL,
    SYNTAX_CHARACTERS,
    SYNTAX_DENSITY_THRESHOLD,
)
from models.layout_types import (
    Block,
    BlockKind,
    BulletKind,
    CodeKind,
    HeadingKind,
    NumberedKind,
    ParagraphKind,
    QuoteKind,
    StyleFlags,
)

if TYPE_CHECKING:
    from engine.config import LayoutOptions

logger = logging.getLogger(__name__)

NUMBERED_ITEM_PATTERN = re.compile(r'^\d+[.)]\s')
QUOTE_MARKER = '>'

_MARKUP_TOKEN = re.compile(r'\*{1,3}|~~|<u>')
_LEADING_MARKUP = re.compile(r'^((?:\*{1,3}|~~|<u>)*)(.)', re.DOTALL)

CODE_PATTERNS = (
    re.compile(r'^(public|private|protected|internal|static|void|class|interface|struct|enum)\s', re.IGNORECASE),
    re.compile(r'^(function|const|let|var|def|import|export|return)\s', re.IGNORECASE),
    re.compile(r'^\s*(if|else|for|while|switch|case|try|catch|finally)\s*[\(\{]', re.IGNORECASE),
    re.compile(r'[{}()\[\];].*[{}()\[\];]'),
    re.compile(r'^\s*//'),
    re.compile(r'^\s*/\*'),
    re.compile(r'^\s*#.*'),
    re.compile(r'=>\s*{'),
    re.compile(r'\w+\s*\(.*\)\s*{'),
    re.compile(r'^\s*<\w+.*>.*</\w+>'),
    re.compile(r'(SELECT|FROM|WHERE|INSERT|UPDATE|DELETE)', re.IGNORECASE),
)

_LANGUAGE_HINTS = (
    ('sql', re.compile(r'\b(SELECT|INSERT|UPDATE|DELETE)\b', re.IGNORECASE)),
    ('html', re.compile(r'^\s*<\w+.*>.*</\w+>')),
    ('python', re.compile(r'^\s*(def\s+\w+\s*\(|class\s+\w+.*:|from\s+[\w.]+\s+import\s|import\s+[\w.]+\s*$)')),
    ('javascript', re.compile(r'^\s*(function|const|let|var|export)\s|=>')),
)


def is_bullet_text(trimmed: str) -> bool:
    """
    The first character is a bullet glyph.

    A leading letter 'o' counts too, so "often" is a bullet item "ften".
    """
    return bool(trimmed) and trimmed[0] in BULLET_MARKERS


def is_numbered_text(trimmed: str) -> bool:
    return bool(NUMBERED_ITEM_PATTERN.match(trimmed))


def code_block_score(
    text: str,
    x: float,
    code_indent_threshold: float = CODE_INDENT_THRESHOLD,
    syntax_density_threshold: float = SYNTAX_DENSITY_THRESHOLD,
) -> int:
    """
    Score how much a paragraph looks like source code.

    +2 when any code-like pattern matches, +1 when syntax characters make up
    more than the density threshold of the text, +1 when the paragraph is
    indented past the code indent, -1 when every letter is upper case.
    """
    score = 0

    if any(pattern.search(text) for pattern in CODE_PATTERNS):
        score += 2

    if text:
        syntax_count = sum(1 for ch in text if ch in SYNTAX_CHARACTERS)
        if syntax_count / len(text) > syntax_density_threshold:
            score += 1

    if x > code_indent_threshold:
        score += 1

    letters = [ch for ch in text if ch.isalpha()]
    if letters and all(ch.isupper() for ch in letters):
        score -= 1

    return score


def detect_code_language(text: str) -> str:
    """Best-effort fence language hint, empty when nothing is recognisable"""
    for language, pattern in _LANGUAGE_HINTS:
        if pattern.search(text):
            return language
    return ""


def heading_level(font_size: float) -> int:
    """Map a font size onto heading levels 1-6"""
    for minimum, level in HEADING_LEVEL_THRESHOLDS:
        if font_size >= minimum:
            return level
    return DEFAULT_HEADING_LEVEL


def list_indent_level(
    x: float,
    list_indent_size: float = LIST_INDENT_SIZE,
    max_list_level: int = MAX_LIST_LEVEL,
) -> int:
    """floor(x / indent size), clamped to [0, max_list_level]"""
    level = int(x // list_indent_size)
    return max(0, min(level, max_list_level))


def strip_bullet_marker(text: str) -> str:
    """
    Remove the bullet glyph and nothing else.

    Whitespace after the glyph is kept, so "• Buy milk" becomes " Buy milk".
    Leading inline markup (a bold bullet renders as "**• Buy**") stays in
    place around the removed glyph.
    """
    trimmed = text.strip()
    match = _LEADING_MARKUP.match(trimmed)
    if not match or match.group(2) not in BULLET_MARKERS:
        return trimmed

    openers = _MARKUP_TOKEN.findall(match.group(1))
    rest = trimmed[match.end():]
    # Drop markup pairs left empty by the removed glyph ("**•** Buy")
    while openers:
        closer = '</u>' if openers[-1] == '<u>' else openers[-1]
        if not rest.startswith(closer):
            break
        openers.pop()
        rest = rest[len(closer):]
    return ''.join(openers) + rest


def classify_block(
    plain_text: str,
    formatted_text: str,
    x: float,
    y: float,
    font_size: float,
    style: StyleFlags = StyleFlags(),
    font_name: str = "",
    options: Optional['LayoutOptions'] = None,
) -> Block:
    """
    Classify one flushed paragraph.

    Args:
        plain_text: Paragraph text without inline markup
        formatted_text: Paragraph text with inline markup applied
        x: Left edge of the paragraph
        y: Baseline of the paragraph's first line
        font_size: Paragraph font size
        style: Style of the paragraph's first segment
        font_name: Font of the paragraph's first fragment
        options: Layout thresholds (defaults when None)
    """
    if options is None:
        from engine.config import LayoutOptions
        options = LayoutOptions()

    trimmed = plain_text.strip()
    text = formatted_text.strip()
    plain = trimmed
    indent_level = 0
    kind: BlockKind

    if is_bullet_text(trimmed):
        kind = BulletKind()
        plain = trimmed[1:]
        text = strip_bullet_marker(formatted_text)
        indent_level = list_indent_level(x, options.list_indent_size, options.max_list_level)
    elif is_numbered_text(trimmed):
        kind = NumberedKind()
        indent_level = list_indent_level(x, options.list_indent_size, options.max_list_level)
    elif options.detect_code_blocks and code_block_score(
        trimmed, x, options.code_indent_threshold, options.syntax_density_threshold
    ) >= options.code_score_threshold:
        kind = CodeKind(lang=detect_code_language(trimmed))
    elif font_size > options.heading_min_font_size and style.is_bold:
        kind = HeadingKind(level=heading_level(font_size))
    elif trimmed.startswith(QUOTE_MARKER):
        kind = QuoteKind()
    else:
        kind = ParagraphKind()

    logger.debug(f"Classified {trimmed[:40]!r} as {kind.type}")

    return Block(
        text=text,
        plain_text=plain,
        x=x,
        y=y,
        font_size=font_size,
        font_name=font_name,
        kind=kind,
        style=style,
        indent_level=indent_level,
    )
