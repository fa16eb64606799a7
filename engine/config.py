"""
Engine and layout settings.

Options are dataclasses whose defaults come from `constants.layout`; the
engine keeps per-processor options as plain dicts so callers (the HTTP layer,
tests) can pass partial overrides.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from constants.layout import (
    CODE_INDENT_THRESHOLD,
    CODE_SCORE_THRESHOLD,
    FONT_SIZE_SHIFT_THRESHOLD,
    HEADING_MIN_FONT_SIZE,
    HORIZONTAL_GAP_THRESHOLD,
    INDENT_SHIFT_THRESHOLD,
    LINE_THRESHOLD,
    LIST_INDENT_SIZE,
    MAX_LIST_LEVEL,
    PARAGRAPH_GAP_MULTIPLIER,
    SEGMENT_FONT_SIZE_TOLERANCE,
    SYNTAX_DENSITY_THRESHOLD,
)

logger = logging.getLogger(__name__)

MIN_TIMEOUT_SECONDS = 30


def _known_fields(cls, data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Keep the keys `cls` declares, warn about the rest"""
    names = {f.name for f in fields(cls)}
    kept = {}
    for key, value in (data or {}).items():
        if key not in names:
            logger.warning(f"Ignoring unknown {cls.__name__} key '{key}'")
            continue
        kept[key] = value
    return kept


@dataclass
class ProcessorOptions:
    """Settings shared by every processor"""
    enabled: bool = True
    timeout_seconds: Optional[int] = None  # Per-processor override of the engine timeout

    def validate(self) -> bool:
        if self.timeout_seconds is not None and self.timeout_seconds < 0:
            logger.error(f"{type(self).__name__}.timeout_seconds is negative")
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ProcessorOptions':
        return cls(**_known_fields(cls, data))


@dataclass
class LayoutOptions(ProcessorOptions):
    """
    Thresholds driving line, segment and paragraph reconstruction
    and block classification.
    """
    line_threshold: float = LINE_THRESHOLD  # Baseline distance that starts a new line
    horizontal_gap_threshold: float = HORIZONTAL_GAP_THRESHOLD  # Gap rendered as a space
    paragraph_gap_multiplier: float = PARAGRAPH_GAP_MULTIPLIER  # x line_threshold
    indent_shift_threshold: float = INDENT_SHIFT_THRESHOLD
    font_size_shift_threshold: float = FONT_SIZE_SHIFT_THRESHOLD
    segment_font_size_tolerance: float = SEGMENT_FONT_SIZE_TOLERANCE

    # Classification
    detect_code_blocks: bool = True
    code_indent_threshold: float = CODE_INDENT_THRESHOLD
    code_score_threshold: int = CODE_SCORE_THRESHOLD
    syntax_density_threshold: float = SYNTAX_DENSITY_THRESHOLD
    list_indent_size: float = LIST_INDENT_SIZE
    max_list_level: int = MAX_LIST_LEVEL
    heading_min_font_size: float = HEADING_MIN_FONT_SIZE

    def validate(self) -> bool:
        if not super().validate():
            return False

        for name in ('line_threshold', 'paragraph_gap_multiplier', 'list_indent_size'):
            if getattr(self, name) <= 0:
                logger.error(f"{name} must be positive")
                return False

        if self.max_list_level < 0:
            logger.error("max_list_level must be non-negative")
            return False

        if not 0 <= self.syntax_density_threshold <= 1:
            logger.error("syntax_density_threshold must be between 0 and 1")
            return False

        return True

    @property
    def paragraph_gap(self) -> float:
        """Vertical gap above which consecutive lines start a new paragraph."""
        return self.line_threshold * self.paragraph_gap_multiplier


@dataclass
class ImageProcessorOptions(ProcessorOptions):
    """Configuration options for image hydration"""
    convert_to_png: bool = True  # Re-encode streams that are not JPEG/JPX
    max_image_size_mb: float = 10.0
    min_image_size: float = 2.0  # Points; smaller images are decoration

    def validate(self) -> bool:
        if not super().validate():
            return False
        if self.max_image_size_mb <= 0:
            logger.error("max_image_size_mb must be positive")
            return False
        if self.min_image_size < 0:
            logger.error("min_image_size must be non-negative")
            return False
        return True


@dataclass
class EngineConfig:
    """
    Everything a `PDFEngine` needs to open a document.

    `layout_options` and `image_processor_options` are partial dicts merged
    over the option defaults:

        >>> EngineConfig(enable_image_processor=False, layout_options={"line_threshold": 8})
    """
    enable_text_processor: bool = True
    enable_image_processor: bool = True

    layout_options: Optional[Dict[str, Any]] = None
    image_processor_options: Optional[Dict[str, Any]] = None

    timeout_seconds: int = 300  # Whole-document time budget
    max_file_size_mb: int = 50
    validate_on_open: bool = True
    log_level: str = "INFO"

    def validate(self) -> bool:
        """Log the first problem found and return False, or return True"""
        problems = []
        if self.timeout_seconds < MIN_TIMEOUT_SECONDS:
            problems.append(f"timeout_seconds below {MIN_TIMEOUT_SECONDS}")
        if self.max_file_size_mb < 1:
            problems.append("max_file_size_mb below 1")
        if not (self.enable_text_processor or self.enable_image_processor):
            problems.append("no processor enabled")

        if problems:
            logger.error(f"Invalid engine configuration: {problems[0]}")
            return False

        return self.get_layout_options().validate() and self.get_image_options().validate()

    def get_layout_options(self) -> LayoutOptions:
        return LayoutOptions.from_dict(self.layout_options)

    def get_image_options(self) -> ImageProcessorOptions:
        return ImageProcessorOptions.from_dict(self.image_processor_options)

    def to_dict(self) -> Dict[str, Any]:
        """Fully expanded settings, option dicts included"""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['layout_options'] = self.get_layout_options().to_dict()
        data['image_processor_options'] = self.get_image_options().to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineConfig':
        return cls(**_known_fields(cls, data))

    @classmethod
    def default(cls) -> 'EngineConfig':
        return cls()

    def __repr__(self) -> str:
        enabled = [name for name, on in (('text', self.enable_text_processor),
                                         ('image', self.enable_image_processor)) if on]
        return f"EngineConfig(processors={enabled}, timeout={self.timeout_seconds}s)"


@dataclass
class RemotePageConfig:
    """
    Connection settings for the remote page API.

    Read from the environment with `from_env()`:
        PAGE_API_BASE_URL, PAGE_API_TOKEN, PAGE_API_WORKSPACE_ID,
        PAGE_API_TIMEOUT_SECONDS
    """
    base_url: str
    token: str
    workspace_id: str
    timeout_seconds: float = 60.0
    extra_headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> 'RemotePageConfig':
        env = os.environ if environ is None else environ
        missing = [
            name for name in ('PAGE_API_BASE_URL', 'PAGE_API_TOKEN', 'PAGE_API_WORKSPACE_ID')
            if not env.get(name)
        ]
        if missing:
            raise ValueError(f"Missing remote page settings: {', '.join(missing)}")

        return cls(
            base_url=env['PAGE_API_BASE_URL'].rstrip('/'),
            token=env['PAGE_API_TOKEN'],
            workspace_id=env['PAGE_API_WORKSPACE_ID'],
            timeout_seconds=float(env.get('PAGE_API_TIMEOUT_SECONDS', 60.0)),
        )

    def __repr__(self) -> str:
        # Never print the token
        return f"RemotePageConfig(base_url={self.base_url!r}, workspace_id={self.workspace_id!r})"


@dataclass
class PageRange:
    """
    Inclusive 1-based page span; `end=None` runs to the last page.

        >>> PageRange(start=2, end=5).to_page_numbers(10)
        [2, 3, 4, 5]
    """
    start: int
    end: Optional[int] = None

    def __post_init__(self):
        if self.start < 1:
            raise ValueError(f"start page must be >= 1, got {self.start}")
        if self.end is not None and self.end < self.start:
            raise ValueError(f"end page ({self.end}) is before start page ({self.start})")

    def to_page_numbers(self, total_pages: int) -> List[int]:
        """Pages of the span that exist in a document of `total_pages` pages"""
        last = total_pages if self.end is None else min(self.end, total_pages)
        return list(range(self.start, last + 1))

    @classmethod
    def all_pages(cls) -> 'PageRange':
        return cls(start=1)

    @classmethod
    def single_page(cls, page_num: int) -> 'PageRange':
        return cls(start=page_num, end=page_num)

    def __repr__(self) -> str:
        if self.end is None:
            return f"PageRange({self.start}-)"
        if self.end == self.start:
            return f"PageRange({self.start})"
        return f"PageRange({self.start}-{self.end})"
