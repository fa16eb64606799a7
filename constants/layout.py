"""
Layout Reconstruction Thresholds

Distances are PDF points (1/72 inch) in user space.
"""

# Line assembly
LINE_THRESHOLD = 12.0                # Baseline distance that starts a new line

# Segment splitting
HORIZONTAL_GAP_THRESHOLD = 2.0       # Gap between fragments rendered as one space
SEGMENT_FONT_SIZE_TOLERANCE = 0.5    # Font size change that starts a new segment

# Paragraph merging
PARAGRAPH_GAP_MULTIPLIER = 1.5       # x LINE_THRESHOLD
INDENT_SHIFT_THRESHOLD = 20.0
FONT_SIZE_SHIFT_THRESHOLD = 1.0

# Block classification
CODE_INDENT_THRESHOLD = 50.0
CODE_SCORE_THRESHOLD = 3
SYNTAX_DENSITY_THRESHOLD = 0.10
HEADING_MIN_FONT_SIZE = 12.0
LIST_INDENT_SIZE = 36.0
MAX_LIST_LEVEL = 3

# Heading levels by minimum font size, largest first
HEADING_LEVEL_THRESHOLDS = (
    (28.0, 1),
    (24.0, 2),
    (20.0, 3),
    (16.0, 4),
    (14.0, 5),
)
DEFAULT_HEADING_LEVEL = 6

BULLET_MARKERS = ('o', '•', '·', '-')
SYNTAX_CHARACTERS = frozenset('{}[]();<>=')
