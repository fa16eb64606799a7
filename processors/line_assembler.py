"""Line Assembler

Groups reading-order fragments into lines by baseline proximity.

The scan is greedy and online: each fragment is compared with the baseline of
the line being built (the baseline of its first fragment), never with a global
clustering. Baselines that drift slowly down a page can therefore bleed into a
single line; renderer baselines are assumed to be locally stable.
"""

import logging
from typing import List, Sequence

from constants.layout import LINE_THRESHOLD
from models.layout_types import Fragment, Line

logger = logging.getLogger(__name__)


def assemble_lines(
    fragments: Sequence[Fragment],
    line_threshold: float = LINE_THRESHOLD,
) -> List[Line]:
    """
    Cluster fragments into lines.

    Args:
        fragments: Fragments sorted by (y descending, x ascending)
        line_threshold: Baseline distance that starts a new line

    Returns:
        Lines in input order. Every fragment of a line lies strictly within
        `line_threshold` of the line's baseline.
    """
    lines: List[Line] = []
    current: List[Fragment] = []
    current_y = 0.0

    for fragment in fragments:
        if current and abs(fragment.y - current_y) < line_threshold:
            current.append(fragment)
            continue

        if current:
            lines.append(Line(y=current_y, fragments=tuple(current)))
        current = [fragment]
        current_y = fragment.y

    if current:
        lines.append(Line(y=current_y, fragments=tuple(current)))

    logger.debug(f"Assembled {len(lines)} lines from {len(fragments)} fragments")
    return lines
