"""Markdown Document Builder

Page-builder sink that renders the emitted operations as a markdown document.
Images are kept in memory and, when an assets directory is given, written
next to the markdown so the relative links resolve.
"""

import asyncio
import logging
import os
import re
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_ASSETS_PREFIX = "assets"
BULLET_INDENT = "  "
NUMBERED_INDENT = "   "


class MarkdownDocumentBuilder:
    """
    Accumulates markdown in call order.

    Numbered items are counted per `(list_id, level)`. A list ends whenever
    raw content is appended (the merger's blank separator) or the list type
    changes; the next numbered item then starts a fresh list at 1.

    Example:
        >>> builder = MarkdownDocumentBuilder()
        >>> builder.add_heading("Intro", 1)
        >>> builder.add_numbered_item("First")
        >>> builder.render()
        '# Intro\\n\\n1. First\\n'
    """

    def __init__(self, assets_dir: Optional[str] = None, assets_prefix: str = DEFAULT_ASSETS_PREFIX):
        self.assets_dir = assets_dir
        self.assets_prefix = assets_prefix.rstrip('/')
        self.images: Dict[str, bytes] = {}
        self._lines: List[str] = []
        self._list_id = 0
        self._list_type: Optional[str] = None
        self._counters: Dict[Tuple[int, int], int] = {}

    # --- sink operations ---

    def add_heading(self, text: str, level: int) -> None:
        level = max(1, min(int(level), 6))
        self._add_block(f"{'#' * level} {text.strip()}")

    def add_paragraph(self, text: str) -> None:
        self._add_block(text)

    def add_bullet_item(self, text: str, level: int = 0) -> None:
        self._start_list_item('bullet')
        self._lines.append(f"{BULLET_INDENT * level}- {text.strip()}")

    def add_numbered_item(self, text: str, level: int = 0) -> None:
        self._start_list_item('numbered')
        key = (self._list_id, level)
        self._counters[key] = self._counters.get(key, 0) + 1
        # A shallower item restarts numbering of the levels below it
        for deeper in [k for k in self._counters if k[0] == self._list_id and k[1] > level]:
            del self._counters[deeper]
        self._lines.append(f"{NUMBERED_INDENT * level}{self._counters[key]}. {text.strip()}")

    def add_block_quote(self, text: str) -> None:
        self._add_block('\n'.join(f"> {line}".rstrip() for line in text.splitlines() or ['']))

    def add_code_block(self, text: str, lang: str = "") -> None:
        self._add_block(f"```{lang}\n{text}\n```")

    async def add_image(self, data: bytes, filename: str) -> None:
        self.images[filename] = data
        if self.assets_dir:
            await asyncio.to_thread(self._write_asset, filename, data)
        self._add_block(f"![{filename}]({self.assets_prefix}/{filename})")

    def append_raw(self, text: str) -> None:
        self._end_list()
        self._lines.append(text)

    # --- output ---

    def render(self) -> str:
        """The markdown document, blank runs collapsed, ending with one newline"""
        markdown = re.sub(r'\n{3,}', '\n\n', '\n'.join(self._lines)).strip()
        return f"{markdown}\n" if markdown else ""

    @property
    def image_filenames(self) -> List[str]:
        return list(self.images)

    def clear(self) -> None:
        self._lines.clear()
        self.images.clear()
        self._counters.clear()
        self._list_id = 0
        self._list_type = None

    # --- helpers ---

    def _ensure_blank_line(self) -> None:
        if self._lines and self._lines[-1] != "":
            self._lines.append("")

    def _add_block(self, text: str) -> None:
        self._end_list()
        self._ensure_blank_line()
        self._lines.append(text)
        self._lines.append("")

    def _start_list_item(self, list_type: str) -> None:
        if self._list_type == list_type:
            return
        self._end_list()
        self._ensure_blank_line()
        self._list_type = list_type

    def _end_list(self) -> None:
        if self._list_type is None:
            return
        self._counters = {k: v for k, v in self._counters.items() if k[0] != self._list_id}
        self._list_id += 1
        self._list_type = None

    def _write_asset(self, filename: str, data: bytes) -> None:
        os.makedirs(self.assets_dir, exist_ok=True)
        path = os.path.join(self.assets_dir, filename)
        with open(path, 'wb') as f:
            f.write(data)
        logger.debug(f"Wrote image asset: {path} ({len(data)} bytes)")
