"""Position Merger

Interleaves a page's classified blocks with its positioned images and emits
them, in that order, as operations on a page-builder sink.

Items are ordered by descending y. Ties keep their input order with blocks
ahead of images. A `ListContext` tracks whether a bullet or numbered list is
open; any non-list item closes it and a blank separator is emitted first.
"""

import logging
import re
from typing import List, Protocol, Sequence, runtime_checkable

from models.layout_types import (
    Block,
    ListContext,
    PositionedImage,
    PositionedItem,
)

logger = logging.getLogger(__name__)

LIST_SEPARATOR = ""

_BULLET_PREFIXES = ('o ', '• ', '· ', '- ', '* ')
_NUMBER_PREFIX = re.compile(r'^\d+[.)]\s*')


@runtime_checkable
class PageBuilderSink(Protocol):
    """Receiver of the emitted operation sequence"""

    def add_heading(self, text: str, level: int) -> None: ...

    def add_paragraph(self, text: str) -> None: ...

    def add_bullet_item(self, text: str, level: int = 0) -> None: ...

    def add_numbered_item(self, text: str, level: int = 0) -> None: ...

    def add_block_quote(self, text: str) -> None: ...

    def add_code_block(self, text: str, lang: str = "") -> None: ...

    async def add_image(self, data: bytes, filename: str) -> None: ...

    def append_raw(self, text: str) -> None: ...


class SinkEmissionError(Exception):
    """A sink operation failed; carries how many operations were already emitted"""

    def __init__(self, operations_emitted: int, cause: BaseException):
        self.operations_emitted = operations_emitted
        self.cause = cause
        super().__init__(
            f"Sink failed after {operations_emitted} operation(s): {cause}"
        )


def merge_by_position(
    blocks: Sequence[Block],
    images: Sequence[PositionedImage],
) -> List[PositionedItem]:
    """Blocks and images sorted by descending y (stable)"""
    items: List[PositionedItem] = [*blocks, *images]
    return sorted(items, key=lambda item: -item.y)


def emission_text(block: Block) -> str:
    """Text handed to the sink for a block"""
    kind = block.kind.type

    if kind in ('heading', 'code'):
        return block.plain_text
    if kind == 'quote':
        return block.text.lstrip('> ')
    if kind == 'bullet':
        text = block.text.strip()
        for prefix in _BULLET_PREFIXES:
            if text.startswith(prefix):
                return text[len(prefix):]
        return text
    if kind == 'numbered':
        return _NUMBER_PREFIX.sub('', block.text.strip(), count=1)
    return block.text.strip()


class PositionMerger:
    """
    Emits one page's merged content to a sink.

    Operations are issued one at a time in merge order; image uploads are
    awaited before the next operation is sequenced.
    """

    def __init__(self, sink: PageBuilderSink):
        self.sink = sink
        self.operations_emitted = 0

    async def emit(
        self,
        blocks: Sequence[Block],
        images: Sequence[PositionedImage] = (),
    ) -> int:
        """
        Merge and emit. Returns the number of operations issued.

        Raises:
            SinkEmissionError: If the sink raised; no retry is attempted
        """
        context = ListContext()
        start = self.operations_emitted

        try:
            for item in merge_by_position(blocks, images):
                if isinstance(item, PositionedImage):
                    await self._emit_image(item, context)
                else:
                    self._emit_block(item, context)

            self._close_list(context)
        except Exception as e:
            logger.error(f"Sink failed after {self.operations_emitted} operations: {e}")
            raise SinkEmissionError(self.operations_emitted, e) from e

        emitted = self.operations_emitted - start
        logger.debug(f"Emitted {emitted} operations ({len(blocks)} blocks, {len(images)} images)")
        return emitted

    def _call(self, operation, *args) -> None:
        operation(*args)
        self.operations_emitted += 1

    def _close_list(self, context: ListContext) -> None:
        if context.close():
            self._call(self.sink.append_raw, LIST_SEPARATOR)

    async def _emit_image(self, image: PositionedImage, context: ListContext) -> None:
        self._close_list(context)
        await self.sink.add_image(image.data, image.filename)
        self.operations_emitted += 1

    def _emit_block(self, block: Block, context: ListContext) -> None:
        text = emission_text(block)
        if not text.strip():
            return

        kind = block.kind
        if kind.type == 'bullet':
            context.enter_bullet()
            self._call(self.sink.add_bullet_item, text, block.indent_level)
            return
        if kind.type == 'numbered':
            context.enter_numbered()
            self._call(self.sink.add_numbered_item, text, block.indent_level)
            return

        self._close_list(context)

        if kind.type == 'heading':
            self._call(self.sink.add_heading, text, kind.level)
        elif kind.type == 'code':
            self._call(self.sink.add_code_block, text, kind.lang)
        elif kind.type == 'quote':
            self._call(self.sink.add_block_quote, text)
        else:
            self._call(self.sink.add_paragraph, text)

