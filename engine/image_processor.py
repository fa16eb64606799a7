"""Image Processor for PDFEngine

Hydrates image render events into `PositionedImage`s: pdfminer says where an
image was painted, pikepdf supplies its bytes.
"""

import io
import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import pikepdf
from pikepdf import PdfImage

from engine.base_processor import BaseProcessor
from engine.config import ImageProcessorOptions
from models.layout_types import PositionedImage
from processors.capture_device import ImageRenderEvent
from utils.image_utils import (
    DEFAULT_EXTENSION,
    FILTER_EXTENSIONS,
    detect_image_mime_type,
    document_id,
    extension_for_filter,
    image_filename,
)

if TYPE_CHECKING:
    from engine.pdf_engine import PDFEngine

logger = logging.getLogger(__name__)

NATIVE_EXTENSIONS = frozenset(FILTER_EXTENSIONS.values())

# (data, filename, mime_type) of an image already decoded for this document
_HydratedImage = Tuple[bytes, str, str]


class ImageProcessor(BaseProcessor):
    """
    Image hydration processor for PDFEngine.

    The same XObject painted several times is decoded once and keeps one
    filename; each placement still becomes its own `PositionedImage`.
    """

    name = "image"

    def __init__(self, engine: 'PDFEngine', options: Optional[ImageProcessorOptions] = None):
        super().__init__(engine, options or ImageProcessorOptions())
        self._image_cache: Dict[str, _HydratedImage] = {}
        self._image_counter = 0
        self._document_id = ""

    def initialize(self) -> None:
        super().initialize()
        self.clear_cache()
        self._image_counter = 0
        self._document_id = document_id(self.engine.file_path)

    def cleanup(self) -> None:
        self.clear_cache()
        super().cleanup()

    def hydrate_images(self, page_index: int, events: List[ImageRenderEvent]) -> List[PositionedImage]:
        """
        Resolve and decode each image event of a page.

        An image that cannot be found or decoded is logged and skipped; the
        remaining images are still returned. Images smaller than
        `min_image_size` points in either dimension are treated as decoration.

        Args:
            page_index: 0-based page index
            events: Image events in paint order

        Returns:
            Positioned images in paint order
        """
        self.ensure_ready()
        images: List[PositionedImage] = []
        page_num = page_index + 1

        for event in events:
            _, _, bound_width, bound_height = event.bounds
            if min(bound_width, bound_height) < self.options.min_image_size:
                logger.debug(
                    f"Page {page_num}: skipping image '{event.name}' "
                    f"({bound_width:.1f}x{bound_height:.1f}pt)"
                )
                continue

            try:
                hydrated = self._hydrate(page_index, event)
            except Exception as e:
                logger.warning(f"Page {page_num}: failed to decode image '{event.name}': {e}")
                continue

            if hydrated is None:
                continue

            data, filename, mime_type = hydrated
            x, y, width, height = event.placement
            images.append(PositionedImage(
                data=data,
                filename=filename,
                x=x,
                y=y,
                width=width,
                height=height,
                page_number=page_num,
                mime_type=mime_type,
            ))

        if images:
            logger.debug(f"Page {page_num}: Hydrated {len(images)} image(s)")
        return images

    def _hydrate(self, page_index: int, event: ImageRenderEvent) -> Optional[_HydratedImage]:
        cache_key = self._cache_key(page_index, event)
        if cache_key in self._image_cache:
            return self._image_cache[cache_key]

        image_obj = self._resolve_image_object(page_index, event)
        if image_obj is None:
            logger.warning(f"Page {page_index + 1}: image '{event.name}' not found in resources")
            return None

        pdf_image = PdfImage(image_obj)
        extension = extension_for_filter(pdf_image.filters)
        buffer = io.BytesIO()

        if extension in NATIVE_EXTENSIONS or not self.options.convert_to_png:
            extension = pdf_image.extract_to(stream=buffer)
        else:
            pdf_image.as_pil_image().save(buffer, format='PNG', optimize=True)
            extension = DEFAULT_EXTENSION

        data = buffer.getvalue()
        size_mb = len(data) / (1024 * 1024)
        if size_mb > self.options.max_image_size_mb:
            logger.warning(
                f"Image '{event.name}' exceeds size limit "
                f"({size_mb:.2f} MB > {self.options.max_image_size_mb} MB)"
            )
            return None

        filename = image_filename(self._image_counter, self._document_id, extension)
        self._image_counter += 1

        result = (data, filename, detect_image_mime_type(data))
        self._image_cache[cache_key] = result
        return result

    @staticmethod
    def _cache_key(page_index: int, event: ImageRenderEvent) -> str:
        if event.objid is not None:
            return f"obj:{event.objid}:{event.genno or 0}"
        return f"{page_index}:{event.name}"

    def _resolve_image_object(self, page_index: int, event: ImageRenderEvent):
        """Find the image stream by object id, then by name in the page's resources"""
        pdf = self.engine.pikepdf_document

        if event.objid is not None:
            try:
                obj = pdf.get_object((event.objid, event.genno or 0))
                if isinstance(obj, pikepdf.Stream) and obj.get('/Subtype') == '/Image':
                    return obj
            except (ValueError, pikepdf.PdfError) as e:
                logger.debug(f"Object {event.objid} not resolvable: {e}")

        page = pdf.pages[page_index]
        return _find_image_by_name(page.obj.get('/Resources'), event.name, depth=0)

    def clear_cache(self) -> None:
        """Clear the image cache"""
        self._image_cache.clear()

    def get_cache_stats(self) -> Dict[str, int]:
        """Get cache statistics"""
        return {
            'cached_images': len(self._image_cache),
            'cache_size_bytes': sum(len(entry[0]) for entry in self._image_cache.values()),
        }


MAX_FORM_DEPTH = 8


def _find_image_by_name(resources, image_name: str, depth: int):
    """Look up an image XObject by name, descending into Form XObject resources"""
    if resources is None or depth > MAX_FORM_DEPTH or '/XObject' not in resources:
        return None

    xobjects = resources.XObject
    for name_variant in (f'/{image_name}', image_name):
        if name_variant in xobjects:
            candidate = xobjects[name_variant]
            if candidate.get('/Subtype') == '/Image':
                return candidate

    for _, xobj in xobjects.items():
        if xobj.get('/Subtype') == '/Form':
            found = _find_image_by_name(xobj.get('/Resources'), image_name, depth + 1)
            if found is not None:
                return found
    return None
