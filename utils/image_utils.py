"""
Image helpers for hydrated PDF images
Format sniffing, filename extensions and stable document ids
"""

import hashlib
import io
import os

from PIL import Image

JP2_SIGNATURE = b'\x00\x00\x00\x0cjP  \r\n\x87\n'
DOCUMENT_ID_LENGTH = 8

# Stream filter -> extension of the bytes we keep
FILTER_EXTENSIONS = {
    '/DCTDecode': '.jpg',
    '/JPXDecode': '.jp2',
}
DEFAULT_EXTENSION = '.png'


def detect_image_mime_type(img_bytes: bytes) -> str:
    """Detect MIME type from image bytes."""
    try:
        if not img_bytes or len(img_bytes) < 8:
            return "image/unknown"

        if img_bytes[:8] == b'\x89PNG\r\n\x1a\n':
            return "image/png"
        elif img_bytes[:3] == b'\xff\xd8\xff':
            return "image/jpeg"
        elif img_bytes[:12] == JP2_SIGNATURE:
            return "image/jp2"
        elif img_bytes[:6] in (b'GIF87a', b'GIF89a'):
            return "image/gif"

        # Fallback to PIL
        img = Image.open(io.BytesIO(img_bytes))
        format_name = img.format.lower() if img.format else 'unknown'
        return f"image/{format_name}"

    except Exception:
        return "image/unknown"


def extension_for_filter(stream_filter) -> str:
    """
    File extension for an image stream's /Filter (a name or a filter chain).

    The last filter of a chain decides the native image format.
    """
    if isinstance(stream_filter, (list, tuple)):
        stream_filter = stream_filter[-1] if stream_filter else None
    if stream_filter is None:
        return DEFAULT_EXTENSION
    return FILTER_EXTENSIONS.get(str(stream_filter), DEFAULT_EXTENSION)


def document_id(file_path: str) -> str:
    """Short id that stays the same for the same source path"""
    normalized = os.path.abspath(file_path)
    return hashlib.sha1(normalized.encode('utf-8')).hexdigest()[:DOCUMENT_ID_LENGTH]


def image_filename(index: int, doc_id: str, extension: str) -> str:
    return f"pdf_image_{index}_{doc_id}{extension}"
