"""
Upload handling for the PDF endpoints.

`handle_pdf_processing` checks an uploaded PDF, parks it in a temporary file
while the endpoint runs, and turns processing errors into HTTP responses.
"""

import asyncio
import logging
import os
import tempfile
from contextlib import contextmanager
from functools import wraps
from typing import Callable, Dict, Iterator, Optional, Tuple, Type

from fastapi import HTTPException, Request, UploadFile

from utils.validation import (
    VALIDATION_CONSTANTS,
    MemoryLimitError,
    PdfValidationError,
    ProcessingTimeoutError,
    validate_file_content,
)

logger = logging.getLogger(__name__)

# exception type -> (status code, detail prefix)
ERROR_STATUS_MAP: Dict[Type[Exception], Tuple[int, str]] = {
    PdfValidationError: (400, "PDF validation failed"),
    ProcessingTimeoutError: (408, "Processing timeout"),
    MemoryLimitError: (507, "Memory limit exceeded"),
}


def _to_http_exception(error: Exception, filename: str) -> HTTPException:
    for error_type, (status_code, prefix) in ERROR_STATUS_MAP.items():
        if isinstance(error, error_type):
            log = logger.warning if status_code == 400 else logger.error
            log(f"{prefix} for {filename}: {error}")
            return HTTPException(status_code=status_code, detail=f"{prefix}: {error}")

    logger.exception(f"Unexpected error processing {filename}: {error}")
    return HTTPException(status_code=500, detail=f"Internal server error during PDF processing: {error}")


async def _read_upload(file: Optional[UploadFile]) -> bytes:
    """
    Raises:
        HTTPException: 400 unless the upload is a readable file named *.pdf with PDF content
    """
    if file is None:
        raise HTTPException(status_code=400, detail="File parameter is required")
    if not (file.filename or "").lower().endswith('.pdf'):
        raise HTTPException(status_code=400, detail="Only PDF files are supported")

    try:
        content = await file.read()
    except Exception as e:
        logger.error(f"Reading upload {file.filename} failed: {e}")
        raise HTTPException(status_code=400, detail=f"Error reading uploaded file: {e}")

    ok, error = validate_file_content(content, max_size_mb=VALIDATION_CONSTANTS['MAX_FILE_SIZE_MB'])
    if not ok:
        logger.warning(f"Rejected upload {file.filename}: {error}")
        raise HTTPException(status_code=400, detail=error)
    return content


@contextmanager
def _temporary_pdf(content: bytes) -> Iterator[str]:
    """Path of a temporary copy of `content`, removed on exit"""
    with tempfile.NamedTemporaryFile(delete=False, suffix='.pdf') as temp_file:
        temp_file.write(content)
    try:
        yield temp_file.name
    finally:
        try:
            os.unlink(temp_file.name)
        except OSError as e:
            logger.warning(f"Could not remove temporary file {temp_file.name}: {e}")


def handle_pdf_processing(func: Callable) -> Callable:
    """
    Decorator for PDF upload endpoints.

    The endpoint takes `request: Request` and `file: UploadFile` as keyword
    arguments and may take `processing_timeout`. It finds the upload's path in
    `request.state.temp_file_path` and runs under `asyncio.wait_for`.
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        request: Optional[Request] = kwargs.get('request')
        if request is None:
            raise HTTPException(
                status_code=500,
                detail="Endpoint decorated with handle_pdf_processing must accept 'request: Request'",
            )

        file: Optional[UploadFile] = kwargs.get('file')
        content = await _read_upload(file)
        timeout = kwargs.get('processing_timeout') or VALIDATION_CONSTANTS['MAX_PROCESSING_TIME_SECONDS']

        with _temporary_pdf(content) as path:
            request.state.temp_file_path = path
            try:
                return await asyncio.wait_for(func(*args, **kwargs), timeout=timeout)
            except asyncio.TimeoutError:
                logger.error(f"{file.filename}: gave up after {timeout}s")
                raise HTTPException(status_code=408, detail=f"PDF processing timed out after {timeout} seconds.")
            except HTTPException:
                raise
            except Exception as e:
                raise _to_http_exception(e, file.filename) from e

    return wrapper
