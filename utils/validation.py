"""
Upload and document checks, and per-document resource limits.

Check functions return `(ok, error_message)` pairs so callers can collect
problems; the exceptions below are raised where a check must stop work.
"""

import logging
import os
import tempfile
import time
from typing import Any, Dict, Optional, Tuple

import psutil

logger = logging.getLogger(__name__)

VALIDATION_CONSTANTS = {
    'PDF_SIGNATURE': b'%PDF',
    'MAX_FILE_SIZE_MB': 50,
    'MAX_PROCESSING_TIME_SECONDS': 300,
    'MAX_MEMORY_USAGE_MB': 1000,
    'MIN_FREE_RESOURCE_MB': 100,
    'SUPPORTED_PDF_VERSIONS': ('1.0', '1.1', '1.2', '1.3', '1.4', '1.5', '1.6', '1.7', '2.0'),
}

CheckResult = Tuple[bool, Optional[str]]
_OK: CheckResult = (True, None)


class PdfValidationError(Exception):
    """The file is not a PDF we can open"""


class ProcessingTimeoutError(Exception):
    """A conversion ran past its time budget"""


class MemoryLimitError(Exception):
    """A conversion grew past its memory budget"""


def _mb(size_bytes: float) -> float:
    return size_bytes / (1024 * 1024)


def _rss_mb() -> float:
    return _mb(psutil.Process().memory_info().rss)


def _check_header(header: bytes) -> CheckResult:
    """%PDF signature required; an unexpected version number only warns"""
    signature = VALIDATION_CONSTANTS['PDF_SIGNATURE']
    if len(header) < len(signature):
        return False, "File too small to be a valid PDF"
    if not header.startswith(signature):
        return False, f"Invalid PDF signature: expected {signature!r}, found {header[:4]!r}"

    version = header[5:8].decode('ascii', errors='replace')
    if len(header) >= 8 and version not in VALIDATION_CONSTANTS['SUPPORTED_PDF_VERSIONS']:
        logger.warning(f"Unexpected PDF version '{version}'")
    return _OK


def _check_size(size_bytes: int, max_size_mb: Optional[float]) -> CheckResult:
    limit = VALIDATION_CONSTANTS['MAX_FILE_SIZE_MB'] if max_size_mb is None else max_size_mb
    if _mb(size_bytes) > limit:
        return False, f"File too large: {_mb(size_bytes):.1f}MB exceeds {limit}MB"
    return _OK


def validate_pdf_signature(file_path: str) -> CheckResult:
    try:
        with open(file_path, 'rb') as f:
            return _check_header(f.read(8))
    except OSError as e:
        return False, f"Cannot read {file_path}: {e.strerror or e}"


def validate_file_size(file_path: str, max_size_mb: Optional[float] = None) -> CheckResult:
    try:
        return _check_size(os.path.getsize(file_path), max_size_mb)
    except OSError as e:
        return False, f"Cannot stat {file_path}: {e.strerror or e}"


def validate_file_content(content: bytes, max_size_mb: Optional[float] = None) -> CheckResult:
    """Check an upload in memory, before it is written to disk"""
    ok, error = _check_size(len(content), max_size_mb)
    if not ok:
        return ok, error
    if len(content) < 4:
        return False, "File too small to be a valid PDF"
    if not content.startswith(VALIDATION_CONSTANTS['PDF_SIGNATURE']):
        return False, "Invalid PDF signature in uploaded content"
    return _OK


def validate_processing_environment() -> CheckResult:
    """Enough free memory and temp disk space to start a conversion"""
    minimum = VALIDATION_CONSTANTS['MIN_FREE_RESOURCE_MB']
    temp_dir = tempfile.gettempdir()
    try:
        free_memory = _mb(psutil.virtual_memory().available)
        free_disk = _mb(psutil.disk_usage(temp_dir).free)
    except (OSError, psutil.Error) as e:
        return False, f"Cannot inspect system resources: {e}"

    if free_memory < minimum:
        return False, f"Only {free_memory:.0f}MB of memory free, {minimum}MB needed"
    if free_disk < minimum:
        return False, f"Only {free_disk:.0f}MB free in {temp_dir}, {minimum}MB needed"
    return _OK


class ResourceGuard:
    """
    Time and memory budget for one conversion.

        >>> with ResourceGuard(max_time_seconds=60) as guard:
        ...     for page in pages:
        ...         guard.check_limits()

    `check_limits()` raises between pages rather than interrupting a page.
    """

    def __init__(self, max_memory_mb: Optional[int] = None, max_time_seconds: Optional[int] = None):
        self.max_memory_mb = max_memory_mb or VALIDATION_CONSTANTS['MAX_MEMORY_USAGE_MB']
        self.max_time_seconds = max_time_seconds or VALIDATION_CONSTANTS['MAX_PROCESSING_TIME_SECONDS']
        self.start_time: Optional[float] = None
        self.start_memory: Optional[float] = None

    def __enter__(self) -> 'ResourceGuard':
        self.start_time = time.time()
        self.start_memory = _rss_mb()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            logger.debug(
                f"Guarded work took {time.time() - self.start_time:.2f}s, "
                f"memory {_rss_mb() - (self.start_memory or 0):+.1f}MB"
            )
        return False

    def check_limits(self) -> None:
        """
        Raises:
            ProcessingTimeoutError: If the time budget is spent
            MemoryLimitError: If the process grew past the memory budget
        """
        if self.start_time is not None:
            elapsed = time.time() - self.start_time
            if elapsed > self.max_time_seconds:
                raise ProcessingTimeoutError(
                    f"Processing took {elapsed:.1f}s, limit is {self.max_time_seconds}s"
                )

        try:
            memory = _rss_mb()
        except psutil.Error as e:
            logger.warning(f"Memory usage unavailable: {e}")
            return
        if memory > self.max_memory_mb:
            raise MemoryLimitError(f"Process uses {memory:.1f}MB, limit is {self.max_memory_mb}MB")


def comprehensive_pdf_validation(file_path: str, max_size_mb: Optional[float] = None) -> Dict[str, Any]:
    """
    Run every file and environment check.

    Returns:
        Dict with `is_valid`, `errors` (all failed checks), `warnings` and `file_info`
    """
    report: Dict[str, Any] = {'is_valid': True, 'errors': [], 'warnings': [], 'file_info': {}}

    if not os.path.exists(file_path):
        report['is_valid'] = False
        report['errors'].append(f"File not found: {file_path}")
        return report

    for ok, error in (
        validate_file_size(file_path, max_size_mb),
        validate_pdf_signature(file_path),
        validate_processing_environment(),
    ):
        if not ok:
            report['is_valid'] = False
            report['errors'].append(error)

    try:
        report['file_info']['size_mb'] = round(_mb(os.path.getsize(file_path)), 2)
    except OSError as e:
        report['warnings'].append(f"Could not read file size: {e}")

    return report
