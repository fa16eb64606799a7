"""PDF Structure Server"""

import asyncio
import logging
import os
import socket
import sys
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from rich.console import Console
from rich.logging import RichHandler

from engine.config import EngineConfig, PageRange
from extractors.markdown_extractor import convert_pdf_to_markdown, extract_blocks
from utils.endpoint_decorators import handle_pdf_processing

API_VERSION = "1.0.0"
ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
DEFAULT_TIMEOUT_SECONDS = 300
MIN_TIMEOUT_SECONDS = 30
MAX_TIMEOUT_SECONDS = 600
PROJECT_LOGGERS = ("main", "rich", "engine", "extractors", "processors", "builders", "utils")

logger = logging.getLogger("rich")

app = FastAPI(
    title="PDF Structure API",
    description="Rebuild document structure (headings, lists, quotes, code, images) from PDF files",
    version=API_VERSION,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def page_range_query(
    start_page: int = Query(1, ge=1, description="First page to process (1-based)"),
    end_page: Optional[int] = Query(None, ge=1, description="Last page to process (1-based); omit for the rest of the document"),
) -> PageRange:
    try:
        return PageRange(start=start_page, end=end_page)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid page range: {e}")


def timeout_query():
    return Query(
        DEFAULT_TIMEOUT_SECONDS,
        ge=MIN_TIMEOUT_SECONDS,
        le=MAX_TIMEOUT_SECONDS,
        description="Give up after this many seconds",
    )


@app.get("/")
async def root():
    return {
        "message": "PDF Structure API",
        "version": API_VERSION,
        "endpoints": {
            "/extract-blocks": "Classified blocks per page",
            "/convert-pdf": "Markdown with images in reading order",
        },
        "block_kinds": ["heading", "bullet", "numbered", "quote", "code", "paragraph"],
    }


@app.get("/health")
async def health_check():
    """Report the versions of the PDF and imaging libraries, 503 if one is missing"""
    try:
        import numpy
        import pdfminer
        import pdfplumber
        import pikepdf
        import PIL
    except ImportError as e:
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": f"Missing dependency: {e}"})

    return {
        "status": "healthy",
        "version": API_VERSION,
        "dependencies": {
            "PIL": PIL.__version__,
            "pdfminer": pdfminer.__version__,
            "pdfplumber": pdfplumber.__version__,
            "pikepdf": pikepdf.__version__,
            "numpy": numpy.__version__,
        },
    }


@app.post("/extract-blocks", response_model=List[List[Dict[str, Any]]])
@handle_pdf_processing
async def extract_pdf_blocks(
    *,
    request: Request,
    file: UploadFile = File(...),
    page_range: PageRange = Depends(page_range_query),
    processing_timeout: Optional[int] = timeout_query(),
):
    """
    Classify the text of each page into structural blocks.

    **Returns:**
    - Array of block lists (one per captured page) in reading order
    - Each block carries its formatted `text`, `plain_text`, position, font size
      and `kind` (`heading` with `level`, `bullet`, `numbered`, `quote`,
      `code` with `lang`, or `paragraph`)

    Pages whose capture fails are left out.
    """
    config = EngineConfig(enable_image_processor=False, timeout_seconds=processing_timeout or DEFAULT_TIMEOUT_SECONDS)
    pages = await asyncio.to_thread(extract_blocks, request.state.temp_file_path, page_range, config)

    logger.info(f"{file.filename}: {sum(len(page.blocks) for page in pages)} blocks on {len(pages)} pages")
    return [[block.model_dump() for block in page.blocks] for page in pages]


@app.post("/convert-pdf")
@handle_pdf_processing
async def convert_pdf(
    *,
    request: Request,
    file: UploadFile = File(...),
    page_range: PageRange = Depends(page_range_query),
    processing_timeout: Optional[int] = timeout_query(),
):
    """
    Convert a PDF to markdown.

    **Returns:**
    - `markdown`: The document, images linked as `assets/<filename>`
    - `pages`: Number of pages converted
    - `images`: Filenames of the extracted images
    - `skipped_pages`: Page numbers whose capture failed
    """
    config = EngineConfig(timeout_seconds=processing_timeout or DEFAULT_TIMEOUT_SECONDS)
    result = await asyncio.to_thread(convert_pdf_to_markdown, request.state.temp_file_path, page_range, config)

    if result.skipped_pages:
        logger.warning(f"{file.filename}: skipped pages {result.skipped_pages}")
    logger.info(f"{file.filename}: {result.pages} pages, {len(result.images)} images")
    return result.to_dict()


class _QuietShutdown(logging.Filter):
    """Drop the tracebacks uvicorn logs when the server is interrupted"""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.exc_info and record.exc_info[0] in (KeyboardInterrupt, asyncio.CancelledError):
            return False
        message = str(record.msg)
        return "CancelledError" not in message and "KeyboardInterrupt" not in message


def _configure_server_logging() -> Console:
    """Route every logger through one RichHandler; project loggers follow LOG_LEVEL"""
    console = Console(force_terminal=True)
    handler = RichHandler(console=console, rich_tracebacks=True, show_time=False, show_path=True)
    handler.addFilter(_QuietShutdown())

    # Third-party libraries stay at WARNING
    logging.basicConfig(level=logging.WARNING, format="%(message)s", handlers=[handler])
    for name in ("uvicorn", "uvicorn.error", "fastapi"):
        logging.getLogger(name).setLevel(logging.INFO)

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    for name in PROJECT_LOGGERS:
        logging.getLogger(name).setLevel(level)
    return console


def _find_free_port(start_port: int = 8000, attempts: int = 100) -> int:
    for port in range(start_port, start_port + attempts):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
            try:
                probe.bind(("localhost", port))
            except OSError:
                continue
        return port
    return start_port


server_console = _configure_server_logging()

if __name__ == "__main__":
    port = int(os.getenv("PORT", 0)) or _find_free_port()
    server_console.print(f"[bold green]PDF Structure API on http://localhost:{port}[/bold green]")
    try:
        uvicorn.run("main:app", host="0.0.0.0", port=port, reload=True, log_config=None)
    except KeyboardInterrupt:
        server_console.print("[bold yellow]Server stopped[/bold yellow]")
        sys.exit(0)
