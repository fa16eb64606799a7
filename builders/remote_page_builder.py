"""Remote Page Builder

Page-builder sink that collects JSON content blocks in call order and
publishes them as one page through a remote page API.

Images are uploaded as they are emitted so that each image block already
carries its hosted URL when it is appended; the page itself is created once,
after every block is in place.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests

from engine.config import RemotePageConfig
from processors.inline_formatter import strip_inline_markup
from utils.image_utils import detect_image_mime_type

logger = logging.getLogger(__name__)


class RemotePageError(Exception):
    """The remote page API rejected a request or could not be reached"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


def _text_node(text: str) -> Dict[str, Any]:
    return {"type": "text", "text": strip_inline_markup(text)}


def _paragraph_node(text: str) -> Dict[str, Any]:
    return {"type": "paragraph", "content": [_text_node(text)]}


class RemotePageBuilder:
    """
    Sink producing remote page content blocks.

    Example:
        >>> builder = RemotePageBuilder(RemotePageConfig.from_env())
        >>> builder.add_heading("My Document", 1)
        >>> await builder.add_image(png_bytes, "diagram.png")
        >>> page_id = builder.create_page("My Document")
    """

    def __init__(self, config: RemotePageConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {config.token}",
            "Accept": "application/json",
            **config.extra_headers,
        })
        self.content_blocks: List[Dict[str, Any]] = []
        self._open_list: Optional[Dict[str, Any]] = None

    # --- sink operations ---

    def add_heading(self, text: str, level: int) -> None:
        self._append({
            "type": "heading",
            "attrs": {"level": level},
            "content": [_text_node(text)],
        })

    def add_paragraph(self, text: str) -> None:
        self._append(_paragraph_node(text))

    def add_bullet_item(self, text: str, level: int = 0) -> None:
        self._add_list_item("bulletList", text, level)

    def add_numbered_item(self, text: str, level: int = 0) -> None:
        self._add_list_item("orderedList", text, level)

    def add_block_quote(self, text: str) -> None:
        self._append({"type": "blockquote", "content": [_paragraph_node(text)]})

    def add_code_block(self, text: str, lang: str = "") -> None:
        # Code text is emitted verbatim, never run through the markup stripper
        self._append({
            "type": "codeBlock",
            "attrs": {"language": lang or None},
            "content": [{"type": "text", "text": text}],
        })

    async def add_image(self, data: bytes, filename: str) -> None:
        url = await asyncio.to_thread(self.upload_image, data, filename)
        self._append({"type": "image", "attrs": {"src": url, "alt": filename}})
        logger.debug(f"Image added at position {len(self.content_blocks) - 1}: {filename}")

    def append_raw(self, text: str) -> None:
        self._open_list = None
        if text.strip():
            self._append(_paragraph_node(text))

    # --- remote calls ---

    def upload_image(self, data: bytes, filename: str) -> str:
        """Upload image bytes as an attachment and return the hosted URL"""
        mime_type = detect_image_mime_type(data)
        if mime_type == "image/unknown":
            mime_type = "application/octet-stream"

        result = self._request(
            "POST",
            f"{self.config.base_url}/workspace/{self.config.workspace_id}/attachment",
            files={"attachment": (filename, data, mime_type)},
        )
        url = result.get("url")
        if not url:
            raise RemotePageError(f"Upload of '{filename}' returned no url")
        return url

    def create_page(self, name: str, parent_page_id: Optional[str] = None) -> str:
        """Create a page holding every block added so far and return its id"""
        payload: Dict[str, Any] = {"name": name, "content": self.content_blocks}
        if parent_page_id:
            payload["parent_page_id"] = parent_page_id

        result = self._request(
            "POST",
            f"{self.config.base_url}/workspaces/{self.config.workspace_id}/pages",
            json=payload,
        )
        page_id = result.get("id")
        if not page_id:
            raise RemotePageError(f"Page creation for '{name}' returned no id")

        logger.info(f"Created page: {name} (ID: {page_id}, {len(self.content_blocks)} blocks)")
        return str(page_id)

    def update_page(self, page_id: str) -> None:
        """Replace an existing page's content with the blocks added so far"""
        self._request(
            "PUT",
            f"{self.config.base_url}/page/{page_id}",
            json={"content": self.content_blocks},
        )
        logger.info(f"Updated page {page_id} ({len(self.content_blocks)} blocks)")

    def clear(self) -> None:
        self.content_blocks.clear()
        self._open_list = None

    # --- helpers ---

    def _append(self, block: Dict[str, Any]) -> None:
        self._open_list = None
        self.content_blocks.append(block)

    def _add_list_item(self, list_type: str, text: str, level: int) -> None:
        item = {"type": "listItem", "attrs": {"level": level}, "content": [_paragraph_node(text)]}
        if self._open_list is not None and self._open_list["type"] == list_type:
            self._open_list["content"].append(item)
            return

        self._open_list = {"type": list_type, "content": [item]}
        self.content_blocks.append(self._open_list)

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.session.request(method, url, timeout=self.config.timeout_seconds, **kwargs)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise RemotePageError(f"{method} {url} failed with HTTP {status}", status_code=status) from e
        except requests.RequestException as e:
            raise RemotePageError(f"{method} {url} failed: {e}") from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RemotePageError(f"{method} {url} returned invalid JSON") from e
