import asyncio
import json

import pytest
import requests

from builders.remote_page_builder import RemotePageBuilder, RemotePageError
from engine.config import RemotePageConfig

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 8


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.content = json.dumps(payload).encode() if payload is not None else b""
        self._payload = payload

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class FakeSession:
    def __init__(self, responses=None):
        self.headers = {}
        self.requests = []
        self.responses = list(responses or [])

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        return self.responses.pop(0) if self.responses else FakeResponse(payload={})


@pytest.fixture
def config():
    return RemotePageConfig(base_url="https://pages.example", token="secret", workspace_id="ws1")


def test_session_is_authorized(config):
    session = FakeSession()
    RemotePageBuilder(config, session=session)
    assert session.headers["Authorization"] == "Bearer secret"


def test_blocks_in_call_order(config):
    builder = RemotePageBuilder(config, session=FakeSession())
    builder.add_heading("**Title**", 1)
    builder.add_paragraph("Some *text*")
    builder.add_block_quote("Wise words")
    builder.add_code_block("a = *b*", "python")

    assert [block["type"] for block in builder.content_blocks] == [
        "heading", "paragraph", "blockquote", "codeBlock",
    ]
    assert builder.content_blocks[0]["attrs"] == {"level": 1}
    assert builder.content_blocks[0]["content"][0]["text"] == "Title"
    assert builder.content_blocks[1]["content"][0]["content"][0]["text"] == "Some text"
    # Code is kept verbatim
    assert builder.content_blocks[3]["content"][0]["text"] == "a = *b*"
    assert builder.content_blocks[3]["attrs"] == {"language": "python"}


def test_consecutive_list_items_share_a_list(config):
    builder = RemotePageBuilder(config, session=FakeSession())
    builder.add_bullet_item("a")
    builder.add_bullet_item("b", 1)
    builder.add_numbered_item("c")
    builder.append_raw("")
    builder.add_numbered_item("d")

    types = [block["type"] for block in builder.content_blocks]
    assert types == ["bulletList", "orderedList", "orderedList"]
    items = builder.content_blocks[0]["content"]
    assert [item["attrs"]["level"] for item in items] == [0, 1]


def test_image_is_uploaded_before_it_is_appended(config):
    session = FakeSession([FakeResponse(payload={"url": "https://cdn.example/pic.png"})])
    builder = RemotePageBuilder(config, session=session)
    asyncio.run(builder.add_image(PNG_BYTES, "pic.png"))

    method, url, kwargs = session.requests[0]
    assert method == "POST"
    assert url == "https://pages.example/workspace/ws1/attachment"
    assert kwargs["files"]["attachment"][2] == "image/png"
    assert builder.content_blocks == [
        {"type": "image", "attrs": {"src": "https://cdn.example/pic.png", "alt": "pic.png"}}
    ]


def test_create_page_returns_id(config):
    session = FakeSession([FakeResponse(payload={"id": 42})])
    builder = RemotePageBuilder(config, session=session)
    builder.add_paragraph("hello")

    assert builder.create_page("Doc", parent_page_id="p1") == "42"
    method, url, kwargs = session.requests[0]
    assert url == "https://pages.example/workspaces/ws1/pages"
    assert kwargs["json"]["name"] == "Doc"
    assert kwargs["json"]["parent_page_id"] == "p1"
    assert len(kwargs["json"]["content"]) == 1


def test_http_error_raises_remote_page_error(config):
    session = FakeSession([FakeResponse(status_code=401, payload={"error": "nope"})])
    builder = RemotePageBuilder(config, session=session)
    with pytest.raises(RemotePageError) as excinfo:
        builder.create_page("Doc")
    assert excinfo.value.status_code == 401


def test_upload_without_url_is_an_error(config):
    builder = RemotePageBuilder(config, session=FakeSession([FakeResponse(payload={})]))
    with pytest.raises(RemotePageError):
        builder.upload_image(PNG_BYTES, "pic.png")


def test_config_from_env():
    config = RemotePageConfig.from_env({
        "PAGE_API_BASE_URL": "https://pages.example/",
        "PAGE_API_TOKEN": "s3cr3t-token",
        "PAGE_API_WORKSPACE_ID": "w",
        "PAGE_API_TIMEOUT_SECONDS": "5",
    })
    assert config.base_url == "https://pages.example"
    assert config.timeout_seconds == 5.0
    assert "s3cr3t-token" not in repr(config)


def test_config_from_env_requires_settings():
    with pytest.raises(ValueError):
        RemotePageConfig.from_env({"PAGE_API_TOKEN": "t"})


def test_update_page_replaces_content(config):
    session = FakeSession()
    builder = RemotePageBuilder(config, session=session)
    builder.add_paragraph("new text")
    builder.update_page("42")

    method, url, kwargs = session.requests[0]
    assert (method, url) == ("PUT", "https://pages.example/page/42")
    assert kwargs["json"]["content"][0]["type"] == "paragraph"
