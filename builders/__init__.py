"""
Page-builder sinks

Receivers of the operation sequence emitted by the position merger:

- MarkdownDocumentBuilder: Renders a markdown document with image assets
- RemotePageBuilder: Publishes content blocks to a remote page API
"""

from builders.markdown_builder import MarkdownDocumentBuilder
from builders.remote_page_builder import RemotePageBuilder, RemotePageError

__all__ = [
    'MarkdownDocumentBuilder',
    'RemotePageBuilder',
    'RemotePageError',
]
