"""
Live browser preview of the active document.

Provides:
- PreviewBridge: ordered delivery of document text to the preview
- PreviewServer: aiohttp page + websocket transport
- Renderers: markdown-it-py built-in, or an external command
"""

from .bridge import PreviewBridge
from .render import ExternalRenderer, MarkdownItRenderer, create_renderer
from .server import PreviewServer

__all__ = ["PreviewBridge", "PreviewServer", "ExternalRenderer", "MarkdownItRenderer", "create_renderer"]
