"""
Per-server session state and event wiring.

Every document event runs store -> pointer -> preview as three separate
critical sections. An event for another document may interleave between
them, so the pointer or the preview can briefly reflect a different
document than the one just mutated.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable
from urllib.parse import urlparse

from .completion import CompletionEngine, LinkCandidate, uri_to_path
from .documents import ActiveDocument, ContentChange, DocumentStore
from .errors import DocumentNotFound, PushError, RenderStartError, Unimplemented
from .preview import PreviewBridge

logger = logging.getLogger(__name__)


def _base_dir(uri: str) -> Path | None:
    if urlparse(uri).scheme != "file":
        return None
    return uri_to_path(uri).parent


class MarkdownSession:
    """Open documents, the active-document pointer and the preview bridge."""

    def __init__(
        self,
        preview: PreviewBridge | None = None,
        completion: CompletionEngine | None = None,
    ):
        self.documents = DocumentStore()
        self.active = ActiveDocument()
        self.preview = preview or PreviewBridge()
        self.completion = completion or CompletionEngine()
        self.preview_enabled = False

    async def start_preview(self) -> str | None:
        """Start the preview. On failure preview stays off for the session."""
        try:
            url = await self.preview.start()
        except RenderStartError as e:
            logger.error(f"Preview disabled: {e}")
            self.preview_enabled = False
            return None
        self.preview_enabled = True
        return url

    async def stop_preview(self) -> None:
        self.preview_enabled = False
        await self.preview.stop()

    async def did_open(self, uri: str, text: str, version: int | None = None) -> None:
        await self.documents.open(uri, text, version)
        await self.active.set(uri)
        await self._push(uri, text)

    async def did_change(
        self,
        uri: str,
        changes: Iterable[ContentChange],
        version: int | None = None,
    ) -> None:
        try:
            text = await self.documents.update(uri, changes, version)
        except DocumentNotFound as e:
            logger.warning(f"Ignoring change: {e}")
            return
        except Unimplemented as e:
            logger.error(f"Ignoring change to {uri}: {e}")
            return

        await self.active.set(uri)
        await self._push(uri, text)

    async def did_close(self, uri: str) -> None:
        # The active pointer is left as is; it only provides directory context.
        await self.documents.close(uri)

    async def complete(self, uri: str, line: int, character: int) -> list[LinkCandidate] | None:
        """Link candidates for a cursor in document `uri`.

        Raises:
            DocumentNotFound: If `uri` is not open
            InvalidPosition: If the cursor lies outside the document
            InternalError: If there is no usable active document
        """
        text = await self.documents.get(uri)
        active_uri = await self.active.get()
        return self.completion.complete(text, line, character, active_uri)

    async def _push(self, uri: str, text: str) -> None:
        if not self.preview_enabled:
            return
        try:
            await self.preview.push(text, _base_dir(uri))
        except PushError as e:
            logger.error(f"Preview update failed for {uri}: {e}")
