"""
In-memory state for the documents a client has open.

This module provides:
- Document / ContentChange dataclasses
- DocumentStore: URI -> Document registry behind its own lock
- ActiveDocument: the most recently opened/changed URI, behind a separate lock

The two locks are independent. A caller that mutates the store and then
moves the pointer runs two critical sections, not one.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable

from .errors import DocumentNotFound, Unimplemented

logger = logging.getLogger(__name__)

# ((start_line, start_character), (end_line, end_character))
TextRange = tuple[tuple[int, int], tuple[int, int]]


@dataclass(frozen=True)
class ContentChange:
    """A single edit from a didChange notification.

    `range is None` means the edit carries the whole new text.
    """

    text: str
    range: TextRange | None = None

    @property
    def is_full(self) -> bool:
        return self.range is None


@dataclass
class Document:
    """One open file's text."""

    uri: str
    content: str
    version: int | None = None

    def apply(self, changes: Iterable[ContentChange]) -> str:
        """Fold `changes` onto the content, in order.

        Whole-text edits replace the content, so a batch of them leaves the
        last edit's text. Range edits are rejected: the server advertises
        full-document sync only.
        """
        content = self.content
        for change in changes:
            if not change.is_full:
                raise Unimplemented("Incremental (range) document sync is not supported")
            content = change.text
        self.content = content
        return content


@dataclass
class DocumentStore:
    """Registry of open documents, keyed by URI."""

    _documents: dict[str, Document] = field(default_factory=dict)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def open(self, uri: str, text: str, version: int | None = None) -> None:
        """Add a document. Re-opening an open URI overwrites it."""
        async with self._lock:
            if uri in self._documents:
                logger.debug(f"Re-opened {uri}, overwriting content")
            self._documents[uri] = Document(uri=uri, content=text, version=version)

    async def update(
        self,
        uri: str,
        changes: Iterable[ContentChange],
        version: int | None = None,
    ) -> str:
        """Apply changes to an open document and return its new text."""
        async with self._lock:
            document = self._documents.get(uri)
            if document is None:
                raise DocumentNotFound(uri)
            content = document.apply(list(changes))
            if version is not None:
                document.version = version
            return content

    async def close(self, uri: str) -> None:
        """Forget a document. Closing an unknown URI does nothing."""
        async with self._lock:
            self._documents.pop(uri, None)

    async def get(self, uri: str) -> str:
        """Return the current text of an open document."""
        async with self._lock:
            document = self._documents.get(uri)
            if document is None:
                raise DocumentNotFound(uri)
            return document.content

    def __contains__(self, uri: object) -> bool:
        return uri in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def uris(self) -> list[str]:
        return list(self._documents)


@dataclass
class ActiveDocument:
    """Single slot holding the URI of the most recently opened/changed document.

    Only used as directory context. It is not cleared when the document
    closes, so readers must not expect the URI to still be open.
    """

    _uri: str | None = None
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def set(self, uri: str) -> None:
        async with self._lock:
            self._uri = uri

    async def get(self) -> str | None:
        async with self._lock:
            return self._uri
