"""
Error taxonomy shared by the document store, completion and preview.

Each error carries the protocol error kind it maps to, so the LSP adapter
can always answer with a valid response instead of failing the request
abruptly.
"""

from __future__ import annotations


class MdlsError(Exception):
    """Base class for all mdls errors."""

    kind = "internal-error"


class DocumentNotFound(MdlsError):
    """An operation referenced a document that is not open."""

    kind = "invalid-params"

    def __init__(self, uri: str):
        super().__init__(f"Document not open: {uri}")
        self.uri = uri


class InvalidPosition(MdlsError):
    """A cursor position lies outside the document."""

    kind = "invalid-params"

    def __init__(self, line: int, character: int, reason: str = "out of range"):
        super().__init__(f"Invalid position {line}:{character} ({reason})")
        self.line = line
        self.character = character


class InternalError(MdlsError):
    """Missing context or a failing collaborator."""

    kind = "internal-error"


class RenderStartError(InternalError):
    """The preview transport could not be started."""


class PushError(InternalError):
    """Document text could not be delivered to the preview."""


class Unimplemented(MdlsError):
    """A protocol feature this server does not provide."""

    kind = "unimplemented"
