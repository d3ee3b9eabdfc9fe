"""
LSP server implementation for markdown notes.

Provides:
- Full-document sync of open files
- Wiki-link completion on `[[`
- Live browser preview of the active document
"""

from __future__ import annotations

import logging

from lsprotocol import types as lsp
from pygls.exceptions import (
    JsonRpcException,
    JsonRpcInternalError,
    JsonRpcInvalidParams,
    JsonRpcMethodNotFound,
)
from pygls.lsp.server import LanguageServer

from .. import __version__
from ..completion import LINK_OPEN, LinkCandidate
from ..config import PreviewConfig, client_overrides
from ..documents import ContentChange
from ..errors import MdlsError
from ..preview import PreviewBridge
from ..session import MarkdownSession

logger = logging.getLogger(__name__)


class MarkdownLanguageServer(LanguageServer):
    """Language server for markdown notes."""

    def __init__(self, config: PreviewConfig | None = None, preview: bool = True):
        super().__init__(
            name="mdls",
            version=__version__,
            text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
        )
        self.session = MarkdownSession(preview=PreviewBridge(config))
        self.preview_requested = preview


def to_rpc_error(error: MdlsError) -> JsonRpcException:
    """Map an mdls error onto the JSON-RPC error the client receives."""
    if error.kind == "invalid-params":
        return JsonRpcInvalidParams(message=str(error))
    if error.kind == "unimplemented":
        return JsonRpcMethodNotFound(message=f"Not implemented: {error}")
    return JsonRpcInternalError(message=str(error))


def to_content_changes(
    events: list[lsp.TextDocumentContentChangeEvent],
) -> list[ContentChange]:
    """Convert protocol change events, keeping ranges so they can be rejected."""
    changes = []
    for event in events:
        if not isinstance(event, lsp.TextDocumentContentChangePartial):
            changes.append(ContentChange(text=event.text))
        else:
            rng = event.range
            changes.append(
                ContentChange(
                    text=event.text,
                    range=(
                        (rng.start.line, rng.start.character),
                        (rng.end.line, rng.end.character),
                    ),
                )
            )
    return changes


def to_completion_list(candidates: list[LinkCandidate]) -> lsp.CompletionList:
    width = len(str(len(candidates)))
    items = [
        lsp.CompletionItem(
            label=c.label,
            kind=lsp.CompletionItemKind.File,
            detail=str(c.path),
            sort_text=str(i).zfill(width),
        )
        for i, c in enumerate(candidates)
    ]
    return lsp.CompletionList(is_incomplete=False, items=items)


def create_server(config: PreviewConfig | None = None, preview: bool = True) -> MarkdownLanguageServer:
    """Create and configure the LSP server."""
    server = MarkdownLanguageServer(config, preview=preview)
    session = server.session

    @server.feature(lsp.INITIALIZE)
    def initialize(params: lsp.InitializeParams) -> None:
        """Adopt the negotiated position encoding and client preview settings."""
        session.completion.position_codec = server.workspace.position_codec
        try:
            overrides = client_overrides(params.initialization_options)
        except ValueError as e:
            logger.warning(f"Ignoring invalid initializationOptions: {e}")
            return
        if overrides:
            session.preview.configure(**overrides)

    @server.feature(lsp.INITIALIZED)
    async def initialized(params: lsp.InitializedParams) -> None:
        if server.preview_requested:
            url = await session.start_preview()
            if url is None:
                server.window_show_message(
                    lsp.ShowMessageParams(
                        type=lsp.MessageType.Warning,
                        message="mdls: preview could not be started, continuing without it",
                    )
                )
        server.window_log_message(
            lsp.LogMessageParams(type=lsp.MessageType.Info, message="mdls language server initialized")
        )

    @server.feature(lsp.SHUTDOWN)
    async def shutdown(params: None) -> None:
        await session.stop_preview()

    @server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
    async def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
        doc = params.text_document
        await session.did_open(doc.uri, doc.text, doc.version)

    @server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
    async def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
        doc = params.text_document
        await session.did_change(doc.uri, to_content_changes(params.content_changes), doc.version)

    @server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
    async def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
        await session.did_close(params.text_document.uri)

    @server.feature(
        lsp.TEXT_DOCUMENT_COMPLETION,
        lsp.CompletionOptions(trigger_characters=[LINK_OPEN]),
    )
    async def completion(params: lsp.CompletionParams) -> lsp.CompletionList | None:
        """Offer markdown files for an unfinished `[[` link."""
        pos = params.position
        try:
            candidates = await session.complete(params.text_document.uri, pos.line, pos.character)
        except MdlsError as e:
            logger.info(f"Completion failed: {e}")
            raise to_rpc_error(e) from e
        if candidates is None:
            return None
        return to_completion_list(candidates)

    return server


def start_server(
    config: PreviewConfig | None = None,
    transport: str = "stdio",
    *,
    preview: bool = True,
    host: str = "127.0.0.1",
    port: int = 2087,
) -> None:
    """Start the LSP server.

    Args:
        config: Preview configuration
        transport: Transport method ("stdio" or "tcp")
        preview: Whether to start the browser preview once initialized
        host, port: Address for the tcp transport
    """
    server = create_server(config, preview=preview)

    if transport == "stdio":
        server.start_io()
    else:
        # TCP transport for debugging
        server.start_tcp(host, port)
