"""
LSP server for markdown notes.

This module provides:
- LSP server usable from any editor with an LSP client
- Full-document synchronization of open files
- Wiki-link completion for `[[` from the surrounding directory tree
- Live browser preview of the document being edited
"""

from .server import create_server, start_server

__all__ = ["create_server", "start_server"]
