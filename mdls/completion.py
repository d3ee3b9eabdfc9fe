"""
Wiki-link completion.

Typing `[[` offers every markdown file under the active document's
directory, labelled with its path relative to that directory.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlparse

from lsprotocol import types as lsp
from pygls.workspace import PositionCodec

from .errors import InternalError, InvalidPosition

logger = logging.getLogger(__name__)

LINK_OPEN = "[["
MARKDOWN_SUFFIX = ".md"


@dataclass(frozen=True)
class LinkCandidate:
    """A markdown file that can be the target of a wiki link."""

    label: str  # POSIX path relative to the scanned directory
    path: Path
    depth: int  # number of directories between the root and the file


def uri_to_path(uri: str) -> Path:
    """Convert a file URI to a Path."""
    parsed = urlparse(uri)
    # Handle Windows paths
    path = unquote(parsed.path)
    if path.startswith("/") and len(path) > 2 and path[2] == ":":
        path = path[1:]  # Remove leading slash for Windows paths
    return Path(path)


def current_word(
    text: str,
    line: int,
    character: int,
    position_codec: PositionCodec | None = None,
) -> str:
    """
    Get the word in `text` at the cursor, cut off at the cursor.

    `character` is counted in the client's position encoding (UTF-16 unless
    `position_codec` says otherwise). Scans left from the cursor while
    characters are not whitespace, so nothing at or after the cursor is part
    of the word:

        >>> current_word("this is a sentence", 0, 1)
        't'
        >>> current_word("this is a sentence", 0, 0)
        ''
    """
    codec = position_codec or PositionCodec()
    lines = text.split("\n")
    if line < 0 or line >= len(lines) or character < 0:
        raise InvalidPosition(line, character)
    line_text = lines[line].rstrip("\r")
    if character > codec.client_num_units(line_text):
        raise InvalidPosition(line, character)
    # The codec clamps out-of-range positions, so only pass it checked ones
    end = codec.position_from_client_units(
        [line_text], lsp.Position(line=0, character=character)
    ).character

    start = end
    while start > 0 and not line_text[start - 1].isspace():
        start -= 1
    return line_text[start:end]


def is_link_trigger(word: str) -> bool:
    """True when `word` is an unfinished wiki link such as `[[note`."""
    return word.startswith(LINK_OPEN) and not word.endswith("]")


def link_root(active_uri: str | None) -> Path:
    """Directory whose markdown files are offered for the active document."""
    if active_uri is None:
        raise InternalError("No active document to resolve links against")
    if urlparse(active_uri).scheme != "file":
        raise InternalError(f"Active document is not a file: {active_uri}")

    path = uri_to_path(active_uri)
    if not path.name or path.parent == path:
        raise InternalError(f"Active document has no parent directory: {active_uri}")
    return path.parent


def scan_markdown_files(root: Path) -> list[LinkCandidate]:
    """
    List every markdown file under `root`, recursively.

    Unreadable directories are logged and skipped rather than failing the
    scan. Results are ordered shallow to deep, then by relative path.
    """

    def _skip(error: OSError) -> None:
        logger.warning(f"Skipping unreadable entry {error.filename}: {error.strerror}")

    candidates: list[LinkCandidate] = []
    for dirpath, _dirnames, filenames in os.walk(root, onerror=_skip):
        base = Path(dirpath)
        for name in filenames:
            if Path(name).suffix != MARKDOWN_SUFFIX:
                continue
            path = base / name
            rel = path.relative_to(root)
            candidates.append(LinkCandidate(label=rel.as_posix(), path=path, depth=len(rel.parts) - 1))

    candidates.sort(key=lambda c: (c.depth, c.label))
    return candidates


class CompletionEngine:
    """Derives link candidates from the cursor position and the active document.

    `position_codec` is the encoding negotiated with the client; the server
    replaces the UTF-16 default once `initialize` has run.
    """

    def __init__(self, position_codec: PositionCodec | None = None):
        self.position_codec = position_codec or PositionCodec()

    def complete(
        self,
        text: str,
        line: int,
        character: int,
        active_uri: str | None,
    ) -> list[LinkCandidate] | None:
        """
        Candidates for the cursor at (`line`, `character`) in `text`.

        Returns None when the word under the cursor is not an open wiki
        link. Malformed positions and a missing or pathless active document
        raise instead of returning an empty list.
        """
        word = current_word(text, line, character, self.position_codec)
        logger.info(f"Current word: {word}")
        if not is_link_trigger(word):
            return None

        root = link_root(active_uri)
        candidates = scan_markdown_files(root)
        logger.debug(f"Found {len(candidates)} link candidates under {root}")
        return candidates
