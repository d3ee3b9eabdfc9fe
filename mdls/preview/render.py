"""
Markdown -> HTML renderers for the live preview.

The built-in renderer uses markdown-it-py. An external renderer is any
command that reads markdown on stdin and writes HTML to stdout (md4c's
md2html, pandoc, ...).
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from typing import Protocol, Sequence

import frontmatter
from markdown_it import MarkdownIt
from mdit_py_plugins.dollarmath import dollarmath_plugin
from mdit_py_plugins.footnote import footnote_plugin

from ..errors import PushError, RenderStartError

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    async def render(self, text: str) -> str: ...


def strip_front_matter(text: str) -> str:
    """Drop a leading YAML front matter block, keeping the body."""
    if not text.startswith("---"):
        return text
    try:
        return frontmatter.loads(text).content
    except Exception:
        # Unterminated or invalid front matter: show the text as written
        return text


class MarkdownItRenderer:
    """Built-in renderer: CommonMark plus tables, strikethrough, math and footnotes."""

    def __init__(self) -> None:
        self._md = (
            MarkdownIt("commonmark", {"html": True, "linkify": False})
            .enable(["table", "strikethrough"])
            .use(dollarmath_plugin)
            .use(footnote_plugin)
        )

    async def render(self, text: str) -> str:
        return self._md.render(strip_front_matter(text))


class ExternalRenderer:
    """Delegates rendering to an external command."""

    def __init__(self, command: Sequence[str]):
        if not command:
            raise ValueError("External renderer command is empty")
        self.command = tuple(command)

    def check(self) -> None:
        """Fail early when the executable cannot be found."""
        if shutil.which(self.command[0]) is None:
            raise RenderStartError(f"External renderer not found: {self.command[0]}")

    async def render(self, text: str) -> str:
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise PushError(f"Could not run external renderer {self.command[0]}: {e}") from e

        stdout, stderr = await proc.communicate(text.encode("utf-8"))
        if proc.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise PushError(f"External renderer exited with {proc.returncode}: {detail}")
        return stdout.decode("utf-8", errors="replace")


def create_renderer(command: Sequence[str] | None) -> Renderer:
    """External renderer when a command is configured, else markdown-it."""
    if command:
        return ExternalRenderer(command)
    return MarkdownItRenderer()
