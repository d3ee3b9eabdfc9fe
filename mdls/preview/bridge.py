"""
Bridge between document events and the live preview.

One bridge lives for the whole server process. It owns the preview
transport and the renderer, and delivers the latest full document text to
whatever renders it. Pushes are serialized by the bridge lock; asyncio
locks wake waiters first-in first-out, so pushes reach the transport in
the order the event handlers reached the bridge.
"""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from pathlib import Path
from typing import Callable, Protocol, Sequence

from ..config import PreviewConfig
from ..errors import PushError, RenderStartError
from .render import ExternalRenderer, Renderer, create_renderer
from .server import PreviewServer

logger = logging.getLogger(__name__)


class PreviewTransport(Protocol):
    """What the bridge needs from a preview transport."""

    theme: str
    static_root: Path | None
    url: str | None

    @property
    def running(self) -> bool: ...

    async def start(self) -> str: ...

    async def send(self, html_text: str) -> None: ...

    async def stop(self) -> None: ...


def _default_transport(config: PreviewConfig) -> PreviewTransport:
    return PreviewServer(host=config.host, port=config.port, theme=config.theme)


class PreviewBridge:
    """Forwards document text to a single long-lived preview session."""

    def __init__(
        self,
        config: PreviewConfig | None = None,
        *,
        transport_factory: Callable[[PreviewConfig], PreviewTransport] = _default_transport,
        browser: Callable[[str], bool] = webbrowser.open,
        renderer_factory: Callable[[Sequence[str] | None], Renderer] = create_renderer,
    ):
        self.config = config or PreviewConfig()
        self._transport_factory = transport_factory
        self._browser = browser
        self._renderer_factory = renderer_factory
        self._transport: PreviewTransport | None = None
        self._renderer: Renderer | None = None
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._transport is not None and self._transport.running

    @property
    def url(self) -> str | None:
        return self._transport.url if self._transport is not None else None

    def configure(
        self,
        *,
        theme: str | None = None,
        renderer: list[str] | tuple[str, ...] | str | None = None,
        open_browser: bool | None = None,
    ) -> None:
        """Change preview settings. Later calls overwrite earlier ones."""
        self.config = self.config.merged(
            {"theme": theme, "renderer": renderer, "open_browser": open_browser}
        )
        if renderer is not None:
            # Rebuilt on the next push
            self._renderer = None
        if theme is not None and self._transport is not None:
            self._transport.theme = theme

    async def start(self) -> str:
        """Start the preview transport and open it in a browser.

        Raises:
            RenderStartError: If the transport cannot bind, the browser cannot
                be launched, or the external renderer is missing
        """
        async with self._lock:
            if self.running:
                return self._transport.url  # type: ignore[union-attr]

            renderer = self._renderer_factory(self.config.renderer)
            if isinstance(renderer, ExternalRenderer):
                renderer.check()

            transport = self._transport_factory(self.config)
            try:
                url = await transport.start()
            except OSError as e:
                raise RenderStartError(
                    f"Could not bind preview server on {self.config.host}:{self.config.port}: {e}"
                ) from e

            if self.config.open_browser:
                try:
                    opened = await asyncio.to_thread(self._browser, url)
                except webbrowser.Error as e:
                    logger.debug(f"Browser launch raised: {e}")
                    opened = False
                if not opened:
                    await transport.stop()
                    raise RenderStartError(f"Could not open a browser for {url}")

            self._transport = transport
            self._renderer = renderer
            logger.info(f"Preview started at {url}")
            return url

    async def push(self, text: str, base_dir: Path | None = None) -> None:
        """Render `text` and deliver it to the preview.

        `base_dir` is where relative links in the document resolve.

        Raises:
            PushError: If the preview is not running or rendering fails
        """
        async with self._lock:
            if self._transport is None or not self._transport.running:
                raise PushError("Preview is not running")

            if self._renderer is None:
                self._renderer = self._renderer_factory(self.config.renderer)
            if base_dir is not None:
                self._transport.static_root = base_dir

            html_text = await self._renderer.render(text)
            await self._transport.send(html_text)

    async def stop(self) -> None:
        async with self._lock:
            if self._transport is None:
                return
            await self._transport.stop()
            self._transport = None
            logger.info("Preview stopped")
