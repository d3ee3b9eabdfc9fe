"""
HTTP/websocket transport for the live preview.

Serves one page that connects back over a websocket and swaps in every
HTML update it receives. Files the document references relatively
(images, ...) are served from a static root.
"""

from __future__ import annotations

import html
import logging
from pathlib import Path

from aiohttp import WSMsgType, web

logger = logging.getLogger(__name__)

HIGHLIGHT_CDN = "https://cdnjs.cloudflare.com/ajax/libs/highlight.js/11.9.0"

INDEX_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <base href="/files/">
    <title>mdls preview</title>
    <link rel="stylesheet" href="__HIGHLIGHT_CDN__/styles/__THEME__.min.css">
    <script src="__HIGHLIGHT_CDN__/highlight.min.js"></script>
    <style>
        body {
            font-family: -apple-system, "Segoe UI", Helvetica, Arial, sans-serif;
            line-height: 1.5;
            max-width: 980px;
            margin: 0 auto;
            padding: 2rem;
        }
        pre { padding: 1rem; overflow: auto; }
        table { border-collapse: collapse; }
        td, th { border: 1px solid #d0d7de; padding: 0.3rem 0.8rem; }
        img { max-width: 100%; }
    </style>
</head>
<body>
    <article id="content">__CONTENT__</article>
    <script>
        const content = document.getElementById("content");
        function connect() {
            const scheme = location.protocol === "https:" ? "wss" : "ws";
            const socket = new WebSocket(`${scheme}://${location.host}/ws`);
            socket.onmessage = (event) => {
                const message = JSON.parse(event.data);
                if (message.type === "update") {
                    content.innerHTML = message.html;
                    content.querySelectorAll("pre code").forEach((el) => hljs.highlightElement(el));
                }
            };
            socket.onclose = () => setTimeout(connect, 1000);
        }
        connect();
    </script>
</body>
</html>
"""


class PreviewServer:
    """aiohttp application pushing rendered HTML to connected browsers."""

    def __init__(self, host: str = "127.0.0.1", port: int = 0, theme: str = "github"):
        self.host = host
        self.port = port
        self.theme = theme
        self.static_root: Path | None = None
        self.url: str | None = None

        self._html = ""
        self._sockets: set[web.WebSocketResponse] = set()
        self._runner: web.AppRunner | None = None

        self.app = web.Application()
        self.app.router.add_get("/", self._index)
        self.app.router.add_get("/ws", self._websocket)
        self.app.router.add_get("/files/{tail:.*}", self._static)

    @property
    def running(self) -> bool:
        return self._runner is not None

    @property
    def html(self) -> str:
        """The most recently pushed HTML."""
        return self._html

    async def start(self) -> str:
        """Bind and start serving. Returns the page URL.

        Raises:
            OSError: If the address cannot be bound
        """
        runner = web.AppRunner(self.app)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise

        self._runner = runner
        bound_host, bound_port = runner.addresses[0][:2]
        self.url = f"http://{self.host}:{bound_port}/"
        logger.info(f"Preview serving on {self.url} (bound {bound_host})")
        return self.url

    async def send(self, html_text: str) -> None:
        """Store `html_text` and broadcast it to every connected page."""
        self._html = html_text
        for ws in list(self._sockets):
            try:
                await ws.send_json({"type": "update", "html": html_text})
            except ConnectionResetError:
                logger.debug("Dropping closed preview websocket")
                self._sockets.discard(ws)

    async def stop(self) -> None:
        for ws in list(self._sockets):
            await ws.close()
        self._sockets.clear()
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        self.url = None

    async def _index(self, request: web.Request) -> web.Response:
        page = (
            INDEX_TEMPLATE.replace("__HIGHLIGHT_CDN__", HIGHLIGHT_CDN)
            .replace("__THEME__", html.escape(self.theme, quote=True))
            .replace("__CONTENT__", self._html)
        )
        return web.Response(text=page, content_type="text/html")

    async def _websocket(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self._sockets.add(ws)
        logger.debug(f"Preview client connected ({len(self._sockets)} open)")
        try:
            await ws.send_json({"type": "update", "html": self._html})
            async for msg in ws:
                if msg.type == WSMsgType.ERROR:
                    logger.warning(f"Preview websocket error: {ws.exception()}")
        finally:
            self._sockets.discard(ws)
        return ws

    async def _static(self, request: web.Request) -> web.StreamResponse:
        if self.static_root is None:
            raise web.HTTPNotFound()

        root = self.static_root.resolve()
        target = (root / request.match_info["tail"]).resolve()
        if not target.is_relative_to(root) or not target.is_file():
            raise web.HTTPNotFound()
        return web.FileResponse(target)
