"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from mdls.config import PreviewConfig
from mdls.preview import PreviewBridge


class FakeTransport:
    """In-memory preview transport recording every delivered HTML string."""

    def __init__(self, config: PreviewConfig, *, fail_bind: bool = False):
        self.theme = config.theme
        self.static_root: Path | None = None
        self.url: str | None = None
        self.sent: list[str] = []
        self.fail_bind = fail_bind
        self.stopped = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> str:
        if self.fail_bind:
            raise OSError("Address already in use")
        self._running = True
        self.url = "http://127.0.0.1:9999/"
        return self.url

    async def send(self, html_text: str) -> None:
        self.sent.append(html_text)

    async def stop(self) -> None:
        self._running = False
        self.url = None
        self.stopped += 1


class EchoRenderer:
    """Renders text verbatim, yielding to the loop first like a real renderer would."""

    async def render(self, text: str) -> str:
        await asyncio.sleep(0)
        return f"<p>{text}</p>"


def make_bridge(
    config: PreviewConfig | None = None,
    *,
    fail_bind: bool = False,
    browser_ok: bool = True,
) -> tuple[PreviewBridge, FakeTransport, list[str]]:
    """Bridge wired to a FakeTransport, an EchoRenderer and a recording browser."""
    config = config or PreviewConfig()
    transport = FakeTransport(config, fail_bind=fail_bind)
    opened: list[str] = []

    def browser(url: str) -> bool:
        opened.append(url)
        return browser_ok

    bridge = PreviewBridge(
        config,
        transport_factory=lambda cfg: transport,
        browser=browser,
        renderer_factory=lambda command: EchoRenderer(),
    )
    return bridge, transport, opened


@pytest.fixture
def notes_dir(tmp_path: Path) -> Path:
    """A small notes tree with markdown files at several depths."""
    notes = tmp_path / "notes"
    (notes / "sub" / "deeper").mkdir(parents=True)
    (notes / "alpha").mkdir()

    (notes / "index.md").write_text("# Index\n", encoding="utf-8")
    (notes / "zeta.md").write_text("# Zeta\n", encoding="utf-8")
    (notes / "readme.txt").write_text("not markdown\n", encoding="utf-8")
    (notes / "alpha" / "one.md").write_text("# One\n", encoding="utf-8")
    (notes / "sub" / "two.md").write_text("# Two\n", encoding="utf-8")
    (notes / "sub" / "deeper" / "three.md").write_text("# Three\n", encoding="utf-8")
    (notes / "sub" / "image.png").write_bytes(b"\x89PNG")
    return notes


@pytest.fixture
def index_uri(notes_dir: Path) -> str:
    return (notes_dir / "index.md").as_uri()


@pytest.fixture
def bridge_factory():
    """Factory for (bridge, fake transport, opened browser URLs)."""
    return make_bridge


@pytest.fixture
def fake_transport_cls():
    return FakeTransport
