"""Tests for event wiring: store -> active pointer -> preview."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from mdls.documents import ContentChange
from mdls.errors import DocumentNotFound, InternalError, InvalidPosition
from mdls.session import MarkdownSession


def test_open_sets_active_and_pushes(bridge_factory, index_uri: str, notes_dir: Path) -> None:
    bridge, transport, _ = bridge_factory()
    session = MarkdownSession(preview=bridge)

    async def scenario() -> str | None:
        await session.start_preview()
        await session.did_open(index_uri, "# Index")
        return await session.active.get()

    assert asyncio.run(scenario()) == index_uri
    assert transport.sent == ["<p># Index</p>"]
    assert transport.static_root == notes_dir


def test_changes_are_pushed_in_order(bridge_factory, index_uri: str) -> None:
    bridge, transport, _ = bridge_factory()
    session = MarkdownSession(preview=bridge)
    count = 30

    async def scenario() -> str:
        await session.start_preview()
        await session.did_open(index_uri, "v0")
        await asyncio.gather(
            *(session.did_change(index_uri, [ContentChange(text=f"v{i}")], i) for i in range(1, count + 1))
        )
        return await session.documents.get(index_uri)

    assert asyncio.run(scenario()) == f"v{count}"
    assert transport.sent == [f"<p>v{i}</p>" for i in range(count + 1)]


def test_change_to_unknown_document_is_ignored(bridge_factory, index_uri: str) -> None:
    bridge, transport, _ = bridge_factory()
    session = MarkdownSession(preview=bridge)

    async def scenario() -> str | None:
        await session.start_preview()
        await session.did_change(index_uri, [ContentChange(text="ghost")])
        return await session.active.get()

    assert asyncio.run(scenario()) is None
    assert index_uri not in session.documents
    assert transport.sent == []


def test_range_change_is_logged_and_ignored(bridge_factory, index_uri: str) -> None:
    bridge, transport, _ = bridge_factory()
    session = MarkdownSession(preview=bridge)

    async def scenario() -> str:
        await session.start_preview()
        await session.did_open(index_uri, "before")
        await session.did_change(index_uri, [ContentChange(text="x", range=((0, 0), (0, 1)))])
        return await session.documents.get(index_uri)

    assert asyncio.run(scenario()) == "before"
    assert transport.sent == ["<p>before</p>"]


def test_close_keeps_stale_active_pointer(bridge_factory, index_uri: str) -> None:
    bridge, _, _ = bridge_factory()
    session = MarkdownSession(preview=bridge)

    async def scenario() -> str | None:
        await session.did_open(index_uri, "text")
        await session.did_close(index_uri)
        await session.did_close(index_uri)
        return await session.active.get()

    assert asyncio.run(scenario()) == index_uri
    assert index_uri not in session.documents


def test_preview_start_failure_disables_preview(bridge_factory, index_uri: str) -> None:
    bridge, transport, _ = bridge_factory(fail_bind=True)
    session = MarkdownSession(preview=bridge)

    async def scenario() -> str | None:
        url = await session.start_preview()
        await session.did_open(index_uri, "still tracked")
        assert await session.documents.get(index_uri) == "still tracked"
        return url

    assert asyncio.run(scenario()) is None
    assert session.preview_enabled is False
    assert transport.sent == []


def test_without_preview_documents_are_still_tracked(bridge_factory, index_uri: str) -> None:
    bridge, transport, _ = bridge_factory()
    session = MarkdownSession(preview=bridge)

    async def scenario() -> str:
        await session.did_open(index_uri, "a")
        await session.did_change(index_uri, [ContentChange(text="b")])
        return await session.documents.get(index_uri)

    assert asyncio.run(scenario()) == "b"
    assert transport.sent == []


def test_push_failure_does_not_break_events(bridge_factory, index_uri: str) -> None:
    bridge, transport, _ = bridge_factory()
    session = MarkdownSession(preview=bridge)

    async def scenario() -> str:
        await session.start_preview()
        # Transport dies underneath the session
        await transport.stop()
        await session.did_open(index_uri, "kept")
        return await session.documents.get(index_uri)

    assert asyncio.run(scenario()) == "kept"
    assert transport.sent == []


def test_complete_offers_sibling_files(bridge_factory, index_uri: str) -> None:
    bridge, _, _ = bridge_factory()
    session = MarkdownSession(preview=bridge)

    async def scenario():
        await session.did_open(index_uri, "Link to [[")
        return await session.complete(index_uri, 0, len("Link to [["))

    candidates = asyncio.run(scenario())
    assert candidates is not None
    assert [c.label for c in candidates][:2] == ["index.md", "zeta.md"]
    assert "sub/deeper/three.md" in [c.label for c in candidates]


def test_complete_closed_link_returns_none(bridge_factory, index_uri: str) -> None:
    bridge, _, _ = bridge_factory()
    session = MarkdownSession(preview=bridge)

    async def scenario():
        await session.did_open(index_uri, "[[index]]")
        return await session.complete(index_uri, 0, 9)

    assert asyncio.run(scenario()) is None


def test_complete_unknown_document_raises(bridge_factory, index_uri: str) -> None:
    bridge, _, _ = bridge_factory()
    session = MarkdownSession(preview=bridge)

    with pytest.raises(DocumentNotFound):
        asyncio.run(session.complete(index_uri, 0, 0))


def test_complete_bad_position_raises(bridge_factory, index_uri: str) -> None:
    bridge, _, _ = bridge_factory()
    session = MarkdownSession(preview=bridge)

    async def scenario():
        await session.did_open(index_uri, "short")
        return await session.complete(index_uri, 3, 0)

    with pytest.raises(InvalidPosition):
        asyncio.run(scenario())


def test_complete_uses_active_document_directory(bridge_factory, notes_dir: Path, index_uri: str) -> None:
    bridge, _, _ = bridge_factory()
    session = MarkdownSession(preview=bridge)
    deep_uri = (notes_dir / "sub" / "deeper" / "three.md").as_uri()

    async def scenario():
        await session.did_open(index_uri, "[[")
        await session.did_open(deep_uri, "# Three")
        return await session.complete(index_uri, 0, 2)

    candidates = asyncio.run(scenario())
    assert [c.label for c in candidates] == ["three.md"]


def test_complete_with_non_file_active_document_fails(bridge_factory) -> None:
    bridge, _, _ = bridge_factory()
    session = MarkdownSession(preview=bridge)

    async def scenario():
        await session.did_open("untitled:Untitled-1", "[[")
        return await session.complete("untitled:Untitled-1", 0, 2)

    with pytest.raises(InternalError):
        asyncio.run(scenario())
