"""Tests for the document store and the active-document pointer."""

from __future__ import annotations

import asyncio

import pytest

from mdls.documents import ActiveDocument, ContentChange, Document, DocumentStore
from mdls.errors import DocumentNotFound, Unimplemented

URI = "file:///notes/a.md"


def test_open_then_get_returns_content() -> None:
    async def scenario() -> str:
        store = DocumentStore()
        await store.open(URI, "# Hello\n")
        return await store.get(URI)

    assert asyncio.run(scenario()) == "# Hello\n"


def test_open_twice_overwrites() -> None:
    async def scenario() -> str:
        store = DocumentStore()
        await store.open(URI, "first")
        await store.open(URI, "second")
        return await store.get(URI)

    assert asyncio.run(scenario()) == "second"


def test_update_replaces_whole_content() -> None:
    async def scenario() -> tuple[str, str]:
        store = DocumentStore()
        await store.open(URI, "one two three")
        returned = await store.update(URI, [ContentChange(text="four")])
        return returned, await store.get(URI)

    returned, stored = asyncio.run(scenario())
    assert returned == "four"
    assert stored == "four"


def test_update_batch_keeps_only_last_full_text() -> None:
    async def scenario() -> str:
        store = DocumentStore()
        await store.open(URI, "v0")
        await store.update(
            URI,
            [ContentChange(text="v1"), ContentChange(text="v2"), ContentChange(text="v3")],
        )
        return await store.get(URI)

    assert asyncio.run(scenario()) == "v3"


def test_update_unknown_uri_raises_and_leaves_store_unchanged() -> None:
    async def scenario() -> DocumentStore:
        store = DocumentStore()
        await store.open(URI, "kept")
        with pytest.raises(DocumentNotFound) as exc:
            await store.update("file:///notes/missing.md", [ContentChange(text="x")])
        assert exc.value.uri == "file:///notes/missing.md"
        assert await store.get(URI) == "kept"
        return store

    store = asyncio.run(scenario())
    assert store.uris() == [URI]
    assert "file:///notes/missing.md" not in store


def test_range_change_is_rejected_without_modifying_document() -> None:
    async def scenario() -> str:
        store = DocumentStore()
        await store.open(URI, "original")
        with pytest.raises(Unimplemented):
            await store.update(
                URI,
                [ContentChange(text="full"), ContentChange(text="x", range=((0, 0), (0, 1)))],
            )
        return await store.get(URI)

    assert asyncio.run(scenario()) == "original"


def test_update_records_version() -> None:
    doc = Document(uri=URI, content="a", version=1)
    doc.apply([ContentChange(text="b")])
    assert doc.content == "b"

    async def scenario() -> int | None:
        store = DocumentStore()
        await store.open(URI, "a", version=1)
        await store.update(URI, [ContentChange(text="b")], version=7)
        return store._documents[URI].version

    assert asyncio.run(scenario()) == 7


def test_close_removes_and_is_idempotent() -> None:
    async def scenario() -> None:
        store = DocumentStore()
        await store.open(URI, "text")
        await store.close(URI)
        with pytest.raises(DocumentNotFound):
            await store.get(URI)
        await store.close(URI)
        await store.close("file:///never/opened.md")
        assert len(store) == 0

    asyncio.run(scenario())


def test_active_document_starts_empty_and_tracks_last_set() -> None:
    async def scenario() -> tuple[str | None, str | None]:
        active = ActiveDocument()
        before = await active.get()
        await active.set("file:///a.md")
        await active.set("file:///b.md")
        return before, await active.get()

    assert asyncio.run(scenario()) == (None, "file:///b.md")
