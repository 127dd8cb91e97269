"""API tests for note writing, status updates and generation."""

import uuid
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI, HTTPException
from httpx import ASGITransport, AsyncClient

from brainflow.auth.middleware import get_current_user
from brainflow.models.schemas import (
    GeneratedNote,
    GenerateNoteRequest,
    NoteStatus,
    NoteStatusUpdate,
    NoteWriteRequest,
)
from brainflow.routers import notes as notes_router

CURRENT_USER = {"id": "user-1"}


@pytest.fixture
def wired_store(monkeypatch, note_store, synchronizer):
    """Point the router at the in-memory store and a synchronizer over it."""

    async def fake_get_note_store():
        return note_store

    async def fake_get_graph_synchronizer():
        return synchronizer

    monkeypatch.setattr(notes_router, "get_note_store", fake_get_note_store)
    monkeypatch.setattr(notes_router, "get_graph_synchronizer", fake_get_graph_synchronizer)
    return note_store


@pytest.mark.asyncio
async def test_write_note_syncs_links(wired_store):
    req = NoteWriteRequest(title="Intro to Graphs.md", content="See [[BFS]] and [[DFS]]")

    response = await notes_router.write_note(req, current_user=CURRENT_USER)

    assert response.slug == "intro-to-graphs"
    assert response.title == "Intro to Graphs"
    assert response.edges_created == 2
    assert response.ghosts_created == ["bfs", "dfs"]
    assert wired_store.note_by_slug("user-1", "intro-to-graphs")["status"] == "understood"


@pytest.mark.asyncio
async def test_write_note_failure_returns_500(wired_store):
    wired_store.fail_upsert = True

    with pytest.raises(HTTPException) as exc_info:
        await notes_router.write_note(
            NoteWriteRequest(title="Broken", content="x"),
            current_user=CURRENT_USER,
        )

    assert exc_info.value.status_code == 500
    assert "broken" in exc_info.value.detail


@pytest.mark.asyncio
async def test_list_notes_passes_filters(monkeypatch):
    store = AsyncMock()
    row = {"id": "n1", "user_id": "user-1", "title": "A", "slug": "a", "content": None, "status": "new"}
    store.list_notes = AsyncMock(return_value=([row], 1))

    async def fake_get_note_store():
        return store

    monkeypatch.setattr(notes_router, "get_note_store", fake_get_note_store)

    response = await notes_router.list_notes(
        current_user=CURRENT_USER,
        status=NoteStatus.NEW,
        search="graph",
        limit=10,
        offset=0,
    )

    assert response["total"] == 1
    assert response["notes"][0].slug == "a"
    assert response["notes"][0].is_ghost is True
    store.list_notes.assert_awaited_once_with(
        "user-1", status=NoteStatus.NEW, search="graph", limit=10, offset=0
    )


@pytest.mark.asyncio
async def test_get_note_not_found(wired_store):
    with pytest.raises(HTTPException) as exc_info:
        await notes_router.get_note(uuid.uuid4(), current_user=CURRENT_USER)

    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_get_note_of_other_user_is_hidden(wired_store, synchronizer):
    result = await synchronizer.synchronize("user-2", "Private", "mine")

    with pytest.raises(HTTPException) as exc_info:
        await notes_router.get_note(uuid.UUID(result.note_id), current_user=CURRENT_USER)

    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_update_status_rejects_unknown_value(wired_store):
    with pytest.raises(HTTPException) as exc_info:
        await notes_router.update_note_status(
            uuid.uuid4(),
            NoteStatusUpdate(status="mastered"),
            current_user=CURRENT_USER,
        )

    assert exc_info.value.status_code == 400
    assert "in-progress" in exc_info.value.detail


@pytest.mark.asyncio
async def test_update_status_can_lower_status(wired_store, synchronizer):
    result = await synchronizer.synchronize("user-1", "Topic", "body", status=NoteStatus.UNDERSTOOD)

    response = await notes_router.update_note_status(
        uuid.UUID(result.note_id),
        NoteStatusUpdate(status="in-progress"),
        current_user=CURRENT_USER,
    )

    assert response["note"].status == NoteStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_delete_note_removes_edges(wired_store, synchronizer):
    result = await synchronizer.synchronize("user-1", "Source", "[[Target]]")
    target_id = wired_store.note_by_slug("user-1", "target")["id"]

    response = await notes_router.delete_note(uuid.UUID(target_id), current_user=CURRENT_USER)

    assert response == {"status": "deleted", "note_id": target_id}
    assert wired_store.target_slugs_from(result.note_id) == []

    with pytest.raises(HTTPException) as exc_info:
        await notes_router.delete_note(uuid.UUID(target_id), current_user=CURRENT_USER)
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_generate_note_returns_note_and_sync(monkeypatch, synchronizer):
    note = GeneratedNote(title="Recursion", content="Uses a [[Base Case]].", linked_terms=["Base Case"])

    async def fake_get_graph_synchronizer():
        return synchronizer

    async def fake_run_note_generation(synchronizer, user_id, topic, parent_topic=None):
        result = await synchronizer.synchronize(user_id, note.title, note.content, status=NoteStatus.IN_PROGRESS)
        return {"note": note, "sync_result": result}

    monkeypatch.setattr(notes_router, "get_graph_synchronizer", fake_get_graph_synchronizer)
    monkeypatch.setattr(notes_router, "run_note_generation", fake_run_note_generation)

    response = await notes_router.generate_note(
        GenerateNoteRequest(topic="Recursion"),
        current_user=CURRENT_USER,
    )

    assert response.note.title == "Recursion"
    assert response.sync.slug == "recursion"
    assert response.sync.ghosts_created == ["base-case"]


@pytest.mark.asyncio
async def test_generate_note_error_state_returns_500(monkeypatch, synchronizer):
    async def fake_get_graph_synchronizer():
        return synchronizer

    async def fake_run_note_generation(synchronizer, user_id, topic, parent_topic=None):
        return {"error": "Generation failed: quota exceeded"}

    monkeypatch.setattr(notes_router, "get_graph_synchronizer", fake_get_graph_synchronizer)
    monkeypatch.setattr(notes_router, "run_note_generation", fake_run_note_generation)

    with pytest.raises(HTTPException) as exc_info:
        await notes_router.generate_note(
            GenerateNoteRequest(topic="Recursion"),
            current_user=CURRENT_USER,
        )

    assert exc_info.value.status_code == 500
    assert "quota exceeded" in exc_info.value.detail


@pytest.mark.asyncio
async def test_get_note_returns_ghost_flag(wired_store, synchronizer):
    result = await synchronizer.synchronize("user-1", "Source", "[[Target]]")
    target_id = wired_store.note_by_slug("user-1", "target")["id"]

    source = await notes_router.get_note(uuid.UUID(result.note_id), current_user=CURRENT_USER)
    target = await notes_router.get_note(uuid.UUID(target_id), current_user=CURRENT_USER)

    assert source["note"].is_ghost is False
    assert target["note"].model_dump()["is_ghost"] is True


@pytest.mark.asyncio
async def test_malformed_note_id_is_rejected_before_the_store(monkeypatch):
    store = AsyncMock()

    async def fake_get_note_store():
        return store

    monkeypatch.setattr(notes_router, "get_note_store", fake_get_note_store)
    app = FastAPI()
    app.include_router(notes_router.router)
    app.dependency_overrides[get_current_user] = lambda: CURRENT_USER

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        get_response = await client.get("/api/notes/not-a-uuid")
        delete_response = await client.delete("/api/notes/not-a-uuid")
        patch_response = await client.patch("/api/notes/not-a-uuid/status", json={"status": "new"})

    assert get_response.status_code == 422
    assert delete_response.status_code == 422
    assert patch_response.status_code == 422
    store.get_note.assert_not_awaited()
    store.delete_note.assert_not_awaited()
