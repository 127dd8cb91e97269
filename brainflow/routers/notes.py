"""Notes Router - Read, write, generate and delete user notes."""

from dataclasses import asdict
from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from brainflow.auth.middleware import get_current_user
from brainflow.graphs.note_graph import run_note_generation
from brainflow.models.schemas import (
    GenerateNoteRequest,
    GenerateNoteResponse,
    Note,
    NoteStatus,
    NoteStatusUpdate,
    NoteWriteRequest,
    SyncResponse,
)
from brainflow.services.dependencies import get_graph_synchronizer, get_note_store

logger = structlog.get_logger()

router = APIRouter(prefix="/api/notes", tags=["Notes"])

VALID_STATUSES = [s.value for s in NoteStatus]


@router.get("")
async def list_notes(
    current_user: dict = Depends(get_current_user),
    status: Optional[NoteStatus] = Query(default=None, description="Filter by status"),
    search: Optional[str] = Query(default=None, description="Match title or content"),
    limit: int = Query(default=50, le=100),
    offset: int = Query(default=0, ge=0),
):
    """List notes for the current user, most recently updated first."""
    try:
        store = await get_note_store()
        notes, total = await store.list_notes(
            str(current_user["id"]),
            status=status,
            search=search,
            limit=limit,
            offset=offset,
        )
        return {
            "notes": [Note.model_validate(n) for n in notes],
            "total": total,
            "limit": limit,
            "offset": offset,
        }
    except Exception as e:
        logger.error("Notes: Error listing notes", error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{note_id}")
async def get_note(
    note_id: UUID,
    current_user: dict = Depends(get_current_user),
):
    """Get a single note."""
    try:
        store = await get_note_store()
        note = await store.get_note(str(current_user["id"]), str(note_id))
        if not note:
            raise HTTPException(status_code=404, detail="Note not found")
        return {"note": Note.model_validate(note)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Notes: Error getting note", note_id=str(note_id), error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.put("", response_model=SyncResponse)
async def write_note(
    request: NoteWriteRequest,
    current_user: dict = Depends(get_current_user),
):
    """Write a note by title and rebuild its [[links]] in the graph.

    Writing a note that only exists as a ghost fills it in; its slug, and so
    every edge already pointing at it, stays the same.
    """
    user_id = str(current_user["id"])
    try:
        synchronizer = await get_graph_synchronizer()
        result = await synchronizer.synchronize(
            user_id,
            request.title,
            request.content,
            status=request.status,
        )
        return SyncResponse(**asdict(result))
    except Exception as e:
        logger.error("Notes: Error writing note", title=request.title, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/{note_id}/status")
async def update_note_status(
    note_id: UUID,
    request: NoteStatusUpdate,
    current_user: dict = Depends(get_current_user),
):
    """Explicitly set how well the user understands a note."""
    if request.status not in VALID_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}",
        )

    try:
        store = await get_note_store()
        note = await store.set_status(
            str(current_user["id"]), str(note_id), NoteStatus(request.status)
        )
        if not note:
            raise HTTPException(status_code=404, detail="Note not found")
        logger.info("Notes: Status updated", note_id=str(note_id), status=request.status)
        return {"note": Note.model_validate(note)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Notes: Error updating status", note_id=str(note_id), error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{note_id}")
async def delete_note(
    note_id: UUID,
    current_user: dict = Depends(get_current_user),
):
    """Delete a note together with every edge touching it."""
    try:
        store = await get_note_store()
        deleted = await store.delete_note(str(current_user["id"]), str(note_id))
        if not deleted:
            raise HTTPException(status_code=404, detail="Note not found")
        return {"status": "deleted", "note_id": str(note_id)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Notes: Error deleting note", note_id=str(note_id), error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/generate", response_model=GenerateNoteResponse)
async def generate_note(
    request: GenerateNoteRequest,
    current_user: dict = Depends(get_current_user),
):
    """Generate a note on a topic with the LLM and sync it into the graph."""
    user_id = str(current_user["id"])
    try:
        synchronizer = await get_graph_synchronizer()
        state = await run_note_generation(
            synchronizer,
            user_id=user_id,
            topic=request.topic,
            parent_topic=request.parent_topic,
        )
    except Exception as e:
        logger.error("Notes: Generation pipeline crashed", topic=request.topic, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))

    if state.get("error"):
        logger.error("Notes: Generation failed", topic=request.topic, error=state["error"])
        raise HTTPException(status_code=500, detail=state["error"])

    return GenerateNoteResponse(
        note=state["note"],
        sync=SyncResponse(**asdict(state["sync_result"])),
    )
