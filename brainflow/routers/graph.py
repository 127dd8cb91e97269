"""Graph Router - Note graph, neighbourhoods and study recommendations."""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException

from brainflow.auth.middleware import get_current_user
from brainflow.config.settings import AppSettings
from brainflow.models.schemas import GraphResponse, RecommendationsResponse
from brainflow.services.dependencies import get_graph_query_service, get_note_store

logger = structlog.get_logger()

router = APIRouter(prefix="/api/graph", tags=["Graph"])


@router.get("", response_model=GraphResponse)
async def get_graph(current_user: dict = Depends(get_current_user)):
    """
    Get the note graph for visualization.

    Ghost notes (linked but never written) are included with is_ghost=True.
    """
    try:
        service = await get_graph_query_service()
        graph = await service.get_graph(str(current_user["id"]))
        return GraphResponse(
            nodes=graph["nodes"],
            edges=graph["edges"],
            total_notes=len(graph["nodes"]),
            total_edges=len(graph["edges"]),
        )
    except Exception as e:
        logger.error("Graph: Error getting graph", error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/notes/{note_id}/related")
async def get_related_notes(
    note_id: UUID,
    current_user: dict = Depends(get_current_user),
):
    """Notes linked from or linking to the given note."""
    user_id = str(current_user["id"])
    note_id = str(note_id)
    try:
        store = await get_note_store()
        if not await store.get_note(user_id, note_id):
            raise HTTPException(status_code=404, detail="Note not found")

        service = await get_graph_query_service()
        related = await service.get_related(user_id, note_id)
        return {"note_id": note_id, "related": related}
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Graph: Error getting related notes", note_id=note_id, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/recommendations", response_model=RecommendationsResponse)
async def get_recommendations(current_user: dict = Depends(get_current_user)):
    """What to study next, based on understood notes and their links."""
    try:
        service = await get_graph_query_service()
        result = await service.get_recommendations(
            str(current_user["id"]),
            limit=AppSettings().recommendation_limit,
        )
        return RecommendationsResponse(**result)
    except Exception as e:
        logger.error("Graph: Error getting recommendations", error=str(e))
        raise HTTPException(status_code=500, detail=str(e))
