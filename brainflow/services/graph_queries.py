"""Read-side views over a user's note graph."""

from typing import Any

import structlog

from brainflow.db.note_store import PostgresNoteGraphStore
from brainflow.models.schemas import Edge, NoteStatus

logger = structlog.get_logger()

NEXT_STEP_REASON = "Natural next step from notes you already understand"
CONTINUE_REASON = "Pick up where you left off"


class GraphQueryService:
    """Builds graph, neighbourhood and recommendation views for the frontend."""

    def __init__(self, store: PostgresNoteGraphStore):
        self.store = store

    async def get_graph(self, user_id: str) -> dict[str, Any]:
        nodes = await self.store.list_graph_nodes(user_id)
        edges = [
            {
                "id": e.id,
                "source": e.source_id,
                "target": e.target_id,
                "relationship": e.relationship.value,
            }
            for e in await self._edges(user_id)
        ]
        return {"nodes": nodes, "edges": edges}

    async def _edges(self, user_id: str) -> list[Edge]:
        return [Edge.model_validate(row) for row in await self.store.list_edges(user_id)]

    async def get_related(self, user_id: str, note_id: str) -> list[dict[str, Any]]:
        """Unique neighbours of a note, first-seen edge wins, self links dropped."""
        related: dict[str, dict[str, Any]] = {}
        for row in await self.store.list_neighbours(user_id, note_id):
            neighbour_id = row["id"]
            if neighbour_id == note_id or neighbour_id in related:
                continue
            related[neighbour_id] = {
                "note": {
                    "id": neighbour_id,
                    "title": row["title"],
                    "slug": row["slug"],
                    "status": row["status"],
                    "is_ghost": row["is_ghost"],
                },
                "relationship": row["relationship"],
                "direction": row["direction"],
            }
        return list(related.values())

    async def get_recommendations(self, user_id: str, limit: int = 5) -> dict[str, Any]:
        """Suggest what to study next.

        Notes linked from understood notes that are not understood yet come
        first when already in progress (priority 1) and otherwise rank
        priority 2; every in-progress note is also suggested with priority 1.
        """
        nodes = await self.store.list_graph_nodes(user_id)
        edges = await self._edges(user_id)
        by_id = {n["id"]: n for n in nodes}

        understood_ids = {n["id"] for n in nodes if n["status"] == NoteStatus.UNDERSTOOD.value}
        in_progress = [n for n in nodes if n["status"] == NoteStatus.IN_PROGRESS.value]

        recommendations: dict[str, dict[str, Any]] = {}
        for edge in edges:
            if edge.source_id not in understood_ids:
                continue
            target = by_id.get(edge.target_id)
            if not target or target["status"] == NoteStatus.UNDERSTOOD.value:
                continue
            if target["id"] in recommendations:
                continue
            recommendations[target["id"]] = {
                "note": target,
                "reason": NEXT_STEP_REASON,
                "priority": 1 if target["status"] == NoteStatus.IN_PROGRESS.value else 2,
            }

        for note in in_progress:
            recommendations.setdefault(
                note["id"],
                {"note": note, "reason": CONTINUE_REASON, "priority": 1},
            )

        ranked = sorted(recommendations.values(), key=lambda r: r["priority"])

        logger.debug(
            "GraphQuery: Recommendations computed",
            user_id=user_id,
            candidates=len(ranked),
        )
        return {
            "recommendations": ranked[:limit],
            "stats": {
                "total": len(nodes),
                "understood": len(understood_ids),
                "in_progress": len(in_progress),
            },
        }
