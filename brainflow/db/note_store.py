"""Postgres-backed note and edge storage."""

from typing import Optional

import structlog

from brainflow.db.postgres_client import PostgresClient, contains_pattern
from brainflow.models.schemas import NoteStatus, RelationshipType

logger = structlog.get_logger()

NOTE_COLUMNS = "id, user_id, title, slug, content, status, is_generated, created_at, updated_at"


def _stringify_ids(row: dict) -> dict:
    """UUID columns come back as uuid.UUID; the API speaks strings."""
    for key in ("id", "user_id", "source_id", "target_id"):
        if row.get(key) is not None:
            row[key] = str(row[key])
    return row


class PostgresNoteGraphStore:
    """Note graph persistence on the notes/edges tables.

    Every method is one statement in its own session, so each step of a
    synchronization commits independently.
    """

    def __init__(self, pg_client: PostgresClient):
        self.pg = pg_client

    # ------------------------------------------------------------------
    # Synchronizer operations
    # ------------------------------------------------------------------

    async def upsert_note(
        self,
        user_id: str,
        slug: str,
        title: str,
        content: str,
        status: NoteStatus,
    ) -> str:
        note_id = await self.pg.execute_insert(
            """
            INSERT INTO notes (user_id, title, slug, content, status, is_generated)
            VALUES (:user_id, :title, :slug, :content, :status, TRUE)
            ON CONFLICT (user_id, slug) DO UPDATE SET
                title = EXCLUDED.title,
                content = EXCLUDED.content,
                is_generated = TRUE,
                status = CASE
                    WHEN notes.status = 'new' THEN EXCLUDED.status
                    ELSE notes.status
                END,
                updated_at = NOW()
            RETURNING id
            """,
            {
                "user_id": user_id,
                "title": title,
                "slug": slug,
                "content": content,
                "status": NoteStatus(status).value,
            },
        )
        if not note_id:
            raise RuntimeError(f"Upsert returned no id for note '{slug}'")
        return note_id

    async def find_note_id(self, user_id: str, slug: str) -> Optional[str]:
        rows = await self.pg.execute_query(
            "SELECT id FROM notes WHERE user_id = :user_id AND slug = :slug LIMIT 1",
            {"user_id": user_id, "slug": slug},
        )
        return str(rows[0]["id"]) if rows else None

    async def resolve_or_create_note(
        self, user_id: str, slug: str, display_title: str
    ) -> tuple[str, bool]:
        existing = await self.find_note_id(user_id, slug)
        if existing:
            return existing, False

        created = await self.pg.execute_insert(
            """
            INSERT INTO notes (user_id, title, slug, content, status, is_generated)
            VALUES (:user_id, :title, :slug, NULL, :status, TRUE)
            ON CONFLICT (user_id, slug) DO NOTHING
            RETURNING id
            """,
            {
                "user_id": user_id,
                "title": display_title,
                "slug": slug,
                "status": NoteStatus.NEW.value,
            },
        )
        if created:
            logger.debug("NoteStore: Ghost note created", user_id=user_id, slug=slug)
            return created, True

        # Another writer created it between the lookup and the insert
        existing = await self.find_note_id(user_id, slug)
        if not existing:
            raise RuntimeError(f"Could not resolve note '{slug}'")
        return existing, False

    async def delete_edges_from(self, source_id: str) -> int:
        return await self.pg.execute_update(
            "DELETE FROM edges WHERE source_id = :source_id",
            {"source_id": source_id},
        )

    async def insert_edge(
        self,
        user_id: str,
        source_id: str,
        target_id: str,
        relationship: RelationshipType,
    ) -> str:
        edge_id = await self.pg.execute_insert(
            """
            INSERT INTO edges (user_id, source_id, target_id, relationship)
            VALUES (:user_id, :source_id, :target_id, :relationship)
            RETURNING id
            """,
            {
                "user_id": user_id,
                "source_id": source_id,
                "target_id": target_id,
                "relationship": RelationshipType(relationship).value,
            },
        )
        return edge_id or ""

    # ------------------------------------------------------------------
    # Read and explicit-update operations
    # ------------------------------------------------------------------

    async def list_notes(
        self,
        user_id: str,
        status: Optional[NoteStatus] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict], int]:
        params: dict = {"user_id": user_id, "limit": limit, "offset": offset}
        where_clause = "WHERE user_id = :user_id"
        if status:
            where_clause += " AND status = :status"
            params["status"] = NoteStatus(status).value
        if search:
            where_clause += " AND (title ILIKE :pattern ESCAPE '\\' OR content ILIKE :pattern ESCAPE '\\')"
            params["pattern"] = contains_pattern(search)

        notes = await self.pg.execute_query(
            f"""
            SELECT {NOTE_COLUMNS}
            FROM notes
            {where_clause}
            ORDER BY updated_at DESC
            LIMIT :limit OFFSET :offset
            """,
            params,
        )
        count_result = await self.pg.execute_query(
            f"SELECT COUNT(*) AS count FROM notes {where_clause}",
            {k: v for k, v in params.items() if k not in ("limit", "offset")},
        )
        total = count_result[0]["count"] if count_result else 0
        return [_stringify_ids(n) for n in notes], total

    async def get_note(self, user_id: str, note_id: str) -> Optional[dict]:
        rows = await self.pg.execute_query(
            f"SELECT {NOTE_COLUMNS} FROM notes WHERE id = :note_id AND user_id = :user_id",
            {"note_id": note_id, "user_id": user_id},
        )
        return _stringify_ids(rows[0]) if rows else None

    async def set_status(self, user_id: str, note_id: str, status: NoteStatus) -> Optional[dict]:
        rows = await self.pg.execute_query(
            f"""
            UPDATE notes SET status = :status, updated_at = NOW()
            WHERE id = :note_id AND user_id = :user_id
            RETURNING {NOTE_COLUMNS}
            """,
            {"status": NoteStatus(status).value, "note_id": note_id, "user_id": user_id},
        )
        return _stringify_ids(rows[0]) if rows else None

    async def delete_note(self, user_id: str, note_id: str) -> bool:
        # Edges in both directions go with the note (ON DELETE CASCADE)
        deleted = await self.pg.execute_update(
            "DELETE FROM notes WHERE id = :note_id AND user_id = :user_id",
            {"note_id": note_id, "user_id": user_id},
        )
        return deleted > 0

    async def list_edges(self, user_id: str) -> list[dict]:
        rows = await self.pg.execute_query(
            """
            SELECT id, user_id, source_id, target_id, relationship
            FROM edges
            WHERE user_id = :user_id
            ORDER BY created_at
            """,
            {"user_id": user_id},
        )
        return [_stringify_ids(r) for r in rows]

    async def list_neighbours(self, user_id: str, note_id: str) -> list[dict]:
        """Notes on the other end of every edge touching note_id."""
        rows = await self.pg.execute_query(
            """
            SELECT e.relationship, 'outgoing' AS direction,
                   n.id, n.title, n.slug, n.status, n.content IS NULL OR n.content = '' AS is_ghost
            FROM edges e JOIN notes n ON n.id = e.target_id
            WHERE e.user_id = :user_id AND e.source_id = :note_id
            UNION ALL
            SELECT e.relationship, 'incoming' AS direction,
                   n.id, n.title, n.slug, n.status, n.content IS NULL OR n.content = '' AS is_ghost
            FROM edges e JOIN notes n ON n.id = e.source_id
            WHERE e.user_id = :user_id AND e.target_id = :note_id
            """,
            {"user_id": user_id, "note_id": note_id},
        )
        return [_stringify_ids(r) for r in rows]

    async def list_graph_nodes(self, user_id: str) -> list[dict]:
        rows = await self.pg.execute_query(
            """
            SELECT id, title, slug, status,
                   content IS NULL OR content = '' AS is_ghost
            FROM notes
            WHERE user_id = :user_id
            ORDER BY created_at
            """,
            {"user_id": user_id},
        )
        return [_stringify_ids(r) for r in rows]
