"""Database access for BrainFlow."""

from brainflow.db.note_store import PostgresNoteGraphStore
from brainflow.db.postgres_client import PostgresClient, get_postgres_client

__all__ = ["PostgresClient", "PostgresNoteGraphStore", "get_postgres_client"]
