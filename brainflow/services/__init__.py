"""Services for BrainFlow."""

from brainflow.services.graph_sync import (
    GraphSynchronizer,
    NoteGraphStore,
    NoteUpsertError,
    SyncResult,
    extract_links,
    note_title_from_filename,
    slugify,
)
from brainflow.services.graph_queries import GraphQueryService
from brainflow.services.vault_service import VaultService

__all__ = [
    "GraphSynchronizer",
    "NoteGraphStore",
    "NoteUpsertError",
    "SyncResult",
    "extract_links",
    "note_title_from_filename",
    "slugify",
    "GraphQueryService",
    "VaultService",
]
