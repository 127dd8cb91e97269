"""Process-wide service instances shared by the routers."""

import asyncio
from typing import Optional

from brainflow.config.settings import AppSettings, SyncSettings
from brainflow.db.note_store import PostgresNoteGraphStore
from brainflow.db.postgres_client import get_postgres_client
from brainflow.services.graph_queries import GraphQueryService
from brainflow.services.graph_sync import GraphSynchronizer
from brainflow.services.vault_service import VaultService

# One synchronizer per process so its per-note locks are shared by all requests
_synchronizer: Optional[GraphSynchronizer] = None
_lock = asyncio.Lock()


async def get_note_store() -> PostgresNoteGraphStore:
    return PostgresNoteGraphStore(await get_postgres_client())


async def get_graph_synchronizer() -> GraphSynchronizer:
    """Get or create the global GraphSynchronizer."""
    global _synchronizer

    async with _lock:
        if _synchronizer is None:
            _synchronizer = GraphSynchronizer(await get_note_store(), SyncSettings())

    return _synchronizer


async def get_graph_query_service() -> GraphQueryService:
    return GraphQueryService(await get_note_store())


async def get_vault_service(user_id: str) -> VaultService:
    """A vault scoped to one user whose Markdown writes sync the shared graph."""
    return VaultService(
        user_id=user_id,
        pg_client=await get_postgres_client(),
        synchronizer=await get_graph_synchronizer(),
        search_limit=AppSettings().vault_search_limit,
    )


async def reset_services() -> None:
    """Drop cached services; used on shutdown."""
    global _synchronizer

    async with _lock:
        _synchronizer = None
