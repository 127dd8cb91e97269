"""API Routers for BrainFlow."""

from brainflow.routers.chat import router as chat_router
from brainflow.routers.graph import router as graph_router
from brainflow.routers.notes import router as notes_router
from brainflow.routers.vault import router as vault_router

__all__ = [
    "chat_router",
    "graph_router",
    "notes_router",
    "vault_router",
]
