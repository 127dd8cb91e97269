"""Pydantic models for BrainFlow."""

from brainflow.models.schemas import (
    Edge,
    GeneratedNote,
    GraphResponse,
    Note,
    NoteStatus,
    RelationshipType,
    SyncResponse,
)

__all__ = [
    "Edge",
    "GeneratedNote",
    "GraphResponse",
    "Note",
    "NoteStatus",
    "RelationshipType",
    "SyncResponse",
]
