"""Pydantic models for BrainFlow API and internal data structures."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, computed_field


# ============================================================================
# Enums
# ============================================================================


class NoteStatus(str, Enum):
    """How well the user understands a note."""

    NEW = "new"
    IN_PROGRESS = "in-progress"
    UNDERSTOOD = "understood"


class RelationshipType(str, Enum):
    """Types of edges between notes."""

    RELATED_TO = "related_to"


class VaultNodeType(str, Enum):
    """Kind of node in a user's vault."""

    FILE = "file"
    DIRECTORY = "directory"


# ============================================================================
# Core Domain Models
# ============================================================================


class Note(BaseModel):
    """A note in the user's knowledge graph."""

    id: str
    user_id: str
    title: str
    slug: str
    content: Optional[str] = None
    status: NoteStatus = NoteStatus.NEW
    is_generated: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def is_ghost(self) -> bool:
        return not self.content


class Edge(BaseModel):
    """A directed edge from one note to another."""

    id: str
    user_id: str
    source_id: str
    target_id: str
    relationship: RelationshipType = RelationshipType.RELATED_TO

    model_config = {"from_attributes": True}


class GeneratedNote(BaseModel):
    """Structured note returned by the generation model."""

    title: str = Field(..., description="The title of the note")
    content: str = Field(
        ..., description="Markdown content of the note, with [[linked terms]] and callouts"
    )
    linked_terms: list[str] = Field(default_factory=list, alias="linkedTerms")
    prerequisites: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list, alias="nextSteps")

    model_config = {"populate_by_name": True}


# ============================================================================
# API Request/Response Models
# ============================================================================


class NoteWriteRequest(BaseModel):
    """Write a note's content and rebuild its links."""

    title: str = Field(..., min_length=1, description="Note title or vault file name")
    content: str = Field(..., description="Markdown content")
    status: Optional[NoteStatus] = Field(
        default=None, description="Status for a newly created note"
    )


class NoteStatusUpdate(BaseModel):
    """Explicit status change for a note."""

    status: str


class SyncResponse(BaseModel):
    """Result of synchronizing a note into the graph."""

    note_id: str
    slug: str
    title: str
    linked_terms: list[str] = Field(default_factory=list)
    edges_created: int = 0
    ghosts_created: list[str] = Field(default_factory=list)
    skipped_terms: list[str] = Field(default_factory=list)


class GenerateNoteRequest(BaseModel):
    """Request an AI-generated note on a topic."""

    topic: str = Field(..., min_length=1)
    parent_topic: Optional[str] = Field(
        default=None, description="Topic the user is studying this as part of"
    )


class GenerateNoteResponse(BaseModel):
    """Generated note plus the result of syncing it."""

    note: GeneratedNote
    sync: SyncResponse


class GraphResponse(BaseModel):
    """Response model for graph queries."""

    nodes: list[dict[str, Any]] = Field(default_factory=list)
    edges: list[dict[str, Any]] = Field(default_factory=list)
    total_notes: int = Field(default=0)
    total_edges: int = Field(default=0)


class Recommendation(BaseModel):
    """A note worth studying next."""

    note: dict[str, Any]
    reason: str
    priority: int


class RecommendationsResponse(BaseModel):
    recommendations: list[Recommendation] = Field(default_factory=list)
    stats: dict[str, int] = Field(default_factory=dict)


class VaultWriteRequest(BaseModel):
    path: str = Field(..., description="Absolute vault path, e.g. /notes/React.md")
    content: str = ""


class VaultPathRequest(BaseModel):
    path: str


class VaultMoveRequest(BaseModel):
    source: str
    destination: str


class ChatMessage(BaseModel):
    """One turn of a vault chat conversation."""

    role: Literal["user", "assistant", "system"] = "user"
    content: str = ""


class ChatRequest(BaseModel):
    """Conversation so far; the last message is the one to answer."""

    messages: list[ChatMessage] = Field(..., min_length=1)
    model: Optional[str] = Field(default=None, description="Chat model override")


class ChatResponse(BaseModel):
    response: str
    tools_used: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response model for health checks."""

    status: str
    postgres: dict[str, Any]
    version: str = "0.1.0"
