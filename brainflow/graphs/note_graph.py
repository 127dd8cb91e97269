"""
LangGraph Note Generation Workflow

Flow:
START → generate_note → sync_note → END

generate_note asks the LLM for a note on the topic; sync_note writes it into
the note graph, creating ghost notes for every [[linked term]].

The slug comes from the requested topic, so generating a ghost's topic fills in
that ghost; the generated title is only stored as display text.
"""

from typing import Any, Optional

import structlog
from langgraph.graph import StateGraph, START, END
from typing_extensions import TypedDict

from brainflow.agents.note_generator import NoteGeneratorAgent
from brainflow.models.schemas import NoteStatus
from brainflow.services.graph_sync import GraphSynchronizer

logger = structlog.get_logger()


class NoteGenerationState(TypedDict, total=False):
    """State for generating and syncing one note."""

    user_id: str
    topic: str
    parent_topic: Optional[str]
    note: Any  # GeneratedNote
    sync_result: Any  # SyncResult
    error: Optional[str]


def build_note_graph(
    synchronizer: GraphSynchronizer,
    generator: Optional[NoteGeneratorAgent] = None,
):
    """Compile the generate → sync workflow around the given collaborators."""
    agent = generator or NoteGeneratorAgent()

    async def generate_note_node(state: NoteGenerationState) -> dict:
        topic = (state.get("topic") or "").strip()
        if not topic:
            return {"error": "Missing topic"}

        try:
            note = await agent.generate(topic, state.get("parent_topic"))
        except Exception as e:
            logger.error("NoteGraph: generate_note failed", topic=topic, error=str(e))
            return {"error": f"Generation failed: {e}"}
        return {"note": note}

    async def sync_note_node(state: NoteGenerationState) -> dict:
        if state.get("error"):
            return {}

        note = state["note"]
        try:
            result = await synchronizer.synchronize(
                state["user_id"],
                state["topic"].strip(),
                note.content,
                status=NoteStatus.IN_PROGRESS,
                title=note.title,
            )
        except Exception as e:
            logger.error("NoteGraph: sync_note failed", title=note.title, error=str(e))
            return {"error": f"Sync failed: {e}"}
        return {"sync_result": result}

    graph = StateGraph(NoteGenerationState)
    graph.add_node("generate_note", generate_note_node)
    graph.add_node("sync_note", sync_note_node)
    graph.add_edge(START, "generate_note")
    graph.add_edge("generate_note", "sync_note")
    graph.add_edge("sync_note", END)
    return graph.compile()


async def run_note_generation(
    synchronizer: GraphSynchronizer,
    user_id: str,
    topic: str,
    parent_topic: Optional[str] = None,
    generator: Optional[NoteGeneratorAgent] = None,
) -> NoteGenerationState:
    """Generate a note on a topic and sync it; check "error" in the result."""
    workflow = build_note_graph(synchronizer, generator)
    return await workflow.ainvoke(
        {"user_id": user_id, "topic": topic, "parent_topic": parent_topic}
    )
