"""
LangGraph workflows for BrainFlow.

- note_graph: generate a note with the LLM, then sync it into the note graph
- vault_chat_graph: tool-calling assistant that reads and writes the vault
"""

from brainflow.graphs.note_graph import build_note_graph, run_note_generation
from brainflow.graphs.vault_chat_graph import build_vault_chat_graph, run_vault_chat

__all__ = [
    "build_note_graph",
    "run_note_generation",
    "build_vault_chat_graph",
    "run_vault_chat",
]
