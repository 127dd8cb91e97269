"""LLM agents for BrainFlow."""

from brainflow.agents.note_generator import NoteGeneratorAgent

__all__ = ["NoteGeneratorAgent"]
