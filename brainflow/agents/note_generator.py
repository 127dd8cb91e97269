"""Note Generator Agent - writes a Markdown study note on a topic."""

import json
import re
import time
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from brainflow.config.llm import get_chat_model
from brainflow.models.schemas import GeneratedNote

logger = structlog.get_logger()

PROMPT_PATH = Path(__file__).parent.parent / "prompts" / "note_generation.txt"

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def parse_llm_json(response) -> dict:
    """Parse a JSON object out of an LLM response, tolerating code fences."""
    content = getattr(response, "content", None)
    if not content or not str(content).strip():
        raise ValueError("LLM returned empty response")

    text = str(content).strip()
    if text.startswith("```json"):
        text = text.split("```json", 1)[1].split("```", 1)[0].strip()
    elif text.startswith("```"):
        text = text.split("```", 1)[1].split("```", 1)[0].strip()

    # Keep \t \n \r, they are legal JSON whitespace
    text = _CONTROL_CHARS.sub("", text)

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"LLM returned invalid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ValueError("LLM returned JSON that is not an object")
    return parsed


class NoteGeneratorAgent:
    """
    Generates an atomic note with [[linked terms]] for a topic.

    The note content is what gets synchronized into the graph; linked terms
    become ghost notes the user can expand later.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: float = 0.4,
    ):
        self.model_name = model
        self.llm = get_chat_model(
            model=model,
            temperature=temperature,
            json_mode=True,
        )
        self._prompt_template = self._load_prompt()

    def _load_prompt(self) -> str:
        try:
            return PROMPT_PATH.read_text()
        except FileNotFoundError:
            logger.warning("Note generation prompt file not found, using default")
            return (
                "Write a Markdown study note about: {topic}\n{parent_context}\n"
                "Wrap technical terms in [[double brackets]]. Return JSON with keys "
                "title, content, linkedTerms, prerequisites, nextSteps."
            )

    def build_prompt(self, topic: str, parent_topic: Optional[str] = None) -> str:
        parent_context = ""
        if parent_topic:
            parent_context = (
                f"Context: the user is learning this as part of {parent_topic}. "
                f"Explain how {topic} relates to {parent_topic}."
            )
        return (
            self._prompt_template
            .replace("{topic}", topic)
            .replace("{parent_context}", parent_context)
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
    )
    async def generate(self, topic: str, parent_topic: Optional[str] = None) -> GeneratedNote:
        """
        Generate a note for a topic.

        Args:
            topic: What the note is about
            parent_topic: Broader topic the user is studying, if any

        Returns:
            GeneratedNote with title, Markdown content and linked terms

        Raises:
            ValueError: If the model output is not a valid note
        """
        start_time = time.time()
        logger.info("NoteGenerator: Generating note", topic=topic, parent_topic=parent_topic)

        response = await self.llm.ainvoke(self.build_prompt(topic, parent_topic))
        parsed = parse_llm_json(response)

        try:
            note = GeneratedNote.model_validate(parsed)
        except ValidationError as e:
            logger.error("NoteGenerator: Invalid note payload", topic=topic, error=str(e))
            raise ValueError(f"LLM returned an invalid note: {e}") from e

        if not note.title.strip():
            note.title = topic

        logger.info(
            "NoteGenerator: Note generated",
            title=note.title,
            content_length=len(note.content),
            linked_terms=len(note.linked_terms),
            processing_time_ms=(time.time() - start_time) * 1000,
        )
        return note
