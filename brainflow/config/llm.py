"""LLM configuration for BrainFlow note generation.

Notes are generated with Google Gemini through langchain. The key is read from
GOOGLE_API_KEY; BRAINFLOW_CHAT_MODEL overrides the default model.
"""

import os
from functools import lru_cache
from typing import Optional

import structlog
from langchain_google_genai import ChatGoogleGenerativeAI

logger = structlog.get_logger()

DEFAULT_CHAT_MODEL = "gemini-2.5-flash"


@lru_cache(maxsize=8)
def get_chat_model(
    model: Optional[str] = None,
    temperature: float = 0.4,
    json_mode: bool = False,
) -> ChatGoogleGenerativeAI:
    """Get a cached chat model instance.

    Args:
        model: Model name (defaults to BRAINFLOW_CHAT_MODEL or gemini-2.5-flash)
        temperature: Creativity (0.0 = deterministic, 1.0 = creative)
        json_mode: If True, asks the model for a JSON response body
    """
    model_name = model or os.getenv("BRAINFLOW_CHAT_MODEL", DEFAULT_CHAT_MODEL)

    logger.debug("Creating chat model", model=model_name, temperature=temperature, json_mode=json_mode)

    # generation_config only for json_mode; it would otherwise override temperature
    kwargs: dict = {}
    if json_mode:
        kwargs["model_kwargs"] = {
            "generation_config": {"response_mime_type": "application/json"}
        }

    return ChatGoogleGenerativeAI(
        model=model_name,
        google_api_key=os.getenv("GOOGLE_API_KEY"),
        temperature=temperature,
        **kwargs,
    )
