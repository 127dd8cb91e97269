"""LangSmith tracing for the note generation workflow."""

import os

import structlog

logger = structlog.get_logger()

DEFAULT_PROJECT = "BrainFlow"


def init_observability() -> bool:
    """Turn on LangSmith tracing when an API key is configured.

    Returns True if tracing is enabled.
    """
    if not os.getenv("LANGCHAIN_API_KEY"):
        logger.info("LangSmith tracing disabled", hint="Set LANGCHAIN_API_KEY to enable it")
        return False

    os.environ.setdefault("LANGCHAIN_TRACING_V2", "true")
    project = os.environ.setdefault("LANGCHAIN_PROJECT", DEFAULT_PROJECT)
    logger.info("LangSmith tracing enabled", project=project)
    return True
