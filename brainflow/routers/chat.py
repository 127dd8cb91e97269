"""Chat Router - Vault assistant endpoints."""

import json

import structlog
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from brainflow.auth.middleware import get_current_user
from brainflow.config.settings import AppSettings
from brainflow.graphs.vault_chat_graph import (
    build_vault_chat_graph,
    message_text,
    run_vault_chat,
    to_langchain_messages,
)
from brainflow.models.schemas import ChatRequest, ChatResponse
from brainflow.services.dependencies import get_vault_service

logger = structlog.get_logger()

router = APIRouter(prefix="/api/chat", tags=["Chat Assistant"])


def _sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@router.post("", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    current_user: dict = Depends(get_current_user),
):
    """
    Chat with the vault assistant.

    The assistant can list, read and write files and create directories in
    your vault. Markdown files it writes are synced into your note graph.
    """
    try:
        vault = await get_vault_service(str(current_user["id"]))
        result = await run_vault_chat(
            vault,
            request.messages,
            model=request.model,
            max_steps=AppSettings().chat_max_steps,
        )
        return ChatResponse(**result)
    except Exception as e:
        logger.error("Chat: Error processing message", error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/stream")
async def stream_chat(
    request: ChatRequest,
    current_user: dict = Depends(get_current_user),
):
    """
    Stream the assistant's answer as Server-Sent Events.

    Events: chunk (answer tokens), status (tool activity), done (final answer
    and tools used) or error.
    """
    user_id = str(current_user["id"])

    async def generate():
        try:
            vault = await get_vault_service(user_id)
            graph = build_vault_chat_graph(vault, model=request.model)
            initial_state = {
                "messages": to_langchain_messages(request.messages),
                "user_id": user_id,
            }
            config = {"recursion_limit": AppSettings().chat_max_steps}

            streamed = ""
            final_answer = ""
            tools_used: list[str] = []

            async for event in graph.astream_events(initial_state, config, version="v2"):
                kind = event["event"]

                if kind == "on_chat_model_stream":
                    content = message_text(event["data"]["chunk"])
                    if content:
                        streamed += content
                        yield _sse({"type": "chunk", "content": content})

                elif kind == "on_tool_start":
                    tools_used.append(event["name"])
                    yield _sse({"type": "status", "content": f"Using tool: {event['name']}..."})

                elif kind == "on_chain_end" and event["name"] == "agent":
                    output = event["data"].get("output") or {}
                    messages = output.get("messages") or []
                    if messages:
                        final_answer = message_text(messages[-1])

            # Tool-calling turns stream no text, so the last agent turn is the answer
            yield _sse({
                "type": "done",
                "response": final_answer or streamed,
                "tools_used": tools_used,
            })
            logger.info("Stream chat: Complete", user_id=user_id, tools_used=tools_used)

        except Exception as e:
            logger.error("Stream chat: Error", error=str(e))
            yield _sse({"type": "error", "error": str(e)})

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )
